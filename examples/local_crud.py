from __future__ import annotations

import asyncio
import os
import uuid

from ddbclient_py import ClientConfig, Condition, connect


def _config() -> ClientConfig:
    return ClientConfig.from_env(
        host=os.environ.get("DYNAMODB_HOST", "localhost"),
        port=int(os.environ.get("DYNAMODB_PORT", "8000")),
        ssl=False,
        access_key=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        secret_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


async def main() -> None:
    table_name = f"ddbclient_py_example_{uuid.uuid4().hex[:12]}"

    async with connect(_config()) as client:
        await client.create_table(
            TableName=table_name,
            AttributeDefinitions={"user_id": "N", "date": "N"},
            KeySchema=["user_id", "date"],
        )
        await client.wait_for_table_status(TableName=table_name, WaitInterval=0.5)

        try:
            await client.batch_write_item(
                RequestItems={
                    table_name: [
                        {"PutRequest": {"Item": {"user_id": 1, "date": day, "note": f"day {day}"}}}
                        for day in (1, 10, 100)
                    ]
                }
            )

            print("get:", await client.get_item(TableName=table_name, Key={"user_id": 1, "date": 10}))

            summary = await client.query(
                print,
                TableName=table_name,
                KeyConditions={"user_id": Condition.eq(1), "date": Condition.lt(50)},
            )
            print("query date < 50:", summary.count, "items")
        finally:
            await client.delete_table(TableName=table_name)


if __name__ == "__main__":
    asyncio.run(main())
