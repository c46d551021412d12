from __future__ import annotations

import asyncio
import os
import uuid

from ddbclient_py import ClientConfig, connect


def _config() -> ClientConfig:
    return ClientConfig(
        host=os.environ.get("DYNAMODB_HOST", "localhost"),
        port=int(os.environ.get("DYNAMODB_PORT", "8000")),
        ssl=False,
        access_key=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        secret_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
        scope=f"{os.environ.get('AWS_REGION', 'us-east-1')}/dynamodb/aws4_request",
    )


def test_dynamodb_local_smoke_put_get_delete() -> None:
    table_name = f"ddbclient_py_smoke_{uuid.uuid4().hex[:12]}"

    async def run() -> None:
        async with connect(_config()) as client:
            await client.create_table(
                TableName=table_name,
                AttributeDefinitions={"pk": "S", "sk": "S"},
                KeySchema=["pk", "sk"],
            )
            await client.wait_for_table_status(TableName=table_name, WaitInterval=0.2, Timeout=30)
            try:
                await client.put_item(TableName=table_name, Item={"pk": "A", "sk": "B", "value": 1})
                item = await client.get_item(TableName=table_name, Key={"pk": "A", "sk": "B"})
                assert item == {"pk": "A", "sk": "B", "value": 1}

                seen: list[str] = []
                await client.list_tables(seen.append)
                assert table_name in seen

                await client.delete_item(TableName=table_name, Key={"pk": "A", "sk": "B"})
                assert await client.get_item(TableName=table_name, Key={"pk": "A", "sk": "B"}) is None
            finally:
                await client.delete_table(TableName=table_name)

    asyncio.run(run())
