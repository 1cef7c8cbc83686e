"""
End-to-end tests for storage queue and blob bindings.

Each scenario seeds a queue or container, lets the running Functions host
process it, then polls for the output the function wrote:
- Queue trigger to queue output (single, array, list, binding data,
  trigger metadata, POCO)
- HTTP trigger to queue output
- Blob trigger to blob output, confirmed in the host log
"""

import json
from typing import Optional

import pytest

from storage_e2e.config import (
    BINDING_DATA_ASSIGN,
    BINDING_DATA_KEYS,
    BINDING_DATA_SEPARATOR,
    BLOB_TIMEOUT_S,
    CONTAINER_INPUT,
    CONTAINER_OUTPUT,
    CONTAINER_OUTPUT_POCO,
    CONTAINER_OUTPUT_STRING,
    CONTAINER_TRIGGER_INPUT,
    CONTAINER_TRIGGER_POCO,
    CONTAINER_TRIGGER_STRING,
    DEFAULT_BLOB_CONTENT,
    E2E_ENABLED,
    OUTPUT_TAGS,
    QUEUE_INPUT,
    QUEUE_INPUT_ARRAY,
    QUEUE_INPUT_BINDING_DATA,
    QUEUE_INPUT_LIST,
    QUEUE_INPUT_METADATA,
    QUEUE_INPUT_POCO,
    QUEUE_OUTPUT,
    QUEUE_OUTPUT_ARRAY,
    QUEUE_OUTPUT_BINDING_DATA,
    QUEUE_OUTPUT_LIST,
    QUEUE_OUTPUT_METADATA,
    QUEUE_OUTPUT_POCO,
    TAG_SEPARATOR,
)
from storage_e2e.host import LogBuffer, executed_log_line, wait_for_host_log
from storage_e2e.http import invoke_http_trigger
from storage_e2e.storage import (
    download_file_from_container,
    insert_into_queue,
    read_from_queue,
    read_messages_from_queue,
    upload_file_to_container,
)

pytestmark = [
    pytest.mark.e2e,
    pytest.mark.skipif(not E2E_ENABLED, reason="Set STORAGE_E2E=1 to run the storage end-to-end scenarios"),
]


def assert_tagged(message: str, expected: str) -> None:
    """Output must be '<expected>|<tag>' with tag 1 or 2."""
    payload, tag = message.split(TAG_SEPARATOR)
    assert payload == expected
    assert tag in OUTPUT_TAGS


async def assert_function_executed(host_logs: Optional[LogBuffer], function_name: str) -> None:
    """Wait for the host's completion line; no-op when the host output is not captured."""
    if host_logs is None:
        return
    await wait_for_host_log(host_logs, executed_log_line(function_name), timeout_s=BLOB_TIMEOUT_S)


@pytest.mark.timeout(120)
class TestQueueTriggers:
    """Queue-triggered functions writing to output queues."""

    @pytest.mark.asyncio
    async def test_queue_trigger_and_output(self, unique_id):
        await insert_into_queue(QUEUE_INPUT, unique_id)

        message = await read_from_queue(QUEUE_OUTPUT)

        assert message == unique_id

    @pytest.mark.asyncio
    async def test_queue_trigger_and_array_output(self, unique_id):
        await insert_into_queue(QUEUE_INPUT_ARRAY, unique_id)

        message1 = await read_from_queue(QUEUE_OUTPUT_ARRAY)
        message2 = await read_from_queue(QUEUE_OUTPUT_ARRAY)

        assert_tagged(message1, unique_id)
        assert_tagged(message2, unique_id)
        assert message1 != message2

    @pytest.mark.asyncio
    async def test_queue_trigger_and_list_output(self, unique_id):
        await insert_into_queue(QUEUE_INPUT_LIST, unique_id)

        message1 = await read_from_queue(QUEUE_OUTPUT_LIST)
        message2 = await read_from_queue(QUEUE_OUTPUT_LIST)

        assert_tagged(message1, unique_id)
        assert_tagged(message2, unique_id)
        assert message1 != message2

    @pytest.mark.asyncio
    async def test_queue_trigger_and_binding_data_output(self, unique_id):
        await insert_into_queue(QUEUE_INPUT_BINDING_DATA, unique_id)

        message = await read_from_queue(QUEUE_OUTPUT_BINDING_DATA)
        binding_data = dict(
            part.split(BINDING_DATA_ASSIGN, 1) for part in message.split(BINDING_DATA_SEPARATOR)
        )

        for key in BINDING_DATA_KEYS:
            assert key in binding_data
        assert binding_data["QueueTrigger"] == unique_id

    @pytest.mark.asyncio
    async def test_queue_trigger_binds_to_trigger_metadata(self, unique_id):
        message_id = await insert_into_queue(QUEUE_INPUT_METADATA, unique_id)

        message = await read_from_queue(QUEUE_OUTPUT_METADATA)

        assert message_id in message

    @pytest.mark.asyncio
    async def test_queue_trigger_queue_output_poco(self, unique_id):
        await insert_into_queue(QUEUE_INPUT_POCO, json.dumps({"id": unique_id}))

        message = await read_from_queue(QUEUE_OUTPUT_POCO)

        assert unique_id in message


@pytest.mark.timeout(120)
class TestHttpTriggers:
    """HTTP-triggered functions writing to output queues."""

    @pytest.mark.asyncio
    async def test_queue_output_poco_list(self, unique_id):
        assert await invoke_http_trigger(
            "QueueOutputPocoList", f"?queueMessageId={unique_id}", 200, unique_id
        )

        messages = await read_messages_from_queue(QUEUE_OUTPUT_POCO)

        assert messages
        assert all(unique_id in message for message in messages)


@pytest.mark.timeout(120)
class TestBlobTriggers:
    """Blob-triggered functions writing to output containers."""

    @pytest.mark.asyncio
    async def test_blob_trigger_to_blob(self, unique_id, host_logs):
        await upload_file_to_container(CONTAINER_INPUT, unique_id)

        await upload_file_to_container(CONTAINER_TRIGGER_INPUT, unique_id)

        result = await download_file_from_container(CONTAINER_OUTPUT, unique_id)
        assert result == DEFAULT_BLOB_CONTENT
        await assert_function_executed(host_logs, "BlobTriggerToBlobTest")

    @pytest.mark.asyncio
    async def test_blob_trigger_poco(self, unique_id, host_logs):
        payload = json.dumps({"text": DEFAULT_BLOB_CONTENT})

        await upload_file_to_container(CONTAINER_TRIGGER_POCO, unique_id, payload)

        result = await download_file_from_container(CONTAINER_OUTPUT_POCO, unique_id)
        assert result == payload
        await assert_function_executed(host_logs, "BlobTriggerPocoTest")

    @pytest.mark.asyncio
    async def test_blob_trigger_string(self, unique_id, host_logs):
        await upload_file_to_container(CONTAINER_TRIGGER_STRING, unique_id)

        result = await download_file_from_container(CONTAINER_OUTPUT_STRING, unique_id)
        assert result == DEFAULT_BLOB_CONTENT
        await assert_function_executed(host_logs, "BlobTriggerStringTest")
