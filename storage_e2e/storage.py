# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
Storage helpers for the end-to-end suite.

Seeds queues and blob containers, reads the outputs the function host
writes, and provisions the shared resources around a test session.
Reads that wait on the host go through retry_async; inside those probes a
missing resource or a transport blip means "not yet", never failure.
"""
import logging
from typing import Iterable, List, Optional

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError, ServiceRequestError
from azure.storage.blob.aio import BlobServiceClient
from azure.storage.queue import TextBase64DecodePolicy, TextBase64EncodePolicy
from azure.storage.queue.aio import QueueClient, QueueServiceClient

from storage_e2e.config import (
    ALL_CONTAINERS,
    ALL_QUEUES,
    BLOB_TIMEOUT_S,
    DEFAULT_BLOB_CONTENT,
    ENCODING_UTF8,
    QUEUE_TIMEOUT_S,
    STORAGE_CONNECTION_STRING,
    STORAGE_POLL_INTERVAL_S,
)
from storage_e2e.retry import retry_async

TRANSIENT_ERRORS = (ResourceNotFoundError, ServiceRequestError)


def _queue_client(queue_name: str) -> QueueClient:
    """Queue client using the base64 text encoding the Functions host expects."""
    return QueueClient.from_connection_string(
        STORAGE_CONNECTION_STRING,
        queue_name,
        message_encode_policy=TextBase64EncodePolicy(),
        message_decode_policy=TextBase64DecodePolicy(),
    )


def _queue_service_client() -> QueueServiceClient:
    return QueueServiceClient.from_connection_string(STORAGE_CONNECTION_STRING)


def _blob_service_client() -> BlobServiceClient:
    return BlobServiceClient.from_connection_string(STORAGE_CONNECTION_STRING)


# =============================================================================
# Queues
# =============================================================================


async def insert_into_queue(queue_name: str, message: str) -> str:
    """Enqueue message and return the id the service assigned to it."""
    async with _queue_client(queue_name) as queue_client:
        sent = await queue_client.send_message(message)
    logging.info(f"Inserted message {sent.id} into queue '{queue_name}'")
    return sent.id


async def _drain(queue_client: QueueClient, limit: Optional[int] = None) -> List[str]:
    """Receive and delete up to limit visible messages (all when None)."""
    contents: List[str] = []
    try:
        async for message in queue_client.receive_messages(max_messages=limit):
            await queue_client.delete_message(message)
            contents.append(message.content)
    except TRANSIENT_ERRORS as e:
        logging.debug(f"Queue read not ready yet: {e}")
    return contents


async def read_from_queue(queue_name: str, timeout_s: float = QUEUE_TIMEOUT_S) -> str:
    """
    Wait for one message on queue_name, delete it, and return its content.

    Raises PollTimeout if nothing arrives within timeout_s.
    """
    received: List[str] = []

    async with _queue_client(queue_name) as queue_client:
        async def message_arrived() -> bool:
            received.extend(await _drain(queue_client, limit=1))
            return bool(received)

        await retry_async(
            message_arrived,
            timeout_s=timeout_s,
            poll_interval_s=STORAGE_POLL_INTERVAL_S,
            message_callback=lambda: f"No message arrived on queue '{queue_name}'.",
            description=f"message on queue '{queue_name}'",
        )

    return received[0]


async def read_messages_from_queue(queue_name: str, timeout_s: float = QUEUE_TIMEOUT_S) -> List[str]:
    """
    Wait until queue_name has messages, then drain and return all visible ones.

    Raises PollTimeout if the queue stays empty for timeout_s.
    """
    received: List[str] = []

    async with _queue_client(queue_name) as queue_client:
        async def messages_arrived() -> bool:
            received.extend(await _drain(queue_client))
            return bool(received)

        await retry_async(
            messages_arrived,
            timeout_s=timeout_s,
            poll_interval_s=STORAGE_POLL_INTERVAL_S,
            message_callback=lambda: f"No messages arrived on queue '{queue_name}'.",
            description=f"messages on queue '{queue_name}'",
        )

    return received


async def create_queues(queue_names: Iterable[str] = ALL_QUEUES) -> None:
    async with _queue_service_client() as service:
        for name in queue_names:
            try:
                await service.create_queue(name)
                logging.info(f"Created queue '{name}'")
            except ResourceExistsError:
                logging.info(f"Queue '{name}' already exists")


async def delete_queues(queue_names: Iterable[str] = ALL_QUEUES) -> None:
    async with _queue_service_client() as service:
        for name in queue_names:
            try:
                await service.delete_queue(name)
                logging.info(f"Deleted queue '{name}'")
            except ResourceNotFoundError as e:
                logging.warning(f"Failed to delete queue '{name}': {e}")


async def clear_queues(queue_names: Iterable[str] = ALL_QUEUES) -> None:
    """Remove all messages from each queue, leaving the queues in place."""
    for name in queue_names:
        async with _queue_client(name) as queue_client:
            try:
                await queue_client.clear_messages()
            except ResourceNotFoundError as e:
                logging.warning(f"Failed to clear queue '{name}': {e}")


# =============================================================================
# Blobs
# =============================================================================


async def upload_file_to_container(
    container_name: str,
    blob_name: str,
    content: str = DEFAULT_BLOB_CONTENT,
) -> None:
    async with _blob_service_client() as service:
        blob_client = service.get_blob_client(container=container_name, blob=blob_name)
        await blob_client.upload_blob(content.encode(ENCODING_UTF8), overwrite=True)
    logging.info(f"Uploaded blob '{blob_name}' to container '{container_name}'")


async def download_file_from_container(
    container_name: str,
    blob_name: str,
    timeout_s: float = BLOB_TIMEOUT_S,
) -> str:
    """
    Wait for blob_name to appear in container_name and return its text.

    Raises PollTimeout if the blob does not exist within timeout_s.
    """
    downloaded: List[str] = []

    async with _blob_service_client() as service:
        blob_client = service.get_blob_client(container=container_name, blob=blob_name)

        async def blob_exists() -> bool:
            try:
                stream = await blob_client.download_blob()
                data = await stream.readall()
            except TRANSIENT_ERRORS as e:
                logging.debug(f"Blob '{container_name}/{blob_name}' not ready yet: {e}")
                return False
            downloaded.append(data.decode(ENCODING_UTF8))
            return True

        await retry_async(
            blob_exists,
            timeout_s=timeout_s,
            poll_interval_s=STORAGE_POLL_INTERVAL_S,
            message_callback=lambda: f"Blob '{blob_name}' was not found in container '{container_name}'.",
            description=f"blob '{container_name}/{blob_name}'",
        )

    return downloaded[0]


async def create_blob_containers(container_names: Iterable[str] = ALL_CONTAINERS) -> None:
    async with _blob_service_client() as service:
        for name in container_names:
            try:
                await service.create_container(name)
                logging.info(f"Created container '{name}'")
            except ResourceExistsError:
                logging.info(f"Container '{name}' already exists")


async def delete_blob_containers(container_names: Iterable[str] = ALL_CONTAINERS) -> None:
    async with _blob_service_client() as service:
        for name in container_names:
            try:
                await service.delete_container(name)
                logging.info(f"Deleted container '{name}'")
            except ResourceNotFoundError as e:
                logging.warning(f"Failed to delete container '{name}': {e}")


async def clear_blob_containers(container_names: Iterable[str] = ALL_CONTAINERS) -> None:
    """Delete every blob in each container, leaving the containers in place."""
    async with _blob_service_client() as service:
        for name in container_names:
            container_client = service.get_container_client(name)
            try:
                async for blob in container_client.list_blobs():
                    await container_client.delete_blob(blob.name)
            except ResourceNotFoundError as e:
                logging.warning(f"Failed to clear container '{name}': {e}")
