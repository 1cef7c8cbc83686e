"""
Shared fixtures for the storage end-to-end scenarios.

These tests run against a real Functions host and a storage account
(Azurite by default) to validate trigger and binding behavior that cannot
be verified through unit tests alone.

The queues and containers are provisioned once per session, shared by all
scenarios, and cleared after each one. The scenarios run sequentially so
they never race each other on a shared queue.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio

from storage_e2e import storage
from storage_e2e.config import E2E_ENABLED, USE_EXISTING_HOST
from storage_e2e.host import FunctionHost, LogBuffer

APP_DIR = Path(__file__).parent.parent.parent


async def _provision() -> None:
    await storage.create_blob_containers()
    await storage.create_queues()


async def _teardown() -> None:
    await storage.delete_queues()
    await storage.delete_blob_containers()


@pytest.fixture(scope="session")
def storage_resources():
    """Create the shared queues and containers, delete them after the session."""
    if not E2E_ENABLED:
        pytest.skip("Set STORAGE_E2E=1 to run the storage end-to-end scenarios")

    asyncio.run(_provision())
    yield
    # Comment this out to keep the resources around during local debugging.
    asyncio.run(_teardown())


@pytest.fixture(scope="session")
def function_host(storage_resources) -> FunctionHost:
    """Start the Functions host (unless one is already running) and wait until healthy."""
    host = FunctionHost(APP_DIR)

    if USE_EXISTING_HOST:
        logging.info(f"Using existing function host at {host.base_url}")
        asyncio.run(host.wait_until_healthy())
        yield host
        return

    host.start()
    try:
        asyncio.run(host.wait_until_healthy())
        yield host
    finally:
        host.stop()


@pytest.fixture
def host_logs(function_host: FunctionHost) -> Optional[LogBuffer]:
    """Captured host output, or None when the host is not owned by this session."""
    if USE_EXISTING_HOST:
        return None
    return function_host.logs


@pytest_asyncio.fixture(autouse=True)
async def clean_storage(function_host):
    """Clear every shared queue and container after each scenario."""
    yield
    await storage.clear_queues()
    await storage.clear_blob_containers()


@pytest.fixture
def unique_id() -> str:
    """Generate a unique identifier for test isolation."""
    return str(uuid.uuid4())
