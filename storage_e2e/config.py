# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
Configuration constants for the storage end-to-end suite.

All timeouts, resource names, and environment-driven settings are centralized
here. This is the single source of truth for the suite and the function app.
"""
import os

# =============================================================================
# Timeout Configuration
# =============================================================================
SECONDS = 1
QUEUE_TIMEOUT_S = 10 * SECONDS
BLOB_TIMEOUT_S = 10 * SECONDS
DEFAULT_POLL_TIMEOUT_S = 60 * SECONDS
DEFAULT_POLL_INTERVAL_S = 2 * SECONDS
STORAGE_POLL_INTERVAL_S = 0.5
HOST_START_TIMEOUT_S = 120 * SECONDS
HOST_STOP_TIMEOUT_S = 10 * SECONDS
HTTP_TIMEOUT_S = 30.0
HTTP_CONNECT_TIMEOUT_S = 10.0

# =============================================================================
# Environment
# =============================================================================
# Well-known Azurite development account
AZURITE_CONNECTION_STRING = (
    "DefaultEndpointsProtocol=http;"
    "AccountName=devstoreaccount1;"
    "AccountKey=Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw==;"
    "BlobEndpoint=http://127.0.0.1:10000/devstoreaccount1;"
    "QueueEndpoint=http://127.0.0.1:10001/devstoreaccount1;"
)
STORAGE_CONNECTION_SETTING = "AzureWebJobsStorage"
STORAGE_CONNECTION_STRING = os.environ.get(STORAGE_CONNECTION_SETTING, AZURITE_CONNECTION_STRING)
FUNCTIONS_HOST_URL = os.environ.get("FUNCTIONS_HOST_URL", "http://localhost:7071")
FUNCTIONS_HOST_COMMAND = os.environ.get("FUNCTIONS_HOST_COMMAND", "func start --port 7071")
USE_EXISTING_HOST = os.environ.get("FUNCTIONS_USE_EXISTING_HOST", "0") == "1"
E2E_ENABLED = os.environ.get("STORAGE_E2E", "0") == "1"

# =============================================================================
# Queue Names
# =============================================================================
QUEUE_INPUT = "test-input-python"
QUEUE_OUTPUT = "test-output-python"
QUEUE_INPUT_POCO = "test-input-python-poco"
QUEUE_OUTPUT_POCO = "test-output-python-poco"
QUEUE_INPUT_METADATA = "test-input-python-metadata"
QUEUE_OUTPUT_METADATA = "test-output-python-metadata"
QUEUE_INPUT_ARRAY = "test-input-array-python"
QUEUE_OUTPUT_ARRAY = "test-output-array-python"
QUEUE_INPUT_LIST = "test-input-list-python"
QUEUE_OUTPUT_LIST = "test-output-list-python"
QUEUE_INPUT_BINDING_DATA = "test-input-binding-data-python"
QUEUE_OUTPUT_BINDING_DATA = "test-output-binding-data-python"

ALL_QUEUES = (
    QUEUE_INPUT,
    QUEUE_OUTPUT,
    QUEUE_INPUT_POCO,
    QUEUE_OUTPUT_POCO,
    QUEUE_INPUT_METADATA,
    QUEUE_OUTPUT_METADATA,
    QUEUE_INPUT_ARRAY,
    QUEUE_OUTPUT_ARRAY,
    QUEUE_INPUT_LIST,
    QUEUE_OUTPUT_LIST,
    QUEUE_INPUT_BINDING_DATA,
    QUEUE_OUTPUT_BINDING_DATA,
)

# =============================================================================
# Blob Container Names
# =============================================================================
CONTAINER_TRIGGER_INPUT = "test-trigger-python"
CONTAINER_INPUT = "test-input-python"
CONTAINER_OUTPUT = "test-output-python"
CONTAINER_TRIGGER_POCO = "test-triggerpoco-python"
CONTAINER_OUTPUT_POCO = "test-outputpoco-python"
CONTAINER_TRIGGER_STRING = "test-triggerstring-python"
CONTAINER_OUTPUT_STRING = "test-outputstring-python"

ALL_CONTAINERS = (
    CONTAINER_TRIGGER_INPUT,
    CONTAINER_INPUT,
    CONTAINER_OUTPUT,
    CONTAINER_TRIGGER_POCO,
    CONTAINER_OUTPUT_POCO,
    CONTAINER_TRIGGER_STRING,
    CONTAINER_OUTPUT_STRING,
)

# =============================================================================
# Message Formats
# =============================================================================
DEFAULT_BLOB_CONTENT = "Hello World"
TAG_SEPARATOR = "|"
OUTPUT_TAGS = ("1", "2")
BINDING_DATA_SEPARATOR = ","
BINDING_DATA_ASSIGN = "="
BINDING_DATA_KEYS = (
    "QueueTrigger",
    "DequeueCount",
    "Id",
    "InsertionTime",
    "NextVisibleTime",
    "PopReceipt",
)
TIMEOUT_MESSAGE = "Condition not reached within timeout."
LOG_TAIL_LINES = 20

# =============================================================================
# Content Types and Encodings
# =============================================================================
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_TEXT = "text/plain"
ENCODING_UTF8 = "utf-8"
