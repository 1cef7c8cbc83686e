# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.

"""
Storage Bindings Test App

The Azure Functions app exercised by the storage end-to-end suite. Each
function pairs a queue, blob, or HTTP trigger with an output binding so the
suite can seed an input and observe the output the host produced.

Functions:
    - Queue trigger to queue output (single, array, list, binding data,
      trigger metadata, POCO)
    - HTTP trigger to queue output (POCO list)
    - Blob trigger to blob output (with blob input, POCO, string)

Usage:
    func start --port 7071   (run from the repository root)

See README.md for full documentation.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional

import azure.functions as func

from storage_e2e.config import (
    BINDING_DATA_ASSIGN,
    BINDING_DATA_SEPARATOR,
    CONTAINER_INPUT,
    CONTAINER_OUTPUT,
    CONTAINER_OUTPUT_POCO,
    CONTAINER_OUTPUT_STRING,
    CONTAINER_TRIGGER_INPUT,
    CONTAINER_TRIGGER_POCO,
    CONTAINER_TRIGGER_STRING,
    CONTENT_TYPE_TEXT,
    ENCODING_UTF8,
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
    STORAGE_CONNECTION_SETTING,
    TAG_SEPARATOR,
)


@dataclass
class QueueItem:
    """JSON payload carried by the POCO queue functions."""
    id: str


@dataclass
class BlobDocument:
    """JSON payload carried by the POCO blob function."""
    text: str


def _body_text(msg: func.QueueMessage) -> str:
    return msg.get_body().decode(ENCODING_UTF8)


def tag_messages(message: str) -> List[str]:
    """Split one message into one tagged copy per output tag ('msg|1', 'msg|2')."""
    return [f"{message}{TAG_SEPARATOR}{tag}" for tag in OUTPUT_TAGS]


def _format_binding_value(value) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return "" if value is None else str(value)


def format_binding_data(msg: func.QueueMessage) -> str:
    """Render queue trigger metadata as 'Key=value,Key=value'."""
    binding_data = {
        "QueueTrigger": _body_text(msg),
        "DequeueCount": msg.dequeue_count,
        "Id": msg.id,
        "InsertionTime": msg.insertion_time,
        "NextVisibleTime": msg.time_next_visible,
        "PopReceipt": msg.pop_receipt,
    }
    return BINDING_DATA_SEPARATOR.join(
        f"{key}{BINDING_DATA_ASSIGN}{_format_binding_value(value)}"
        for key, value in binding_data.items()
    )


def parse_queue_item(raw: str) -> Optional[QueueItem]:
    """Parse a QueueItem from JSON, returning None for malformed payloads."""
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("id"), str):
        return None
    return QueueItem(id=data["id"])


app = func.FunctionApp()


@app.function_name(name="Health")
@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint polled by the suite before tests start."""
    return func.HttpResponse("OK", status_code=200)


# =============================================================================
# Queue Triggers
# =============================================================================


@app.function_name(name="QueueTriggerAndOutput")
@app.queue_trigger(arg_name="msg", queue_name=QUEUE_INPUT, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT, connection=STORAGE_CONNECTION_SETTING)
def queue_trigger_and_output(msg: func.QueueMessage, output: func.Out[str]) -> None:
    """Copy the message to the output queue unchanged."""
    message = _body_text(msg)
    logging.info(f"Queue message {msg.id} received: {message}")
    output.set(message)


@app.function_name(name="QueueTriggerAndArrayOutput")
@app.queue_trigger(arg_name="msg", queue_name=QUEUE_INPUT_ARRAY, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT_ARRAY, connection=STORAGE_CONNECTION_SETTING)
def queue_trigger_and_array_output(msg: func.QueueMessage, output: func.Out[List[str]]) -> None:
    output.set(tag_messages(_body_text(msg)))


@app.function_name(name="QueueTriggerAndListOutput")
@app.queue_trigger(arg_name="msg", queue_name=QUEUE_INPUT_LIST, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT_LIST, connection=STORAGE_CONNECTION_SETTING)
def queue_trigger_and_list_output(msg: func.QueueMessage, output: func.Out[List[str]]) -> None:
    message = _body_text(msg)
    messages: List[str] = []
    for tag in OUTPUT_TAGS:
        messages.append(f"{message}{TAG_SEPARATOR}{tag}")
    output.set(messages)


@app.function_name(name="QueueTriggerAndBindingDataOutput")
@app.queue_trigger(arg_name="msg", queue_name=QUEUE_INPUT_BINDING_DATA, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT_BINDING_DATA, connection=STORAGE_CONNECTION_SETTING)
def queue_trigger_and_binding_data_output(msg: func.QueueMessage, output: func.Out[str]) -> None:
    output.set(format_binding_data(msg))


@app.function_name(name="QueueTriggerMetadata")
@app.queue_trigger(arg_name="msg", queue_name=QUEUE_INPUT_METADATA, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT_METADATA, connection=STORAGE_CONNECTION_SETTING)
def queue_trigger_metadata(msg: func.QueueMessage, output: func.Out[str]) -> None:
    """Write the trigger's message id so the caller can match it to its insert."""
    output.set(msg.id)


@app.function_name(name="QueueTriggerPoco")
@app.queue_trigger(arg_name="msg", queue_name=QUEUE_INPUT_POCO, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT_POCO, connection=STORAGE_CONNECTION_SETTING)
def queue_trigger_poco(msg: func.QueueMessage, output: func.Out[str]) -> None:
    item = parse_queue_item(_body_text(msg))
    if item is None:
        logging.error(f"Queue message {msg.id} is not a valid QueueItem")
        raise ValueError(f"Invalid QueueItem payload in message {msg.id}")
    output.set(json.dumps(asdict(item)))


# =============================================================================
# HTTP Triggers
# =============================================================================


@app.function_name(name="QueueOutputPocoList")
@app.route(route="QueueOutputPocoList", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
@app.queue_output(arg_name="output", queue_name=QUEUE_OUTPUT_POCO, connection=STORAGE_CONNECTION_SETTING)
def queue_output_poco_list(req: func.HttpRequest, output: func.Out[List[str]]) -> func.HttpResponse:
    """Write two QueueItems carrying queueMessageId and echo the id back."""
    message_id = req.params.get("queueMessageId")
    if not message_id:
        return func.HttpResponse(
            "Missing `queueMessageId` query parameter.",
            status_code=400,
            mimetype=CONTENT_TYPE_TEXT,
        )

    items = [QueueItem(id=message_id) for _ in OUTPUT_TAGS]
    output.set([json.dumps(asdict(item)) for item in items])
    return func.HttpResponse(message_id, status_code=200, mimetype=CONTENT_TYPE_TEXT)


# =============================================================================
# Blob Triggers
# =============================================================================


@app.function_name(name="BlobTriggerToBlobTest")
@app.blob_trigger(arg_name="trigger", path=f"{CONTAINER_TRIGGER_INPUT}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
@app.blob_input(arg_name="input_blob", path=f"{CONTAINER_INPUT}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
@app.blob_output(arg_name="output", path=f"{CONTAINER_OUTPUT}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
def blob_trigger_to_blob(trigger: func.InputStream, input_blob: func.InputStream, output: func.Out[str]) -> None:
    """Copy the same-named input blob to the output container."""
    logging.info(f"Blob trigger fired for {trigger.name}")
    output.set(input_blob.read().decode(ENCODING_UTF8))


@app.function_name(name="BlobTriggerPocoTest")
@app.blob_trigger(arg_name="trigger", path=f"{CONTAINER_TRIGGER_POCO}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
@app.blob_output(arg_name="output", path=f"{CONTAINER_OUTPUT_POCO}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
def blob_trigger_poco(trigger: func.InputStream, output: func.Out[str]) -> None:
    data = json.loads(trigger.read().decode(ENCODING_UTF8))
    document = BlobDocument(text=data["text"])
    output.set(json.dumps(asdict(document)))


@app.function_name(name="BlobTriggerStringTest")
@app.blob_trigger(arg_name="trigger", path=f"{CONTAINER_TRIGGER_STRING}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
@app.blob_output(arg_name="output", path=f"{CONTAINER_OUTPUT_STRING}/{{name}}", connection=STORAGE_CONNECTION_SETTING)
def blob_trigger_string(trigger: func.InputStream, output: func.Out[str]) -> None:
    output.set(trigger.read().decode(ENCODING_UTF8))
