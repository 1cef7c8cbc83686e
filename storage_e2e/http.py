# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
HTTP utilities for the end-to-end suite.

Invokes HTTP-triggered functions on the running host.
This is the only module that should know about httpx.
"""
import logging
from typing import Optional, Tuple

import httpx

from storage_e2e.config import FUNCTIONS_HOST_URL, HTTP_CONNECT_TIMEOUT_S, HTTP_TIMEOUT_S


def create_client(base_url: str = FUNCTIONS_HOST_URL, **kwargs) -> httpx.AsyncClient:
    """HTTP client configured for the function host."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(HTTP_TIMEOUT_S, connect=HTTP_CONNECT_TIMEOUT_S),
        **kwargs,
    )


def build_route(function_name: str, query_string: str = "") -> str:
    """Route for an HTTP function, e.g. ('Fn', '?a=1') -> '/api/Fn?a=1'."""
    if query_string and not query_string.startswith("?"):
        query_string = f"?{query_string}"
    return f"/api/{function_name}{query_string}"


async def invoke(
    function_name: str,
    query_string: str = "",
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[int, str]:
    """Call an HTTP-triggered function and return (status_code, body)."""
    route = build_route(function_name, query_string)
    if client is not None:
        response = await client.get(route)
    else:
        async with create_client() as owned_client:
            response = await owned_client.get(route)
    logging.info(f"GET {route} -> {response.status_code}")
    return response.status_code, response.text


async def invoke_http_trigger(
    function_name: str,
    query_string: str,
    expected_status: int,
    expected_body: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Call an HTTP-triggered function and compare the response.

    Returns True when the status matches and, if expected_body is given,
    the body matches exactly.
    """
    status_code, body = await invoke(function_name, query_string, client=client)
    if status_code != expected_status:
        logging.warning(f"{function_name}: expected status {expected_status}, got {status_code}")
        return False
    if expected_body is not None and body != expected_body:
        logging.warning(f"{function_name}: expected body '{expected_body}', got '{body}'")
        return False
    return True
