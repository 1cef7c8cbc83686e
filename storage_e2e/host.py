# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
Function host lifecycle and log capture.

Starts the Functions host as a subprocess, pumps its output into an
append-only LogBuffer, and stops the whole process group on teardown.
Probes only ever see read-only snapshots of the buffer.
"""
import logging
import os
import shlex
import signal
import subprocess
import threading
from pathlib import Path
from typing import List, Optional, Tuple, Union

import httpx

from storage_e2e.config import (
    BLOB_TIMEOUT_S,
    DEFAULT_POLL_INTERVAL_S,
    ENCODING_UTF8,
    FUNCTIONS_HOST_COMMAND,
    FUNCTIONS_HOST_URL,
    HOST_START_TIMEOUT_S,
    HOST_STOP_TIMEOUT_S,
    LOG_TAIL_LINES,
    STORAGE_CONNECTION_SETTING,
    STORAGE_CONNECTION_STRING,
    STORAGE_POLL_INTERVAL_S,
)
from storage_e2e.http import create_client
from storage_e2e.models import PollResult
from storage_e2e.retry import retry_async


class LogBuffer:
    """Append-only, thread-safe sequence of captured host log lines."""

    def __init__(self) -> None:
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    def snapshot(self) -> Tuple[str, ...]:
        """Read-only view of every line captured so far."""
        with self._lock:
            return tuple(self._lines)

    def contains(self, text: str) -> bool:
        return any(text in line for line in self.snapshot())

    def tail(self, count: int = LOG_TAIL_LINES) -> Tuple[str, ...]:
        if count <= 0:
            return ()
        return self.snapshot()[-count:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


def executed_log_line(function_name: str) -> str:
    """The line the host writes after a function invocation completes."""
    return f"Executed 'Functions.{function_name}'"


def _format_tail(logs: LogBuffer) -> str:
    lines = logs.tail()
    if not lines:
        return "(no host output captured)"
    return "\n".join(lines)


async def wait_for_host_log(
    logs: LogBuffer,
    text: str,
    timeout_s: float = BLOB_TIMEOUT_S,
    poll_interval_s: float = STORAGE_POLL_INTERVAL_S,
) -> PollResult:
    """
    Wait until a captured host log line contains text.

    Raises PollTimeout naming the missing text and showing the last lines.
    """
    return await retry_async(
        lambda: logs.contains(text),
        timeout_s=timeout_s,
        poll_interval_s=poll_interval_s,
        message_callback=lambda: f"Log line containing '{text}' was not found. Last host output:\n{_format_tail(logs)}",
        description=f"host log '{text}'",
    )


def create_host_environment() -> dict:
    """
    Build the environment for the host subprocess.

    Inherits the caller's environment and pins the storage connection the
    suite provisions resources in.
    """
    env = dict(os.environ)
    env[STORAGE_CONNECTION_SETTING] = STORAGE_CONNECTION_STRING
    env.setdefault("FUNCTIONS_WORKER_RUNTIME", "python")
    env["PYTHONUNBUFFERED"] = "1"
    return env


def kill_process_tree(pid: int, sig: int = signal.SIGKILL) -> None:
    """Signal process and all children using process group."""
    try:
        os.killpg(pid, sig)
    except (ProcessLookupError, PermissionError) as e:
        logging.warning(f"Failed to signal process tree {pid}: {e}")


class FunctionHost:
    """
    A Functions host process owned by the test session.

    The host is started in its own process group so that the language worker
    it spawns is stopped with it.
    """

    def __init__(
        self,
        app_dir: Union[str, Path],
        command: str = FUNCTIONS_HOST_COMMAND,
        base_url: str = FUNCTIONS_HOST_URL,
        logs: Optional[LogBuffer] = None,
    ):
        self.app_dir = Path(app_dir)
        self.command = command
        self.base_url = base_url
        self.logs = logs if logs is not None else LogBuffer()
        self._process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def returncode(self) -> Optional[int]:
        return None if self._process is None else self._process.poll()

    def start(self) -> None:
        if self.is_running:
            raise RuntimeError("Function host is already running.")

        logging.info(f"Starting function host: {self.command} (cwd={self.app_dir})")
        self._process = subprocess.Popen(
            shlex.split(self.command),
            cwd=str(self.app_dir),
            env=create_host_environment(),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding=ENCODING_UTF8,
            errors="replace",
            start_new_session=True,
        )
        self._reader = threading.Thread(target=self._pump_output, name="function-host-output", daemon=True)
        self._reader.start()

    def _pump_output(self) -> None:
        """Copy host output into the log buffer until the pipe closes."""
        for line in self._process.stdout:
            line = line.rstrip("\r\n")
            self.logs.append(line)
            logging.debug(f"[host] {line}")

    def _describe_unhealthy(self) -> str:
        if self._process is None:
            status = "not started by this session"
        elif self.is_running:
            status = "running"
        else:
            status = f"exited with code {self.returncode}"
        return (
            f"Function host at {self.base_url} did not become healthy ({status}). "
            f"Last host output:\n{_format_tail(self.logs)}"
        )

    async def wait_until_healthy(
        self,
        timeout_s: float = HOST_START_TIMEOUT_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        client: Optional[httpx.AsyncClient] = None,
    ) -> PollResult:
        """Poll the health endpoint until it answers 200."""
        async def healthy(http_client: httpx.AsyncClient) -> bool:
            try:
                response = await http_client.get("/api/health")
            except httpx.RequestError:
                return False
            return response.status_code == 200

        async def run(http_client: httpx.AsyncClient) -> PollResult:
            return await retry_async(
                lambda: healthy(http_client),
                timeout_s=timeout_s,
                poll_interval_s=poll_interval_s,
                message_callback=self._describe_unhealthy,
                description=f"function host at {self.base_url}",
            )

        if client is not None:
            return await run(client)
        async with create_client(self.base_url) as owned_client:
            return await run(owned_client)

    def stop(self, timeout_s: float = HOST_STOP_TIMEOUT_S) -> None:
        """Terminate the host process group, escalating to SIGKILL."""
        if self._process is None:
            return

        if self._process.poll() is None:
            kill_process_tree(self._process.pid, signal.SIGTERM)
            try:
                self._process.wait(timeout=timeout_s)
            except subprocess.TimeoutExpired:
                logging.warning(f"Function host did not exit within {timeout_s}s, killing")
                kill_process_tree(self._process.pid)
                self._process.wait()

        if self._reader is not None:
            self._reader.join(timeout=timeout_s)
        logging.info(f"Function host stopped (exit code {self._process.returncode})")
