# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
Data models for the storage end-to-end suite.

Contains the retry policy, the poll outcome, and the single error type
raised when a poll gives up.
"""
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from storage_e2e.config import DEFAULT_POLL_INTERVAL_S, TIMEOUT_MESSAGE

Probe = Callable[[], Union[bool, Awaitable[bool]]]
MessageCallback = Callable[[], str]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Timeout and interval configuration for a single poll.

    message_callback is only evaluated when the poll times out, so it may
    format large buffers without slowing the success path.
    """
    timeout_s: float
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    message_callback: Optional[MessageCallback] = None

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise ValueError("`timeout_s` must be > 0.")
        if self.poll_interval_s <= 0:
            raise ValueError("`poll_interval_s` must be > 0.")

    def build_failure_message(self) -> str:
        """Compose the timeout message, invoking the callback if present."""
        if self.message_callback is None:
            return TIMEOUT_MESSAGE
        return f"{TIMEOUT_MESSAGE} {self.message_callback()}"


@dataclass(frozen=True)
class PollResult:
    """Successful poll outcome."""
    attempts: int
    elapsed_s: float


class PollTimeout(TimeoutError):
    """Raised when a probe did not succeed within its policy's timeout."""

    def __init__(self, message: str, attempts: int, elapsed_s: float):
        super().__init__(message)
        self.message = message
        self.attempts = attempts
        self.elapsed_s = elapsed_s
