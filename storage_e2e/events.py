# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
Structured poll logging for the storage end-to-end suite.

Each poll gets a PollContext that emits one JSON event per lifecycle
transition, so a failed run can be reconstructed from the log alone.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Optional


def generate_poll_id() -> str:
    """Generate a unique poll ID for log correlation."""
    return str(uuid.uuid4())[:8]


@dataclass(frozen=True)
class PollContext:
    """
    Immutable context for poll logging.

    Created once when a poll starts, passed through the poll lifecycle.
    """
    poll_id: str
    description: str
    timeout_s: float
    poll_interval_s: float

    def log_started(self) -> None:
        """Log poll started event."""
        self._log("poll_started")

    def log_succeeded(self, attempts: int, elapsed_s: float) -> None:
        """Log poll succeeded event."""
        self._log("poll_succeeded", attempts=attempts, elapsed_s=elapsed_s)

    def log_timed_out(self, attempts: int, elapsed_s: float) -> None:
        """Log poll timeout event."""
        self._log("poll_timed_out", attempts=attempts, elapsed_s=elapsed_s)

    def log_cancelled(self, attempts: int, elapsed_s: float) -> None:
        """Log poll cancelled event."""
        self._log("poll_cancelled", attempts=attempts, elapsed_s=elapsed_s)

    def _log(
        self,
        event_type: str,
        attempts: Optional[int] = None,
        elapsed_s: Optional[float] = None,
    ) -> None:
        """Emit structured poll log."""
        poll_data = {
            "poll": True,
            "event": event_type,
            "poll_id": self.poll_id,
            "awaiting": self.description,
            "timeout_ms": round(self.timeout_s * 1000),
            "poll_interval_ms": round(self.poll_interval_s * 1000),
        }

        if attempts is not None:
            poll_data["attempts"] = attempts
        if elapsed_s is not None:
            poll_data["elapsed_ms"] = round(elapsed_s * 1000, 2)

        if event_type == "poll_timed_out":
            logging.warning(f"POLL: {json.dumps(poll_data)}")
        else:
            logging.info(f"POLL: {json.dumps(poll_data)}")
