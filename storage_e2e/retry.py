# Copyright (c) 2025 Microsoft Corporation.
# Licensed under the MIT License. See LICENSE file in the project root.
"""
Retry-until-success polling for asynchronous side effects.

A probe is evaluated repeatedly until it reports success or the policy's
timeout elapses. Waits between attempts suspend only the calling task.
The reported timeout may overshoot the configured bound by at most one
poll interval.
"""
import asyncio
import inspect
from typing import Optional

from storage_e2e.config import DEFAULT_POLL_INTERVAL_S, DEFAULT_POLL_TIMEOUT_S
from storage_e2e.events import PollContext, generate_poll_id
from storage_e2e.models import MessageCallback, PollResult, PollTimeout, Probe, RetryPolicy


def _now() -> float:
    return asyncio.get_running_loop().time()


async def _sleep(delay_s: float) -> None:
    await asyncio.sleep(delay_s)


async def _evaluate(probe: Probe) -> bool:
    """Invoke the probe, awaiting the result if it is awaitable."""
    result = probe()
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


async def _wait(delay_s: float, cancel_event: Optional[asyncio.Event]) -> bool:
    """
    Suspend for delay_s.

    Returns True if cancel_event was set before the delay elapsed.
    """
    if cancel_event is None:
        await _sleep(delay_s)
        return False
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay_s)
    except asyncio.TimeoutError:
        return False
    return True


def _describe(probe: Probe) -> str:
    return getattr(probe, "__qualname__", repr(probe))


async def poll(
    probe: Probe,
    policy: RetryPolicy,
    description: Optional[str] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> PollResult:
    """
    Evaluate probe until it succeeds or policy.timeout_s elapses.

    Returns PollResult on success. Raises PollTimeout on timeout, carrying
    the message built from policy.message_callback. Raises
    asyncio.CancelledError if the task is cancelled or cancel_event is set.
    Exceptions raised by the probe propagate unchanged.
    """
    context = PollContext(
        poll_id=generate_poll_id(),
        description=description or _describe(probe),
        timeout_s=policy.timeout_s,
        poll_interval_s=policy.poll_interval_s,
    )
    context.log_started()

    start = _now()
    deadline = start + policy.timeout_s
    attempts = 0

    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise asyncio.CancelledError(f"Poll for {context.description} was cancelled")

            attempts += 1
            if await _evaluate(probe):
                elapsed_s = _now() - start
                context.log_succeeded(attempts, elapsed_s)
                return PollResult(attempts=attempts, elapsed_s=elapsed_s)

            remaining_s = deadline - _now()
            if remaining_s <= 0:
                elapsed_s = _now() - start
                message = policy.build_failure_message()
                context.log_timed_out(attempts, elapsed_s)
                raise PollTimeout(message, attempts=attempts, elapsed_s=elapsed_s)

            if await _wait(min(policy.poll_interval_s, remaining_s), cancel_event):
                raise asyncio.CancelledError(f"Poll for {context.description} was cancelled")
    except asyncio.CancelledError:
        context.log_cancelled(attempts, _now() - start)
        raise


async def retry_async(
    probe: Probe,
    timeout_s: float = DEFAULT_POLL_TIMEOUT_S,
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    message_callback: Optional[MessageCallback] = None,
    description: Optional[str] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> PollResult:
    """
    Convenience wrapper around poll() for call sites that build the policy inline.

    For simple cases where constructing a RetryPolicy is overkill.
    """
    policy = RetryPolicy(
        timeout_s=timeout_s,
        poll_interval_s=poll_interval_s,
        message_callback=message_callback,
    )
    return await poll(probe, policy, description=description, cancel_event=cancel_event)
