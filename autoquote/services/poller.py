"""Generic poll-until-terminal loop shared by every remote task kind."""

import asyncio
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from autoquote.errors import PollTimeoutError, RemoteError
from autoquote.models.tasks import TaskStatus
from autoquote.telemetry.logger import get_logger

logger = get_logger("autoquote.poller")

StatusCheck = Callable[[], Awaitable[TaskStatus]]


def _pending(status: TaskStatus) -> bool:
    return not status.is_terminal


def _before_sleep(label: str) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            logger.warning(
                "Status check failed, will retry",
                extra={
                    "label": label,
                    "attempt": retry_state.attempt_number,
                    "error": str(outcome.exception()),
                    "operation": "poll_transient_error",
                },
            )
        else:
            logger.debug(
                "Task still pending",
                extra={
                    "label": label,
                    "attempt": retry_state.attempt_number,
                    "operation": "poll_pending",
                },
            )

    return log


async def poll_until_terminal(
    check: StatusCheck,
    *,
    poll_interval: float = 5.0,
    max_wait: float = 600.0,
    label: str = "task",
) -> TaskStatus:
    """Poll ``check`` until it reports a terminal status.

    The first check happens one interval after the call. A RemoteError raised
    by ``check`` counts as a transient failure and the loop goes on; any
    other exception propagates.

    Args:
        check: Coroutine function performing one status fetch
        poll_interval: Seconds between checks
        max_wait: Total budget in seconds, including the initial interval
        label: Name used in logs and in the timeout error

    Returns:
        The first terminal TaskStatus (succeeded or failed)

    Raises:
        PollTimeoutError: If no terminal status was seen within ``max_wait``
    """
    await asyncio.sleep(poll_interval)

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(RemoteError) | retry_if_result(_pending),
        wait=wait_fixed(poll_interval),
        stop=stop_after_delay(max(max_wait - poll_interval, 0)),
        before_sleep=_before_sleep(label),
    )

    # tenacity only awaits callables it recognises as coroutine functions
    async def attempt() -> TaskStatus:
        return await check()

    try:
        status = await retrying(attempt)
    except RetryError as e:
        logger.error(
            "Polling timed out",
            extra={"label": label, "max_wait": max_wait, "operation": "poll_timeout"},
        )
        raise PollTimeoutError(label, max_wait) from e

    logger.info(
        "Task reached terminal status",
        extra={
            "label": label,
            "task_id": status.task_id,
            "status": status.status.value,
            "raw_status": status.raw_status,
            "operation": "poll_terminal",
        },
    )
    return status
