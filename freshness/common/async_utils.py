from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, TypeVar

from .logging import log_event

T = TypeVar("T")


async def guarded_call(
    action: Callable[[], Awaitable[T] | T],
    *,
    logger: logging.Logger,
    event: str,
    message: str,
    level: str = "warning",
    default: T | None = None,
    reraise: bool = False,
    **fields: Any,
) -> T | None:
    try:
        result = action()
        if inspect.isawaitable(result):
            return await result
        return result
    except asyncio.CancelledError:
        raise
    except Exception as error:
        log_event(
            logger,
            level=level,
            event=event,
            message=message,
            error=str(error),
            **fields,
        )
        if reraise:
            raise
        return default


async def retry_async(
    action: Callable[[], Awaitable[T]],
    *,
    logger: logging.Logger,
    event: str,
    attempts: int = 3,
    backoff_seconds: float = 0.1,
    backoff_factor: float = 2.0,
    **fields: Any,
) -> T:
    max_attempts = max(1, int(attempts))
    delay = max(0.0, float(backoff_seconds))
    for attempt in range(1, max_attempts + 1):
        try:
            return await action()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            if attempt >= max_attempts:
                log_event(
                    logger,
                    level="error",
                    event=f"{event}_exhausted",
                    message="Retry attempts exhausted",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=str(error),
                    **fields,
                )
                raise
            log_event(
                logger,
                level="warning",
                event=f"{event}_retry",
                message="Attempt failed; retrying",
                attempt=attempt,
                max_attempts=max_attempts,
                retry_in_seconds=delay,
                error=str(error),
                **fields,
            )
            if delay > 0:
                await asyncio.sleep(delay)
            delay *= max(1.0, float(backoff_factor))

    raise RuntimeError("retry_async exited without a result.")


async def wait_with_stop(stop_event: asyncio.Event, timeout_seconds: float) -> None:
    if timeout_seconds <= 0:
        return

    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        pass
