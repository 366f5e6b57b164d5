from __future__ import annotations

import functools
import inspect
import time
from dataclasses import fields, is_dataclass
from typing import Any, Callable, TypeVar

import structlog

F = TypeVar("F", bound=Callable[..., Any])

logger = structlog.get_logger("job")


def _result_size(res: Any) -> int | None:
    """Number of items a job produced; for report dataclasses, the first sized field."""
    if res is None:
        return None
    if hasattr(res, "__len__"):
        return len(res)
    if is_dataclass(res):
        for f in fields(res):
            value = getattr(res, f.name)
            if isinstance(value, (list, tuple)):
                return len(value)
    return None


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def log_job(name: str) -> Callable[[F], F]:
    """Wrap an engine operation with job.start / job.completed / job.error events."""

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any):
                start = time.perf_counter()
                logger.info("job.start", job=name)
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    logger.exception("job.error", job=name, duration_ms=_elapsed_ms(start))
                    raise
                logger.info(
                    "job.completed",
                    job=name,
                    duration_ms=_elapsed_ms(start),
                    result_size=_result_size(result),
                )
                return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any):
            start = time.perf_counter()
            logger.info("job.start", job=name)
            try:
                result = func(*args, **kwargs)
            except Exception:
                logger.exception("job.error", job=name, duration_ms=_elapsed_ms(start))
                raise
            logger.info(
                "job.completed",
                job=name,
                duration_ms=_elapsed_ms(start),
                result_size=_result_size(result),
            )
            return result

        return sync_wrapper  # type: ignore[return-value]

    return decorator
