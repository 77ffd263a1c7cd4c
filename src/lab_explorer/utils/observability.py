"""Lightweight observability: per-click correlation ids and timing spans."""

import asyncio
import contextvars
import functools
import logging
import time
import uuid

logger = logging.getLogger(__name__)

# Correlates the log lines produced by one click (engine, gateway, merge)
_click_id: contextvars.ContextVar[str] = contextvars.ContextVar("click_id", default="")


def new_click_id() -> str:
    """Generate and set a new click id for the current context."""
    cid = uuid.uuid4().hex[:12]
    _click_id.set(cid)
    return cid


def get_click_id() -> str:
    """Get the current click id (empty string if none set)."""
    return _click_id.get()


def log_prefix() -> str:
    cid = _click_id.get()
    return f"[{cid}] " if cid else ""


def timed(func=None, *, level=logging.DEBUG):
    """Decorator that logs function execution time.

    Usage:
        @timed
        async def list_projects(self): ...

    Logs: [click_id] module.function took Xms
    """
    def decorator(fn):
        name = f"{fn.__module__}.{fn.__qualname__}"

        if asyncio.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    return await fn(*args, **kwargs)
                finally:
                    elapsed_ms = (time.perf_counter() - start) * 1000
                    logger.log(level, f"{log_prefix()}{name} took {elapsed_ms:.0f}ms")
            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.log(level, f"{log_prefix()}{name} took {elapsed_ms:.0f}ms")
        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator
