"""
api/concurrency.py -- Run blocking store and bcrypt work off the event loop, with a deadline.

Route handlers are async so they can await this helper. The actual work runs
in Starlette's threadpool; asyncio.wait_for bounds how long the request waits
for it. A stalled database therefore produces a 504 instead of a request that
never answers.

The deadline comes from Settings.store_timeout_seconds via app.state, set once
in the lifespan.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import TypeVar

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from core.errors import StoreTimeout

logger = logging.getLogger("inkpost.api")

T = TypeVar("T")


async def run_bounded(request: Request, fn: Callable[..., T], *args, **kwargs) -> T:
    """Call fn(*args, **kwargs) in the threadpool, raising StoreTimeout past the deadline."""
    timeout: float = request.app.state.store_timeout
    try:
        return await asyncio.wait_for(run_in_threadpool(functools.partial(fn, *args, **kwargs)), timeout)
    except asyncio.TimeoutError as exc:
        name = getattr(fn, "__qualname__", repr(fn))
        logger.error("%s exceeded %.1fs on %s %s", name, timeout, request.method, request.url.path)
        raise StoreTimeout() from exc
