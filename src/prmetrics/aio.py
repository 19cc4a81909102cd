"""Concurrency helpers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

logger = logging.getLogger("prmetrics")


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Await everything concurrently, then raise the first failure if any.

    Unlike a bare :func:`asyncio.gather`, one failing awaitable does not stop
    the caller from waiting for the rest: every call is attempted before the
    error surfaces. Later failures are logged.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    for error in errors[1:]:
        logger.error(f"Additional concurrent failure: {error!r}")
    if errors:
        raise errors[0]
    return list(results)
