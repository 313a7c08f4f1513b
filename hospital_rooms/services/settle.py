import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

logger = logging.getLogger(__name__)


async def settle(label: str, *aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently and wait for every one of them to finish.

    Failures are logged and returned in place of results; none is raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, Exception):
            logger.warning("%s failed: %s", label, result, exc_info=result)
    return results
