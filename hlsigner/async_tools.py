"""
Async helpers for the wallet boundary.
The wallet call is the only suspension point in the signing pipeline.
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from hlsigner.errors import SignerTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def timeout(awaitable: Awaitable[T], seconds: Optional[float], *, operation: str = "wallet") -> T:
    """
    Bound an awaitable by a timeout.

    Args:
        awaitable: The coroutine to await
        seconds: Timeout in seconds; None or 0 awaits without a bound
        operation: Name used in the error and log line

    Returns:
        The result of the awaitable

    Raises:
        SignerTimeoutError: If the operation did not finish in time
    """
    if not seconds:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("[HL:sign] %s timed out after %ss", operation, seconds)
        raise SignerTimeoutError(
            f"{operation} timed out after {seconds}s",
            {"operation": operation, "timeout_s": seconds},
        )
