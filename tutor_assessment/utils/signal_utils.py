import logging
from typing import Awaitable, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded_call(source: str, call: Awaitable[T], fallback: T) -> Tuple[T, bool]:
    """
    Await one remote signal and never let it fail the caller.

    Returns (value, True) on success and (fallback, False) when the call
    raises or yields None. No retries happen here; retrying is the client's job.
    """
    try:
        value = await call
    except Exception as e:
        logger.warning(f"{source} unavailable, using fallback: {str(e)}")
        return fallback, False

    if value is None:
        logger.warning(f"{source} returned no usable payload, using fallback")
        return fallback, False

    return value, True
