import asyncio
import logging
import time
from functools import wraps
from typing import Optional, Tuple, Type

logger = logging.getLogger("CreativePipeline")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)


def smart_retry(retries=3, delay=1, backoff=2, retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS):
    """
    Decorator that retries a function or coroutine upon transient failures.
    Supports both sync and async definitions. Anything outside ``retry_on``
    propagates on the first attempt.
    """

    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            current_delay = delay
            last_error: Optional[BaseException] = None
            for i in range(retries):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_error = e
                    logger.warning(
                        f"⚠️ [Retry {i+1}/{retries}] {func.__name__} transient error: {e}. Waiting {current_delay}s..."
                    )
                    if i < retries - 1:
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff
            logger.error(f"❌ {func.__name__} failed after {retries} attempts.")
            raise ConnectionError(f"Max retries exceeded: {last_error}") from last_error

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            current_delay = delay
            last_error: Optional[BaseException] = None
            for i in range(retries):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    last_error = e
                    logger.warning(
                        f"⚠️ [Retry {i+1}/{retries}] {func.__name__} transient error: {e}. Waiting {current_delay}s..."
                    )
                    if i < retries - 1:
                        time.sleep(current_delay)
                        current_delay *= backoff
            logger.error(f"❌ {func.__name__} failed after {retries} attempts.")
            raise ConnectionError(f"Max retries exceeded: {last_error}") from last_error

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator


async def with_timeout(awaitable, seconds: Optional[float], what: str = "call"):
    """Await ``awaitable`` for at most ``seconds``; None or <= 0 disables the bound."""
    if not seconds or seconds <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise TimeoutError(f"{what} timed out after {seconds:g}s")
