import time
import functools
import asyncio
import logging

logger = logging.getLogger(__name__)


def elapsed_ms(started: float) -> int:
    """Milliseconds since a `time.perf_counter()` reading."""
    return int((time.perf_counter() - started) * 1000)


def profile_stage(stage_name: str):
    """Decorator to log how long each stage takes (async or sync)."""
    def decorator(func):
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def wrapper(*args, **kwargs):
                t0 = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    logger.debug("[PERF] %s: %d ms", stage_name, elapsed_ms(t0))
            return wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            t0 = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                logger.debug("[PERF] %s: %d ms", stage_name, elapsed_ms(t0))
        return wrapper
    return decorator
