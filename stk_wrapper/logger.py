import functools
import gzip
import inspect
import logging
import logging.handlers
import os
import shutil
import sys
from gzip import GzipFile
from typing import Any, Callable

from .config import settings

logger = logging.getLogger("stk_wrapper")
logger.setLevel(settings.log_level)
formatter = logging.Formatter(
    "[wrapper] %(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
)


def rotator(source, dest):
    with open(source, "rb") as f_in:
        with gzip.open(dest + ".gz", "wb") as f_out:
            assert isinstance(f_out, GzipFile)
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


# The server's own stdout is passed through, so diagnostics go to stderr
log_stream_handler = logging.StreamHandler(sys.stderr)
log_stream_handler.setFormatter(formatter)
logger.addHandler(log_stream_handler)

if settings.logs_dir is not None:
    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_handler = logging.handlers.TimedRotatingFileHandler(
        settings.logs_dir / "wrapper.log", when="midnight"
    )
    log_file_handler.setFormatter(formatter)
    log_file_handler.rotator = rotator
    logger.addHandler(log_file_handler)


def log_exception[**P, R](
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that logs an exception raised by the wrapped call and returns
    ``default_return`` instead of raising.

    Works on both sync and async functions. The prefix may reference the
    call's parameters by name, e.g. ``"Dispatching {event}"``.

    Args:
        prefix: Optional prefix for the error message
        default_return: Value returned when the call fails
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        sig = inspect.signature(func)

        def describe(args: tuple, kwargs: dict) -> str:
            try:
                bound = sig.bind(*args, **kwargs)
                bound.apply_defaults()
                arguments: dict[str, Any] = dict(bound.arguments)
            except TypeError as e:
                logger.warning(
                    f"Failed to bind arguments for {func.__qualname__}: {e}",
                    stacklevel=4,
                )
                arguments = {}

            params = ", ".join(f"{k}={v!r}" for k, v in arguments.items())
            text = f"[{params}] " if params else ""
            if not prefix:
                return text
            try:
                return f"{text}{prefix.format_map(arguments)}: "
            except (KeyError, IndexError, ValueError) as e:
                logger.warning(
                    f"Failed to format prefix '{prefix}': {e}", stacklevel=4
                )
                return f"{text}{prefix}: "

        def report(e: Exception, args: tuple, kwargs: dict) -> None:
            logger.error(
                f"{describe(args, kwargs)}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e, args, kwargs)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e, args, kwargs)
                return default_return  # type: ignore[return-value]

        return sync_wrapper

    return decorator
