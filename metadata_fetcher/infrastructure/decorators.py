"""
Infrastructure-specific decorators, providing cross-cutting concerns like
tracing of storage operations.
"""

import functools
import logging
import time

logger = logging.getLogger(__name__)


def _describe(operation, endpoint, path, args):
    target = f"{endpoint.rstrip('/')}/{path.lstrip('/')}" if endpoint else path
    if operation == "read" and len(args) == 2:
        offset, length = args
        return f"{operation} {target} [{offset}+{length}]"
    return f"{operation} {target}"


def traced_operation(operation: str):
    """
    Wraps an async storage method `method(self, path, *args)` in a span.

    The span is logged at DEBUG when the call starts and finishes, with the
    elapsed time; failures are logged at WARNING and re-raised unchanged.
    Span fields are attached to each record under the `span` attribute.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, path, *args):
            endpoint = getattr(self, "endpoint", None)
            span = {
                "operation": operation,
                "endpoint": endpoint,
                "path": path,
                "args": args,
            }
            label = _describe(operation, endpoint, path, args)
            logger.debug(f"{label} started", extra={"span": span})
            started = time.perf_counter()
            try:
                result = await func(self, path, *args)
            except Exception as e:
                span["elapsed"] = time.perf_counter() - started
                logger.warning(
                    f"{label} failed after {span['elapsed']:.3f}s: "
                    f"{type(e).__name__}: {e}",
                    extra={"span": span},
                )
                raise
            span["elapsed"] = time.perf_counter() - started
            logger.debug(
                f"{label} finished in {span['elapsed']:.3f}s",
                extra={"span": span},
            )
            return result

        return wrapper

    return decorator
