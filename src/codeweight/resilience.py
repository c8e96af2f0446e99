"""Resilience primitives: circuit breaker, timeout, retry with backoff.

No external dependencies.  ``ResilientQueryService`` composes the three
around any ``GraphQueryPort`` so that a slow or failing backend surfaces as
``QueryUnavailable`` instead of hanging a scoring run.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from typing import Any, Callable, TypeVar

from codeweight import defaults
from codeweight.errors import CircuitOpen, OperationTimeout, QueryUnavailable
from codeweight.models import (
    BlastRadiusInfo,
    CallPathChainInfo,
    ClassArchitectureInfo,
    MethodCalleesInfo,
    MethodCallersInfo,
)
from codeweight.ports import GraphQueryPort

log = logging.getLogger("codeweight.resilience")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Circuit Breaker
# ---------------------------------------------------------------------------

class CircuitBreaker:
    """Three-state circuit breaker (CLOSED → OPEN → HALF_OPEN → CLOSED).

    Parameters
    ----------
    failure_threshold:
        Number of consecutive failures before opening the circuit.
    recovery_timeout:
        Seconds to wait in OPEN state before switching to HALF_OPEN.
    success_threshold:
        Number of consecutive successes in HALF_OPEN to close the circuit.
    name:
        Human-readable name for logging.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = defaults.BREAKER_FAILURE_THRESHOLD,
        recovery_timeout: float = defaults.BREAKER_RECOVERY_SECONDS,
        success_threshold: int = 2,
        name: str = "default",
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self.name = name

        self._state = self.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float = 0.0
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == self.OPEN:
                if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                    self._state = self.HALF_OPEN
                    self._success_count = 0
            return self._state

    def record_success(self) -> None:
        with self._lock:
            if self._state == self.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    self._state = self.CLOSED
                    self._failure_count = 0
                    log.info("Circuit breaker '%s' closed", self.name)
            else:
                self._failure_count = 0

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()
            if self._state == self.HALF_OPEN:
                self._state = self.OPEN
                log.warning("Circuit breaker '%s' re-opened from half_open", self.name)
            elif self._failure_count >= self.failure_threshold:
                self._state = self.OPEN
                log.warning("Circuit breaker '%s' opened after %d failures", self.name, self._failure_count)

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        if self.state == self.OPEN:
            raise CircuitOpen(f"Circuit breaker '{self.name}' is open")
        try:
            result = func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------

def with_timeout(seconds: float) -> Callable:
    """Decorator that raises ``OperationTimeout`` if the wrapped function
    takes longer than *seconds*.

    Uses a daemon thread so we don't block the caller forever.
    Note: this only interrupts at the Python level; it cannot interrupt
    blocking C-level calls.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            result: list[Any] = []
            exception: list[BaseException] = []

            def target() -> None:
                try:
                    result.append(func(*args, **kwargs))
                except BaseException as e:
                    exception.append(e)

            thread = threading.Thread(target=target, daemon=True)
            thread.start()
            thread.join(timeout=seconds)
            if thread.is_alive():
                raise OperationTimeout(
                    f"{func.__name__} exceeded timeout of {seconds}s"
                )
            if exception:
                raise exception[0]
            return result[0]

        return wrapper
    return decorator


# ---------------------------------------------------------------------------
# Retry with exponential backoff
# ---------------------------------------------------------------------------

def retry(
    max_attempts: int = defaults.QUERY_MAX_ATTEMPTS,
    base_delay: float = defaults.QUERY_BASE_DELAY,
    max_delay: float = defaults.QUERY_MAX_DELAY,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    give_up: tuple[type[BaseException], ...] = (),
) -> Callable:
    """Decorator: retry with bounded exponential backoff.

    Parameters
    ----------
    max_attempts:
        Total number of attempts (including the first).
    base_delay:
        Initial delay in seconds between retries.
    max_delay:
        Maximum delay cap.
    backoff_factor:
        Multiplier applied to delay after each failure.
    exceptions:
        Tuple of exception classes that trigger a retry.
    give_up:
        Exception classes re-raised at once, even when they match
        *exceptions*.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = base_delay
            last_exc: BaseException | None = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except give_up:
                    raise
                except exceptions as e:
                    last_exc = e
                    if attempt == max_attempts:
                        break
                    log.warning(
                        "Retry %d/%d for %s: %s (delay %.1fs)",
                        attempt, max_attempts, func.__name__, e, delay,
                    )
                    time.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise last_exc  # type: ignore[misc]

        return wrapper
    return decorator


# ---------------------------------------------------------------------------
# Query service wrapper
# ---------------------------------------------------------------------------

class ResilientQueryService:
    """Wrap a ``GraphQueryPort``: per-call timeout, retry, shared breaker.

    Any failure that survives the retries (or an open breaker) is raised as
    ``QueryUnavailable`` so calculators can degrade the affected signal.
    """

    def __init__(
        self,
        inner: GraphQueryPort,
        timeout: float = defaults.QUERY_TIMEOUT_SECONDS,
        max_attempts: int = defaults.QUERY_MAX_ATTEMPTS,
        base_delay: float = defaults.QUERY_BASE_DELAY,
        max_delay: float = defaults.QUERY_MAX_DELAY,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.inner = inner
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(name="graph-query")
        self._retry = retry(
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            exceptions=(Exception,),
            give_up=(CircuitOpen,),
        )

    def _invoke(self, query: str, *args: Any) -> Any:
        func = getattr(self.inner, query)
        timed = with_timeout(self.timeout)(func)

        def attempt() -> Any:
            return self.breaker.call(timed, *args)

        attempt.__name__ = query
        start = time.monotonic()
        try:
            return self._retry(attempt)()
        except QueryUnavailable:
            raise
        except Exception as e:
            log.warning(
                "Query %s unavailable: %s", query, e,
                extra={"query": query, "duration_ms": round((time.monotonic() - start) * 1000, 1)},
            )
            raise QueryUnavailable(f"{query}{args!r} failed: {e}") from e

    def query_method_callers(self, class_name: str, method_name: str) -> MethodCallersInfo:
        return self._invoke("query_method_callers", class_name, method_name)

    def query_method_callees(self, class_name: str, method_name: str) -> MethodCalleesInfo:
        return self._invoke("query_method_callees", class_name, method_name)

    def query_class_architecture(self, class_name: str) -> ClassArchitectureInfo:
        return self._invoke("query_class_architecture", class_name)

    def query_call_path_chain(
        self,
        source_class: str,
        source_method: str,
        target_class: str,
        target_method: str,
    ) -> CallPathChainInfo:
        return self._invoke("query_call_path_chain", source_class, source_method, target_class, target_method)

    def query_blast_radius(self, class_name: str, method_name: str) -> BlastRadiusInfo:
        return self._invoke("query_blast_radius", class_name, method_name)
