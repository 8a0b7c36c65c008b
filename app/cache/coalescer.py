"""
Request coalescing for snapshot rebuilds.

A cold cache tier is rebuilt once no matter how many requests arrive while
the rebuild runs: the first caller performs it, the rest wait and share the
result (or the error).
"""
import threading
import time
import logging
from typing import Dict, Optional, Callable, Any
from dataclasses import dataclass, field

logger = logging.getLogger("cache.coalescer")


@dataclass
class InFlightRequest:
    """Tracks an in-progress rebuild."""
    event: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    started_at: float = field(default_factory=time.monotonic)
    waiter_count: int = 0


class RequestCoalescer:
    """
    Ensures concurrent rebuilds of the same key share one call.

    Usage:
        coalescer = RequestCoalescer()
        snapshot = coalescer.get_or_fetch("parsed", build_parsed_snapshot)
    """

    def __init__(self, timeout: float = 120.0):
        """
        Args:
            timeout: Max seconds a waiter blocks on an in-flight rebuild
        """
        self._in_flight: Dict[str, InFlightRequest] = {}
        self._lock = threading.Lock()
        self._timeout = timeout
        self._coalesced = 0

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], Any]) -> Any:
        """
        Either join an existing in-flight rebuild or start a new one.

        Raises:
            TimeoutError: If waiting for the in-flight rebuild times out
            Exception: Any error from fetch_fn, re-raised in every caller
        """
        with self._lock:
            in_flight = self._in_flight.get(key)
            if in_flight is not None:
                in_flight.waiter_count += 1
                self._coalesced += 1
                is_initiator = False
                logger.debug(f"Coalescing {key} (waiters: {in_flight.waiter_count})")
            else:
                in_flight = InFlightRequest()
                self._in_flight[key] = in_flight
                is_initiator = True
                logger.debug(f"Starting rebuild for {key}")

        if is_initiator:
            try:
                in_flight.result = fetch_fn()
            except Exception as e:
                in_flight.error = e
                logger.warning(f"Rebuild failed for {key}: {e}")
            finally:
                in_flight.event.set()
                with self._lock:
                    self._in_flight.pop(key, None)

            if in_flight.error is not None:
                raise in_flight.error
            return in_flight.result

        if not in_flight.event.wait(timeout=self._timeout):
            logger.error(f"Timeout waiting for coalesced rebuild: {key}")
            raise TimeoutError(f"Rebuild of {key} timed out after {self._timeout}s")

        if in_flight.error is not None:
            raise in_flight.error
        return in_flight.result

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "active_keys": list(self._in_flight.keys()),
                "coalesced": self._coalesced,
            }
