"""
Progress events.

The round controller publishes a `jobProgress` event after each processed
invocation. Subscribers (the status tracker, dashboards) are called
synchronously in the publishing thread and never see each other's failures.
"""
from typing import Dict, List, Callable, Any, Optional
import logging
from threading import RLock

from ..observability.metrics import job_progress
from ..protocol.config.params import JOB_PROGRESS_EVENT
from ..protocol.types.staking import ProgressEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[..., None]


class EventBus:
    """
    Named-event publisher.

    A subscriber that raises is logged and skipped; the publisher and the
    remaining subscribers are unaffected.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = RLock()

    @property
    def listeners(self) -> Dict[str, List[Subscriber]]:
        with self._lock:
            return {name: list(subs) for name, subs in self._subscribers.items()}

    def subscribe(self, event_type: str, callback: Subscriber) -> None:
        """
        Register `callback` for `event_type` (e.g. 'jobProgress').

        The callback receives the event payload as keyword arguments.
        """
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)
        logger.debug(f"{event_type}: subscriber added")

    def unsubscribe(self, event_type: str, callback: Subscriber) -> None:
        with self._lock:
            subs = self._subscribers.get(event_type, [])
            if callback in subs:
                subs.remove(callback)
                logger.debug(f"{event_type}: subscriber removed")
            else:
                logger.warning(f"{event_type}: unsubscribe of unknown subscriber ignored")

    def emit(self, event_type: str, **data: Any) -> None:
        """Publish `data` to every subscriber of `event_type`, in subscription order."""
        with self._lock:
            subs = list(self._subscribers.get(event_type, ()))

        logger.debug(f"{event_type}: publishing to {len(subs)} subscriber(s)")
        for callback in subs:
            try:
                callback(**data)
            except Exception as e:
                logger.error(f"{event_type}: subscriber {getattr(callback, '__name__', callback)} failed: {e}",
                             exc_info=True)

    def clear(self, event_type: Optional[str] = None) -> None:
        """Drop the subscribers of `event_type`, or of every event when omitted."""
        with self._lock:
            if event_type is None:
                self._subscribers.clear()
            else:
                self._subscribers.pop(event_type, None)


class JobStatusTracker:
    """Keeps the latest progress event of every job for status queries."""

    def __init__(self, bus: EventBus):
        self.bus = bus
        self._statuses: Dict[str, ProgressEvent] = {}
        self._lock = RLock()
        bus.subscribe(JOB_PROGRESS_EVENT, self.on_progress)

    def on_progress(self, **data: Any) -> None:
        event = ProgressEvent(**data)
        with self._lock:
            self._statuses[event.name] = event
        job_progress.labels(job=event.name).set(event.progress)

    def get(self, name: str) -> Optional[ProgressEvent]:
        with self._lock:
            return self._statuses.get(name)

    def all(self) -> List[ProgressEvent]:
        with self._lock:
            return sorted(self._statuses.values(), key=lambda e: e.name)

    def close(self) -> None:
        self.bus.unsubscribe(JOB_PROGRESS_EVENT, self.on_progress)


# Global job status emitter
job_status_emitter = EventBus()
