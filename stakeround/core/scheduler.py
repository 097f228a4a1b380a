import logging
import threading
from typing import Callable, Optional

from .controller import JobMetadata, RoundController

logger = logging.getLogger(__name__)


class RoundScheduler:
    """Invokes the round controller on a fixed cadence from a background thread."""

    def __init__(self,
                 controller: RoundController,
                 metadata_factory: Callable[[], JobMetadata],
                 interval_sec: float = 300.0):
        self.controller = controller
        self.metadata_factory = metadata_factory
        self.interval_sec = max(1.0, interval_sec)
        self.ticks = 0
        self._stop = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self.thread = threading.Thread(target=self._run_loop, name="RoundScheduler", daemon=True)
        self.thread.start()
        logger.info(f"RoundScheduler started. Interval: {self.interval_sec:.0f}s")

    def stop(self, timeout: float = 10.0):
        self._stop.set()
        if self.thread:
            self.thread.join(timeout)
        logger.info("RoundScheduler stopped")

    def tick(self):
        metadata = self.metadata_factory()
        self.controller.run_round(metadata)
        self.ticks += 1

    def _run_loop(self):
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}")

            self._stop.wait(self.interval_sec)
