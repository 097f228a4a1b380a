import logging
import threading

from ..protocol.types.common import RoundPhase

logger = logging.getLogger(__name__)


class RoundLifecycle:
    """
    Idle / Ending / Starting state of the nomination round.

    A round invocation must `claim()` the lifecycle before reading chain
    state. Claiming is atomic and non-blocking, so an overlapping invocation
    sees False and backs off instead of racing the one in flight.
    """

    def __init__(self):
        self._claim = threading.Lock()
        self._phase_lock = threading.Lock()
        self._phase = RoundPhase.IDLE

    @property
    def phase(self) -> RoundPhase:
        with self._phase_lock:
            return self._phase

    @property
    def ending(self) -> bool:
        return self.phase == RoundPhase.ENDING

    @property
    def busy(self) -> bool:
        return self._claim.locked() or self.phase != RoundPhase.IDLE

    def claim(self) -> bool:
        """Returns True if the caller may proceed; the caller must then `release()`."""
        if not self._claim.acquire(blocking=False):
            return False
        if self.phase != RoundPhase.IDLE:
            self._claim.release()
            return False
        return True

    def enter(self, phase: RoundPhase) -> None:
        if not self._claim.locked():
            raise RuntimeError(f"Cannot enter {phase.value} without claiming the round lifecycle")
        with self._phase_lock:
            logger.debug(f"Round phase {self._phase.value} -> {phase.value}")
            self._phase = phase

    def release(self) -> None:
        with self._phase_lock:
            self._phase = RoundPhase.IDLE
        if self._claim.locked():
            self._claim.release()
