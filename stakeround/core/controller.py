"""
Round controller.

Decides once per invocation whether a new nomination round is due and, if
so, ends the active round (when there is one) and starts the next.
"""
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..chaindata.chaindata import ChainData
from ..observability.metrics import round_skips_total, rounds_total
from ..protocol.config.params import JOB_PROGRESS_EVENT, ROUND_JOB_NAME, era_buffer_for_prefix
from ..protocol.config.settings import Config
from ..protocol.types.common import RoundPhase
from ..protocol.types.staking import NominatorGroup, ProgressEvent, Target
from ..storage.round_store import RoundStateStore
from .constraints import CandidateScorer
from .events import EventBus, job_status_emitter
from .lifecycle import RoundLifecycle
from .notifier import Notifier
from .round import NominationRound, NominationSubmitter

logger = logging.getLogger(__name__)


@dataclass
class JobMetadata:
    """Collaborators and flags for one round invocation."""
    config: Config
    chaindata: ChainData
    nominator_groups: Sequence[NominatorGroup]
    constraints: CandidateScorer
    lifecycle: RoundLifecycle
    handler: NominationSubmitter
    notifier: Optional[Notifier] = None
    nominating: bool = False
    current_era: int = 0


def is_nomination_round(last_nominated_era: int, active_era: int, network_prefix: int) -> bool:
    """True once `era_buffer` eras have passed since the last nomination."""
    return last_nominated_era <= active_era - era_buffer_for_prefix(network_prefix)


def calculate_progress(processed: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, (processed * 100) // total)


class RoundController:
    def __init__(self,
                 store: RoundStateStore,
                 rounds: Optional[NominationRound] = None,
                 emitter: EventBus = job_status_emitter):
        self.store = store
        self.rounds = rounds or NominationRound(store)
        self.emitter = emitter

    def run_round(self, metadata: JobMetadata) -> None:
        """
        Run one scheduler invocation. Never raises; every failure ends the
        invocation early and is retried on the next trigger.
        """
        lifecycle = metadata.lifecycle
        if not lifecycle.claim():
            logger.info(f"Round is currently {lifecycle.phase.value.lower()}. Skipping.")
            round_skips_total.labels(reason="busy").inc()
            return

        try:
            self._run_claimed(metadata)
        except Exception as e:
            logger.error(f"Unexpected error in round invocation: {e}", exc_info=True)
        finally:
            lifecycle.release()

    def _run_claimed(self, metadata: JobMetadata) -> None:
        config = metadata.config

        active_era, err = metadata.chaindata.get_active_era_index()
        if err:
            logger.warning(f"CRITICAL: could not read active era: {err}")
            round_skips_total.labels(reason="chain_error").inc()
            return
        if metadata.current_era and metadata.current_era != active_era:
            logger.debug(f"Cached era {metadata.current_era} is stale, chain reports {active_era}")

        last_nominated = self.store.get_last_nominated_era_index()
        if not is_nomination_round(last_nominated, active_era, config.network_prefix):
            logger.debug(f"Not a nomination round (active era {active_era}, last nominated {last_nominated})")
            round_skips_total.labels(reason="not_eligible").inc()
            return

        if not config.scorekeeper.nominating:
            logger.info("Nominating is disabled in the settings. Skipping round.")
            round_skips_total.labels(reason="disabled").inc()
            return

        groups = tuple(metadata.nominator_groups)
        total_groups = len(groups)
        if not total_groups:
            logger.info("No nominator groups configured. Skipping round.")
            round_skips_total.labels(reason="no_groups").inc()
            return

        all_current_targets: List[Target] = []
        for group in groups:
            all_current_targets.extend(metadata.chaindata.get_current_targets(group.bonded_address))

        if not all_current_targets:
            logger.info("Current targets are empty. Starting round.")
            self._start(metadata, groups, active_era, all_current_targets)
            rounds_total.labels(action="start").inc()
        else:
            logger.info("Ending round.")
            end_err = self._end(metadata, groups)
            if end_err and not config.scorekeeper.start_after_failed_end:
                logger.warning(f"Ending round failed, not starting a new one: {end_err}")
                round_skips_total.labels(reason="end_failed").inc()
                return
            self._start(metadata, groups, active_era, all_current_targets)
            rounds_total.labels(action="end_start").inc()

        # Groups are handled as one collective round
        processed = 1
        event = ProgressEvent(
            name=ROUND_JOB_NAME,
            progress=calculate_progress(processed, total_groups),
            updated=int(time.time() * 1000),
            iteration=f"Processed nominator group {processed}",
        )
        self.emitter.emit(JOB_PROGRESS_EVENT, **event.model_dump())

    def _end(self, metadata: JobMetadata, groups: Sequence[NominatorGroup]) -> Optional[str]:
        metadata.lifecycle.enter(RoundPhase.ENDING)
        try:
            err = self.rounds.end_round(
                metadata.lifecycle,
                groups,
                metadata.chaindata,
                metadata.constraints,
                metadata.config,
                metadata.notifier,
            )
        except Exception as e:
            logger.error(f"Error ending round: {e}", exc_info=True)
            err = str(e)
        if err:
            logger.warning(f"Ending round reported: {err}")
        return err

    def _start(self, metadata: JobMetadata, groups: Sequence[NominatorGroup],
               active_era: int, current_targets: List[Target]) -> Optional[str]:
        metadata.lifecycle.enter(RoundPhase.STARTING)
        try:
            err = self.rounds.start_round(
                metadata.nominating,
                active_era,
                metadata.notifier,
                metadata.constraints,
                groups,
                metadata.chaindata,
                metadata.handler,
                metadata.config,
                current_targets,
            )
        except Exception as e:
            logger.error(f"Error starting round: {e}", exc_info=True)
            err = str(e)
        if err:
            logger.warning(f"Starting round reported: {err}")
        return err
