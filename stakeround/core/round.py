"""
Starting and ending nomination rounds.

`start_round` picks the best valid candidates and nominates them from every
group; `end_round` checks how the outgoing targets held up and clears them.
Both return None on success or an error message.
"""
import logging
import time
from typing import List, Optional, Protocol, Sequence

from ..chaindata import queries
from ..chaindata.chaindata import ChainData
from ..protocol.config.params import network_for_prefix
from ..protocol.config.settings import Config
from ..protocol.types.common import SubmissionError
from ..protocol.types.staking import NominationRecord, NominatorGroup, ScoredCandidate, Target, TargetOutcome
from ..storage.round_store import RoundStateStore
from .constraints import CandidateScorer
from .lifecycle import RoundLifecycle
from .notifier import Notifier

logger = logging.getLogger(__name__)


class NominationSubmitter(Protocol):
    def nominate(self, group: NominatorGroup, targets: List[str], era: int) -> Optional[str]: ...


class NominationRound:
    def __init__(self, store: RoundStateStore):
        self.store = store

    def _select_candidates(self, constraints: CandidateScorer, needed: int) -> List[ScoredCandidate]:
        selected = []
        for candidate in constraints.score_candidates():
            if len(selected) >= needed:
                break
            valid, reason = constraints.check_candidate(candidate.address)
            if valid:
                selected.append(candidate)
            else:
                logger.debug(f"Skipping candidate {candidate.address}: {reason}")
        return selected

    def start_round(self,
                    nominating: bool,
                    current_era: int,
                    notifier: Optional[Notifier],
                    constraints: CandidateScorer,
                    nominator_groups: Sequence[NominatorGroup],
                    chaindata: ChainData,
                    handler: NominationSubmitter,
                    config: Config,
                    current_targets: List[Target]) -> Optional[str]:
        if nominating:
            logger.info("A nomination is already in progress. Not starting a new round.")
            return "Nomination already in progress."

        logger.info(f"Starting new round in era {current_era} for {len(nominator_groups)} group(s)")
        max_nominations = network_for_prefix(config.network_prefix).max_nominations
        needed = min(max((g.max_targets for g in nominator_groups), default=0), max_nominations)

        candidates = self._select_candidates(constraints, needed)
        if not candidates:
            logger.warning("No valid candidates to nominate.")
            return "No valid candidates."

        previous = {t.address for t in current_targets}
        errors = []
        submitted = 0
        for group in nominator_groups:
            bonded = queries.get_bonded_amount(chaindata, group.bonded_address)
            if not bonded.is_ok:
                logger.warning(f"Skipping {group.bonded_address}: {bonded.reason}")
                errors.append(f"{group.bonded_address}: {bonded.reason}")
                continue

            targets = candidates[:min(group.max_targets, max_nominations)]
            addresses = [c.address for c in targets]
            try:
                tx_hash = handler.nominate(group, addresses, current_era)
            except SubmissionError as e:
                logger.error(f"Nomination failed for {group.bonded_address}: {e}")
                errors.append(str(e))
                continue

            self.store.set_current_targets(
                group.bonded_address, [Target(address=c.address, name=c.name) for c in targets]
            )
            self.store.record_nomination(NominationRecord(
                bonded_address=group.bonded_address,
                era=current_era,
                targets=addresses,
                tx_hash=tx_hash,
                timestamp=int(time.time()),
            ))
            submitted += 1

        if submitted:
            self.store.set_last_nominated_era_index(current_era)
            kept = len(previous & {c.address for c in candidates})
            message = (f"Era {current_era}: nominated {len(candidates)} validator(s) from {submitted} group(s); "
                       f"{kept} carried over from the previous round.")
            logger.info(message)
            if notifier:
                notifier.send_message(message)

        if errors:
            return "; ".join(errors)
        return None

    def end_round(self,
                  lifecycle: RoundLifecycle,
                  nominator_groups: Sequence[NominatorGroup],
                  chaindata: ChainData,
                  constraints: CandidateScorer,
                  config: Config,
                  notifier: Optional[Notifier]) -> Optional[str]:
        if not lifecycle.ending:
            logger.warning(f"Refusing to end round while lifecycle is {lifecycle.phase.value}")
            return "Round is not ending."

        network = network_for_prefix(config.network_prefix)
        era = self.store.get_last_nominated_era_index()
        logger.info(f"Ending {network.network_id} round nominated in era {era}")

        checked = 0
        invalid = 0
        for group in nominator_groups:
            targets = chaindata.get_current_targets(group.bonded_address)
            if not targets:
                targets = self.store.get_current_targets(group.bonded_address)

            for target in targets:
                valid, reason = constraints.check_candidate(target.address)
                self.store.record_target_outcome(TargetOutcome(
                    bonded_address=group.bonded_address,
                    era=era,
                    address=target.address,
                    valid=valid,
                    reason=reason,
                ))
                checked += 1
                if not valid:
                    invalid += 1
                    logger.info(f"Target {target.address} of {group.bonded_address} no longer valid: {reason}")

            self.store.clear_current_targets(group.bonded_address)

        message = f"Ended {network.network_id} round of era {era}: {checked - invalid}/{checked} target(s) still valid."
        logger.info(message)
        if notifier:
            notifier.send_message(message)
        return None
