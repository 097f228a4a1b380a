import json
import logging
import time
from typing import List, Optional

from .db import StorageDB
from ..observability.metrics import last_nominated_era as last_nominated_era_gauge
from ..protocol.types.staking import NominationRecord, Target, TargetOutcome

logger = logging.getLogger(__name__)

LAST_NOMINATED_ERA_KEY = "last_nominated_era"


class RoundStateStore:
    """
    Round bookkeeping on top of StorageDB.

    Every write is committed before returning, so the next round invocation
    always reads what the previous one stored.
    """

    def __init__(self, db: StorageDB):
        self.db = db

    def get_last_nominated_era_index(self) -> int:
        val = self.db.get_state(LAST_NOMINATED_ERA_KEY)
        return int(val) if val else 0

    def set_last_nominated_era_index(self, era_index: int) -> bool:
        """
        Records the era of the latest nomination round.

        Returns:
            False if `era_index` is lower than the stored value (not applied)
        """
        current = self.get_last_nominated_era_index()
        if era_index < current:
            logger.warning(f"Refusing to move last nominated era back from {current} to {era_index}")
            return False
        self.db.set_state(LAST_NOMINATED_ERA_KEY, str(era_index))
        last_nominated_era_gauge.set(era_index)
        return True

    # --- Current targets ---
    def get_current_targets(self, bonded_address: str) -> List[Target]:
        return [Target(address=address, name=name) for address, name in self.db.get_targets(bonded_address)]

    def set_current_targets(self, bonded_address: str, targets: List[Target]):
        self.db.replace_targets(bonded_address, [(t.address, t.name) for t in targets])

    def clear_current_targets(self, bonded_address: str):
        self.db.replace_targets(bonded_address, [])

    def get_target_name(self, address: str) -> Optional[str]:
        return self.db.get_target_name(address)

    # --- History ---
    def record_nomination(self, record: NominationRecord):
        timestamp = record.timestamp or int(time.time())
        self.db.add_nomination(record.bonded_address, record.era, json.dumps(record.targets),
                               record.tx_hash, timestamp)

    def get_nominations(self, limit: int = 50) -> List[NominationRecord]:
        return [
            NominationRecord(bonded_address=bonded, era=era, targets=json.loads(data),
                             tx_hash=tx_hash, timestamp=timestamp)
            for bonded, era, data, tx_hash, timestamp in self.db.get_nominations(limit)
        ]

    def record_target_outcome(self, outcome: TargetOutcome):
        self.db.save_outcome(outcome.bonded_address, outcome.era, outcome.address,
                             outcome.valid, outcome.reason)

    def get_target_outcomes(self, era: int) -> List[TargetOutcome]:
        return [
            TargetOutcome(bonded_address=bonded, era=era_index, address=address,
                          valid=bool(valid), reason=reason)
            for bonded, era_index, address, valid, reason in self.db.get_outcomes(era)
        ]
