"""
Candidate constraints.

Scores come from configuration; validity is checked against live chain
state (blocked flag, commission ceiling, session keys).
"""
import logging
from typing import List, Optional, Protocol, Tuple

from ..chaindata import queries
from ..chaindata.chaindata import ChainData
from ..protocol.types.staking import ScoredCandidate

logger = logging.getLogger(__name__)


class CandidateScorer(Protocol):
    def score_candidates(self) -> List[ScoredCandidate]: ...

    def check_candidate(self, address: str) -> Tuple[bool, Optional[str]]: ...


class ConfiguredConstraints:
    def __init__(self, chaindata: ChainData, candidates: List[ScoredCandidate], max_commission: int):
        self.chaindata = chaindata
        self.candidates = list(candidates)
        self.max_commission = max_commission

    def score_candidates(self) -> List[ScoredCandidate]:
        """Candidates ordered best first."""
        return sorted(self.candidates, key=lambda c: c.score, reverse=True)

    def check_candidate(self, address: str) -> Tuple[bool, Optional[str]]:
        """
        Returns (valid, reason). A candidate whose state cannot be read is
        treated as invalid.
        """
        blocked = queries.get_blocked(self.chaindata, address)
        if not blocked.is_ok:
            return False, f"Could not read preferences: {blocked.reason}"
        if blocked.value:
            return False, "Validator blocks nominations."

        commission = queries.get_commission(self.chaindata, address)
        if not commission.is_ok:
            return False, f"Could not read commission: {commission.reason}"
        if commission.value > self.max_commission:
            return False, f"Commission {commission.value / 10_000_000:.2f}% above {self.max_commission / 10_000_000:.2f}%"

        keys = queries.get_next_keys(self.chaindata, address)
        if not keys.is_ok:
            return False, keys.reason

        return True, None
