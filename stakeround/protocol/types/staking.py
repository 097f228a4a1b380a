from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class Target(BaseModel):
    """A validator currently nominated by a nominator group."""
    address: str                     # SS58 stash address
    name: Optional[str] = None       # Display name, if known
    identity: Optional[Any] = None   # Raw on-chain identity info


class NominatorGroup(BaseModel):
    """A bonded account plus the settings it nominates with."""
    model_config = ConfigDict(populate_by_name=True)

    bonded_address: str = Field(alias="bondedAddress")  # Stash that has bonded funds
    name: Optional[str] = None       # Human-readable label
    max_targets: int = Field(default=16, alias="maxTargets")  # Runtime max is 16 on Polkadot
    seed: Optional[str] = None       # Secret URI or mnemonic used to sign


class ScoredCandidate(BaseModel):
    address: str
    name: Optional[str] = None
    score: float = 0.0


class Stake(BaseModel):
    address: str
    bonded: float


class Exposure(BaseModel):
    total: float
    own: float
    others: List[Stake] = Field(default_factory=list)


class QueuedKey(BaseModel):
    address: str
    keys: Dict[str, str]             # Session key type -> hex public key


class NextKeys(BaseModel):
    keys: Dict[str, str]


class Balance(BaseModel):
    free: str


class NominationRecord(BaseModel):
    """One submitted nomination of a group."""
    bonded_address: str
    era: int                         # Active era the round was decided on
    targets: List[str]
    tx_hash: Optional[str] = None    # None for dry runs
    timestamp: int = 0


class TargetOutcome(BaseModel):
    """Validity of a nominated target when its round was ended."""
    bonded_address: str
    era: int
    address: str
    valid: bool
    reason: Optional[str] = None


class ProgressEvent(BaseModel):
    """Progress update published once per processed round invocation."""
    model_config = ConfigDict(frozen=True)

    name: str
    progress: int = Field(ge=0, le=100)
    updated: int                     # Unix epoch millis
    iteration: str
