from enum import Enum


class RoundPhase(str, Enum):
    IDLE = "IDLE"
    ENDING = "ENDING"       # Finalizing the targets of the previous round
    STARTING = "STARTING"   # Scoring candidates and submitting nominations


class QueryStatus(str, Enum):
    OK = "OK"
    EMPTY = "EMPTY"   # Query succeeded but the chain holds no data
    ERROR = "ERROR"   # Connection or decoding failure


class StakeRoundError(Exception):
    pass

class ChainError(StakeRoundError):
    pass

class ConfigError(StakeRoundError):
    pass

class SubmissionError(StakeRoundError):
    pass
