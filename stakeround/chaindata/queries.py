# MIT License
# Copyright (c) 2025 Hashborn

"""
Staking queries against a ChainData connection.

Each query checks the connection first, never raises, and reports missing
data through QueryResult so that "zero" and "unknown" stay distinguishable.
Queries that take `block_hash` read historical state at that block.
"""

import logging
from typing import List, Optional

from .chaindata import ChainData
from ..observability.metrics import chain_query_errors_total
from ..protocol.types.results import QueryResult
from ..protocol.types.staking import Balance, Exposure, NextKeys, QueuedKey, Stake

logger = logging.getLogger(__name__)


def _query(chaindata: ChainData, module: str, storage: str, params: Optional[list] = None,
           block_hash: Optional[str] = None):
    return chaindata.query(module, storage, params, block_hash)


def _failed(query: str, e: Exception) -> str:
    logger.error(f"Error getting {query}: {e}")
    chain_query_errors_total.labels(query=query).inc()
    return str(e)


def get_commission(chaindata: ChainData, validator: str,
                   block_hash: Optional[str] = None) -> QueryResult[int]:
    """Commission of `validator` in perbill."""
    try:
        prefs = _query(chaindata, "Staking", "Validators", [validator], block_hash)
        if prefs is None or not prefs.value:
            return QueryResult.empty(0, "No preferences found.")
        return QueryResult.ok(int(prefs.value["commission"]))
    except Exception as e:
        return QueryResult.error(0, _failed("commission", e))


def get_commission_in_era(chaindata: ChainData, era_index: int, validator: str,
                          block_hash: Optional[str] = None) -> QueryResult[int]:
    """Commission `validator` had in `era_index`, from the era snapshot."""
    try:
        prefs = _query(chaindata, "Staking", "ErasValidatorPrefs", [era_index, validator], block_hash)
        if prefs is None or not prefs.value:
            return QueryResult.empty(None, f"No preferences found in era {era_index}.")
        return QueryResult.ok(int(prefs.value["commission"]))
    except Exception as e:
        return QueryResult.error(None, _failed("commission_in_era", e))


def get_blocked(chaindata: ChainData, validator: str) -> QueryResult[bool]:
    """Whether `validator` blocks new nominations."""
    try:
        prefs = _query(chaindata, "Staking", "Validators", [validator])
        if prefs is None or not prefs.value:
            return QueryResult.empty(False, "No preferences found.")
        return QueryResult.ok(bool(prefs.value.get("blocked", False)))
    except Exception as e:
        return QueryResult.error(False, _failed("blocked", e))


def get_bonded_amount(chaindata: ChainData, stash: str) -> QueryResult[int]:
    """Active bonded amount of `stash` in planck."""
    try:
        bonded = _query(chaindata, "Staking", "Bonded", [stash])
        if bonded is None or not bonded.value:
            return QueryResult.empty(0, "Not bonded to any account.")

        ledger = _query(chaindata, "Staking", "Ledger", [str(bonded.value)])
        if ledger is None or not ledger.value:
            return QueryResult.empty(0, "Ledger is empty.")

        return QueryResult.ok(int(ledger.value["active"]))
    except Exception as e:
        return QueryResult.error(0, _failed("bonded_amount", e))


def get_controller_from_stash(chaindata: ChainData, stash: str) -> QueryResult[str]:
    try:
        controller = _query(chaindata, "Staking", "Bonded", [stash])
        if controller is None or not controller.value:
            return QueryResult.empty(None, "Not bonded to any account.")
        return QueryResult.ok(str(controller.value))
    except Exception as e:
        return QueryResult.error(None, _failed("controller", e))


def get_reward_destination(chaindata: ChainData, stash: str,
                           block_hash: Optional[str] = None) -> QueryResult[str]:
    """
    Reward destination of `stash`.

    Returns the payee account for `Account` destinations, otherwise the
    variant name (e.g. "Staked", "Stash").
    """
    try:
        payee = _query(chaindata, "Staking", "Payee", [stash], block_hash)
        if payee is None or payee.value is None:
            return QueryResult.empty(None, "No reward destination set.")
        value = payee.value
        if isinstance(value, dict):
            if value.get("Account"):
                return QueryResult.ok(str(value["Account"]))
            return QueryResult.ok(next(iter(value.keys())))
        return QueryResult.ok(str(value))
    except Exception as e:
        return QueryResult.error(None, _failed("reward_destination", e))


def get_queued_keys(chaindata: ChainData) -> QueryResult[List[QueuedKey]]:
    """Session keys queued for the next session."""
    try:
        queued = _query(chaindata, "Session", "QueuedKeys")
        if queued is None or not queued.value:
            return QueryResult.empty([], "No queued keys.")
        keys = [
            QueuedKey(address=str(validator), keys={k: str(v) for k, v in session_keys.items()})
            for validator, session_keys in queued.value
        ]
        return QueryResult.ok(keys)
    except Exception as e:
        return QueryResult.error([], _failed("queued_keys", e))


def get_next_keys(chaindata: ChainData, stash: str) -> QueryResult[NextKeys]:
    """Session keys `stash` has set for upcoming sessions."""
    try:
        next_keys = _query(chaindata, "Session", "NextKeys", [stash])
        if next_keys is None or not next_keys.value or not isinstance(next_keys.value, dict):
            return QueryResult.empty(None, "No session keys set.")
        return QueryResult.ok(NextKeys(keys={k: str(v) for k, v in next_keys.value.items()}))
    except Exception as e:
        return QueryResult.error(None, _failed("next_keys", e))


def get_balance(chaindata: ChainData, address: str) -> QueryResult[Balance]:
    try:
        account = _query(chaindata, "System", "Account", [address])
        if account is None or not account.value:
            return QueryResult.empty(None, "Account not found.")
        return QueryResult.ok(Balance(free=str(account.value["data"]["free"])))
    except Exception as e:
        return QueryResult.error(None, _failed("balance", e))


def get_exposure(chaindata: ChainData, era_index: int, validator: str,
                 block_hash: Optional[str] = None) -> QueryResult[Exposure]:
    """Stake backing `validator` in `era_index`, converted to whole tokens."""
    try:
        denom = chaindata.get_denom()
        if not denom:
            return QueryResult.error(None, "Could not determine denomination.")

        stakers = _query(chaindata, "Staking", "ErasStakers", [era_index, validator], block_hash)
        if stakers is None or not stakers.value:
            return QueryResult.empty(None, f"No exposure in era {era_index}.")

        value = stakers.value
        others = [
            Stake(address=str(stake["who"]), bonded=int(stake["value"]) / denom)
            for stake in value.get("others", [])
        ]
        return QueryResult.ok(Exposure(
            total=int(value["total"]) / denom,
            own=int(value["own"]) / denom,
            others=others,
        ))
    except Exception as e:
        return QueryResult.error(None, _failed("exposure", e))
