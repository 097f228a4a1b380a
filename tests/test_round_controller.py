"""
Tests for the round controller.

Tests:
- Era eligibility per network prefix
- No-op paths (busy lifecycle, chain error, not eligible, disabled, no groups)
- Start-only vs end-then-start orchestration
- Progress event emission
- Failure isolation of round hooks and subscribers
"""
import os
import shutil
from unittest.mock import Mock

import pytest

from stakeround.core.controller import JobMetadata, RoundController, calculate_progress, is_nomination_round
from stakeround.core.events import EventBus
from stakeround.core.lifecycle import RoundLifecycle
from stakeround.protocol.config.params import JOB_PROGRESS_EVENT, ROUND_JOB_NAME
from stakeround.protocol.config.settings import Config
from stakeround.protocol.types.common import RoundPhase
from stakeround.protocol.types.staking import NominatorGroup, Target
from stakeround.storage.db import StorageDB
from stakeround.storage.round_store import RoundStateStore


TEST_DB_DIR = "./test_round_controller_db"


# ═══════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════

@pytest.fixture
def store():
    if os.path.exists(TEST_DB_DIR):
        shutil.rmtree(TEST_DB_DIR)
    os.makedirs(TEST_DB_DIR)

    db = StorageDB(os.path.join(TEST_DB_DIR, "rounds.db"))
    yield RoundStateStore(db)

    db.close()
    if os.path.exists(TEST_DB_DIR):
        shutil.rmtree(TEST_DB_DIR)


@pytest.fixture
def bus():
    bus = EventBus()
    yield bus
    bus.clear()


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(JOB_PROGRESS_EVENT, lambda **data: received.append(data))
    return received


@pytest.fixture
def rounds():
    rounds = Mock()
    rounds.start_round.return_value = None
    rounds.end_round.return_value = None
    return rounds


def make_groups(count):
    return [NominatorGroup(bonded_address=f"stash{i}", name=f"group-{i}") for i in range(count)]


def make_chaindata(active_era=100, err=None, targets=None):
    targets = targets or {}
    chaindata = Mock()
    chaindata.get_active_era_index.return_value = (active_era, err)
    chaindata.get_current_targets.side_effect = lambda address: list(targets.get(address, []))
    return chaindata


def make_metadata(chaindata, groups, network_prefix=0, nominating_enabled=True,
                  start_after_failed_end=True, lifecycle=None):
    config = Config.model_validate({
        "global": {"networkPrefix": network_prefix},
        "scorekeeper": {
            "nominating": nominating_enabled,
            "startAfterFailedEnd": start_after_failed_end,
        },
    })
    return JobMetadata(
        config=config,
        chaindata=chaindata,
        nominator_groups=groups,
        constraints=Mock(),
        lifecycle=lifecycle or RoundLifecycle(),
        handler=Mock(),
        notifier=Mock(),
        current_era=active_era_of(chaindata),
    )


def active_era_of(chaindata):
    return chaindata.get_active_era_index.return_value[0]


def call_names(rounds):
    return [name for name, _, _ in rounds.mock_calls]


# ═══════════════════════════════════════════════════════════════════
# SCENARIOS
# ═══════════════════════════════════════════════════════════════════

def test_polkadot_buffer_makes_round_eligible(store, rounds, bus, events):
    """ActiveEra=100, last=95, prefix 0 (buffer 1): 95 <= 99 so the round proceeds."""
    store.set_last_nominated_era_index(95)
    chaindata = make_chaindata(active_era=100)
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, make_groups(1), network_prefix=0))

    rounds.start_round.assert_called_once()
    assert len(events) == 1


def test_other_network_buffer_blocks_round(store, rounds, bus, events):
    """ActiveEra=100, last=98, prefix 2 (buffer 4): 98 <= 96 is false so nothing happens."""
    store.set_last_nominated_era_index(98)
    chaindata = make_chaindata(active_era=100)
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, make_groups(1), network_prefix=2))

    assert rounds.mock_calls == []
    assert events == []
    chaindata.get_current_targets.assert_not_called()


def test_buffer_boundary_is_inclusive(store, rounds, bus, events):
    store.set_last_nominated_era_index(96)
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(make_chaindata(active_era=100), make_groups(1), network_prefix=2))

    rounds.start_round.assert_called_once()


def test_disabled_nominating_is_noop(store, rounds, bus, events):
    chaindata = make_chaindata(active_era=100)
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, make_groups(2), nominating_enabled=False))

    assert rounds.mock_calls == []
    assert events == []
    chaindata.get_current_targets.assert_not_called()


def test_three_empty_groups_start_once(store, rounds, bus, events):
    chaindata = make_chaindata(active_era=100)
    groups = make_groups(3)
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, groups))

    rounds.start_round.assert_called_once()
    rounds.end_round.assert_not_called()
    assert chaindata.get_current_targets.call_count == 3

    assert len(events) == 1
    event = events[0]
    assert event["name"] == ROUND_JOB_NAME
    assert event["progress"] == 33
    assert event["iteration"] == "Processed nominator group 1"
    assert isinstance(event["updated"], int)


# ═══════════════════════════════════════════════════════════════════
# ORCHESTRATION
# ═══════════════════════════════════════════════════════════════════

def test_active_round_is_ended_before_start(store, rounds, bus, events):
    targets = {"stash1": [Target(address="val-a"), Target(address="val-b")]}
    chaindata = make_chaindata(active_era=100, targets=targets)
    groups = make_groups(2)
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, groups))

    assert call_names(rounds) == ["end_round", "start_round"]
    rounds.end_round.assert_called_once()
    rounds.start_round.assert_called_once()
    assert events[0]["progress"] == 50


def test_start_round_receives_decision_era_and_flat_targets(store, rounds, bus, events):
    targets = {
        "stash0": [Target(address="val-a")],
        "stash1": [Target(address="val-b"), Target(address="val-c")],
    }
    chaindata = make_chaindata(active_era=120, targets=targets)
    groups = make_groups(2)
    metadata = make_metadata(chaindata, groups)
    controller = RoundController(store, rounds, bus)

    controller.run_round(metadata)

    args = rounds.start_round.call_args.args
    assert args[0] is False                 # nominating
    assert args[1] == 120                   # current era
    assert list(args[4]) == groups
    assert args[5] is chaindata
    assert args[6] is metadata.handler
    assert [t.address for t in args[8]] == ["val-a", "val-b", "val-c"]


def test_failed_end_still_starts_by_default(store, rounds, bus, events):
    rounds.end_round.return_value = "could not check targets"
    chaindata = make_chaindata(active_era=100, targets={"stash0": [Target(address="val-a")]})
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, make_groups(1)))

    assert call_names(rounds) == ["end_round", "start_round"]
    assert len(events) == 1


def test_failed_end_blocks_start_when_configured(store, rounds, bus, events):
    rounds.end_round.side_effect = RuntimeError("boom")
    chaindata = make_chaindata(active_era=100, targets={"stash0": [Target(address="val-a")]})
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, make_groups(1), start_after_failed_end=False))

    rounds.start_round.assert_not_called()
    assert events == []


def test_start_round_exception_is_contained(store, rounds, bus, events):
    rounds.start_round.side_effect = RuntimeError("submission exploded")
    lifecycle = RoundLifecycle()
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(make_chaindata(), make_groups(1), lifecycle=lifecycle))

    assert len(events) == 1
    assert events[0]["progress"] == 100
    assert lifecycle.phase == RoundPhase.IDLE


# ═══════════════════════════════════════════════════════════════════
# NO-OP PATHS
# ═══════════════════════════════════════════════════════════════════

def test_busy_lifecycle_touches_nothing(rounds, bus, events):
    store = Mock()
    chaindata = make_chaindata()
    lifecycle = RoundLifecycle()
    assert lifecycle.claim()
    lifecycle.enter(RoundPhase.ENDING)
    metadata = make_metadata(chaindata, make_groups(2), lifecycle=lifecycle)
    chaindata.reset_mock()
    controller = RoundController(store, rounds, bus)

    controller.run_round(metadata)

    assert chaindata.method_calls == []
    assert store.method_calls == []
    assert rounds.mock_calls == []
    assert events == []
    assert lifecycle.ending


def test_chain_error_aborts_invocation(store, rounds, bus, events):
    store.set_last_nominated_era_index(10)
    chaindata = make_chaindata(active_era=0, err="connection refused")
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(chaindata, make_groups(2)))

    assert rounds.mock_calls == []
    assert events == []
    chaindata.get_current_targets.assert_not_called()
    assert store.get_last_nominated_era_index() == 10


def test_no_groups_emits_nothing(store, rounds, bus, events):
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(make_chaindata(), []))

    assert rounds.mock_calls == []
    assert events == []


def test_lifecycle_released_after_invocation(store, rounds, bus):
    lifecycle = RoundLifecycle()
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(make_chaindata(), make_groups(1), lifecycle=lifecycle))

    assert lifecycle.phase == RoundPhase.IDLE
    assert not lifecycle.busy


def test_failing_subscriber_does_not_reach_controller(store, rounds, bus, events):
    def broken(**data):
        raise ValueError("dashboard down")

    bus.subscribe(JOB_PROGRESS_EVENT, broken)
    bus.subscribe(JOB_PROGRESS_EVENT, lambda **data: events.append(("late", data)))
    controller = RoundController(store, rounds, bus)

    controller.run_round(make_metadata(make_chaindata(), make_groups(1)))

    assert len(events) == 2
    assert events[1][0] == "late"


# ═══════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("last, active, prefix, expected", [
    (95, 100, 0, True),
    (99, 100, 0, True),
    (100, 100, 0, False),
    (96, 100, 2, True),
    (97, 100, 2, False),
    (0, 0, 0, False),
    (0, 4, 42, True),
])
def test_is_nomination_round(last, active, prefix, expected):
    assert is_nomination_round(last, active, prefix) is expected


@pytest.mark.parametrize("processed, total, expected", [
    (1, 1, 100),
    (1, 2, 50),
    (1, 3, 33),
    (1, 7, 14),
    (1, 0, 0),
])
def test_calculate_progress(processed, total, expected):
    assert calculate_progress(processed, total) == expected


def test_decision_uses_live_era_not_cached(store, rounds, bus, events):
    store.set_last_nominated_era_index(99)
    chaindata = make_chaindata(active_era=100)
    metadata = make_metadata(chaindata, make_groups(1), network_prefix=0)
    # Cached era from the scheduler tick is stale
    metadata.current_era = 200
    controller = RoundController(store, rounds, bus)

    controller.run_round(metadata)

    assert rounds.start_round.call_args.args[1] == 100


def test_end_round_receives_ending_lifecycle_and_config(store, rounds, bus, events):
    phases = []
    rounds.end_round.side_effect = lambda lifecycle, *args: phases.append(lifecycle.phase)
    chaindata = make_chaindata(active_era=100, targets={"stash0": [Target(address="val-a")]})
    metadata = make_metadata(chaindata, make_groups(1))
    controller = RoundController(store, rounds, bus)

    controller.run_round(metadata)

    args = rounds.end_round.call_args.args
    assert args[0] is metadata.lifecycle
    assert phases == [RoundPhase.ENDING]
    assert list(args[1]) == list(metadata.nominator_groups)
    assert args[2] is chaindata
    assert args[3] is metadata.constraints
    assert args[4] is metadata.config
    assert args[5] is metadata.notifier
