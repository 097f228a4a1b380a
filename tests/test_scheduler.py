import threading
from unittest.mock import Mock

from stakeround.core.scheduler import RoundScheduler


def test_tick_runs_controller_with_fresh_metadata():
    controller = Mock()
    metadata = [Mock(), Mock()]
    factory = Mock(side_effect=metadata)
    scheduler = RoundScheduler(controller, factory, interval_sec=60)

    scheduler.tick()
    scheduler.tick()

    assert [call.args[0] for call in controller.run_round.call_args_list] == metadata
    assert scheduler.ticks == 2


def test_interval_has_a_floor():
    assert RoundScheduler(Mock(), Mock(), interval_sec=0).interval_sec == 1.0


def test_background_loop_runs_and_stops():
    invoked = threading.Event()
    controller = Mock()
    controller.run_round.side_effect = lambda metadata: invoked.set()
    scheduler = RoundScheduler(controller, Mock(), interval_sec=60)

    scheduler.start()
    assert invoked.wait(5)
    assert scheduler.running

    scheduler.stop(timeout=5)
    assert not scheduler.running
    assert scheduler.ticks >= 1


def test_loop_survives_failing_invocation():
    invoked = threading.Event()
    factory = Mock(side_effect=[RuntimeError("chain gone"), Mock()])
    controller = Mock()
    controller.run_round.side_effect = lambda metadata: invoked.set()
    scheduler = RoundScheduler(controller, factory, interval_sec=1)

    scheduler.start()
    try:
        assert invoked.wait(5)
    finally:
        scheduler.stop(timeout=5)

    assert factory.call_count >= 2
