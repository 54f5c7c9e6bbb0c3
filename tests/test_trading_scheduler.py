import time
from unittest.mock import Mock

from enums.activity_type import ActivityType
from orchestrators.trading_scheduler import TradingScheduler


def wait_until_idle(scheduler, timeout=5.0):
    deadline = time.time() + timeout
    while scheduler.running() and time.time() < deadline:
        time.sleep(0.01)
    return not scheduler.running()


def test_job_runs_until_session_is_deactivated(make_session, sessions, activity):
    session = make_session()
    calls = []

    def run(session_id):
        calls.append(session_id)
        if len(calls) == 2:
            sessions.set_active(session_id, False)
        return True

    orchestrator = Mock()
    orchestrator.run_iteration.side_effect = run
    scheduler = TradingScheduler(orchestrator, sessions, activity, interval=0.01)

    assert scheduler.start(session.id) is True
    assert wait_until_idle(scheduler)
    assert calls == [session.id, session.id]


def test_inactive_session_never_iterates(make_session, sessions, activity):
    session = make_session(active=False)
    orchestrator = Mock()
    scheduler = TradingScheduler(orchestrator, sessions, activity, interval=0.01)

    scheduler.start(session.id)

    assert wait_until_idle(scheduler)
    orchestrator.run_iteration.assert_not_called()


def test_job_errors_are_logged_and_the_job_continues(make_session, sessions, activity, activity_repo):
    session = make_session()

    def run(session_id):
        sessions.set_active(session_id, False)
        raise RuntimeError("worker crashed")

    orchestrator = Mock()
    orchestrator.run_iteration.side_effect = run
    scheduler = TradingScheduler(orchestrator, sessions, activity, interval=0.01)

    scheduler.start(session.id)

    assert wait_until_idle(scheduler)
    errors = activity_repo.list_by_session(session.id, ActivityType.JOB_ERROR)
    assert len(errors) == 1
    assert errors[0].details["error"] == "worker crashed"


def test_start_all_active_and_stop(make_session, sessions, activity):
    first = make_session()
    second = make_session()
    make_session(active=False)
    orchestrator = Mock()
    orchestrator.run_iteration.return_value = True
    scheduler = TradingScheduler(orchestrator, sessions, activity, interval=60)

    assert scheduler.start_all_active() == 2
    assert scheduler.running() == sorted([first.id, second.id])
    assert scheduler.start(first.id) is False

    scheduler.stop(timeout=5)
    assert scheduler.running() == []
