from __future__ import annotations

import pytest

from activity_timer.catalog import all_activities, lookup
from activity_timer.engine import TrackingEngine

RELAX, RESEARCH, WORK, CONTENT, JOB_SEARCH = (lookup(i) for i in range(5))


def test_start_stop_accumulates(engine, clock):
    engine.start(WORK)
    clock.advance(125)
    assert engine.stop() == pytest.approx(125)
    assert engine.get_total_time(WORK) == pytest.approx(125)

    clock.advance(75)
    engine.start(WORK)
    clock.advance(30)
    assert engine.get_total_time(WORK) == pytest.approx(155)
    assert engine.current_activity is WORK


def test_total_is_non_decreasing_while_tracking(engine, clock):
    engine.start(RESEARCH)
    readings = []
    for _ in range(5):
        readings.append(engine.get_total_time(RESEARCH))
        clock.advance(1.5)
    assert readings == sorted(readings)
    assert engine.get_total_time(RELAX) == 0


def test_stop_when_idle_is_noop(engine, store):
    assert engine.stop() is None
    assert engine.current_activity is None
    assert engine.committed_totals() == {}
    store.flush()
    assert store.load() == {}


def test_starting_another_activity_commits_the_previous(engine, clock):
    engine.start(WORK)
    clock.advance(60)
    engine.start(CONTENT)
    clock.advance(10)
    assert engine.committed_totals() == {WORK: pytest.approx(60)}
    assert engine.get_total_time(WORK) == pytest.approx(60)
    assert engine.get_total_time(CONTENT) == pytest.approx(10)
    assert engine.current_activity is CONTENT


def test_restarting_same_activity_resets_session_clock(engine, clock):
    engine.start(WORK)
    clock.advance(40)
    engine.start(WORK)
    assert engine.committed_totals()[WORK] == pytest.approx(40)
    assert engine.session_elapsed() == 0
    clock.advance(5)
    assert engine.session_elapsed() == pytest.approx(5)
    assert engine.get_total_time(WORK) == pytest.approx(45)


def test_reset_all_commits_then_clears(engine, clock, store):
    engine.start(WORK)
    clock.advance(100)
    engine.reset_all()
    assert engine.current_activity is None
    assert all(engine.get_total_time(activity) == 0 for activity in all_activities())
    store.flush()
    assert store.load() == {}


def test_stop_persists_totals(engine, clock, store, db_path):
    engine.start(JOB_SEARCH)
    clock.advance(90)
    engine.stop()
    store.flush()
    assert store.load() == {JOB_SEARCH: pytest.approx(90)}

    reloaded = TrackingEngine(store, clock=clock)
    assert reloaded.get_total_time(JOB_SEARCH) == pytest.approx(90)
    assert reloaded.current_activity is None


def test_clock_stepping_backwards_commits_nothing(engine, clock):
    engine.start(RELAX)
    clock.advance(-30)
    assert engine.stop() == 0
    assert engine.get_total_time(RELAX) == 0


def test_totals_projection_covers_catalog(engine, clock):
    engine.start(RESEARCH)
    clock.advance(12)
    totals = engine.totals()
    assert list(totals) == list(all_activities())
    assert totals[RESEARCH] == pytest.approx(12)
    assert engine.committed_totals() == {}


def test_persistence_failure_does_not_break_engine(tmp_path, clock):
    from activity_timer.store import TotalsStore

    broken = TotalsStore(tmp_path / "missing" / "totals.sqlite3")
    try:
        engine = TrackingEngine(broken, clock=clock)
        engine.start(WORK)
        clock.advance(10)
        assert engine.stop() == pytest.approx(10)
        engine.start(RELAX)
        assert engine.get_total_time(WORK) == pytest.approx(10)
    finally:
        broken.close()
