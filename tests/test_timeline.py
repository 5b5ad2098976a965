import pytest
import simpy

from sat_fading_lab.timeline import Timeline


def test_events_run_in_time_order(timeline):
    order = []
    timeline.schedule_at(3.0, order.append, "c")
    timeline.schedule_at(1.0, order.append, "a")
    timeline.schedule_at(2.0, order.append, "b")
    assert timeline.run() == 3
    assert order == ["a", "b", "c"]
    assert timeline.now_s == 3.0


def test_equal_times_run_in_insertion_order(timeline):
    order = []
    for name in "xyz":
        timeline.schedule_at(1.0, order.append, name)
    timeline.run()
    assert order == ["x", "y", "z"]


def test_clock_visible_inside_actions(timeline):
    seen = []
    timeline.schedule(0.25, lambda: seen.append(timeline.now()))
    timeline.schedule(0.75, lambda: seen.append(timeline.now()))
    timeline.run()
    assert seen == [0.25, 0.75]


def test_actions_can_schedule_more_events(timeline):
    ticks = []

    def tick():
        ticks.append(timeline.now_s)
        if len(ticks) < 5:
            timeline.schedule(0.1, tick)

    timeline.schedule(0.0, tick)
    timeline.run()
    assert ticks == pytest.approx([0.0, 0.1, 0.2, 0.3, 0.4])


def test_run_until_stops_clock(timeline):
    order = []
    timeline.schedule_at(1.0, order.append, 1)
    timeline.schedule_at(5.0, order.append, 5)
    assert timeline.run(until_s=2.0) == 1
    assert timeline.now_s == 2.0
    assert timeline.pending == 1
    timeline.run()
    assert order == [1, 5]


def test_cancel(timeline):
    order = []
    first = timeline.schedule_at(1.0, order.append, 1)
    timeline.schedule_at(2.0, order.append, 2)
    assert timeline.cancel(first)
    assert not timeline.cancel(first)
    assert timeline.pending == 1
    timeline.run()
    assert order == [2]
    assert not timeline.cancel(12345)


def test_no_scheduling_in_the_past():
    timeline = Timeline(start_s=10.0)
    with pytest.raises(ValueError):
        timeline.schedule_at(9.0, lambda: None)
    with pytest.raises(ValueError):
        timeline.schedule(-1.0, lambda: None)
    with pytest.raises(ValueError):
        timeline.schedule_at(float("nan"), lambda: None)


def test_run_until_includes_events_at_the_boundary(timeline):
    order = []
    timeline.schedule_at(2.0, order.append, "edge")
    assert timeline.run(until_s=2.0) == 1
    assert order == ["edge"]


def test_shares_clock_with_simpy_processes():
    env = simpy.Environment()
    timeline = Timeline(env=env)
    seen = []

    def ticker():
        while True:
            yield env.timeout(1.0)
            seen.append(("tick", env.now))

    env.process(ticker())
    timeline.schedule_at(1.5, lambda: seen.append(("action", timeline.now())))
    timeline.run(until_s=2.0)
    assert seen == [("tick", 1.0), ("action", 1.5), ("tick", 2.0)]
    assert timeline.now_s == env.now == 2.0
