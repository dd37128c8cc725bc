from cannacore.scheduler import Scheduler


def test_interval_first_fires_one_period_after_start():
    calls = []
    scheduler = Scheduler(now=1000)
    scheduler.every("tick", 500, calls.append)
    assert scheduler.advance(1499) == 0
    assert scheduler.advance(1500) == 1
    assert calls == [1500]


def test_missed_periods_fire_once_and_stay_aligned():
    calls = []
    scheduler = Scheduler(now=0)
    timer = scheduler.every("tick", 500, calls.append)
    scheduler.advance(2600)
    assert calls == [2600]
    assert timer.next_due == 3000


def test_one_shot_fires_once():
    calls = []
    scheduler = Scheduler(now=0)
    scheduler.after("once", 100, calls.append)
    scheduler.advance(50)
    scheduler.advance(100)
    scheduler.advance(200)
    assert calls == [100]
    assert scheduler.pending() == []


def test_handler_may_reschedule_itself():
    scheduler = Scheduler(now=0)
    calls = []

    def again(now):
        calls.append(now)
        scheduler.at("loop", now + 10, again)

    scheduler.at("loop", 10, again)
    scheduler.advance(10)
    scheduler.advance(20)
    assert calls == [10, 20]
    assert scheduler.pending() == ["loop"]


def test_cancel_and_clear():
    scheduler = Scheduler(now=0)
    fired = []
    scheduler.every("a", 10, fired.append)
    handle = scheduler.at("b", 5, fired.append)
    assert scheduler.cancel("a")
    assert not scheduler.cancel("a")
    scheduler.clear_all()
    assert handle.cancelled
    assert scheduler.advance(100) == 0
    assert fired == []


def test_rescheduling_a_name_replaces_it():
    scheduler = Scheduler(now=0)
    fired = []
    scheduler.at("x", 10, lambda now: fired.append("old"))
    scheduler.at("x", 20, lambda now: fired.append("new"))
    scheduler.advance(30)
    assert fired == ["new"]
