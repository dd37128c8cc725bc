from decimal import Decimal

from cannacore.milestones import activate_kickstart, compute_milestones, milestone_progress, resolve_kickstart

from conftest import NOW


def test_milestones_latch_for_the_epoch(state):
    state.ownership.update({"seedling": 1, "planter": 1, "grow_tent": 1})
    _, summary = compute_milestones(state)
    assert "m1" in state.prestige.milestones_unlocked
    assert summary.global_mult == Decimal("1.05")

    state.ownership.update({"planter": 0, "grow_tent": 0})
    _, summary = compute_milestones(state)
    assert summary.active_count == 1
    assert summary.global_mult == Decimal("1.05")


def test_progress_reports_fraction_towards_target(state):
    state.ownership["seedling"] = 25
    by_id = {p.id: p for p in milestone_progress(state)}
    assert by_id["m4"].progress == 0.5
    assert by_id["m4"].current == 25
    assert by_id["m4"].target == 50
    assert not by_id["m4"].achieved
    assert by_id["m1"].current == 1


def test_highest_kickstart_level_is_reported(state):
    state.ownership.update({"seedling": 100, "planter": 100, "grow_tent": 100})
    _, summary = compute_milestones(state)
    assert summary.highest_kickstart_level == 4


def test_full_roster_milestone_needs_every_building_unlocked(state):
    state.ownership["seedling"] = 200
    assert "m10" not in {p.id for p in milestone_progress(state) if p.achieved}
    state.store.total_harvested = Decimal(10**11)
    state.ownership["grow_tent"] = 5
    assert "m10" in {p.id for p in milestone_progress(state) if p.achieved}


def test_kickstart_snapshot_and_expiry(state):
    assert activate_kickstart(state, 99, NOW) is None
    activate_kickstart(state, 6, NOW)
    snapshot = resolve_kickstart(state, NOW + 1000)
    assert snapshot.active
    assert snapshot.cost_mult == Decimal("0.95")
    assert snapshot.remaining_ms == 1_800_000 - 1000
    assert not resolve_kickstart(state, NOW + 1_800_000).active
    assert state.prestige.kickstart is None
