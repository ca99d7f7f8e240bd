import itertools

from canvas import (
    CanvasState, LayoutStore, palette_from_equipment, resolve_canvas_size, round_half_up,
)
from schemas import SeedPlacement, Verdict

STAND = [SeedPlacement(name="Stand", x=50, y=50)]


def test_initialize_converts_percent_to_pixels():
    store = LayoutStore()
    assert store.initialize(STAND, 200, 200, experiment_key="exp")
    assert [(item.name, item.position) for item in store.items] == [("Stand", (100.0, 100.0))]
    assert store.state == CanvasState.SEEDED


def test_initialize_keeps_fractional_pixels():
    store = LayoutStore()
    store.initialize([SeedPlacement(name="Flask", x=33, y=10)], 101, 50)
    assert store.items[0].position == (33 / 100 * 101, 5.0)


def test_reset_reproduces_seed_with_new_ids():
    store = LayoutStore()
    store.initialize(STAND, 200, 200)
    first_id = store.items[0].id
    store.insert("Flask", 10, 10)

    store.reset(STAND, 200, 200)

    assert len(store.items) == 1
    assert store.items[0].name == "Stand"
    assert store.items[0].position == (100.0, 100.0)
    assert store.items[0].id != first_id


def test_initialize_is_guarded_for_same_experiment():
    store = LayoutStore()
    store.initialize(STAND, 200, 200, experiment_key="exp")
    store.insert("Flask", 5, 5)

    assert not store.initialize(STAND, 400, 400, experiment_key="exp")
    assert [item.name for item in store.items] == ["Stand", "Flask"]

    assert store.initialize(STAND, 400, 400, experiment_key="other")
    assert [item.position for item in store.items] == [(200.0, 200.0)]


def test_initialize_guard_covers_empty_seed():
    store = LayoutStore()
    assert store.initialize([], 400, 400, experiment_key="exp")
    store.insert("Flask", 10, 10)

    assert store.initialize([], 400, 400, experiment_key="exp") is False
    assert [item.name for item in store.items] == ["Flask"]

    # An emptied bench can be seeded again
    store.clear()
    assert store.initialize(STAND, 200, 200, experiment_key="exp")
    assert [item.name for item in store.items] == ["Stand"]


def test_missing_canvas_size_uses_fallback():
    assert resolve_canvas_size(None, None) == (800.0, 600.0)
    assert resolve_canvas_size(0, 300) == (800.0, 300)

    store = LayoutStore()
    store.initialize(STAND)
    assert store.items[0].position == (400.0, 300.0)


def test_ids_stay_unique_across_mutations():
    store = LayoutStore()
    store.initialize(STAND, 200, 200)
    for idx in range(5):
        store.insert("Flask", idx, idx)
    store.reposition(store.items[0].id, 1, 1)
    store.clear()
    store.insert("Flask", 0, 0)
    store.reset(STAND * 3, 200, 200)
    store.insert("Flask", 0, 0)

    ids = [item.id for item in store.items]
    assert len(ids) == len(set(ids)) == 4


def test_injected_id_factory():
    counter = itertools.count()
    store = LayoutStore(id_factory=lambda: f"fixed-{next(counter)}")
    item = store.insert("Burner", 100, 300)
    assert item.id == "fixed-0"


def test_insert_allows_duplicates_and_out_of_bounds():
    store = LayoutStore()
    store.insert("Flask", -50, 5000)
    store.insert("Flask", -50, 5000)
    assert [item.name for item in store.items] == ["Flask", "Flask"]
    assert store.items[0].position == (-50, 5000)
    assert store.state == CanvasState.EDITING


def test_reposition_unknown_id_is_noop():
    store = LayoutStore()
    store.insert("Flask", 1, 2)
    before = store.snapshot()

    assert store.reposition("missing", 10, 10) is False
    assert store.snapshot() == before


def test_mutations_clear_verdict():
    verdict = Verdict(isCorrect=True, feedback="ok")
    store = LayoutStore()

    store.set_verdict(verdict)
    store.insert("Flask", 1, 1)
    assert store.verdict is None

    store.set_verdict(verdict)
    store.initialize(STAND, 200, 200, experiment_key="a")
    assert store.verdict is None

    store.set_verdict(verdict)
    store.reset(STAND, 200, 200)
    assert store.verdict is None

    store.set_verdict(verdict)
    store.clear()
    assert store.verdict is None
    assert store.state == CanvasState.EMPTY


def test_reposition_keeps_verdict_while_dragging():
    store = LayoutStore()
    item = store.insert("Flask", 1, 1)
    store.set_verdict(Verdict(isCorrect=False, feedback="move it"))

    store.reposition(item.id, 40, 40)

    assert store.find(item.id).position == (40, 40)
    assert store.verdict is not None
    assert store.state == CanvasState.VERDICT_SHOWN


def test_evaluation_state_tracks_in_flight_calls():
    store = LayoutStore()
    store.insert("Flask", 1, 1)
    store.begin_evaluation()
    store.begin_evaluation()
    assert store.state == CanvasState.EVALUATING
    store.end_evaluation()
    assert store.state == CanvasState.EVALUATING
    store.end_evaluation()
    assert store.state == CanvasState.EDITING


def test_subscribers_are_notified_until_unsubscribed():
    store = LayoutStore()
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(len(s.items)))

    store.insert("Flask", 1, 1)
    store.insert("Burner", 1, 1)
    unsubscribe()
    store.clear()

    assert seen == [1, 2]


def test_snapshot_is_detached_from_store():
    store = LayoutStore()
    item = store.insert("Flask", 1, 1)
    snapshot = store.snapshot()
    store.reposition(item.id, 9, 9)
    assert snapshot[0].position == (1, 1)


def test_palette_from_equipment():
    palette = palette_from_equipment(["Burner", "Flask", "Burner"])
    assert [(p.id, p.name) for p in palette] == [("proto-0", "Burner"), ("proto-1", "Flask"), ("proto-2", "Burner")]


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2
    assert round_half_up(-2.5) == -2
    assert round_half_up(149.6) == 150
