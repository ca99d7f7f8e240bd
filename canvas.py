"""
Assembly bench layout store.

Holds the equipment pieces placed on the 2D canvas for one experiment session
and the verdict of the last layout check. Positions are pixels relative to the
canvas's top-left corner; seed layouts arrive in percent and are converted
with the canvas size measured at that moment.
"""
import itertools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from schemas import EquipmentPrototype, SeedPlacement, Verdict

logger = logging.getLogger(__name__)

FALLBACK_CANVAS_WIDTH = 800.0
FALLBACK_CANVAS_HEIGHT = 600.0


class CanvasState(str, Enum):
    EMPTY = "EMPTY"
    SEEDED = "SEEDED"
    EDITING = "EDITING"
    EVALUATING = "EVALUATING"
    VERDICT_SHOWN = "VERDICT_SHOWN"


@dataclass
class PlacedItem:
    id: str
    name: str
    x: float
    y: float

    @property
    def position(self) -> Tuple[float, float]:
        return self.x, self.y

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "x": self.x, "y": self.y}


def resolve_canvas_size(width: Optional[float], height: Optional[float]) -> Tuple[float, float]:
    """Measured size, with each missing or non-positive dimension replaced by the fallback."""
    w = width if width and width > 0 else FALLBACK_CANVAS_WIDTH
    h = height if height and height > 0 else FALLBACK_CANVAS_HEIGHT
    return w, h


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def seed_to_pixels(seed: SeedPlacement, width: float, height: float) -> Tuple[float, float]:
    return seed.x / 100 * width, seed.y / 100 * height


def palette_from_equipment(equipment: Iterable[str]) -> List[EquipmentPrototype]:
    return [EquipmentPrototype(id=f"proto-{idx}", name=name) for idx, name in enumerate(equipment)]


def _counter_ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"item-{next(counter)}"


class LayoutStore:
    """
    Authoritative set of placed items plus the current verdict.

    Every mutation except `reposition` clears the verdict. Subscribers are
    called with the store after each mutation.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._new_id = id_factory or _counter_ids()
        self._items: List[PlacedItem] = []
        self._verdict: Optional[Verdict] = None
        self._experiment_key: Optional[str] = None
        self._initialized = False
        self._seeded = False
        self._edited = False
        self._in_flight = 0
        self._listeners: List[Callable[["LayoutStore"], None]] = []

    # --- Read side ---

    @property
    def items(self) -> List[PlacedItem]:
        return list(self._items)

    @property
    def verdict(self) -> Optional[Verdict]:
        return self._verdict

    @property
    def state(self) -> CanvasState:
        if self._in_flight:
            return CanvasState.EVALUATING
        if self._verdict is not None:
            return CanvasState.VERDICT_SHOWN
        if self._edited:
            return CanvasState.EDITING
        if self._seeded:
            return CanvasState.SEEDED
        return CanvasState.EMPTY

    def snapshot(self) -> List[PlacedItem]:
        """Copies of the current items, in placement order."""
        return [PlacedItem(item.id, item.name, item.x, item.y) for item in self._items]

    def find(self, item_id: str) -> Optional[PlacedItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    # --- Observers ---

    def subscribe(self, callback: Callable[["LayoutStore"], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    # --- Mutations ---

    def initialize(self, seed: Iterable[SeedPlacement], width: Optional[float] = None,
                   height: Optional[float] = None, experiment_key: Optional[str] = None) -> bool:
        """
        Replace the item set with the seed layout.

        Skipped (returns False) while the set is non-empty and an earlier
        initialize ran for the same experiment, whether its seed was empty or
        not, so a re-render cannot wipe edits.
        """
        if self._initialized and self._items and experiment_key == self._experiment_key:
            logger.debug("Skipping initialize for already initialized experiment %r", experiment_key)
            return False
        self._experiment_key = experiment_key
        self._initialized = True
        self._seed(seed, width, height)
        return True

    def reset(self, seed: Iterable[SeedPlacement], width: Optional[float] = None,
              height: Optional[float] = None) -> None:
        self._seed(seed, width, height)

    def _seed(self, seed: Iterable[SeedPlacement], width: Optional[float], height: Optional[float]) -> None:
        w, h = resolve_canvas_size(width, height)
        items = []
        for entry in seed:
            x, y = seed_to_pixels(entry, w, h)
            items.append(PlacedItem(id=self._new_id(), name=entry.name, x=x, y=y))
        self._items = items
        self._seeded = bool(items)
        self._edited = False
        self._verdict = None
        logger.debug("Seeded %d items on a %gx%g canvas", len(items), w, h)
        self._notify()

    def insert(self, name: str, x: float, y: float) -> PlacedItem:
        item = PlacedItem(id=self._new_id(), name=name, x=x, y=y)
        self._items.append(item)
        self._edited = True
        self._verdict = None
        logger.debug("Inserted %s (%s) at (%g, %g)", item.id, name, x, y)
        self._notify()
        return item

    def reposition(self, item_id: str, x: float, y: float) -> bool:
        # The verdict is kept while dragging; only discrete actions clear it.
        item = self.find(item_id)
        if item is None:
            return False
        item.x = x
        item.y = y
        self._edited = True
        self._notify()
        return True

    def clear(self) -> None:
        self._items = []
        self._seeded = False
        self._edited = False
        self._verdict = None
        self._notify()

    def set_verdict(self, verdict: Verdict) -> None:
        self._verdict = verdict
        self._notify()

    def clear_verdict(self) -> None:
        self._verdict = None
        self._notify()

    def begin_evaluation(self) -> None:
        self._in_flight += 1
        self._notify()

    def end_evaluation(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        self._notify()

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "items": [item.to_dict() for item in self._items],
            "verdict": self._verdict.model_dump() if self._verdict else None,
        }
