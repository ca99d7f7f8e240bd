from typing import Iterable, List, Optional

from canvas import PlacedItem, round_half_up
from schemas import ExperimentData


def _bullets(values: List[str]) -> List[str]:
    if not values:
        return ["None listed."]
    return [f"- {value}" for value in values]


def build_experiment_context(experiment: ExperimentData, items: Optional[Iterable[PlacedItem]] = None) -> str:
    """
    Flattens an experiment (and optionally the current bench layout) into the
    plain-text context block the lab assistant is primed with.
    """
    output: List[str] = []

    # --- 1. HEADER ---
    output.append("[CURRENT EXPERIMENT]")
    output.append(f"Title: {experiment.title}")
    output.append(f"Objective: {experiment.objective}")
    output.append("")

    # --- 2. MATERIALS ---
    output.append("[REAGENTS]")
    output.extend(_bullets(experiment.reagents))
    output.append("")

    output.append("[EQUIPMENT]")
    output.extend(_bullets(experiment.equipment))
    output.append("")

    output.append("[SAFETY]")
    output.extend(_bullets(experiment.safety))

    # --- 3. BENCH (optional) ---
    if items is not None:
        placed = list(items)
        output.append("")
        output.append("[BENCH LAYOUT]")
        if placed:
            for item in placed:
                output.append(f"- {item.name} at (x: {round_half_up(item.x)}, y: {round_half_up(item.y)})")
        else:
            output.append("Nothing placed on the bench.")

    return "\n".join(output)
