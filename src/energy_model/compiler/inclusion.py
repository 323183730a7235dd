from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from energy_model.compiler.diagnostics import raise_unresolved
from energy_model.compiler.errors import DuplicateElementError
from energy_model.compiler.registry import ObjectStore, TypeRegistry, normalize_result
from energy_model.dataset.keys import DataElement, ElementKey, Id

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InclusionState:
    toplevel: ObjectStore = field(default_factory=dict)
    lowlevel: ObjectStore = field(default_factory=dict)
    dependencies: dict[ElementKey, tuple[Id, ...]] = field(default_factory=dict)
    messages: dict[ElementKey, tuple[str, ...]] = field(default_factory=dict)
    completed: set[ElementKey] = field(default_factory=set)
    rounds: int = 0


def check_duplicates(elements: Sequence[DataElement]) -> None:
    counts = Counter(element.element_key for element in elements)
    duplicates = sorted(key for key, count in counts.items() if count > 1)
    if duplicates:
        raise DuplicateElementError(duplicates)


def include_elements(
    elements: Sequence[DataElement],
    registry: TypeRegistry,
) -> InclusionState:
    """Run inclusion handlers in rounds until every element is consumed.

    Raises ``UnresolvableDependencyError`` when a full round makes no progress.
    """
    check_duplicates(elements)

    state = InclusionState()
    pending = list(elements)
    while pending:
        state.rounds += 1
        remaining: list[DataElement] = []
        for element in pending:
            elkey = element.element_key
            handler = registry.lookup(elkey)
            result = normalize_result(
                elkey,
                handler(state.toplevel, state.lowlevel, elkey, element.value),
            )
            state.dependencies[elkey] = result.deps
            if result.messages:
                state.messages[elkey] = result.messages
            else:
                state.messages.pop(elkey, None)
            if result.ok:
                state.completed.add(elkey)
            else:
                remaining.append(element)

        logger.debug(
            "Inclusion round %s: %s of %s elements pending",
            state.rounds,
            len(remaining),
            len(elements),
        )
        if len(remaining) == len(pending):
            raise_unresolved(elements, state.completed, state.dependencies, state.messages)
        pending = remaining

    return state
