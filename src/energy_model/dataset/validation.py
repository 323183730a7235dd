"""Referential checks run before and after compilation."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from energy_model.compiler.errors import MissingReference, ValidationError
from energy_model.compiler.registry import ObjectStore
from energy_model.constants import (
    BALANCE_CONCEPT,
    COMMODITY_CONCEPT,
    CONVERSION_CONCEPT,
    FLOW_CONCEPT,
    HORIZON_CONCEPT,
    PARAM_CONCEPT,
    PRICE_CONCEPT,
    RHSTERM_CONCEPT,
    STORAGE_CONCEPT,
    TIMEINDEX_CONCEPT,
    TIMEVALUES_CONCEPT,
    TIMEVECTOR_CONCEPT,
    WHICH_CONCEPT,
    WHICH_INSTANCE,
)
from energy_model.dataset.keys import DataElement, ElementKey, Id

logger = logging.getLogger(__name__)

# Attribute name -> concepts a string value may refer to.
REFERENCE_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    PARAM_CONCEPT: (PARAM_CONCEPT,),
    "Param1": (PARAM_CONCEPT,),
    "Param2": (PARAM_CONCEPT,),
    "Level": (TIMEVECTOR_CONCEPT,),
    "Profile": (TIMEVECTOR_CONCEPT,),
    TIMEINDEX_CONCEPT: (TIMEINDEX_CONCEPT,),
    TIMEVALUES_CONCEPT: (TIMEVALUES_CONCEPT,),
    COMMODITY_CONCEPT: (COMMODITY_CONCEPT,),
    BALANCE_CONCEPT: (BALANCE_CONCEPT,),
    FLOW_CONCEPT: (FLOW_CONCEPT,),
    HORIZON_CONCEPT: (HORIZON_CONCEPT,),
    CONVERSION_CONCEPT: (CONVERSION_CONCEPT, PARAM_CONCEPT),
    PRICE_CONCEPT: (PRICE_CONCEPT, PARAM_CONCEPT),
    STORAGE_CONCEPT: (STORAGE_CONCEPT,),
    RHSTERM_CONCEPT: (RHSTERM_CONCEPT,),
}


def find_missing_references(elements: Sequence[DataElement]) -> list[MissingReference]:
    """List string references that name no element of an acceptable concept."""
    known = {element.object_id for element in elements}
    problems: list[MissingReference] = []
    for element in elements:
        value = element.value
        if not isinstance(value, Mapping):
            continue
        elkey = element.element_key
        for attribute, concepts in REFERENCE_ATTRIBUTES.items():
            target = value.get(attribute)
            if isinstance(target, str) and not any(Id(concept, target) in known for concept in concepts):
                problems.append(MissingReference(elkey, attribute, target))
        instance = value.get(WHICH_INSTANCE)
        concept = value.get(WHICH_CONCEPT)
        if isinstance(instance, str) and isinstance(concept, str) and Id(concept, instance) not in known:
            problems.append(MissingReference(elkey, WHICH_INSTANCE, instance))
    return problems


def validate_references(elements: Sequence[DataElement]) -> None:
    problems = find_missing_references(elements)
    if problems:
        logger.error("Dataset has %s missing reference(s)", len(problems))
        raise ValidationError(problems, header="Missing references")


def validate_model_objects(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    dependencies: Mapping[ElementKey, Sequence[Id]],
) -> None:
    """Check the compiled graph: no dangling dependency and no arrow into an unknown balance."""
    problems: list[str] = []
    for elkey in sorted(dependencies):
        for object_id in dependencies[elkey]:
            if object_id not in toplevel and object_id not in lowlevel:
                problems.append(f"{elkey} depends on {object_id}, which was never stored")

    for object_id in sorted(toplevel):
        for arrow in getattr(toplevel[object_id], "arrows", ()):
            balance_id = arrow.balance.id
            if toplevel.get(balance_id) is not arrow.balance:
                problems.append(f"{arrow.id} of {object_id} points at {balance_id}, which is not top-level")

    if problems:
        raise ValidationError(problems, header="Compiled objects are inconsistent")
