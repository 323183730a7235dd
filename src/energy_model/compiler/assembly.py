from __future__ import annotations

import logging

from energy_model.compiler.errors import AssemblyDeadlockError, StructuralError
from energy_model.compiler.registry import ObjectStore
from energy_model.model.protocol import Assemblable

logger = logging.getLogger(__name__)


def assemble_objects(toplevel: ObjectStore) -> int:
    """Assemble top-level objects in rounds; returns the number of rounds used."""
    pending = sorted(toplevel)
    for object_id in pending:
        if not isinstance(toplevel[object_id], Assemblable):
            raise StructuralError(f"Top-level object {object_id} does not support assembly")

    rounds = 0
    while pending:
        rounds += 1
        remaining = [object_id for object_id in pending if not toplevel[object_id].assemble()]
        logger.debug("Assembly round %s: %s objects pending", rounds, len(remaining))
        if len(remaining) == len(pending):
            raise AssemblyDeadlockError(remaining)
        pending = remaining
    return rounds
