from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from energy_model.dataset.keys import ElementKey, Id


class CompilationError(ValueError):
    """Base class for every fatal compilation error."""


class DuplicateElementError(CompilationError):
    def __init__(self, duplicates: Sequence[ElementKey]) -> None:
        self.duplicates = list(duplicates)
        listed = ", ".join(str(key) for key in self.duplicates)
        super().__init__(f"Duplicate data elements: {listed}")


class UnregisteredTypeError(CompilationError):
    def __init__(self, elkey: ElementKey) -> None:
        self.elkey = elkey
        super().__init__(f"No handler registered for type {elkey.type_key} (element {elkey})")


class MalformedReturnError(CompilationError):
    def __init__(self, elkey: ElementKey, returned: object) -> None:
        self.elkey = elkey
        self.returned = returned
        super().__init__(
            f"Handler for {elkey} returned {type(returned).__name__}, "
            "expected an inclusion result"
        )


class StructuralError(CompilationError):
    """Business-rule violation raised by a handler or a model object."""


class DuplicateObjectError(StructuralError):
    def __init__(self, object_id: Id) -> None:
        self.object_id = object_id
        super().__init__(f"Model object {object_id} already exists")


@dataclass(frozen=True, slots=True)
class RootCause:
    elkey: ElementKey
    missing: tuple[Id, ...] = ()
    messages: tuple[str, ...] = ()
    circular: bool = False

    def describe(self) -> list[str]:
        lines = [*self.messages]
        lines.extend(f"missing element {object_id} referenced by {self.elkey}" for object_id in self.missing)
        if self.circular:
            lines.append(f"element {self.elkey} is part of a circular dependency")
        if not lines:
            lines.append(f"element {self.elkey} failed for an undetermined non-dependency reason")
        return lines


class UnresolvableDependencyError(CompilationError):
    def __init__(
        self,
        failed: Sequence[ElementKey],
        total: int,
        root_causes: Sequence[RootCause],
    ) -> None:
        self.failed = list(failed)
        self.total = total
        self.root_causes = list(root_causes)
        lines = [
            f"Failed to compile {len(self.failed)} of {total} data elements; "
            f"{len(self.root_causes)} root cause(s):"
        ]
        for cause in self.root_causes:
            lines.extend(f"  - {line}" for line in cause.describe())
        super().__init__("\n".join(lines))


@dataclass(frozen=True, slots=True)
class MissingReference:
    elkey: ElementKey
    attribute: str
    instance: str

    def __str__(self) -> str:
        return f"{self.elkey} references missing instance {self.instance!r} via {self.attribute}"


class ValidationError(CompilationError):
    def __init__(self, problems: Sequence[object], header: str = "Validation failed") -> None:
        self.problems = list(problems)
        lines = [f"{header}: {len(self.problems)} problem(s)"]
        lines.extend(f"  - {problem}" for problem in self.problems)
        super().__init__("\n".join(lines))


class AssemblyDeadlockError(CompilationError):
    def __init__(self, pending: Sequence[Id]) -> None:
        self.pending = list(pending)
        listed = ", ".join(str(object_id) for object_id in self.pending)
        super().__init__(f"Some objects could not be assembled: {listed}")


class AttributeValueError(StructuralError):
    """An element attribute is absent or has an unexpected type."""


class MissingAttributeError(AttributeValueError):
    def __init__(self, elkey: ElementKey, key: str) -> None:
        self.elkey = elkey
        self.key = key
        super().__init__(f"Element {elkey} is missing attribute {key!r}")


class AttributeTypeError(AttributeValueError):
    def __init__(self, elkey: ElementKey, key: str, expected: str, value: object) -> None:
        self.elkey = elkey
        self.key = key
        super().__init__(
            f"Element {elkey} attribute {key!r} must be {expected}, got {type(value).__name__}"
        )
