from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True, slots=True, order=True)
class Id:
    """Identity of a model object: concept plus instance name."""

    concept: str
    instance: str

    def __str__(self) -> str:
        return f"{self.concept}:{self.instance}"


@dataclass(frozen=True, slots=True, order=True)
class TypeKey:
    concept: str
    type: str

    def __str__(self) -> str:
        return f"{self.concept}:{self.type}"


@dataclass(frozen=True, slots=True, order=True)
class ElementKey:
    """Identity of one raw data element."""

    concept: str
    type: str
    instance: str

    @property
    def type_key(self) -> TypeKey:
        return TypeKey(self.concept, self.type)

    @property
    def object_id(self) -> Id:
        return Id(self.concept, self.instance)

    def __str__(self) -> str:
        return f"{self.concept}:{self.type}:{self.instance}"


@dataclass(frozen=True, slots=True)
class DataElement:
    """A flat, typed, named record as produced by dataset loading."""

    concept: str
    type: str
    instance: str
    value: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.value, Mapping):
            object.__setattr__(self, "value", MappingProxyType(dict(self.value)))

    @property
    def element_key(self) -> ElementKey:
        return ElementKey(self.concept, self.type, self.instance)

    @property
    def type_key(self) -> TypeKey:
        return TypeKey(self.concept, self.type)

    @property
    def object_id(self) -> Id:
        return Id(self.concept, self.instance)
