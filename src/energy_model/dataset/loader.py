"""Loading data elements from YAML or JSON record lists."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from energy_model.dataset.keys import DataElement

logger = logging.getLogger(__name__)


class DataElementRecord(BaseModel):
    """One dataset record, as a mapping or as ``[concept, type, instance, attributes]``."""

    concept: str = Field(min_length=1, validation_alias=AliasChoices("concept", "Concept"))
    type: str = Field(min_length=1, validation_alias=AliasChoices("type", "Type"))
    instance: str = Field(min_length=1, validation_alias=AliasChoices("instance", "Instance"))
    attributes: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("attributes", "Attributes", "value", "Value"),
    )

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _from_sequence(cls, data: Any) -> Any:
        if isinstance(data, list | tuple):
            if len(data) != 4:
                raise ValueError("record lists must hold concept, type, instance and attributes")
            concept, type_name, instance, attributes = data
            return {
                "concept": concept,
                "type": type_name,
                "instance": instance,
                "attributes": attributes,
            }
        return data

    def to_element(self) -> DataElement:
        return DataElement(self.concept, self.type, self.instance, self.attributes)


def parse_records(records: Sequence[Any], source: str = "<records>") -> list[DataElement]:
    elements: list[DataElement] = []
    for index, record in enumerate(records):
        try:
            elements.append(DataElementRecord.model_validate(record).to_element())
        except ValidationError as exc:
            raise ValueError(f"Invalid data element #{index} in {source}: {exc}") from exc
    return elements


def load_dataset(path: Path) -> list[DataElement]:
    """Read a list of records; a mapping with an ``elements`` list is accepted too."""
    if not path.exists():
        raise ValueError(f"Dataset file {path} not found")
    try:
        loaded: Any = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Dataset file is not valid YAML or JSON: {path}") from exc

    if isinstance(loaded, dict) and "elements" in loaded:
        loaded = loaded["elements"]
    if loaded is None:
        loaded = []
    if not isinstance(loaded, list):
        raise ValueError(f"Dataset {path} must be a list of data elements")

    elements = parse_records(loaded, source=str(path))
    logger.info("Loaded %s data elements from %s", len(elements), path)
    return elements


def load_datasets(paths: Iterable[Path]) -> list[DataElement]:
    elements: list[DataElement] = []
    for path in paths:
        elements.extend(load_dataset(path))
    return elements
