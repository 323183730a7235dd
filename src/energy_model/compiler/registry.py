from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from energy_model.compiler.errors import (
    DuplicateObjectError,
    MalformedReturnError,
    UnregisteredTypeError,
)
from energy_model.dataset.keys import ElementKey, Id, TypeKey

logger = logging.getLogger(__name__)

ObjectStore = dict[Id, Any]


@dataclass(frozen=True, slots=True)
class InclusionResult:
    deps: tuple[Id, ...] = ()
    messages: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return isinstance(self, Included)


@dataclass(frozen=True, slots=True)
class Included(InclusionResult):
    """The element was incorporated into one of the stores."""


@dataclass(frozen=True, slots=True)
class Deferred(InclusionResult):
    """A referenced object is not available yet; retry next round."""


@dataclass(frozen=True, slots=True)
class DeferredWithMessages(Deferred):
    """Deferred, with extra diagnostics for the failure report."""


Handler = Callable[[ObjectStore, ObjectStore, ElementKey, Mapping[str, Any]], Any]


@dataclass(slots=True)
class Dependencies:
    """Collects every Id a handler looks up while including one element."""

    ids: list[Id] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    missing: bool = False

    def add(self, object_id: Id) -> None:
        if object_id not in self.ids:
            self.ids.append(object_id)

    def extend(self, object_ids: Iterable[Id]) -> None:
        for object_id in object_ids:
            self.add(object_id)

    def require(self, store: ObjectStore, object_id: Id) -> Any:
        """Look up ``object_id``; record it and flag the attempt as incomplete if absent."""
        self.add(object_id)
        found = store.get(object_id)
        if found is None:
            self.missing = True
        return found

    def require_any(self, store: ObjectStore, object_ids: Iterable[Id], message: str) -> Any:
        """Return the first of ``object_ids`` present in ``store``.

        Only the Id that was found is recorded. When none is present every
        candidate is recorded together with ``message``.
        """
        candidates = list(object_ids)
        for object_id in candidates:
            found = store.get(object_id)
            if found is not None:
                self.add(object_id)
                return found
        self.extend(candidates)
        self.note(message)
        self.missing = True
        return None

    def note(self, message: str) -> None:
        self.messages.append(message)

    @property
    def satisfied(self) -> bool:
        return not self.missing

    def deferred(self) -> Deferred:
        if self.messages:
            return DeferredWithMessages(tuple(self.ids), tuple(self.messages))
        return Deferred(tuple(self.ids))

    def included(self) -> Included:
        return Included(tuple(self.ids))


def normalize_result(elkey: ElementKey, returned: object) -> InclusionResult:
    """Accept result variants, or legacy ``(ok, deps)`` / ``(ok, (messages, deps))`` tuples."""
    if isinstance(returned, InclusionResult):
        return returned
    if not isinstance(returned, tuple) or len(returned) != 2:
        raise MalformedReturnError(elkey, returned)
    ok, info = returned
    if not isinstance(ok, bool):
        raise MalformedReturnError(elkey, returned)

    messages: list[str] = []
    deps = info
    if isinstance(info, tuple) and len(info) == 2 and isinstance(info[0], list):
        raw_messages, deps = info
        if not all(isinstance(message, str) for message in raw_messages):
            raise MalformedReturnError(elkey, returned)
        messages = list(raw_messages)
    if not isinstance(deps, list | tuple) or not all(isinstance(dep, Id) for dep in deps):
        raise MalformedReturnError(elkey, returned)

    if ok:
        return Included(tuple(deps))
    if messages:
        return DeferredWithMessages(tuple(deps), tuple(messages))
    return Deferred(tuple(deps))


def ensure_free(toplevel: ObjectStore, lowlevel: ObjectStore, object_id: Id) -> None:
    if object_id in toplevel or object_id in lowlevel:
        raise DuplicateObjectError(object_id)


class TypeRegistry:
    """Maps (concept, type) pairs to inclusion handlers."""

    def __init__(self, handlers: Mapping[TypeKey, Handler] | None = None) -> None:
        self._handlers: dict[TypeKey, Handler] = dict(handlers or {})

    def register(
        self,
        concept: str,
        type_name: str,
        handler: Handler,
        *,
        replace: bool = False,
    ) -> None:
        key = TypeKey(concept, type_name)
        if key in self._handlers and not replace:
            raise ValueError(f"Handler already registered for {key}")
        self._handlers[key] = handler
        logger.debug("Registered handler for %s", key)

    def handler(self, concept: str, type_name: str) -> Callable[[Handler], Handler]:
        def decorator(func: Handler) -> Handler:
            self.register(concept, type_name, func)
            return func

        return decorator

    def lookup(self, elkey: ElementKey) -> Handler:
        try:
            return self._handlers[elkey.type_key]
        except KeyError:
            raise UnregisteredTypeError(elkey) from None

    def copy(self) -> TypeRegistry:
        return TypeRegistry(self._handlers)

    def __contains__(self, key: object) -> bool:
        return key in self._handlers

    def __iter__(self) -> Iterator[TypeKey]:
        return iter(sorted(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)
