"""Attributes of resources and async operations, updated by state events."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace

from asyncscope.models import I64_MAX, I64_MIN, U64_MAX, Attribute, Field, FieldValue, Id

_log = logging.getLogger(__name__)

_BOUNDS = {"u64": (0, U64_MAX), "i64": (I64_MIN, I64_MAX)}


class UpdateOp(enum.Enum):
    """How a numeric update combines with the current value."""

    ADD = "add"
    OVERRIDE = "override"
    SUB = "sub"


@dataclass
class Update:
    """A state update for one attribute field."""

    field: Field
    op: UpdateOp | None = None
    unit: str | None = None

    def to_attribute(self) -> Attribute:
        """Create a fresh attribute holding a copy of this update's field."""
        return Attribute(field=replace(self.field), unit=self.unit)


class Attributes:
    """Attributes keyed by the id of the updated entity and the field name."""

    def __init__(self) -> None:
        self._attributes: dict[tuple[Id, str | int], Attribute] = {}

    def values(self) -> Iterator[Attribute]:
        return iter(self._attributes.values())

    def update(self, id: Id, update: Update) -> None:
        """Apply an update, creating the attribute on first sight."""
        name = update.field.name
        if name is None:
            _log.warning("field missing name, skipping: %r", update.field)
            return
        key = (id, name)
        attribute = self._attributes.get(key)
        if attribute is None:
            self._attributes[key] = update.to_attribute()
        else:
            _update_attribute(attribute, update)


def _update_attribute(attribute: Attribute, update: Update) -> None:
    current = attribute.field.value
    incoming = update.field.value
    if current is None or incoming is None or current.kind != incoming.kind:
        _log.warning("attribute %r cannot be updated by update %r", current, incoming)
        return

    kind = current.kind
    if kind not in _BOUNDS:
        attribute.field.value = incoming
        return

    low, high = _BOUNDS[kind]
    if update.op is UpdateOp.ADD:
        result = min(current.value + incoming.value, high)
    elif update.op is UpdateOp.SUB:
        result = max(current.value - incoming.value, low)
    elif update.op is UpdateOp.OVERRIDE:
        result = incoming.value
    else:
        _log.warning(
            "numeric attribute update %r needs to have an op field", update.field.name
        )
        return
    attribute.field.value = FieldValue(kind, result)