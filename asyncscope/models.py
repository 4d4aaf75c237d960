"""Data model shared by the instrumentation layer and its clients."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import Any

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

_VALUE_KINDS = frozenset({"bool", "str", "u64", "i64", "debug"})


class Level(enum.IntEnum):
    """Verbosity level of a span or event."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3
    TRACE = 4


class MetadataKind(enum.IntEnum):
    """Whether a callsite describes a span or an event."""

    SPAN = 0
    EVENT = 1


@dataclass
class Location:
    """A source code location."""

    file: str | None = None
    module_path: str | None = None
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        # Module paths take precedence because they are shorter.
        prefix = self.module_path if self.module_path is not None else self.file
        if prefix is None:
            return "<unknown location>"
        text = prefix
        if self.line is not None:
            text += f":{self.line}"
            if self.column is not None:
                text += f":{self.column}"
        return text


@dataclass(frozen=True)
class FieldValue:
    """A typed field value: one of ``bool``, ``str``, ``u64``, ``i64`` or ``debug``."""

    kind: str
    value: Any

    def __post_init__(self) -> None:
        if self.kind not in _VALUE_KINDS:
            raise ValueError(f"unknown field value kind: {self.kind!r}")
        if self.kind == "bool":
            if not isinstance(self.value, bool):
                raise ValueError("bool field value must be a bool")
        elif self.kind in ("str", "debug"):
            if not isinstance(self.value, str):
                raise ValueError(f"{self.kind} field value must be a str")
        else:
            if not isinstance(self.value, int) or isinstance(self.value, bool):
                raise ValueError(f"{self.kind} field value must be an int")
            low, high = (0, U64_MAX) if self.kind == "u64" else (I64_MIN, I64_MAX)
            if not low <= self.value <= high:
                raise ValueError(f"{self.value} is out of range for {self.kind}")

    @classmethod
    def from_python(cls, value: Any) -> FieldValue:
        """Wrap a Python value in the most fitting field value kind."""
        if isinstance(value, bool):
            return cls("bool", value)
        if isinstance(value, int):
            if 0 <= value <= U64_MAX:
                return cls("u64", value)
            if I64_MIN <= value < 0:
                return cls("i64", value)
            return cls("debug", repr(value))
        if isinstance(value, str):
            return cls("str", value)
        return cls("debug", repr(value))

    def __str__(self) -> str:
        if self.kind == "bool":
            return "true" if self.value else "false"
        return str(self.value)


@dataclass(frozen=True)
class MetaId:
    """Identifies a registered callsite's metadata."""

    id: int

    @classmethod
    def of(cls, metadata: Any) -> MetaId:
        """Return the identifier of a metadata object, based on its identity."""
        return cls(id(metadata))


@dataclass
class Field:
    """A named field; the name is either a string or an index into field names."""

    name: str | int | None = None
    value: FieldValue | None = None
    metadata_id: MetaId | None = None

    def __str__(self) -> str:
        if isinstance(self.name, str) and self.value is not None:
            return f"{self.name}={self.value}"
        return ""


@dataclass
class Metadata:
    """Static description of a span or event callsite."""

    name: str
    target: str = ""
    location: Location | None = None
    kind: MetadataKind = MetadataKind.SPAN
    level: Level = Level.ERROR
    field_names: list[str] = dc_field(default_factory=list)


@dataclass(frozen=True, order=True)
class Id:
    """Identifier of a span, task, resource or async operation."""

    id: int

    def __int__(self) -> int:
        return self.id


@dataclass
class NewMetadata:
    """A newly registered metadata together with its identifier."""

    id: MetaId
    metadata: Metadata

    @classmethod
    def from_metadata(cls, metadata: Metadata) -> NewMetadata:
        return cls(id=MetaId.of(metadata), metadata=metadata)


@dataclass
class RegisterMetadata:
    """A batch of metadata registrations."""

    metadata: list[NewMetadata] = dc_field(default_factory=list)


@dataclass
class Attribute:
    """A field with an optional unit, tracked on a resource or async op."""

    field: Field
    unit: str | None = None