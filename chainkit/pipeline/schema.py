## Declarative output schema for structured model answers
"""
StructuredSchema is a list of FieldSpec descriptors interpreted at runtime.
It does two jobs:

* ``format_instructions()`` renders a description of the expected JSON
  object that gets spliced into the prompt.
* ``validate(candidate)`` checks an already-decoded JSON value against the
  field list and returns either the cleaned ``dict`` or exactly one
  SchemaViolation. It never raises for bad input.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


class ViolationKind(str, Enum):
    MALFORMED_SHAPE = "malformed_shape"
    MISSING_FIELD = "missing_field"
    TYPE_MISMATCH = "type_mismatch"
    RANGE_VIOLATION = "range_violation"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind
    item_kind: FieldKind | None = None  # only for ARRAY
    optional: bool = False
    minimum: float | None = None
    maximum: float | None = None
    description: str = ""

    def __post_init__(self):
        if self.kind == FieldKind.ARRAY:
            if self.item_kind is None or self.item_kind == FieldKind.ARRAY:
                raise ValueError(f"Array field '{self.name}' needs a scalar item_kind")
        elif self.item_kind is not None:
            raise ValueError(f"item_kind only applies to array fields ('{self.name}')")

        if self.minimum is not None or self.maximum is not None:
            numeric = FieldKind.NUMBER in (self.kind, self.item_kind)
            if not numeric:
                raise ValueError(f"Range given for non-numeric field '{self.name}'")
            if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
                raise ValueError(f"Empty range for '{self.name}': {self.minimum} > {self.maximum}")

    @property
    def range(self) -> tuple[float | None, float | None] | None:
        if self.minimum is None and self.maximum is None:
            return None
        return (self.minimum, self.maximum)

    def type_label(self) -> str:
        if self.kind == FieldKind.ARRAY:
            return f"array of {self.item_kind.value}"
        return self.kind.value


@dataclass(frozen=True)
class SchemaViolation:
    kind: ViolationKind
    field: str | None = None
    expected: str | None = None
    actual: str | None = None
    value: Any = None
    range: tuple[float | None, float | None] | None = None

    def describe(self) -> str:
        if self.kind == ViolationKind.MALFORMED_SHAPE:
            return f"expected a JSON object, got {self.actual}"
        if self.kind == ViolationKind.MISSING_FIELD:
            return f"missing required field '{self.field}'"
        if self.kind == ViolationKind.TYPE_MISMATCH:
            return f"field '{self.field}' should be {self.expected}, got {self.actual}"
        lo, hi = self.range
        return f"field '{self.field}' = {self.value} is outside [{_fmt_bound(lo, '-inf')}, {_fmt_bound(hi, 'inf')}]"


def _fmt_bound(bound: float | None, unbounded: str) -> str:
    return unbounded if bound is None else f"{bound:g}"


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


@dataclass(frozen=True)
class StructuredSchema:
    fields: tuple[FieldSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # accept any iterable but store a tuple so the schema stays immutable
        object.__setattr__(self, "fields", tuple(self.fields))
        names = [f.name for f in self.fields]
        dupes = {n for n in names if names.count(n) > 1}
        if dupes:
            raise ValueError(f"Duplicate field names: {sorted(dupes)}")

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def format_instructions(self) -> str:
        lines = [
            "Respond with ONLY a single JSON object (no markdown, no code fences, no commentary).",
            "The object must have these fields:",
        ]
        for spec in self.fields:
            parts = [spec.type_label()]
            if spec.range is not None:
                lo, hi = spec.range
                if lo is not None and hi is not None:
                    parts.append(f"between {lo:g} and {hi:g} inclusive")
                elif lo is not None:
                    parts.append(f">= {lo:g}")
                else:
                    parts.append(f"<= {hi:g}")
            if spec.optional:
                parts.append("optional, defaults to []" if spec.kind == FieldKind.ARRAY else "optional")
            else:
                parts.append("required")
            line = f'- "{spec.name}" ({", ".join(parts)})'
            if spec.description:
                line += f": {spec.description}"
            lines.append(line)
        return "\n".join(lines)

    def validate(self, candidate: Any) -> dict[str, Any] | SchemaViolation:
        if not isinstance(candidate, dict):
            return SchemaViolation(ViolationKind.MALFORMED_SHAPE, expected="object",
                                   actual=_json_type(candidate))

        out: dict[str, Any] = {}
        for spec in self.fields:
            raw = candidate.get(spec.name)

            # explicit null on an optional field counts as "not set"
            if raw is None:
                if spec.name in candidate and not spec.optional:
                    return SchemaViolation(ViolationKind.TYPE_MISMATCH, field=spec.name,
                                           expected=spec.type_label(), actual="null")
                if not spec.optional:
                    return SchemaViolation(ViolationKind.MISSING_FIELD, field=spec.name)
                if spec.kind == FieldKind.ARRAY:
                    out[spec.name] = []
                continue

            if spec.kind == FieldKind.ARRAY:
                if not isinstance(raw, list):
                    return SchemaViolation(ViolationKind.TYPE_MISMATCH, field=spec.name,
                                           expected=spec.type_label(), actual=_json_type(raw))
                items = []
                for i, item in enumerate(raw):
                    checked = _check_scalar(spec, f"{spec.name}[{i}]", spec.item_kind, item)
                    if isinstance(checked, SchemaViolation):
                        return checked
                    items.append(checked)
                out[spec.name] = items
            else:
                checked = _check_scalar(spec, spec.name, spec.kind, raw)
                if isinstance(checked, SchemaViolation):
                    return checked
                out[spec.name] = checked

        return out


def _check_scalar(spec: FieldSpec, label: str, kind: FieldKind, value: Any) -> Any:
    if kind == FieldKind.STRING:
        if not isinstance(value, str):
            return SchemaViolation(ViolationKind.TYPE_MISMATCH, field=label,
                                   expected="string", actual=_json_type(value))
        return value

    if kind == FieldKind.BOOLEAN:
        if not isinstance(value, bool):
            return SchemaViolation(ViolationKind.TYPE_MISMATCH, field=label,
                                   expected="boolean", actual=_json_type(value))
        return value

    # NUMBER: bool is an int subclass in Python but not a JSON number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return SchemaViolation(ViolationKind.TYPE_MISMATCH, field=label,
                               expected="number", actual=_json_type(value))
    try:
        number = float(value)
    except OverflowError:
        # JSON integers are unbounded; anything past float range is unusable
        number = math.inf
    if not math.isfinite(number):
        return SchemaViolation(ViolationKind.TYPE_MISMATCH, field=label,
                               expected="number", actual="non-finite number")
    if spec.minimum is not None and number < spec.minimum or \
            spec.maximum is not None and number > spec.maximum:
        return SchemaViolation(ViolationKind.RANGE_VIOLATION, field=label,
                               value=number, range=spec.range)
    return number
