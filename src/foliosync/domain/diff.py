"""Classification of a desired record against the stored one."""

from __future__ import annotations

import operator
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class Classification(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Allow-listed fields taking part in a comparison.

    Differences in ``mutable`` fields are updates; differences in ``immutable``
    fields are conflicts. Every other field is ignored.
    """

    mutable: tuple[str, ...]
    immutable: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Diff:
    classification: Classification
    changed_fields: tuple[str, ...] = ()
    conflicting_fields: tuple[str, ...] = ()


USER_FIELDS = FieldSpec(
    mutable=("name", "position", "department", "role"),
    immutable=("username",),
)

CLAIMS_FIELDS = FieldSpec(mutable=("role",))


def read_field(record: object, name: str) -> object:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def classify(
    desired: object,
    existing: object | None,
    *,
    spec: FieldSpec,
    equals: Callable[[object, object], bool] = operator.eq,
) -> Diff:
    """Classify ``desired`` against ``existing`` using the fields of ``spec``."""

    if existing is None:
        return Diff(Classification.CREATE, changed_fields=spec.mutable)

    conflicting = tuple(
        name
        for name in spec.immutable
        if not equals(read_field(desired, name), read_field(existing, name))
    )
    if conflicting:
        return Diff(Classification.CONFLICT, conflicting_fields=conflicting)

    changed = tuple(
        name
        for name in spec.mutable
        if not equals(read_field(desired, name), read_field(existing, name))
    )
    if changed:
        return Diff(Classification.UPDATE, changed_fields=changed)
    return Diff(Classification.SKIP)
