from __future__ import annotations

from foliosync.domain.diff import (
    CLAIMS_FIELDS,
    USER_FIELDS,
    Classification,
    FieldSpec,
    classify,
)
from foliosync.domain.model import IdentityClaims, Role
from tests.helpers.records import make_user


def test_missing_record_is_create() -> None:
    diff = classify({"username": "t01", "name": "A"}, None, spec=USER_FIELDS)

    assert diff.classification is Classification.CREATE
    assert diff.changed_fields == USER_FIELDS.mutable


def test_identical_allow_listed_fields_skip() -> None:
    stored = make_user("t01", name="Ann")
    desired = {
        "username": "t01",
        "name": "Ann",
        "position": "Teacher",
        "department": "Mathematics",
        "role": Role.USER,
        "password": "never compared",
    }

    assert classify(desired, stored, spec=USER_FIELDS).classification is Classification.SKIP


def test_changed_mutable_fields_are_listed_in_spec_order() -> None:
    stored = make_user("t01", name="Ann")
    desired = {
        "username": "t01",
        "name": "Ann B.",
        "position": "Teacher",
        "department": "Mathematics",
        "role": Role.DEPUTY,
    }

    diff = classify(desired, stored, spec=USER_FIELDS)

    assert diff.classification is Classification.UPDATE
    assert diff.changed_fields == ("name", "role")


def test_immutable_difference_is_conflict() -> None:
    stored = {"username": "t02", "name": "T01", "role": Role.USER}

    diff = classify(make_user("t01"), stored, spec=USER_FIELDS)

    assert diff.classification is Classification.CONFLICT
    assert diff.conflicting_fields == ("username",)


def test_claims_compare_on_role_only() -> None:
    user = make_user("t01", role=Role.DIRECTOR)

    drifted = classify(user, IdentityClaims(role=Role.USER, username=""), spec=CLAIMS_FIELDS)
    renamed = classify(
        make_user("t01"), IdentityClaims(role=Role.USER, username="T02"), spec=CLAIMS_FIELDS
    )

    assert drifted.classification is Classification.UPDATE
    assert drifted.changed_fields == ("role",)
    assert renamed.classification is Classification.SKIP


def test_custom_equality() -> None:
    spec = FieldSpec(mutable=("name",))

    diff = classify(
        {"name": "ANN"},
        {"name": "ann"},
        spec=spec,
        equals=lambda left, right: str(left).casefold() == str(right).casefold(),
    )

    assert diff.classification is Classification.SKIP


def test_classification_is_deterministic_and_leaves_inputs_alone() -> None:
    desired = {"username": "t01", "name": "Ann", "position": "Teacher", "role": Role.DEPUTY}
    stored = {"role": Role.USER, "department": "Arts", "name": "Anne", "username": "t01"}
    permuted_desired = dict(reversed(list(desired.items())))
    permuted_stored = dict(reversed(list(stored.items())))
    snapshot = (dict(desired), dict(stored))

    first = classify(desired, stored, spec=USER_FIELDS)

    assert classify(desired, stored, spec=USER_FIELDS) == first
    assert classify(permuted_desired, permuted_stored, spec=USER_FIELDS) == first
    assert first.changed_fields == ("name", "position", "department", "role")
    assert (desired, stored) == snapshot
