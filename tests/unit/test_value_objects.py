"""Tests for the value objects exchanged with transports."""

import dataclasses

import pytest

from storage_client_core.models import (
    ACLRole,
    BucketConditions,
    Conditions,
    ObjectAttrs,
    RewriteObjectRequest,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "kwargs",
    [
        {"generation_match": 1, "generation_not_match": 2},
        {"generation_match": 1, "does_not_exist": True},
        {"generation_not_match": 1, "does_not_exist": True},
        {"metageneration_match": 1, "metageneration_not_match": 2},
    ],
)
def test_conflicting_conditions_rejected(kwargs):
    with pytest.raises(ValueError, match="multiple conditions"):
        Conditions(**kwargs)


@pytest.mark.unit
def test_generation_and_metageneration_conditions_combine():
    conds = Conditions(generation_match=3, metageneration_match=2)

    assert conds.is_idempotent()
    assert conds.is_metageneration_idempotent()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("conds", "expected"),
    [
        (Conditions(), False),
        (Conditions(generation_match=0), True),
        (Conditions(does_not_exist=True), True),
        (Conditions(generation_not_match=4), False),
        (Conditions(metageneration_match=1), False),
    ],
)
def test_write_idempotency(conds, expected):
    assert conds.is_idempotent() is expected


@pytest.mark.unit
def test_bucket_conditions():
    with pytest.raises(ValueError):
        BucketConditions(metageneration_match=1, metageneration_not_match=2)

    assert BucketConditions(metageneration_match=1).is_idempotent()
    assert not BucketConditions(metageneration_not_match=1).is_idempotent()


@pytest.mark.unit
def test_rewrite_request_with_token_copies():
    req = RewriteObjectRequest("a", "src", "b", "dst", max_bytes_rewritten_per_call=1024)

    resumed = req.with_token("tok")

    assert resumed.token == "tok"
    assert resumed.max_bytes_rewritten_per_call == 1024
    assert req.token is None


@pytest.mark.unit
def test_value_objects_are_immutable():
    attrs = ObjectAttrs(bucket="b", name="o")

    with pytest.raises(dataclasses.FrozenInstanceError):
        attrs.size = 10


@pytest.mark.unit
def test_acl_role_values():
    assert ACLRole("READER") is ACLRole.READER
    assert ACLRole.OWNER == "OWNER"
