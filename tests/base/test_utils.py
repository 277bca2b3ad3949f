# tests/base/test_utils.py

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

import pytest
from pydantic import BaseModel, Field, HttpUrl

from webcake_data.base.exceptions import UnsupportedValueError
from webcake_data.base.utils import (
    encode_scalar,
    encode_scalar_sequence,
    prepare_for_storage,
    to_field_values,
)


class Role(Enum):
    ADMIN = "admin"
    USER = "user"


@dataclass
class Address:
    city: str
    zip_code: str


@dataclass
class Person:
    name: str
    address: Address
    tags: List[str]


class Profile(BaseModel):
    display_name: str = Field(alias="displayName")
    website: Optional[HttpUrl] = None
    joined: datetime


# --- encode_scalar ---


@pytest.mark.parametrize("value", ["text", 3, 2.5, True, False, None])
def test_plain_scalars_pass_through(value):
    assert encode_scalar(value) is value


def test_special_scalars_are_converted():
    assert encode_scalar(date(2024, 2, 29)) == "2024-02-29"
    assert (
        encode_scalar(datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc))
        == "2024-01-01T08:30:00+00:00"
    )
    assert (
        encode_scalar(UUID("00000000-0000-0000-0000-000000000001"))
        == "00000000-0000-0000-0000-000000000001"
    )
    assert encode_scalar(Role.ADMIN) == "admin"
    assert encode_scalar(Decimal("1.5")) == 1.5


@pytest.mark.parametrize("value", [{"a": 1}, [1], object(), b"bytes"])
def test_unsupported_scalar(value):
    with pytest.raises(UnsupportedValueError, match="Unsupported filter value"):
        encode_scalar(value, "filter value")


def test_scalar_sequence_accepts_sets_and_tuples():
    assert encode_scalar_sequence(("a", Role.USER)) == ["a", "user"]
    assert encode_scalar_sequence({7}) == [7]


def test_scalar_sequence_rejects_strings():
    # A string is not treated as a sequence of characters
    with pytest.raises(TypeError):
        encode_scalar_sequence("abc", "'$in' value")


# --- prepare_for_storage ---


def test_prepare_nested_dataclass():
    person = Person(name="Ann", address=Address("Oslo", "0150"), tags=("a", "b"))
    assert prepare_for_storage(person) == {
        "name": "Ann",
        "address": {"city": "Oslo", "zip_code": "0150"},
        "tags": ["a", "b"],
    }


def test_prepare_pydantic_model_uses_aliases_and_json_mode():
    profile = Profile(
        displayName="ann",
        website="https://example.com/ann",
        joined=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    prepared = prepare_for_storage(profile)
    assert prepared["displayName"] == "ann"
    assert prepared["website"] == "https://example.com/ann"
    assert prepared["joined"].startswith("2024-03-01T00:00:00")


def test_prepare_nested_mapping_values():
    data = {"meta": {"created": date(2024, 1, 2), "ids": {UUID(int=5)}}}
    assert prepare_for_storage(data) == {
        "meta": {
            "created": "2024-01-02",
            "ids": ["00000000-0000-0000-0000-000000000005"],
        }
    }


def test_prepare_rejects_unknown_objects():
    with pytest.raises(UnsupportedValueError):
        prepare_for_storage({"handle": object()})


# --- to_field_values ---


def test_field_values_preserve_document_order():
    pairs = to_field_values({"name": "A", "age": 30})
    assert pairs == [
        {"field_name": "name", "field_value": "A"},
        {"field_name": "age", "field_value": 30},
    ]


def test_field_values_keep_nested_values_intact():
    pairs = to_field_values({"tags": ["x", "y"], "address": {"city": "Oslo"}})
    assert pairs == [
        {"field_name": "tags", "field_value": ["x", "y"]},
        {"field_name": "address", "field_value": {"city": "Oslo"}},
    ]


def test_field_values_of_empty_document():
    assert to_field_values({}) == []


@pytest.mark.parametrize("document", [["name", "A"], "name=A", None, 5])
def test_field_values_require_a_document(document):
    with pytest.raises((TypeError, UnsupportedValueError)):
        to_field_values(document)
