# tests/base/test_results.py

import pytest

from webcake_data.base.exceptions import TransportError
from webcake_data.base.results import (
    DeleteResult,
    UpdateResult,
    first_or_none,
    to_count,
    to_delete_result,
    to_exists,
    to_update_result,
    unwrap_envelope,
)


def test_unwrap_returns_data():
    assert unwrap_envelope({"success": True, "data": [{"id": 1}]}) == [{"id": 1}]


def test_unwrap_missing_data_is_none():
    assert unwrap_envelope({"success": True}) is None


def test_unwrap_failure_carries_message_verbatim():
    with pytest.raises(TransportError) as exc_info:
        unwrap_envelope({"success": False, "message": "Table not found"}, "query records")
    assert exc_info.value.message == "Table not found"
    assert exc_info.value.status_code is None


def test_unwrap_failure_without_message_uses_context():
    with pytest.raises(TransportError, match="insert record failed"):
        unwrap_envelope({"success": False}, "insert record")
    with pytest.raises(TransportError, match="Request failed"):
        unwrap_envelope({"success": False, "message": ""})


@pytest.mark.parametrize("payload", [None, [], "ok", {"data": []}])
def test_unwrap_rejects_malformed_payload(payload):
    with pytest.raises(TransportError, match="Malformed response envelope"):
        unwrap_envelope(payload, "count records")


@pytest.mark.parametrize(
    "affected, expected",
    [
        ([{"id": 1}], 1),
        ([{"id": 1}, {"id": 2}, {"id": 3}], 3),
        ([], 0),
        (None, 0),
        ({"id": 9}, 1),
    ],
)
def test_write_results_count_affected_records(affected, expected):
    assert to_update_result(affected) == UpdateResult(
        acknowledged=True, matched_count=expected, modified_count=expected
    )
    assert to_delete_result(affected) == DeleteResult(
        acknowledged=True, deleted_count=expected
    )


def test_results_as_dict_use_wire_names():
    assert UpdateResult(True, 2, 2).as_dict() == {
        "acknowledged": True,
        "matchedCount": 2,
        "modifiedCount": 2,
    }
    assert DeleteResult(True, 0).as_dict() == {"acknowledged": True, "deletedCount": 0}


def test_count_and_exists_extraction():
    assert to_count({"count": 42}) == 42
    assert to_count({"count": "7"}) == 7
    assert to_exists({"exists": True}) is True
    assert to_exists({"exists": 0}) is False


def test_first_or_none():
    assert first_or_none([{"id": 1}, {"id": 2}]) == {"id": 1}
    assert first_or_none([]) is None
    assert first_or_none(None) is None
