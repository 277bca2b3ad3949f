# tests/conftest.py
import logging
from typing import Any, Callable, Dict, List, Tuple

import pytest

from webcake_data.base.interfaces import Transport
from webcake_data.base.model import Model


# --- Logger Fixture ---


@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_webcake_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})


# --- Fake Transport ---


def ok(data: Any) -> Dict[str, Any]:
    """A successful response envelope."""
    return {"success": True, "data": data}


DEFAULT_RESPONSES: Dict[str, Any] = {
    "insert_one": ok({"id": "rec-1"}),
    "insert_many": ok([]),
    "query": ok([]),
    "update_by_id": ok([{"id": "rec-1"}]),
    "update_one": ok([]),
    "update_many": ok([]),
    "delete_by_id": ok([{"id": "rec-1"}]),
    "delete_one": ok([]),
    "delete_many": ok([]),
    "count": ok({"count": 0}),
    "exists": ok({"exists": False}),
}


class RecordingTransport(Transport):
    """
    Transport double that records every call and answers from `responses`.

    A response may be an envelope, an exception instance (raised), or a
    callable receiving the call's arguments and returning either.
    """

    def __init__(self, **responses: Any):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.responses: Dict[str, Any] = {**DEFAULT_RESPONSES, **responses}

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [args for name, args in self.calls if name == method]

    async def _answer(self, method: str, **args: Any) -> Dict[str, Any]:
        args.pop("logger", None)
        self.calls.append((method, args))
        response = self.responses[method]
        if callable(response) and not isinstance(response, dict):
            response = response(**args)
        if isinstance(response, Exception):
            raise response
        return response

    async def insert_one(self, table, fields, logger=None):
        return await self._answer("insert_one", table=table, fields=fields)

    async def insert_many(self, table, records, logger=None):
        return await self._answer("insert_many", table=table, records=records)

    async def query(self, table, description, logger=None):
        return await self._answer("query", table=table, description=description)

    async def update_by_id(self, table, id, fields, logger=None):
        return await self._answer("update_by_id", table=table, id=id, fields=fields)

    async def update_one(self, table, filters, fields, logger=None):
        return await self._answer(
            "update_one", table=table, filters=filters, fields=fields
        )

    async def update_many(self, table, filters, fields, logger=None):
        return await self._answer(
            "update_many", table=table, filters=filters, fields=fields
        )

    async def delete_by_id(self, table, id, logger=None):
        return await self._answer("delete_by_id", table=table, id=id)

    async def delete_one(self, table, filters, logger=None):
        return await self._answer("delete_one", table=table, filters=filters)

    async def delete_many(self, table, filters, logger=None):
        return await self._answer("delete_many", table=table, filters=filters)

    async def count(self, table, filters, logger=None):
        return await self._answer("count", table=table, filters=filters)

    async def exists(self, table, filters, logger=None):
        return await self._answer("exists", table=table, filters=filters)


@pytest.fixture
def envelope() -> Callable[[Any], Dict[str, Any]]:
    return ok


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def users(transport: RecordingTransport, logger) -> Model:
    return Model("users", transport, logger=logger)


@pytest.fixture
def make_users(logger) -> Callable[..., Tuple[Model, RecordingTransport]]:
    """Build a users model over a transport with the given responses."""

    def _factory(**responses: Any) -> Tuple[Model, RecordingTransport]:
        fake = RecordingTransport(**responses)
        return Model("users", fake, logger=logger), fake

    return _factory
