# src/webcake_data/base/interfaces.py

from abc import ABC, abstractmethod
from logging import LoggerAdapter
from typing import Any, Dict, List, Mapping, Optional

from webcake_data.base.query import QueryDescription

# A field-value pair as sent to the API: {"field_name": ..., "field_value": ...}
FieldValues = List[Dict[str, Any]]
# Parsed response body: {"success": bool, "data": Any, "message": str}
Envelope = Dict[str, Any]


class Transport(ABC):
    """
    Boundary between the query layer and the remote collection API.

    Every method performs exactly one request for the named collection and
    returns the parsed response envelope unchanged; unwrapping `data` and
    turning ``success == false`` into an error is left to the caller
    (see `webcake_data.base.results.unwrap_envelope`). Implementations must
    not retry, cache, or reinterpret failures.

    Protocol-level failures (non-2xx responses, network errors) are raised
    as `TransportError`.
    """

    @abstractmethod
    async def insert_one(
        self,
        table: str,
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """
        Insert a single record.

        Args:
            table: The collection name.
            fields: The record as ordered field-value pairs.
            logger: Optional logger adapter overriding the transport's own.
        """
        pass

    @abstractmethod
    async def insert_many(
        self,
        table: str,
        records: List[FieldValues],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """Insert several records in one request."""
        pass

    @abstractmethod
    async def query(
        self,
        table: str,
        description: QueryDescription,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """
        Fetch the records matching a query description.

        Args:
            table: The collection name.
            description: The snapshot built by `QueryBuilder.build()`; its
                         `to_params()` gives the encoded request parameters.
            logger: Optional logger adapter overriding the transport's own.
        """
        pass

    @abstractmethod
    async def update_by_id(
        self,
        table: str,
        id: Any,
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        pass

    @abstractmethod
    async def update_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """Update at most one record matching `filters` (sent with ``limit: 1``)."""
        pass

    @abstractmethod
    async def update_many(
        self,
        table: str,
        filters: Mapping[str, Any],
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """Update every record matching `filters`."""
        pass

    @abstractmethod
    async def delete_by_id(
        self,
        table: str,
        id: Any,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        pass

    @abstractmethod
    async def delete_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """Delete at most one record matching `filters` (sent with ``limit: 1``)."""
        pass

    @abstractmethod
    async def delete_many(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        pass

    @abstractmethod
    async def count(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """Count matching records; the envelope's data is ``{"count": n}``."""
        pass

    @abstractmethod
    async def exists(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        """Check for a matching record; the envelope's data is ``{"exists": bool}``."""
        pass

    async def aclose(self) -> None:
        """Release any resources held by the transport. No-op by default."""
        return None
