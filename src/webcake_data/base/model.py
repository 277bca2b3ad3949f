# src/webcake_data/base/model.py

import logging
from logging import LoggerAdapter
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Union

from webcake_data.base.interfaces import Envelope, Transport
from webcake_data.base.query import QueryBuilder
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
from webcake_data.base.utils import encode_scalar, to_field_values

Logger = Union[logging.Logger, LoggerAdapter]


class Model:
    """
    Document-style access to one remote collection.

    The model holds only the collection name and a transport. Reads go
    through a fresh `QueryBuilder` per call; writes flatten documents into
    field-value pairs and shape the API's answers into document-database
    results (`UpdateResult`, `DeleteResult`, counts, booleans). Failures
    from the transport propagate unchanged.
    """

    def __init__(
        self,
        collection_name: str,
        transport: Transport,
        logger: Optional[LoggerAdapter] = None,
    ):
        if not isinstance(collection_name, str) or not collection_name:
            raise ValueError("collection_name must be a non-empty string")
        self.collection_name = collection_name
        self._transport = transport
        self._logger: Logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{collection_name}]"
        )

    def __repr__(self) -> str:
        return f"Model({self.collection_name!r})"

    async def _send(
        self, action: str, request: Awaitable[Envelope], logger: Logger
    ) -> Any:
        """Await a transport call and unwrap its envelope, logging failures."""
        try:
            return unwrap_envelope(await request, action)
        except Exception as e:
            logger.error(
                f"Failed to {action} in '{self.collection_name}': {e}", exc_info=True
            )
            raise

    @staticmethod
    def _prepare_filters(filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if filters is None:
            return {}
        if not isinstance(filters, Mapping):
            raise TypeError(
                f"Filters must be a mapping, got {type(filters).__name__}"
            )
        return {
            str(field_path): encode_scalar(value, f"filter value for field '{field_path}'")
            for field_path, value in filters.items()
        }

    # --- Create ---

    async def create(self, document: Any, logger: Optional[LoggerAdapter] = None) -> Any:
        """
        Insert one document.

        Args:
            document: A mapping, dataclass or pydantic model.
            logger: Optional logger adapter for this call.

        Returns:
            The created record as returned by the API.
        """
        logger = logger or self._logger
        fields = to_field_values(document)
        logger.debug(f"Creating record in '{self.collection_name}': {fields}")
        created = await self._send(
            "insert record",
            self._transport.insert_one(self.collection_name, fields, logger=logger),
            logger,
        )
        logger.info(f"Created record in '{self.collection_name}'.")
        return created

    async def insert_many(
        self, documents: Iterable[Any], logger: Optional[LoggerAdapter] = None
    ) -> List[Any]:
        """Insert several documents in one request; all succeed or the call fails."""
        logger = logger or self._logger
        records = [to_field_values(document) for document in documents]
        logger.debug(f"Inserting {len(records)} record(s) into '{self.collection_name}'")
        created = await self._send(
            "insert records",
            self._transport.insert_many(self.collection_name, records, logger=logger),
            logger,
        )
        created = created if created is not None else []
        logger.info(f"Inserted {len(created)} record(s) into '{self.collection_name}'.")
        return created

    # --- Read ---

    def find(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> QueryBuilder:
        """
        Start a query, applying each entry of `filters` as an equality match.
        Values must be scalars, as for the filters of every other verb.

        The returned builder is not executed; chain more conditions and then
        ``await`` it (or call ``exec()``).
        """
        query = QueryBuilder(
            self.collection_name, self._transport, logger=logger or self._logger
        )
        for field_path, value in (filters or {}).items():
            query.where(field_path, value)
        return query

    async def find_one(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> Optional[Any]:
        """Return the first matching document, or None if nothing matches."""
        logger = logger or self._logger
        documents = await self.find(filters, logger=logger).limit(1).exec()
        document = first_or_none(documents)
        if document is None:
            logger.warning(
                f"No record in '{self.collection_name}' matched {dict(filters or {})!r}."
            )
        return document

    async def find_by_id(
        self, id: Any, logger: Optional[LoggerAdapter] = None
    ) -> Optional[Any]:
        return await self.find_one({"id": id}, logger=logger)

    # --- Update ---

    async def update_one(
        self,
        filters: Mapping[str, Any],
        data: Any,
        logger: Optional[LoggerAdapter] = None,
    ) -> UpdateResult:
        """Update at most one matching record and summarize the outcome."""
        logger = logger or self._logger
        affected = await self.find_one_and_update(filters, data, logger=logger)
        result = to_update_result(affected)
        logger.info(
            f"update_one on '{self.collection_name}' matched {result.matched_count}."
        )
        return result

    async def find_by_id_and_update(
        self,
        id: Any,
        data: Any,
        return_updated: bool = False,
        logger: Optional[LoggerAdapter] = None,
    ) -> Any:
        """
        Update the record with the given id.

        Args:
            id: The record identifier.
            data: Partial document with the fields to change.
            return_updated: If True, fetch the record again after the update
                            and return it instead of the API's raw answer.
            logger: Optional logger adapter for this call.

        Returns:
            The re-fetched document (or None if it vanished) when
            `return_updated` is set, otherwise the API's raw update data.
        """
        logger = logger or self._logger
        fields = to_field_values(data)
        logger.debug(f"Updating '{self.collection_name}' record {id!r}: {fields}")
        result = await self._send(
            "update record",
            self._transport.update_by_id(self.collection_name, id, fields, logger=logger),
            logger,
        )
        logger.info(f"Updated '{self.collection_name}' record {id!r}.")
        if return_updated:
            return await self.find_by_id(id, logger=logger)
        return result

    async def find_one_and_update(
        self,
        filters: Mapping[str, Any],
        data: Any,
        logger: Optional[LoggerAdapter] = None,
    ) -> Any:
        """Update at most one matching record and return the API's raw answer."""
        logger = logger or self._logger
        prepared = self._prepare_filters(filters)
        fields = to_field_values(data)
        logger.debug(
            f"Updating one record in '{self.collection_name}' matching {prepared}: {fields}"
        )
        return await self._send(
            "update record",
            self._transport.update_one(
                self.collection_name, prepared, fields, logger=logger
            ),
            logger,
        )

    async def update_many(
        self,
        filters: Mapping[str, Any],
        data: Any,
        logger: Optional[LoggerAdapter] = None,
    ) -> UpdateResult:
        logger = logger or self._logger
        prepared = self._prepare_filters(filters)
        fields = to_field_values(data)
        logger.debug(
            f"Updating records in '{self.collection_name}' matching {prepared}: {fields}"
        )
        affected = await self._send(
            "update records",
            self._transport.update_many(
                self.collection_name, prepared, fields, logger=logger
            ),
            logger,
        )
        result = to_update_result(affected)
        logger.info(
            f"update_many on '{self.collection_name}' modified {result.modified_count}."
        )
        return result

    # --- Delete ---

    async def delete_one(
        self, filters: Mapping[str, Any], logger: Optional[LoggerAdapter] = None
    ) -> DeleteResult:
        logger = logger or self._logger
        affected = await self.find_one_and_delete(filters, logger=logger)
        result = to_delete_result(affected)
        logger.info(
            f"delete_one on '{self.collection_name}' deleted {result.deleted_count}."
        )
        return result

    async def find_by_id_and_delete(
        self, id: Any, logger: Optional[LoggerAdapter] = None
    ) -> Any:
        logger = logger or self._logger
        logger.debug(f"Deleting '{self.collection_name}' record {id!r}")
        result = await self._send(
            "delete record",
            self._transport.delete_by_id(self.collection_name, id, logger=logger),
            logger,
        )
        logger.info(f"Deleted '{self.collection_name}' record {id!r}.")
        return result

    async def find_one_and_delete(
        self, filters: Mapping[str, Any], logger: Optional[LoggerAdapter] = None
    ) -> Any:
        """Delete at most one matching record and return the API's raw answer."""
        logger = logger or self._logger
        prepared = self._prepare_filters(filters)
        logger.debug(f"Deleting one record in '{self.collection_name}' matching {prepared}")
        return await self._send(
            "delete record",
            self._transport.delete_one(self.collection_name, prepared, logger=logger),
            logger,
        )

    async def delete_many(
        self, filters: Mapping[str, Any], logger: Optional[LoggerAdapter] = None
    ) -> DeleteResult:
        logger = logger or self._logger
        prepared = self._prepare_filters(filters)
        logger.debug(f"Deleting records in '{self.collection_name}' matching {prepared}")
        affected = await self._send(
            "delete records",
            self._transport.delete_many(self.collection_name, prepared, logger=logger),
            logger,
        )
        result = to_delete_result(affected)
        logger.info(
            f"delete_many on '{self.collection_name}' deleted {result.deleted_count}."
        )
        return result

    # --- Aggregates ---

    async def count_documents(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> int:
        logger = logger or self._logger
        prepared = self._prepare_filters(filters)
        data = await self._send(
            "count records",
            self._transport.count(self.collection_name, prepared, logger=logger),
            logger,
        )
        count = to_count(data)
        logger.info(f"Counted {count} record(s) in '{self.collection_name}'.")
        return count

    async def exists(
        self, filters: Mapping[str, Any], logger: Optional[LoggerAdapter] = None
    ) -> bool:
        logger = logger or self._logger
        prepared = self._prepare_filters(filters)
        data = await self._send(
            "check if record exists",
            self._transport.exists(self.collection_name, prepared, logger=logger),
            logger,
        )
        return to_exists(data)
