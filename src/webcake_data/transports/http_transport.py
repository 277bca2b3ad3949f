# src/webcake_data/transports/http_transport.py

import json
import logging
from logging import LoggerAdapter
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

import httpx

from webcake_data.base.exceptions import TransportError
from webcake_data.base.interfaces import Envelope, FieldValues, Transport
from webcake_data.base.query import QueryDescription

Logger = Union[logging.Logger, LoggerAdapter]


class HttpTransport(Transport):
    """
    Transport for the REST collection API, using `httpx.AsyncClient`.

    Paths are appended to `base_url`, normally an absolute URL such as
    ``https://host/api/v1/<site_id>``. A relative prefix like
    ``/api/v1/<site_id>`` only works with a client that has its own
    ``base_url``. One call is one HTTP request: no
    retries, no caching. Non-2xx answers and network failures raise
    `TransportError`; successful bodies are returned as parsed envelopes.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            base_url: Prefix for every collection path.
            headers: Headers sent with every request (auth, content type...).
            client: An existing AsyncClient to use. The caller keeps ownership
                    and must close it; otherwise the transport creates and
                    closes its own.
            timeout: Request timeout in seconds for a transport-owned client;
                     None disables the timeout.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Dict[str, str] = {
            "Content-Type": "application/json",
            **dict(headers or {}),
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._logger.info(f"HTTP transport created for base URL '{self.base_url}'.")

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
            self._logger.debug("Closed transport-owned HTTP client.")

    def _url(self, table: str, *parts: str) -> str:
        segments = ["collections", quote(str(table), safe=""), "records"]
        segments.extend(quote(str(part), safe="") for part in parts)
        return f"{self.base_url}/{'/'.join(segments)}"

    async def _request(
        self,
        action: str,
        method: str,
        url: str,
        logger: Logger,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
    ) -> Envelope:
        logger.debug(f"{method} {url} params={params!r} body={body!r}")
        content = json.dumps(body) if body is not None else None
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                content=content,
                headers=self.headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error while trying to {action}: {e}", exc_info=True)
            raise TransportError(f"Failed to {action}: {e}") from e

        if not response.is_success:
            logger.error(
                f"Failed to {action}: {response.status_code} {response.reason_phrase}"
            )
            raise TransportError(
                f"Failed to {action}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Response to '{action}' is not valid JSON", exc_info=True)
            raise TransportError(
                f"Failed to {action}: response body is not valid JSON",
                status_code=response.status_code,
            ) from e
        logger.debug(f"{method} {url} -> {response.status_code}")
        return payload

    async def insert_one(
        self,
        table: str,
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "insert record",
            "POST",
            self._url(table),
            logger or self._logger,
            body={"fields": fields},
        )

    async def insert_many(
        self,
        table: str,
        records: List[FieldValues],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "insert records",
            "POST",
            self._url(table, "bulk"),
            logger or self._logger,
            body={"records": records},
        )

    async def query(
        self,
        table: str,
        description: QueryDescription,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "query records",
            "GET",
            self._url(table),
            logger or self._logger,
            params=description.to_params(),
        )

    async def update_by_id(
        self,
        table: str,
        id: Any,
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "update record",
            "PATCH",
            self._url(table, id),
            logger or self._logger,
            body={"fields": fields},
        )

    async def update_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "update record",
            "PATCH",
            self._url(table, "update"),
            logger or self._logger,
            body={"filters": dict(filters), "fields": fields, "limit": 1},
        )

    async def update_many(
        self,
        table: str,
        filters: Mapping[str, Any],
        fields: FieldValues,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "update records",
            "PATCH",
            self._url(table, "update"),
            logger or self._logger,
            body={"filters": dict(filters), "fields": fields},
        )

    async def delete_by_id(
        self,
        table: str,
        id: Any,
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "delete record", "DELETE", self._url(table, id), logger or self._logger
        )

    async def delete_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "delete record",
            "DELETE",
            self._url(table, "delete"),
            logger or self._logger,
            body={"filters": dict(filters), "limit": 1},
        )

    async def delete_many(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "delete records",
            "DELETE",
            self._url(table, "delete"),
            logger or self._logger,
            body={"filters": dict(filters)},
        )

    async def count(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "count records",
            "GET",
            self._url(table, "count"),
            logger or self._logger,
            params={"filters": json.dumps(dict(filters))},
        )

    async def exists(
        self,
        table: str,
        filters: Mapping[str, Any],
        logger: Optional[LoggerAdapter] = None,
    ) -> Envelope:
        return await self._request(
            "check if record exists",
            "GET",
            self._url(table, "exists"),
            logger or self._logger,
            params={"filters": json.dumps(dict(filters))},
        )
