# src/webcake_data/connection.py

import logging
import os
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from webcake_data.base.exceptions import ConfigurationError
from webcake_data.base.interfaces import Transport
from webcake_data.base.model import Model
from webcake_data.transports.http_transport import HttpTransport

log = logging.getLogger(__name__)

# Environment variables consulted when a setting is not given explicitly.
ENV_SITE_ID = "WEBCAKE_SITE_ID"
ENV_BASE_URL = "WEBCAKE_BASE_URL"
ENV_API_HOST = "WEBCAKE_API_HOST"
ENV_TOKEN = "WEBCAKE_TOKEN"


class ConnectionConfig(BaseModel):
    """Settings for reaching a site's collection API."""

    model_config = ConfigDict(extra="forbid")

    base_url: Optional[str] = None
    api_host: Optional[str] = None
    site_id: Optional[str] = None
    token: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = None

    def resolve_site_id(self) -> str:
        return self.site_id or os.getenv(ENV_SITE_ID, "")

    def resolve_base_url(self) -> str:
        """
        Explicit `base_url` wins, then ``WEBCAKE_BASE_URL``; otherwise the URL
        is ``<api_host>/api/v1/<site_id>``.
        """
        base_url = self.base_url or os.getenv(ENV_BASE_URL)
        if base_url:
            return base_url.rstrip("/")
        api_host = (self.api_host or os.getenv(ENV_API_HOST, "")).rstrip("/")
        return f"{api_host}/api/v1/{self.resolve_site_id()}"

    def resolve_token(self) -> Optional[str]:
        return self.token or os.getenv(ENV_TOKEN) or None

    def build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.resolve_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        headers.update(self.headers)
        return headers


class Connection:
    """
    Entry point: resolves configuration once and hands out models.

    Example:
        async with Connection(api_host="https://example.com", site_id="s1") as db:
            users = db.model("users")
            adults = await users.find().gte("age", 18).sort({"name": 1})
    """

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        transport: Optional[Transport] = None,
        client: Optional[httpx.AsyncClient] = None,
        **overrides: Any,
    ):
        """
        Args:
            config: Connection settings; keyword `overrides` are applied on top.
            transport: A ready transport to use instead of building an
                       `HttpTransport` (the config then only informs logging).
            client: An httpx client for the built `HttpTransport`. Needed when
                    the resolved base URL is relative.
            **overrides: Any `ConnectionConfig` field, e.g. ``site_id="..."``.

        Raises:
            ConfigurationError: If the settings are invalid or the base URL is
                                relative with no client to resolve it.
        """
        try:
            base = config.model_dump() if config is not None else {}
            self.config = ConnectionConfig.model_validate({**base, **overrides})
        except ValueError as e:
            raise ConfigurationError(f"Invalid connection settings: {e}") from e

        self.site_id = self.config.resolve_site_id()
        self.base_url = self.config.resolve_base_url()
        self.headers = self.config.build_headers()

        if transport is None:
            if client is None and not httpx.URL(self.base_url).is_absolute_url:
                raise ConfigurationError(
                    f"Base URL '{self.base_url}' is relative. Set base_url, "
                    f"api_host or {ENV_BASE_URL}/{ENV_API_HOST}, or pass an "
                    "httpx.AsyncClient with its own base_url."
                )
            transport = HttpTransport(
                self.base_url,
                headers=self.headers,
                client=client,
                timeout=self.config.timeout,
            )
        self.transport = transport
        log.info(f"Connection ready for site '{self.site_id}' at '{self.base_url}'.")

    def model(self, collection_name: str) -> Model:
        """Return a Model bound to the named collection."""
        return Model(collection_name, self.transport)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
