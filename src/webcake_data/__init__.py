# src/webcake_data/__init__.py

"""
WebCake Data client library initialization.

This package exposes a document-database style API (models with find, create,
update, delete, count and exists) over a site's remote collection API.

It initializes a logger with a NullHandler and makes the connection, model,
query builder, result types, exceptions and transports available at the top
level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for "webcake_data".
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Core Exports
# --------------------------------------------------------------------------
from .connection import Connection, ConnectionConfig
from .base.model import Model
from .base.interfaces import Transport
from .base.exceptions import (
    WebcakeDataError,
    ConfigurationError,
    TransportError,
    UnsupportedValueError,
    QueryAlreadyExecutedError,
)

# --------------------------------------------------------------------------
# Query Building Exports
# --------------------------------------------------------------------------
from .base.query import (
    QueryBuilder,
    QueryDescription,
    QueryOperator,
    SortDirection,
    PopulateDirective,
)

# --------------------------------------------------------------------------
# Result Exports
# --------------------------------------------------------------------------
from .base.results import UpdateResult, DeleteResult

# --------------------------------------------------------------------------
# Transport Implementation Exports
# --------------------------------------------------------------------------
from .transports.http_transport import HttpTransport

__all__ = [
    # Core
    "Connection",
    "ConnectionConfig",
    "Model",
    "Transport",
    # Exceptions
    "WebcakeDataError",
    "ConfigurationError",
    "TransportError",
    "UnsupportedValueError",
    "QueryAlreadyExecutedError",
    # Query
    "QueryBuilder",
    "QueryDescription",
    "QueryOperator",
    "SortDirection",
    "PopulateDirective",
    # Results
    "UpdateResult",
    "DeleteResult",
    # Implementations
    "HttpTransport",
    # Logging
    "logger",
]

__version__ = "1.0.0"
