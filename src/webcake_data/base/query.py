# src/webcake_data/base/query.py
import asyncio
import copy
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from logging import LoggerAdapter
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Generator,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError, QueryAlreadyExecutedError
from .results import unwrap_envelope
from .utils import encode_scalar, encode_scalar_sequence

if TYPE_CHECKING:
    from .interfaces import Transport

# Distinguishes where(field, value) from where(field, operator, value)
_MISSING: Any = object()


# --- Query Operator Enum ---
class QueryOperator(Enum):
    """Enumeration of filter operators, valued with their wire tags."""

    # Comparison
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    # Membership
    IN = "$in"
    NIN = "$nin"
    # Range / pattern
    BETWEEN = "$between"
    LIKE = "$like"

    @classmethod
    def parse(cls, tag: Union["QueryOperator", str]) -> "QueryOperator":
        """Resolve an operator given as enum member, 'gte' or '$gte'."""
        if isinstance(tag, cls):
            return tag
        if not isinstance(tag, str):
            raise ValueError(f"Operator must be a string, got {type(tag).__name__}")
        normalized = tag.strip().lower()
        if not normalized.startswith("$"):
            normalized = f"${normalized}"
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(op.value for op in cls)
            raise ValueError(
                f"Unknown query operator {tag!r}. Valid operators: {valid}"
            ) from None


# Operators that combine on a single field to express a range.
RANGE_OPERATORS = frozenset(
    {QueryOperator.GT, QueryOperator.GTE, QueryOperator.LT, QueryOperator.LTE}
)


class SortDirection(Enum):
    ASCENDING = 1
    DESCENDING = -1

    @classmethod
    def parse(cls, direction: Any) -> "SortDirection":
        if isinstance(direction, cls):
            return direction
        if isinstance(direction, str):
            lowered = direction.strip().lower()
            if lowered in ("asc", "ascending"):
                return cls.ASCENDING
            if lowered in ("desc", "descending"):
                return cls.DESCENDING
        elif isinstance(direction, int) and not isinstance(direction, bool):
            if direction in (1, -1):
                return cls(direction)
        raise ValueError(
            f"Invalid sort direction {direction!r}; use 1, -1, 'asc' or 'desc'."
        )


# --- Populate Directive ---
class PopulateDirective(BaseModel):
    """
    Instruction to attach related records from another collection.

    Accepts the API's camelCase keys (`referenceField`, `justOne`) as well as
    their snake_case names. Dumping with ``by_alias=True`` yields the wire form.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    field: str = Field(min_length=1)
    table: str = Field(min_length=1)
    reference_field: str = Field(alias="referenceField", min_length=1)
    select: str = ""
    where: str = ""
    sort: str = ""
    limit: Optional[int] = None
    skip: int = 0
    just_one: bool = Field(default=False, alias="justOne")


_REQUIRED_POPULATE_KEYS = ("field", "table", "referenceField")


def _populate_config_error(error: ValidationError) -> ConfigurationError:
    """Turn a pydantic ValidationError into a readable ConfigurationError."""
    missing = []
    problems = []
    for err in error.errors():
        name = str(err["loc"][0]) if err.get("loc") else "?"
        if name == "reference_field":
            name = "referenceField"
        if err["type"] in ("missing", "string_too_short") and name in _REQUIRED_POPULATE_KEYS:
            missing.append(name)
        else:
            problems.append(f"{name}: {err['msg']}")
    if missing:
        return ConfigurationError(
            "populate() requires 'field', 'table' and 'referenceField'; "
            f"missing: {', '.join(missing)}"
        )
    return ConfigurationError(f"Invalid populate directive: {'; '.join(problems)}")


# --- Query Description ---
@dataclass(frozen=True)
class QueryDescription:
    """Snapshot of everything a QueryBuilder accumulated, ready for a transport."""

    filters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    sort: Dict[str, int] = field(default_factory=dict)
    limit: Optional[int] = None
    skip: int = 0
    select: Optional[Union[str, List[str]]] = None
    populate: List[Dict[str, Any]] = field(default_factory=list)

    def to_params(self) -> Dict[str, Any]:
        """
        Encode the description as transport query parameters.

        Structured values (filters, sort, select, populate) are JSON strings
        with key order preserved; limit and skip stay integers. Unset or empty
        parts are left out entirely.
        """
        params: Dict[str, Any] = {}
        if self.filters:
            params["filters"] = json.dumps(self.filters)
        if self.sort:
            params["sort"] = json.dumps(self.sort)
        if self.limit is not None:
            params["limit"] = self.limit
        if self.skip:
            params["skip"] = self.skip
        if self.select:
            params["select"] = json.dumps(self.select)
        if self.populate:
            params["populate"] = json.dumps(self.populate)
        return params


# --- Query Builder ---
class QueryBuilder:
    """
    Accumulates a query for one collection through chained calls.

    Nothing is validated against the remote schema and nothing is sent until
    the builder is executed with `exec()` or awaited directly::

        users = await (
            QueryBuilder("users", transport)
            .gte("age", 25)
            .lte("age", 40)
            .sort({"age": -1})
            .limit(5)
        )

    A builder runs at most once. Awaiting it again, or calling `exec()`
    after awaiting it, returns the result of that single execution.
    """

    collection_name: str
    _transport: "Transport"
    _filters: Dict[str, Dict[QueryOperator, Any]]
    _sort: Dict[str, int]
    _limit: Optional[int]
    _skip: int
    _select: Optional[Union[str, List[str]]]
    _populate: List[PopulateDirective]
    _execution: Optional["asyncio.Future[List[Any]]"]

    def __init__(
        self,
        collection_name: str,
        transport: "Transport",
        logger: Optional[LoggerAdapter] = None,
    ):
        self.collection_name = collection_name
        self._transport = transport
        self._filters = {}
        self._sort = {}
        self._limit = None
        self._skip = 0
        self._select = None
        self._populate = []
        self._execution = None
        self._logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{collection_name}]"
        )

    def __repr__(self) -> str:
        return (
            f"QueryBuilder(collection={self.collection_name!r}, "
            f"description={self.build()!r})"
        )

    def _ensure_mutable(self) -> None:
        if self._execution is not None:
            raise QueryAlreadyExecutedError(
                f"Query on '{self.collection_name}' has already been executed; "
                "create a new query with Model.find()."
            )

    # --- Filters ---

    def _set_predicate(
        self, field_path: str, operator: QueryOperator, value: Any
    ) -> "QueryBuilder":
        self._ensure_mutable()
        if not isinstance(field_path, str) or not field_path:
            raise TypeError("Field name must be a non-empty string")

        context = f"'{operator.value}' value for field '{field_path}'"
        if operator in (QueryOperator.IN, QueryOperator.NIN):
            encoded = encode_scalar_sequence(value, context)
        elif operator is QueryOperator.BETWEEN:
            bounds = encode_scalar_sequence(value, context)
            if len(bounds) != 2:
                raise ValueError(
                    f"Operator '$between' requires exactly two bounds, got {len(bounds)}"
                )
            encoded = bounds
        elif operator is QueryOperator.LIKE:
            if not isinstance(value, str):
                raise TypeError("Operator '$like' requires a string pattern")
            encoded = value
        else:
            encoded = encode_scalar(value, context)

        current = self._filters.get(field_path)
        if (
            operator in RANGE_OPERATORS
            and current
            and all(op in RANGE_OPERATORS for op in current)
        ):
            merged = dict(current)
            merged[operator] = encoded
            self._filters[field_path] = merged
            self._logger.debug(
                f"Merged range predicate on '{field_path}': {operator.value} {encoded!r}"
            )
        else:
            if current:
                self._logger.debug(
                    f"Replacing predicate on '{field_path}' "
                    f"({', '.join(op.value for op in current)}) with {operator.value}"
                )
            self._filters[field_path] = {operator: encoded}
        return self

    def where(
        self,
        field_path: str,
        operator_or_value: Any,
        value: Any = _MISSING,
    ) -> "QueryBuilder":
        """
        Add a filter on a field.

        ``where(field, value)`` matches by equality. ``where(field, op, value)``
        applies any supported operator (``"gte"``, ``"$in"``,
        ``QueryOperator.LIKE``...). Which form is used depends only on how
        many arguments were given.
        """
        if value is _MISSING:
            return self.where_equals(field_path, operator_or_value)
        return self.where_op(field_path, operator_or_value, value)

    def where_equals(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.EQ, value)

    def where_op(
        self,
        field_path: str,
        operator: Union[QueryOperator, str],
        value: Any,
    ) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.parse(operator), value)

    def eq(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.EQ, value)

    def ne(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.NE, value)

    def gt(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.GT, value)

    def gte(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.GTE, value)

    def lt(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.LT, value)

    def lte(self, field_path: str, value: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.LTE, value)

    def in_(self, field_path: str, values: Iterable[Any]) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.IN, values)

    def nin(self, field_path: str, values: Iterable[Any]) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.NIN, values)

    def between(self, field_path: str, low: Any, high: Any) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.BETWEEN, [low, high])

    def like(self, field_path: str, pattern: str) -> "QueryBuilder":
        return self._set_predicate(field_path, QueryOperator.LIKE, pattern)

    # --- Sorting, pagination, projection ---

    def sort(
        self,
        spec: Union[Mapping[str, Any], Sequence[Tuple[str, Any]]],
    ) -> "QueryBuilder":
        """Replace the sort specification; key order sets sort priority."""
        self._ensure_mutable()
        if isinstance(spec, str):
            raise TypeError("sort() takes a mapping of field -> direction")
        items = spec.items() if isinstance(spec, Mapping) else spec
        new_sort: Dict[str, int] = {}
        for field_path, direction in items:
            if not isinstance(field_path, str) or not field_path:
                raise TypeError("Sort field name must be a non-empty string")
            new_sort[field_path] = SortDirection.parse(direction).value
        self._sort = new_sort
        self._logger.debug(f"Sort set to: {new_sort}")
        return self

    def limit(self, num: Optional[int]) -> "QueryBuilder":
        """Sets the query limit; None removes it."""
        self._ensure_mutable()
        if num is not None and (
            not isinstance(num, int) or isinstance(num, bool) or num <= 0
        ):
            raise ValueError("Limit must be a positive integer or None.")
        self._limit = num
        self._logger.debug(f"Query limit set to: {num}")
        return self

    def skip(self, num: int) -> "QueryBuilder":
        """Sets the number of records to skip."""
        self._ensure_mutable()
        if not isinstance(num, int) or isinstance(num, bool) or num < 0:
            raise ValueError("Skip must be a non-negative integer.")
        self._skip = num
        self._logger.debug(f"Query skip set to: {num}")
        return self

    def select(self, fields: Optional[Union[str, Sequence[str]]]) -> "QueryBuilder":
        """Replace the projection with a space-delimited string or a list of names."""
        self._ensure_mutable()
        if fields is None or isinstance(fields, str):
            self._select = fields or None
        else:
            names = list(fields)
            for name in names:
                if not isinstance(name, str):
                    raise TypeError(
                        f"select() field names must be strings, got {type(name).__name__}"
                    )
            self._select = names or None
        self._logger.debug(f"Projection set to: {self._select!r}")
        return self

    def populate(
        self,
        config: Optional[Union[PopulateDirective, Mapping[str, Any]]] = None,
        **kwargs: Any,
    ) -> "QueryBuilder":
        """
        Append a join directive.

        Args:
            config: A PopulateDirective or a mapping with its keys.
            **kwargs: Directive keys given directly (merged over `config`).

        Raises:
            ConfigurationError: If `field`, `table` or `referenceField` is
                                missing or empty, or another key is invalid.
                                Already accumulated directives are kept.
        """
        self._ensure_mutable()
        if isinstance(config, PopulateDirective) and not kwargs:
            directive = config
        else:
            if isinstance(config, PopulateDirective):
                data = config.model_dump(by_alias=True)
            elif config is None or isinstance(config, Mapping):
                data = dict(config or {})
            else:
                raise ConfigurationError(
                    "populate() takes a mapping or PopulateDirective, "
                    f"got {type(config).__name__}"
                )
            data.update(kwargs)
            try:
                directive = PopulateDirective.model_validate(data)
            except ValidationError as e:
                error = _populate_config_error(e)
                self._logger.debug(f"Rejected populate directive {data!r}: {error}")
                raise error from e
        self._populate = self._populate + [directive]
        self._logger.debug(
            f"Added populate directive #{len(self._populate)}: "
            f"{directive.field} <- {directive.table}.{directive.reference_field}"
        )
        return self

    # --- Serialization and execution ---

    def build(self) -> QueryDescription:
        """Snapshot the accumulated state as a QueryDescription."""
        filters = {
            field_path: {op.value: copy.deepcopy(val) for op, val in predicate.items()}
            for field_path, predicate in self._filters.items()
        }
        select = list(self._select) if isinstance(self._select, list) else self._select
        return QueryDescription(
            filters=filters,
            sort=dict(self._sort),
            limit=self._limit,
            skip=self._skip,
            select=select,
            populate=[d.model_dump(by_alias=True) for d in self._populate],
        )

    async def _execute(self, logger: LoggerAdapter) -> List[Any]:
        description = self.build()
        logger.debug(
            f"Querying '{self.collection_name}' with {description.to_params()}"
        )
        try:
            payload = await self._transport.query(
                self.collection_name, description, logger=logger
            )
            documents = unwrap_envelope(payload, "query records")
        except Exception as e:
            logger.error(
                f"Query on '{self.collection_name}' failed: {e}", exc_info=True
            )
            raise
        documents = documents if documents is not None else []
        logger.info(
            f"Query on '{self.collection_name}' returned {len(documents)} record(s)."
        )
        return documents

    async def exec(self, logger: Optional[LoggerAdapter] = None) -> List[Any]:
        """
        Execute the query and return the matching documents.

        The first call starts the request; later calls (and awaiting the
        builder) share its outcome instead of sending it again.
        """
        if self._execution is None:
            self._execution = asyncio.ensure_future(
                self._execute(logger or self._logger)
            )
        # A cancelled caller must not abort the request shared with other callers
        return await asyncio.shield(self._execution)

    def __await__(self) -> Generator[Any, None, List[Any]]:
        return self.exec().__await__()
