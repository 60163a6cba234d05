"""Request/response models flowing through a link chain."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from querylink.context import Context


class OperationType(str, Enum):
    query = "query"
    mutation = "mutation"
    subscription = "subscription"


@dataclass(frozen=True)
class Operation:
    """A parsed operation as seen by the links.

    Parsing is done upstream; the links only need the document text, the
    selected operation name and whether the operation is read-only.
    """

    document: str
    operation_name: Optional[str] = None
    operation_type: OperationType = OperationType.query

    @property
    def is_query(self) -> bool:
        return self.operation_type is OperationType.query


@dataclass(frozen=True)
class Request:
    operation: Operation
    variables: Mapping[str, Any] = field(default_factory=dict)
    context: Context = field(default_factory=Context)

    @property
    def is_query(self) -> bool:
        return self.operation.is_query

    def with_context(self, context: Context) -> "Request":
        return replace(self, context=context)

    def update_context(self, entry: Any) -> "Request":
        return replace(self, context=self.context.with_entry(entry))


class ErrorLocation(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    line: int
    column: int


class GraphQLError(BaseModel):
    """Structured error returned by the query service."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    message: str
    locations: Optional[List[ErrorLocation]] = None
    path: Optional[List[Union[str, int]]] = None
    extensions: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class Response:
    """Classified response produced once per HTTP round trip."""

    data: Optional[Mapping[str, Any]] = None
    errors: Optional[List[GraphQLError]] = None
    response: Mapping[str, Any] = field(default_factory=dict)
    context: Context = field(default_factory=Context)

    def with_context(self, context: Context) -> "Response":
        return replace(self, context=context)


__all__ = [
    "OperationType",
    "Operation",
    "Request",
    "ErrorLocation",
    "GraphQLError",
    "Response",
]
