"""Request serialization and response parsing."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from querylink.context import Context, ResponseExtensionsEntry
from querylink.models import GraphQLError, Request, Response
from querylink.multipart import MultipartFile


def _json_default(value: Any) -> Any:
    # Files travel as separate parts; their slot in the body is null.
    if isinstance(value, MultipartFile):
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json(body: Any) -> str:
    return json.dumps(body, default=_json_default)


def encode_query_params(body: Mapping[str, Any]) -> Dict[str, str]:
    """Encode a serialized body as URL query parameters.

    Strings pass through verbatim, every other value is JSON-encoded.
    """

    return {key: value if isinstance(value, str) else encode_json(value) for key, value in body.items()}


class RequestSerializer:
    """Turns a :class:`Request` into the JSON-shaped request body."""

    def serialize_request(self, request: Request) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "operationName": request.operation.operation_name,
            "variables": dict(request.variables),
            "query": request.operation.document,
        }
        extensions = request.context.request_extensions()
        if extensions is not None:
            body["extensions"] = dict(extensions)
        return body


class ResponseParser:
    """Turns a decoded response body into a :class:`Response`."""

    def parse_response(self, body: Mapping[str, Any]) -> Response:
        if not isinstance(body, Mapping):
            raise TypeError(f"Expected a JSON object, got {type(body).__name__}")
        data = body.get("data")
        if data is not None and not isinstance(data, Mapping):
            raise TypeError("Response 'data' must be an object")
        extensions = body.get("extensions")
        return Response(
            data=data,
            errors=self.parse_errors(body.get("errors")),
            response=dict(body),
            context=Context().with_entry(ResponseExtensionsEntry(extensions)),
        )

    def parse_errors(self, raw: Any) -> Optional[List[GraphQLError]]:
        if raw is None:
            return None
        if not isinstance(raw, list):
            raise TypeError("Response 'errors' must be a list")
        return [self.parse_error(item) for item in raw]

    def parse_error(self, raw: Any) -> GraphQLError:
        try:
            return GraphQLError.model_validate(raw)
        except ValidationError as exc:
            raise TypeError(f"Malformed error entry: {exc}") from exc


def default_response_decoder(response: httpx.Response) -> Any:
    return json.loads(response.content)


__all__ = [
    "RequestSerializer",
    "ResponseParser",
    "default_response_decoder",
    "encode_json",
    "encode_query_params",
]
