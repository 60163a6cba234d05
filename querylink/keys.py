"""Deterministic request identity used for duplicate detection."""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping, Set
from functools import lru_cache
from typing import Any

from pydantic import BaseModel

from querylink.models import Operation, Request
from querylink.multipart import MultipartFile

_TOKEN_RE = re.compile(
    r'"""[\s\S]*?"""'
    r'|"(?:\\.|[^"\\\n])*"'
    r"|#[^\n\r]*"
    r"|[\s,\ufeff]+"
    r"|\.\.\."
    r"|[_A-Za-z][_0-9A-Za-z]*"
    r"|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
    r"|."
)


def normalize_document(document: str) -> str:
    """Collapse whitespace, commas and comments outside string literals."""

    tokens = []
    for match in _TOKEN_RE.finditer(document):
        token = match.group(0)
        if token.startswith("#") or not token.strip(" \t\r\n,\ufeff"):
            continue
        tokens.append(token)
    return " ".join(tokens)


@lru_cache(maxsize=512)
def operation_fingerprint(operation: Operation) -> str:
    material = "\n".join(
        (
            operation.operation_type.value,
            operation.operation_name or "",
            normalize_document(operation.document),
        )
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def _canonical_key(key: Any) -> str:
    # Non-string keys are tagged with their type so 1 and "1" stay distinct.
    if isinstance(key, str):
        return key
    return f"${type(key).__qualname__}:{key!r}"


def _canonicalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {_canonical_key(k): _canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonicalize(item) for item in value]
    return value


def _canonical_default(value: Any) -> Any:
    if isinstance(value, MultipartFile):
        return {"$file": f"{id(value):x}:{value.filename or ''}"}
    if isinstance(value, BaseModel):
        return _canonicalize(value.model_dump(mode="json"))
    if isinstance(value, Set):
        return [_canonicalize(item) for item in sorted(value, key=repr)]
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": bytes(value).hex()}
    return {"$repr": f"{type(value).__qualname__}:{value!r}"}


def canonical_variables(variables: Mapping[str, Any]) -> str:
    return json.dumps(
        _canonicalize(variables),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_canonical_default,
    )


def request_key(request: Request) -> str:
    """Return ``"<operation fingerprint>:<variables digest>"``.

    Equal operations with equal variables map to the same key whatever the
    insertion order of the variables mapping.
    """

    digest = hashlib.sha256(canonical_variables(request.variables).encode("utf-8")).hexdigest()
    return f"{operation_fingerprint(request.operation)}:{digest}"


__all__ = ["normalize_document", "operation_fingerprint", "canonical_variables", "request_key"]
