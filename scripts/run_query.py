"""Sends a single query through the cancellation + HTTP link chain."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--query", help="Operation document text.")
    source.add_argument("--query-file", type=Path, help="File holding the operation document.")
    parser.add_argument("--variables", default="{}", help="Variables as a JSON object.")
    parser.add_argument("--operation-name", default=None)
    parser.add_argument("--mutation", action="store_true", help="Treat the operation as a mutation.")
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Extra request header; may be repeated.",
    )
    return parser.parse_args(argv)


def _parse_headers(raw: Sequence[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for item in raw:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise SystemExit(f"Invalid header {item!r}; expected NAME=VALUE")
        headers[name.strip()] = value.strip()
    return headers


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    from querylink import (  # type: ignore
        CancellationLink,
        Context,
        HttpHeadersEntry,
        HttpLink,
        Link,
        Operation,
        OperationType,
        Request,
    )

    document = args.query if args.query is not None else args.query_file.read_text(encoding="utf-8")
    variables = json.loads(args.variables)
    if not isinstance(variables, dict):
        raise SystemExit("--variables must be a JSON object")
    operation = Operation(
        document=document,
        operation_name=args.operation_name,
        operation_type=OperationType.mutation if args.mutation else OperationType.query,
    )
    request = Request(
        operation=operation,
        variables=variables,
        context=Context.from_entries([HttpHeadersEntry(_parse_headers(args.header))]),
    )

    link = Link.from_links([CancellationLink(), HttpLink.from_settings()])
    try:
        async with contextlib.aclosing(link.request(request)) as stream:
            async for response in stream:
                errors = [error.model_dump(exclude_none=True) for error in response.errors or []]
                return {"data": response.data, "errors": errors or None}
    finally:
        await link.dispose()
    return {}


def main(argv: Optional[Sequence[str]] = None) -> int:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))

    # Lazy import after adjusting sys.path
    from querylink.config import get_settings  # type: ignore
    from querylink.errors import LinkError  # type: ignore

    args = _parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        result = asyncio.run(_run(args))
    except LinkError as exc:
        logging.getLogger("querylink").error("Query failed [%s]: %s", exc.code, exc)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
