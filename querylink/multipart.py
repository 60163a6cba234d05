"""Binary payload handles and the multipart request encoding.

Files may appear anywhere inside the variables of a request. Before a request
is sent the serialized body is walked and every :class:`MultipartFile` leaf is
recorded under its dotted path (``input.files.0.file``). The wire format is
the usual GraphQL multipart convention:

* ``operations`` - the JSON body with every file replaced by ``null``
* ``map`` - ``{"0": ["input.files.0.file"], "1": [...]}``
* one part per file, named by its zero-based index
"""

from __future__ import annotations

import json
import mimetypes
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union

FileContent = Union[bytes, BinaryIO]
FilePart = Tuple[str, Tuple[str, FileContent, str]]


@dataclass(eq=False)
class MultipartFile:
    """Handle for a binary payload placed inside request variables.

    Handles compare by identity so that two uploads with equal bytes stay
    distinct parts.
    """

    content: FileContent
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], *, content_type: Optional[str] = None) -> "MultipartFile":
        resolved = Path(path)
        guessed = content_type or mimetypes.guess_type(resolved.name)[0]
        return cls(content=resolved.read_bytes(), filename=resolved.name, content_type=guessed)

    @property
    def length(self) -> Optional[int]:
        if isinstance(self.content, (bytes, bytearray)):
            return len(self.content)
        return None

    def to_part(self, name: str) -> FilePart:
        filename = self.filename or name
        content_type = self.content_type or "application/octet-stream"
        return name, (filename, self.content, content_type)


def extract_file_map(node: Any, path: Tuple[str, ...] = ()) -> Dict[str, MultipartFile]:
    """Return ``{dotted path: file}`` for every file leaf reachable from ``node``."""

    if isinstance(node, MultipartFile):
        return {".".join(path): node}
    found: Dict[str, MultipartFile] = {}
    if isinstance(node, Mapping):
        for key, value in node.items():
            found.update(extract_file_map(value, path + (str(key),)))
    elif isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray)):
        for index, value in enumerate(node):
            found.update(extract_file_map(value, path + (str(index),)))
    return found


def build_file_mapping(file_map: Mapping[str, MultipartFile]) -> Dict[str, List[str]]:
    return {str(index): [path] for index, path in enumerate(file_map)}


def build_multipart(
    operations: str,
    file_map: Mapping[str, MultipartFile],
) -> Tuple[Dict[str, str], List[FilePart]]:
    """Return the form fields and file parts of a multipart request.

    ``operations`` is the already-encoded JSON body with files nulled out.
    """

    fields = {
        "operations": operations,
        "map": json.dumps(build_file_mapping(file_map)),
    }
    parts = [file.to_part(str(index)) for index, file in enumerate(file_map.values())]
    return fields, parts


__all__ = [
    "MultipartFile",
    "extract_file_map",
    "build_file_mapping",
    "build_multipart",
]
