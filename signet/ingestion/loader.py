"""
Document loading entry point.

Accepts raw JSON text, bytes, a file path or an already-parsed mapping,
detects whether the document is canonical or loose, and dispatches to
the matching importer.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple, Union
import json

from ..contracts.base import ErrorCode, IngestionError
from ..store.graph_store import GraphStore
from .hydrator import Hydrator, HydratorConfig
from .report import HydrationReport
from .serialization import import_canonical, is_canonical

RawDocument = Union[str, bytes, Mapping[str, Any]]


def parse_document(raw: RawDocument) -> Mapping[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IngestionError(f"Document is not UTF-8: {exc}", ErrorCode.MALFORMED_DOCUMENT) from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise IngestionError(f"Invalid JSON: {exc}", ErrorCode.MALFORMED_DOCUMENT) from exc
    if not isinstance(raw, Mapping):
        raise IngestionError(
            f"Document must be a JSON object, got {type(raw).__name__}",
            ErrorCode.MALFORMED_DOCUMENT,
        )
    return raw


def load_document(
    raw: RawDocument,
    config: Optional[HydratorConfig] = None,
    clock: Optional[Callable[[], int]] = None,
) -> Tuple[GraphStore, HydrationReport]:
    """Parse and import a document of either shape."""
    document = parse_document(raw)
    if is_canonical(document):
        return import_canonical(document)
    return Hydrator(config, clock).hydrate(document)


def load_file(
    path: Union[str, Path],
    config: Optional[HydratorConfig] = None,
    clock: Optional[Callable[[], int]] = None,
) -> Tuple[GraphStore, HydrationReport]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise IngestionError(f"Cannot read {path}: {exc}", ErrorCode.MALFORMED_DOCUMENT) from exc
    return load_document(text, config, clock)
