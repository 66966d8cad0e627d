"""
Manifest Parser — Turn one Package.resolved into DependencyRecords.

The top-level "version" field selects the schema. Unknown fields are
ignored so newer SwiftPM releases that add keys keep parsing.

## Usage

    from spm_swap.resolved.parser import parse_manifest_file

    for record in parse_manifest_file(path):
        print(record.name, record.repository_url, record.revision)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import ValidationError

from ..errors import MalformedManifestError, UnsupportedVersionError
from ..models.records import DependencyRecord
from .models import ResolvedV1, ResolvedV2

logger = logging.getLogger(__name__)

SCHEMAS: Dict[int, Type[Union[ResolvedV1, ResolvedV2]]] = {
    1: ResolvedV1,
    2: ResolvedV2,
    3: ResolvedV2,
}


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return "; ".join(parts)


def parse_manifest(text: str, source: Optional[Path] = None) -> List[DependencyRecord]:
    """
    Parse manifest contents into records, in declaration order.

    Args:
        text: Raw Package.resolved contents
        source: Path the text was read from (for error messages only)

    Raises:
        MalformedManifestError: Invalid JSON or schema violation
        UnsupportedVersionError: Missing or unknown format version
    """
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedManifestError(f"Invalid JSON: {e}", path=source) from e

    if not isinstance(data, dict):
        raise MalformedManifestError("Top level must be a JSON object", path=source)

    version = data.get("version")
    # bool is an int subclass; true is not a version
    if not isinstance(version, int) or isinstance(version, bool) or version not in SCHEMAS:
        raise UnsupportedVersionError(version, path=source)

    schema = SCHEMAS[version]
    try:
        resolved = schema.model_validate(data)
    except ValidationError as e:
        raise MalformedManifestError(_describe(e), path=source) from e

    records = resolved.records()
    logger.debug(
        f"[resolved] {source or '<text>'}: version {version}, {len(records)} pin(s)",
        extra={"manifest": str(source) if source else None},
    )
    return records


def parse_manifest_file(path: Path) -> List[DependencyRecord]:
    """Read and parse a single Package.resolved file."""
    logger.info(f"[resolved] Parsing {path}", extra={"manifest": str(path)})
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedManifestError(f"Cannot read manifest: {e}", path=path) from e
    return parse_manifest(text, source=path)
