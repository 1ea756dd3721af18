"""
OPC packaging: part dict <-> ZIP bytes, entirely in memory.
"""

import zipfile
from io import BytesIO
from typing import Dict, Mapping

import structlog

from redliner.errors import SerializationError

logger = structlog.get_logger(__name__)

CONTENT_TYPES_NAME = "[Content_Types].xml"


def _check_part_name(name: str):
    if not isinstance(name, str) or not name:
        raise SerializationError(f"Invalid part name: {name!r}")
    if name.startswith("/") or name.endswith("/") or "\\" in name:
        raise SerializationError(f"Invalid part name: {name!r}")
    if any(segment in ("", ".", "..") for segment in name.split("/")):
        raise SerializationError(f"Invalid part name: {name!r}")


def pack(parts: Mapping[str, bytes]) -> bytes:
    """
    Writes every part as its own deflated ZIP entry.
    [Content_Types].xml goes first; other parts keep the given order.
    """
    if CONTENT_TYPES_NAME not in parts:
        raise SerializationError(f"Package is missing {CONTENT_TYPES_NAME}")

    ordered = [CONTENT_TYPES_NAME] + [name for name in parts if name != CONTENT_TYPES_NAME]
    for name in ordered:
        _check_part_name(name)

    buffer = BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in ordered:
                zf.writestr(name, parts[name])
    except (TypeError, ValueError, zipfile.BadZipFile) as e:
        raise SerializationError(f"Could not write package: {e}") from e

    data = buffer.getvalue()
    logger.debug("Packed document", parts=len(ordered), size=len(data))
    return data


def unpack(data: bytes) -> Dict[str, bytes]:
    try:
        with zipfile.ZipFile(BytesIO(data)) as zf:
            return {info.filename: zf.read(info) for info in zf.infolist() if not info.is_dir()}
    except zipfile.BadZipFile as e:
        raise SerializationError(f"Not a valid package: {e}") from e
