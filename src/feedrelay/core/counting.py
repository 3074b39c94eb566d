"""
Record counting for feed files.

The count is the number of records the endpoint is expected to complete,
so it has to match how the endpoint reads the file: flat files carry one
header line followed by one record per line, XML feeds carry one element
per record named after the record type.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from feedrelay.core.formats import IntegrationFormat
from feedrelay.exceptions import FeedFileError


def count_records(path: Path, fmt: IntegrationFormat, record_type: str) -> int:
    """
    Count the records in a feed file.

    Args:
        path: Feed file to read
        fmt: Integration format the file is written in
        record_type: Record type, used to find record elements in XML feeds

    Returns:
        Number of records (0 for an empty file)

    Raises:
        FeedFileError: If the file cannot be read or parsed
    """
    if fmt == IntegrationFormat.XML:
        return count_xml_records(path, record_type)
    return count_flatfile_records(path)


def count_flatfile_records(path: Path) -> int:
    """Count non-blank lines after the header line."""
    lines = 0
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for line in f:
                if line.strip():
                    lines += 1
    except OSError as e:
        raise FeedFileError(str(path), f"could not be read: {e}") from e
    return max(lines - 1, 0)


def count_xml_records(path: Path, record_type: str) -> int:
    """Count elements named ``record_type`` (namespaces ignored)."""
    target = record_type.lower()
    count = 0
    try:
        if _is_blank(path):
            return 0
        for _event, element in ET.iterparse(path, events=("end",)):
            if _local_name(element.tag).lower() == target:
                count += 1
                element.clear()
    except ET.ParseError as e:
        raise FeedFileError(str(path), f"is not well-formed XML: {e}") from e
    except OSError as e:
        raise FeedFileError(str(path), f"could not be read: {e}") from e
    return count


def _is_blank(path: Path, chunk_size: int = 65536) -> bool:
    """True when the file holds nothing but whitespace."""
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            if chunk.strip():
                return False
    return True


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]
