"""
Integration formats and their record/operation allow-lists.

Each format accepts a closed set of record types and operations. The
global format is checked once per run; feed entries are checked per job.
"""

from __future__ import annotations

from enum import StrEnum

from feedrelay.exceptions import ConfigurationError


class IntegrationFormat(StrEnum):
    """Feed file formats understood by the integration endpoint."""

    FLATFILE = "flatfile"
    XML = "xml"

    @classmethod
    def parse(cls, value: str | None) -> "IntegrationFormat":
        """
        Parse a configured format name, ignoring case and surrounding blanks.

        Raises:
            ConfigurationError: If the name is not a known format
        """
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigurationError(
            f"Invalid integration format '{value}'. Allowed: {allowed}",
            details={"format": value},
        )


FLATFILE_RECORD_TYPES = frozenset(
    {
        "person",
        "course",
        "membership",
        "organization",
        "organizationmembership",
        "term",
        "courseassociation",
        "organizationassociation",
        "userassociation",
        "coursecategory",
        "coursecategorymembership",
        "organizationcategory",
        "organizationcategorymembership",
        "secondaryinstrole",
    }
)

FLATFILE_OPERATIONS = frozenset(
    {
        "store",
        "refresh",
        "refreshlegacy",
        "delete",
        "completerefresh",
        "completerefreshbydatasource",
    }
)

XML_RECORD_TYPES = frozenset({"person", "group", "membership"})

XML_OPERATIONS = frozenset({"store", "refresh", "delete"})

ALLOWED_TYPES: dict[IntegrationFormat, tuple[frozenset[str], frozenset[str]]] = {
    IntegrationFormat.FLATFILE: (FLATFILE_RECORD_TYPES, FLATFILE_OPERATIONS),
    IntegrationFormat.XML: (XML_RECORD_TYPES, XML_OPERATIONS),
}


def validate_feed_types(fmt: IntegrationFormat, record_type: str, operation: str) -> list[str]:
    """
    Check a feed's record type and operation against the format's allow-lists.

    Args:
        fmt: Active integration format
        record_type: Configured record type
        operation: Configured operation

    Returns:
        One message per invalid field; empty when both are allowed
    """
    record_types, operations = ALLOWED_TYPES[fmt]
    errors: list[str] = []
    if record_type.lower() not in record_types:
        errors.append(f"record type '{record_type}' is not valid for {fmt.value} feeds")
    if operation.lower() not in operations:
        errors.append(f"operation '{operation}' is not valid for {fmt.value} {record_type} feeds")
    return errors
