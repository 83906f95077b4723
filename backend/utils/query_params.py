"""Shared query parameter parsing utilities."""

import re

from fastapi import HTTPException

_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


def parse_id_list(ids: str | None, label: str = "ID") -> list[str] | None:
    """Parse a comma-separated ID string into a validated list.

    Args:
        ids: Comma-separated identifiers (e.g. ``"ins_3,ins_109508"``), or None.
        label: Name used in the error message.

    Returns:
        List of IDs, or None if input is empty.

    Raises:
        HTTPException: If any ID contains unexpected characters.
    """
    if not ids:
        return None
    result = []
    for value in ids.split(","):
        value = value.strip()
        if not value:
            continue
        if not _ID_RE.match(value):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid {label} format: {value}",
            )
        result.append(value)
    return result if result else None
