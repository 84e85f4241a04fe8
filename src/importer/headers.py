"""Map spreadsheet column names to canonical user fields.

Headers are matched by name, case-insensitively and ignoring surrounding
whitespace, against a fixed alias table that includes Turkish spellings.
Unrecognized columns are ignored.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from core.exceptions import ImportAbortedError
from schemas.importing import ImportErrorKind

logger = logging.getLogger(__name__)

CANONICAL_FIELDS = ("firstName", "lastName", "email", "age", "password")

# Password is checked per row by the validator, not here
REQUIRED_COLUMNS = ("firstName", "lastName", "email", "age")

HEADER_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "firstname": "firstName",
        "first_name": "firstName",
        "first name": "firstName",
        "ad": "firstName",
        "lastname": "lastName",
        "last_name": "lastName",
        "last name": "lastName",
        "soyad": "lastName",
        "email": "email",
        "e-mail": "email",
        "eposta": "email",
        "e-posta": "email",
        "age": "age",
        "yaş": "age",
        "yas": "age",
        "password": "password",
        "şifre": "password",
        "sifre": "password",
    }
)


def normalize_header(header: str) -> Optional[str]:
    """Return the canonical field for *header*, or ``None`` if unknown."""
    return HEADER_ALIASES.get(str(header).strip().lower())


def map_headers(headers: Iterable[str]) -> dict[str, Optional[str]]:
    """Map every original header to its canonical field (or ``None``).

    Raises:
        ImportAbortedError: STRUCTURAL, when a required column has no
            mapped header.
    """
    mapping = {header: normalize_header(header) for header in headers}
    found = {f for f in mapping.values() if f is not None}
    missing = [f for f in REQUIRED_COLUMNS if f not in found]

    ignored = [h for h, f in mapping.items() if f is None]
    if ignored:
        logger.info("Ignoring unrecognized columns: %s", ignored)

    if missing:
        raise ImportAbortedError(
            ImportErrorKind.STRUCTURAL,
            f"Missing required columns: {', '.join(missing)}. "
            f"Expected columns: {', '.join(CANONICAL_FIELDS)}",
        )
    return mapping
