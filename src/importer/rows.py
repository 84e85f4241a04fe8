"""Row coercion and validation.

Coercion never fails: a value that cannot be interpreted is passed on as-is
so the validator can report it next to every other problem in the row.
Validation collects all field errors for all rows before giving up.
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from core.exceptions import ImportAbortedError
from schemas.importing import ImportErrorKind, ImportIssue
from schemas.user import ImportRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateRow:
    """A coerced, not yet validated row keyed by canonical field."""

    row_number: int
    values: dict[str, Any]


@dataclass(frozen=True)
class ValidatedRow:
    row_number: int
    data: ImportRow

    @property
    def email(self) -> str:
        return self.data.email


def coerce_age(value: Any) -> Any:
    """Turn a raw age cell into a number when possible.

    Blank cells become ``None``. Text that does not parse as a finite number
    is returned unchanged.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, numbers.Real):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return value
        if not math.isfinite(number):
            return value
        return int(number) if number.is_integer() else number
    return value


def coerce_row(
    raw: Mapping[str, Any],
    header_map: Mapping[str, Optional[str]],
) -> dict[str, Any]:
    """Copy mapped cells into canonical fields, dropping unmapped columns."""
    values: dict[str, Any] = {}
    for header, value in raw.items():
        canonical = header_map.get(header)
        if canonical is None:
            continue
        if canonical == "age":
            values[canonical] = coerce_age(value)
        elif isinstance(value, str):
            values[canonical] = value.strip()
        else:
            values[canonical] = value
    return values


def coerce_rows(
    rows: Iterable[tuple[int, Mapping[str, Any]]],
    header_map: Mapping[str, Optional[str]],
) -> list[CandidateRow]:
    return [
        CandidateRow(row_number=number, values=coerce_row(raw, header_map))
        for number, raw in rows
    ]


def issues_from_errors(
    errors: Sequence[Mapping[str, Any]],
    row: Optional[int] = None,
    skip_loc: Sequence[str] = (),
) -> list[ImportIssue]:
    """Convert pydantic error dicts into ImportIssues.

    ``skip_loc`` drops leading location parts such as FastAPI's ``"body"``.
    """
    issues = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in skip_loc]
        issues.append(
            ImportIssue(row=row, field=".".join(loc), message=err["msg"])
        )
    return issues


def validate_row(
    candidate: CandidateRow,
) -> tuple[Optional[ValidatedRow], list[ImportIssue]]:
    """Validate one candidate row; return the row or all of its field errors."""
    try:
        data = ImportRow.model_validate(candidate.values)
    except ValidationError as exc:
        return None, issues_from_errors(exc.errors(), row=candidate.row_number)
    return ValidatedRow(row_number=candidate.row_number, data=data), []


def validate_rows(candidates: Sequence[CandidateRow]) -> list[ValidatedRow]:
    """Validate every row of the batch.

    Raises:
        ImportAbortedError: FIELD_VALIDATION, carrying the errors of every
            invalid row.
    """
    validated: list[ValidatedRow] = []
    issues: list[ImportIssue] = []
    for candidate in candidates:
        row, row_issues = validate_row(candidate)
        if row_issues:
            issues.extend(row_issues)
        else:
            validated.append(row)

    if issues:
        bad_rows = len({issue.row for issue in issues})
        logger.info(
            "Validation failed: %d error(s) in %d of %d row(s)",
            len(issues),
            bad_rows,
            len(candidates),
        )
        raise ImportAbortedError(
            ImportErrorKind.FIELD_VALIDATION,
            f"Validation failed for {len(issues)} field(s)",
            issues,
        )
    return validated
