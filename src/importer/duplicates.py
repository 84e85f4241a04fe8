"""Duplicate email detection, within the upload and against the store."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from core.exceptions import ImportAbortedError
from schemas.importing import ImportErrorKind, ImportIssue
from importer.rows import ValidatedRow
from utils.user_manager import UserManager, normalize_email

logger = logging.getLogger(__name__)


def find_duplicate_emails(rows: Sequence[ValidatedRow]) -> list[ImportIssue]:
    """Return one issue per row whose normalized email appears more than once.

    Each message lists every row sharing that email.
    """
    rows_by_email: dict[str, list[int]] = defaultdict(list)
    for row in rows:
        rows_by_email[normalize_email(row.email)].append(row.row_number)

    issues = []
    for email, numbers in rows_by_email.items():
        if len(numbers) < 2:
            continue
        listed = ", ".join(str(n) for n in numbers)
        for number in numbers:
            issues.append(
                ImportIssue(
                    row=number,
                    field="email",
                    message=f'Duplicate email "{email}" found in rows: {listed}',
                )
            )
    return issues


def check_intra_file_duplicates(rows: Sequence[ValidatedRow]) -> None:
    """Raise DUPLICATE when the upload repeats an email."""
    issues = find_duplicate_emails(rows)
    if issues:
        logger.info("Found %d row(s) with duplicate emails in upload", len(issues))
        raise ImportAbortedError(
            ImportErrorKind.DUPLICATE,
            "Duplicate emails found within the Excel file",
            issues,
        )


def find_store_conflicts(
    rows: Sequence[ValidatedRow],
    user_manager: UserManager,
) -> list[ImportIssue]:
    """Return one issue per row whose email is already stored."""
    existing = user_manager.find_existing_emails(row.email for row in rows)
    return [
        ImportIssue(
            row=row.row_number,
            field="email",
            message=f'Email "{row.email}" already exists in the database',
        )
        for row in rows
        if normalize_email(row.email) in existing
    ]


def check_store_duplicates(
    rows: Sequence[ValidatedRow],
    user_manager: UserManager,
) -> None:
    """Raise CONFLICT when any email of the batch is already stored."""
    issues = find_store_conflicts(rows, user_manager)
    if issues:
        logger.info("%d row(s) collide with existing users", len(issues))
        raise ImportAbortedError(
            ImportErrorKind.CONFLICT,
            "Some users already exist in the database",
            issues,
        )
