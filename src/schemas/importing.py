"""Spreadsheet import schema definitions.

This module defines the structured error channel and the terminal result of
a bulk user import.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.user import UserPublic


class ImportErrorKind(str, Enum):
    """Category of an import failure."""

    STRUCTURAL = "structural"  # unreadable file, no data, missing columns
    FIELD_VALIDATION = "field_validation"
    DUPLICATE = "duplicate"  # repeated email inside the uploaded file
    CONFLICT = "conflict"  # email already stored, at pre-check or commit time
    COMMIT = "commit"


class ImportStage(str, Enum):
    """Stages of the import orchestrator, in execution order."""

    PARSING_HEADERS = "parsing_headers"
    COERCING_ROWS = "coercing_rows"
    VALIDATING_ROWS = "validating_rows"
    CHECKING_INTRA_FILE_DUPLICATES = "checking_intra_file_duplicates"
    CHECKING_STORE_DUPLICATES = "checking_store_duplicates"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


class ImportIssue(BaseModel):
    """A single problem found while importing.

    ``row`` is the 1-based sheet row (the header is row 1); it is ``None`` for
    batch-level problems.
    """

    model_config = ConfigDict(frozen=True)

    row: Optional[int] = None
    field: str
    message: str


class ImportResult(BaseModel):
    """Terminal outcome of one import attempt: Done or Failed, never partial."""

    success: bool
    stage: ImportStage = Field(
        description="DONE on success, otherwise the stage that failed."
    )
    message: str
    kind: Optional[ImportErrorKind] = None
    imported: int = 0
    users: List[UserPublic] = Field(default_factory=list)
    errors: List[ImportIssue] = Field(default_factory=list)

    @classmethod
    def done(cls, users: List[UserPublic]) -> "ImportResult":
        return cls(
            success=True,
            stage=ImportStage.DONE,
            message=f"Successfully imported {len(users)} users",
            imported=len(users),
            users=users,
        )

    @classmethod
    def failed(
        cls,
        stage: ImportStage,
        kind: ImportErrorKind,
        message: str,
        errors: List[ImportIssue],
    ) -> "ImportResult":
        return cls(
            success=False,
            stage=stage,
            kind=kind,
            message=message,
            errors=errors,
        )
