"""Import orchestrator.

Runs the stages in a fixed order and stops at the first one that reports any
error:

    ParsingHeaders → CoercingRows → ValidatingRows →
    CheckingIntraFileDuplicates → CheckingStoreDuplicates → Committing → Done

A failing stage hands over its complete error set; errors from different
stages are never mixed, and nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from core.exceptions import ImportAbortedError
from importer.committer import BatchCommitter
from importer.duplicates import check_intra_file_duplicates, check_store_duplicates
from importer.headers import map_headers
from importer.rows import coerce_rows, validate_rows
from importer.workbook import read_first_sheet
from schemas.importing import ImportResult, ImportStage
from utils.converters import model_to_public
from utils.user_manager import UserManager, hash_password

logger = logging.getLogger(__name__)


class UserImporter:
    """Turn an uploaded workbook into new users, all or nothing."""

    def __init__(
        self,
        db: Session,
        hasher: Callable[[str], str] = hash_password,
    ) -> None:
        self.db = db
        self.user_manager = UserManager(db)
        self.committer = BatchCommitter(db, hasher=hasher)
        self.stage: Optional[ImportStage] = None

    def run(self, content: bytes, filename: str = "<upload>") -> ImportResult:
        """Import *content* and return the terminal outcome.

        Never raises for problems in the file or batch; those come back as a
        failed ImportResult.
        """
        logger.info("Import of %s started (%d bytes)", filename, len(content))
        try:
            result = ImportResult.done(self._run_stages(content))
        except ImportAbortedError as exc:
            logger.warning(
                "Import of %s failed at %s (%s): %s [%d issue(s)]",
                filename,
                self.stage.value,
                exc.kind.value,
                exc.message,
                len(exc.issues),
            )
            return ImportResult.failed(
                stage=self.stage,
                kind=exc.kind,
                message=exc.message,
                errors=exc.issues,
            )

        logger.info("Import of %s finished: %d user(s) created", filename, result.imported)
        return result

    def _run_stages(self, content: bytes):
        self.stage = ImportStage.PARSING_HEADERS
        sheet = read_first_sheet(content)
        header_map = map_headers(sheet.headers)

        self.stage = ImportStage.COERCING_ROWS
        candidates = coerce_rows(sheet.rows, header_map)

        self.stage = ImportStage.VALIDATING_ROWS
        rows = validate_rows(candidates)

        self.stage = ImportStage.CHECKING_INTRA_FILE_DUPLICATES
        check_intra_file_duplicates(rows)

        self.stage = ImportStage.CHECKING_STORE_DUPLICATES
        check_store_duplicates(rows, self.user_manager)

        self.stage = ImportStage.COMMITTING
        created = self.committer.commit(rows)

        self.stage = ImportStage.DONE
        return [model_to_public(model) for model in created]
