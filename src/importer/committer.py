"""Hash credentials, then insert the whole import batch atomically.

Hashing happens before the transaction is opened so the slow part does not
hold database locks. Inside the transaction every email is checked again
right before its insert; a hit means another writer got there after the
pre-commit check, and the whole batch is rolled back.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import ImportAbortedError
from importer.rows import ValidatedRow
from models.user import UserModel
from schemas.importing import ImportErrorKind, ImportIssue
from schemas.user import UserRole
from utils.user_manager import hash_password, normalize_email

logger = logging.getLogger(__name__)


class BatchCommitter:
    """Persist a validated, duplicate-free batch or nothing at all."""

    def __init__(
        self,
        db: Session,
        hasher: Callable[[str], str] = hash_password,
    ) -> None:
        self.db = db
        self._hasher = hasher

    def commit(self, rows: Sequence[ValidatedRow]) -> list[UserModel]:
        """Insert *rows* in file order inside one transaction.

        Returns:
            The created models, refreshed with store-assigned ids and timestamps.

        Raises:
            ImportAbortedError: CONFLICT when an email appeared since the
                store check or the unique constraint fires. COMMIT on any
                other database error. Nothing from the batch is persisted.
        """
        hashed = [(row, self._hasher(row.data.password)) for row in rows]
        logger.info("Hashed %d password(s), opening transaction", len(hashed))

        created: list[UserModel] = []
        try:
            for row, password_hash in hashed:
                email = normalize_email(row.email)
                if self._email_taken(email):
                    raise ImportAbortedError(
                        ImportErrorKind.CONFLICT,
                        f"Email {email} was inserted by another process",
                        [
                            ImportIssue(
                                row=row.row_number,
                                field="email",
                                message=f"Email {email} was inserted by another process",
                            )
                        ],
                    )
                model = UserModel(
                    first_name=row.data.first_name,
                    last_name=row.data.last_name,
                    email=email,
                    age=row.data.age,
                    password_hash=password_hash,
                    role=UserRole.USER.value,
                    is_active=True,
                )
                self.db.add(model)
                self.db.flush()
                created.append(model)
            self.db.commit()
        except ImportAbortedError:
            self.db.rollback()
            logger.warning("Import transaction rolled back: concurrent insert detected")
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Import transaction rolled back: %s", exc.orig)
            raise ImportAbortedError(
                ImportErrorKind.CONFLICT,
                "A user with one of the provided emails already exists",
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Import transaction failed")
            raise ImportAbortedError(
                ImportErrorKind.COMMIT,
                "Failed to store imported users",
            ) from exc

        for model in created:
            self.db.refresh(model)
        logger.info("Committed %d new user(s)", len(created))
        return created

    def _email_taken(self, email: str) -> bool:
        return (
            self.db.query(UserModel.id)
            .filter(func.lower(UserModel.email) == email)
            .first()
            is not None
        )
