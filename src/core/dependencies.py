"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from importer import UserImporter
from utils import user_manager


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_user_importer(db: Session = Depends(get_db)) -> UserImporter:
    """Get UserImporter instance with request-scoped DB session."""
    return UserImporter(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
UserImporterDep = Annotated[UserImporter, Depends(get_user_importer)]
