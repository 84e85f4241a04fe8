"""User management utilities.

This module provides user management functionality including user storage,
password hashing, listing with filters and pagination, and administrator
seeding.
"""

import logging
import math
import secrets
import string
from typing import Iterable, List, Optional, Set, Tuple

import bcrypt
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from core.exceptions import (
    AuthenticationError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from models.user import UserModel
from schemas.user import CreateUserRequest, User, UserRole
from utils.converters import model_to_user

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72

RANDOM_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password.
        rounds: Bcrypt work factor; defaults to ``config.BCRYPT_ROUNDS``.

    Returns:
        Hashed password (bcrypt hash string).
    """
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            BCRYPT_MAX_PASSWORD_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:BCRYPT_MAX_PASSWORD_BYTES]

    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash.

    Args:
        plain_password: Plain text password to verify.
        hashed_password: Bcrypt hash string to verify against.

    Returns:
        True if password matches, False otherwise.
    """
    password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.error("Password verification error: %s", e)
        return False


def generate_random_password(length: int = 12) -> str:
    """Generate a random password from letters, digits and symbols.

    Not used by the spreadsheet importer: rows without a password are
    rejected rather than given a generated one.
    """
    return "".join(secrets.choice(RANDOM_PASSWORD_ALPHABET) for _ in range(length))


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def hash_password(self, password: str) -> str:
        return hash_password(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return verify_password(plain_password, hashed_password)

    def create_user(
        self,
        req: CreateUserRequest,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Create a new user.

        Args:
            req: Validated creation request.
            role: Role to assign; defaults to USER.

        Returns:
            Created User object.

        Raises:
            UserAlreadyExistsError: If the email already exists.
        """
        email = normalize_email(req.email)
        if self.get_model_by_email(email) is not None:
            raise UserAlreadyExistsError(email)

        model = UserModel(
            first_name=req.first_name,
            last_name=req.last_name,
            email=email,
            age=req.age,
            password_hash=self.hash_password(req.password),
            role=role.value,
            is_active=True,
        )

        # Two concurrent requests may both pass the check above; the unique
        # constraint on email catches the loser.
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError(email) from e

        logger.info("Created user: %s (id=%s, role=%s)", email, model.id, model.role)
        return model_to_user(model)

    def get_model_by_email(self, email: str) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(func.lower(UserModel.email) == normalize_email(email))
            .first()
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (case-insensitive).

        Args:
            email: Email to look up.

        Returns:
            User object if found, None otherwise.
        """
        model = self.get_model_by_email(email)
        if model:
            return model_to_user(model)
        return None

    def authenticate(self, email: str, password: str) -> User:
        """Check login credentials.

        Args:
            email: Login email, any case.
            password: Plaintext password.

        Returns:
            The matching active user.

        Raises:
            AuthenticationError: If the credentials are wrong or the account
                is deactivated.
        """
        user = self.get_user_by_email(email)
        if user is None:
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError(
                "Account is deactivated. Please contact support."
            )
        if not self.verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return user

    def get_user_by_id(self, user_id: str) -> User:
        """Get a user by user ID.

        Args:
            user_id: User ID to look up.

        Returns:
            User object.

        Raises:
            UserNotFoundError: If no user has this ID.
        """
        model = self.db.query(UserModel).filter(UserModel.id == user_id).first()
        if not model:
            raise UserNotFoundError(user_id)
        return model_to_user(model)

    def find_existing_emails(self, emails: Iterable[str]) -> Set[str]:
        """Return which of *emails* are already stored, normalized to lower-case."""
        wanted = {normalize_email(e) for e in emails}
        if not wanted:
            return set()
        rows = (
            self.db.query(UserModel.email)
            .filter(func.lower(UserModel.email).in_(wanted))
            .all()
        )
        return {normalize_email(row.email) for row in rows}

    def list_users(
        self,
        page: int = 1,
        limit: int = config.DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[User], int]:
        """List users with search, age filters, sorting and pagination.

        Args:
            page: 1-based page number.
            limit: Page size.
            search: Case-insensitive substring matched against first name,
                last name and email.
            min_age: Inclusive lower age bound.
            max_age: Inclusive upper age bound.
            sort_by: One of ``config.SORTABLE_FIELDS``.
            sort_order: "asc" or "desc".

        Returns:
            Tuple of (users on the requested page, total matching users).

        Raises:
            ValueError: If sort_by is not sortable.
        """
        if sort_by not in config.SORTABLE_FIELDS:
            raise ValueError(
                f"Invalid sort field: {sort_by}. "
                f"Must be one of: {', '.join(config.SORTABLE_FIELDS)}"
            )

        query = self.db.query(UserModel)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    UserModel.first_name.ilike(pattern),
                    UserModel.last_name.ilike(pattern),
                    UserModel.email.ilike(pattern),
                )
            )
        if min_age is not None:
            query = query.filter(UserModel.age >= min_age)
        if max_age is not None:
            query = query.filter(UserModel.age <= max_age)

        total = query.count()

        column = getattr(UserModel, sort_by)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        models = (
            query.order_by(ordering, UserModel.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [model_to_user(m) for m in models], total

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    def ensure_admin(
        self,
        email: str,
        password: str,
        first_name: str = "Admin",
        last_name: str = "User",
        age: int = 30,
    ) -> Tuple[User, bool]:
        """Create the administrator account unless the email already exists.

        The seed bypasses request validation so operators can pick any
        password policy for the bootstrap account.

        Returns:
            Tuple of (administrator user, whether it was created now).
        """
        existing = self.get_model_by_email(email)
        if existing is not None:
            logger.info("Admin user already exists: %s", existing.email)
            return model_to_user(existing), False

        model = UserModel(
            first_name=first_name,
            last_name=last_name,
            email=normalize_email(email),
            age=age,
            password_hash=self.hash_password(password),
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created admin user: %s", model.email)
        return model_to_user(model), True
