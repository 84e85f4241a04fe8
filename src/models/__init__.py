"""Database models. Importing this package registers every table."""

from .user import UserModel  # noqa: F401
