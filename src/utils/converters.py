"""Conversions between SQLAlchemy models and pydantic schemas."""

from models.user import UserModel
from schemas.user import User, UserPublic


def model_to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        first_name=model.first_name,
        last_name=model.last_name,
        email=model.email,
        age=model.age,
        password_hash=model.password_hash,
        role=model.role,
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def user_to_public(user: User) -> UserPublic:
    user_dict = user.model_dump()
    user_dict.pop("password_hash", None)
    return UserPublic(**user_dict)


def model_to_public(model: UserModel) -> UserPublic:
    return user_to_public(model_to_user(model))
