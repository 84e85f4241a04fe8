"""Authentication routes.

This module handles HTTP endpoints for login, logout and the current user,
plus the dependencies other routes use to require an authenticated caller
or an administrator.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

import config
from core.dependencies import UserManagerDep
from core.exceptions import AuthenticationError, UserNotFoundError
from schemas.user import LoginRequest, LoginResponse, User, UserRole
from utils.converters import user_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# Bearer header is optional; the auth cookie is the fallback
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(
            minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire, "iat": datetime.now(pytz.utc)})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
    )


def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Verify the JWT from the Authorization header or the auth cookie.

    Args:
        request: Incoming request, used to read the auth cookie.
        credentials: HTTP Bearer token credentials, if sent.

    Returns:
        Decoded token payload.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    token = credentials.credentials if credentials else request.cookies.get(
        config.AUTH_COOKIE_NAME
    )
    if not token:
        raise _unauthorized("Authentication required")
    try:
        payload = jwt.decode(
            token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM]
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")
    if payload.get("sub") is None:
        raise _unauthorized("Invalid or expired token")
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> User:
    """Get current authenticated user.

    Args:
        user_manager: Injected UserManager instance.
        token_payload: Decoded JWT token payload.

    Returns:
        Current User object.

    Raises:
        HTTPException: If the user is not found or deactivated.
    """
    try:
        user = user_manager.get_user_by_id(token_payload["sub"])
    except UserNotFoundError:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("Account is deactivated")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Allow only administrators through."""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can upload users",
        )
    return current_user


@router.post("/login", response_model=LoginResponse, summary="User login")
def login(
    req: LoginRequest,
    response: Response,
    user_manager: UserManagerDep,
) -> LoginResponse:
    """Login with email and password.

    Sets the token as an http-only cookie and also returns it in the body
    for clients that prefer the Authorization header.

    Args:
        req: Login request with email and password.
        response: Outgoing response, used to set the cookie.
        user_manager: Injected UserManager instance.

    Returns:
        LoginResponse with user information and JWT token.

    Raises:
        HTTPException: If login fails.
    """
    try:
        user = user_manager.authenticate(req.email, req.password)
    except AuthenticationError as e:
        logger.info("Failed login for %s: %s", req.email, e)
        raise _unauthorized(str(e))

    access_token = create_access_token(
        data={"sub": user.id, "email": user.email, "role": user.role.value}
    )
    response.set_cookie(
        key=config.AUTH_COOKIE_NAME,
        value=access_token,
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=config.AUTH_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("User logged in: %s", user.email)
    return LoginResponse(user=user_to_public(user), token=access_token)


@router.post("/logout", summary="User logout")
def logout(response: Response) -> dict:
    """Logout endpoint.

    Tokens are stateless, so logging out only clears the auth cookie.

    Returns:
        Dictionary with success message.
    """
    response.delete_cookie(
        key=config.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=config.AUTH_COOKIE_SECURE,
        samesite="lax",
    )
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", summary="Current user")
def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> dict:
    """Get current authenticated user information."""
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": user_to_public(current_user),
    }
