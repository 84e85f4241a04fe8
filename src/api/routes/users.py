"""User management routes."""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

import config
from api.routes.auth import get_current_user, require_admin
from core.dependencies import UserImporterDep, UserManagerDep
from core.exceptions import UserAlreadyExistsError, UserNotFoundError
from schemas.importing import ImportErrorKind, ImportResult
from schemas.user import CreateUserRequest, Pagination, User, UserListData
from utils.converters import user_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

IMPORT_FAILURE_STATUS = {
    ImportErrorKind.STRUCTURAL: status.HTTP_400_BAD_REQUEST,
    ImportErrorKind.FIELD_VALIDATION: status.HTTP_400_BAD_REQUEST,
    ImportErrorKind.DUPLICATE: status.HTTP_400_BAD_REQUEST,
    ImportErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ImportErrorKind.COMMIT: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _is_spreadsheet(file: UploadFile) -> bool:
    if file.content_type in config.SPREADSHEET_CONTENT_TYPES:
        return True
    suffix = Path(file.filename or "").suffix.lower()
    return suffix in config.SPREADSHEET_EXTENSIONS


def _import_response(result: ImportResult) -> JSONResponse:
    if result.success:
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={
                "success": True,
                "message": result.message,
                "data": {
                    "imported": result.imported,
                    "users": [u.model_dump(mode="json") for u in result.users],
                },
            },
        )
    return JSONResponse(
        status_code=IMPORT_FAILURE_STATUS[result.kind],
        content={
            "success": False,
            "message": result.message,
            "kind": result.kind.value,
            "stage": result.stage.value,
            "errors": [issue.model_dump() for issue in result.errors],
        },
    )


@router.get("", summary="List users")
def list_users(
    user_manager: UserManagerDep,
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    search: Optional[str] = None,
    min_age: Optional[int] = Query(None, ge=0),
    max_age: Optional[int] = Query(None, ge=0),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
) -> dict:
    """List users with search, age filters, sorting and pagination."""
    try:
        users, total = user_manager.list_users(
            page=page,
            limit=limit,
            search=search,
            min_age=min_age,
            max_age=max_age,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )

    data = UserListData(
        users=[user_to_public(u) for u in users],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=user_manager.total_pages(total, limit),
        ),
    )
    return {"success": True, "message": "Users retrieved successfully", "data": data}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a user")
def create_user(
    req: CreateUserRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Create a single user.

    Args:
        req: Validated user fields.
        user_manager: Injected UserManager instance.
        current_user: Current authenticated user.

    Returns:
        Envelope with the created user.

    Raises:
        HTTPException: 409 if the email is already taken.
    """
    try:
        user = user_manager.create_user(req)
    except UserAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )
    logger.info("User %s created by %s", user.email, current_user.email)
    return {
        "success": True,
        "message": "User created successfully",
        "data": user_to_public(user),
    }


@router.post("/upload", summary="Bulk import users from a spreadsheet")
async def upload_users(
    importer: UserImporterDep,
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_admin),
) -> JSONResponse:
    """Import users from the first sheet of an .xlsx or .xls upload.

    The whole file is imported or nothing is: any validation error,
    duplicate or conflicting email rejects the batch with the complete
    list of problems.
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )
    if not _is_spreadsheet(file):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Please upload an Excel file (.xlsx or .xls)",
        )

    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )
    if len(content) > config.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {config.MAX_UPLOAD_SIZE} bytes",
        )

    logger.info("Spreadsheet upload %s by %s", file.filename, current_user.email)
    try:
        # Parsing, bcrypt and the commit are blocking
        result = await run_in_threadpool(
            importer.run, content, filename=file.filename or "<upload>"
        )
    except Exception:
        logger.exception("Excel upload error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process Excel file",
        )
    return _import_response(result)


@router.get("/{user_id}", summary="Get a user")
def get_user(
    user_id: str,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Get a single user by ID."""
    try:
        user = user_manager.get_user_by_id(user_id)
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": user_to_public(user),
    }
