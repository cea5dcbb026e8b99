from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pymongo.asynchronous.database import AsyncDatabase
import structlog

from api.deps import get_database
from api.models import UserUpsertRequest
from libs.common.errors import ConflictError, NotFoundError, ValidationError
from libs.common.settings import Settings, get_settings
from libs.mongo.users import (
    clear_profile_image,
    get_user_by_uid,
    set_profile_image,
    update_appearance,
    update_notification_settings,
    update_profile,
    upsert_user,
)
from libs.models.documents import AppearanceUpdate, NotificationSettingsUpdate, ProfileUpdate, User

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/users/{uid}", response_model=User, summary="Get a user profile")
async def get_user_endpoint(
    uid: str,
    db: AsyncDatabase = Depends(get_database),
) -> User:
    try:
        return await get_user_by_uid(db, uid)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except Exception as e:
        logger.error("Error fetching user", uid=uid, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch user")


@router.post(
    "/users",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    summary="Create or refresh a user after sign-in",
)
async def upsert_user_endpoint(
    request: UserUpsertRequest,
    db: AsyncDatabase = Depends(get_database),
) -> User:
    """
    Create the user profile on first sign-in, or refresh its identity fields.

    The body carries the identity provider's view of the user. Settings of an
    existing user are kept.

    Raises:
        HTTPException:
            - 400 if uid or email is missing
            - 409 if the email belongs to another user
            - 500 if the database operation fails

    Example:
        ```bash
        curl -X POST http://localhost:3000/api/users \\
          -H "Content-Type: application/json" \\
          -d '{"uid": "u1", "email": "alice@example.com", "displayName": "Alice"}'
        ```
    """
    if not request.uid or not request.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID and email are required")

    try:
        return await upsert_user(
            db,
            uid=request.uid,
            email=request.email,
            display_name=request.display_name,
            photo_url=request.photo_url,
        )
    except ConflictError as e:
        logger.warning("Email already registered", uid=request.uid, email=request.email)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error("Error creating/updating user", uid=request.uid, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create/update user"
        )


@router.patch("/users/{uid}/profile", response_model=User, summary="Update profile fields")
async def update_profile_endpoint(
    uid: str,
    profile: ProfileUpdate,
    db: AsyncDatabase = Depends(get_database),
) -> User:
    try:
        return await update_profile(db, uid, profile)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except Exception as e:
        logger.error("Error updating user profile", uid=uid, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update user profile"
        )


@router.patch("/users/{uid}/notifications", response_model=User, summary="Update notification settings")
async def update_notifications_endpoint(
    uid: str,
    settings: NotificationSettingsUpdate,
    db: AsyncDatabase = Depends(get_database),
) -> User:
    try:
        return await update_notification_settings(db, uid, settings)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except Exception as e:
        logger.error("Error updating notification settings", uid=uid, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notification settings",
        )


@router.patch("/users/{uid}/appearance", response_model=User, summary="Update appearance settings")
async def update_appearance_endpoint(
    uid: str,
    settings: AppearanceUpdate,
    db: AsyncDatabase = Depends(get_database),
) -> User:
    try:
        return await update_appearance(db, uid, settings)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except Exception as e:
        logger.error("Error updating appearance settings", uid=uid, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update appearance settings",
        )


@router.post("/users/{uid}/profile/image", response_model=User, summary="Upload a profile image")
async def upload_profile_image_endpoint(
    uid: str,
    file: UploadFile = File(..., description="JPEG, PNG or GIF image"),
    db: AsyncDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Store an uploaded image as the user's photo, encoded as a data URI.

    Example:
        ```bash
        curl -X POST http://localhost:3000/api/users/u1/profile/image -F "file=@avatar.png"
        ```
    """
    # Read at most one byte past the limit.
    content = await file.read(settings.max_profile_image_bytes + 1)
    try:
        return await set_profile_image(
            db, uid, content, file.content_type, max_bytes=settings.max_profile_image_bytes
        )
    except ValidationError as e:
        logger.warning("Rejected profile image", uid=uid, content_type=file.content_type, size=len(content))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except Exception as e:
        logger.error("Error uploading profile image", uid=uid, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload profile image"
        )


@router.delete("/users/{uid}/profile/image", response_model=User, summary="Remove the profile image")
async def delete_profile_image_endpoint(
    uid: str,
    db: AsyncDatabase = Depends(get_database),
) -> User:
    try:
        return await clear_profile_image(db, uid)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except Exception as e:
        logger.error("Error removing profile image", uid=uid, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to remove profile image"
        )
