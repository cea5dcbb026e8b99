"""Functions for managing user profiles in MongoDB."""

import base64
from datetime import datetime, UTC

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from libs.common.errors import ConflictError, NotFoundError, ValidationError
from libs.models.documents import (
    AppearanceSettings,
    AppearanceUpdate,
    NotificationSettings,
    NotificationSettingsUpdate,
    ProfileUpdate,
    User,
)
from libs.mongo.client import USERS_COLLECTION

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})

logger = structlog.get_logger(__name__)


def default_display_name(email: str) -> str:
    return email.split("@")[0]


async def get_user_by_uid(db: AsyncDatabase, uid: str) -> User:
    """Retrieves a user profile document.

    Args:
        db: The asynchronous MongoDB database.
        uid: The user's unique identifier.

    Returns:
        The stored User.

    Raises:
        NotFoundError: If the profile does not exist.
    """
    doc = await db[USERS_COLLECTION].find_one({"uid": uid})
    if not doc:
        raise NotFoundError(f"User {uid} not found")
    return User.from_document(doc)


async def upsert_user(
    db: AsyncDatabase,
    uid: str,
    email: str,
    display_name: str | None = None,
    photo_url: str | None = None,
) -> User:
    """Creates the user on first sign-in, merges supplied fields afterwards.

    New users get default notification and appearance settings, and a
    display name and photo URL defaulted when not supplied. Existing users
    keep every field that is not supplied, including their settings and
    ``createdAt``.

    Raises:
        ConflictError: If another user already owns ``email``.
    """
    now = datetime.now(UTC)
    fields = {"email": email, "updatedAt": now}
    defaults = {
        "uid": uid,
        "notificationSettings": NotificationSettings().to_document(),
        "appearance": AppearanceSettings().to_document(),
        "createdAt": now,
    }
    if display_name:
        fields["displayName"] = display_name
    else:
        defaults["displayName"] = default_display_name(email)
    if photo_url:
        fields["photoURL"] = photo_url
    else:
        defaults["photoURL"] = ""

    try:
        doc = await db[USERS_COLLECTION].find_one_and_update(
            {"uid": uid},
            {"$set": fields, "$setOnInsert": defaults},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError as e:
        if "email" not in (e.details or {}).get("keyPattern", {}):
            raise
        raise ConflictError(f"Email {email} is already registered to another user") from e

    logger.info("User upserted", uid=uid)
    return User.from_document(doc)


async def _patch_user(db: AsyncDatabase, uid: str, fields: dict) -> User:
    doc = await db[USERS_COLLECTION].find_one_and_update(
        {"uid": uid},
        {"$set": {**fields, "updatedAt": datetime.now(UTC)}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError(f"User {uid} not found")
    return User.from_document(doc)


async def update_profile(db: AsyncDatabase, uid: str, profile: ProfileUpdate) -> User:
    """Updates the supplied profile fields (display name, photo URL)."""
    fields = profile.to_document(exclude_unset=True, exclude_none=True)
    user = await _patch_user(db, uid, fields)
    logger.info("User profile updated", uid=uid, fields=sorted(fields))
    return user


async def update_notification_settings(
    db: AsyncDatabase, uid: str, settings: NotificationSettingsUpdate
) -> User:
    """Updates the supplied notification flags, leaving the others untouched."""
    fields = {
        f"notificationSettings.{key}": value
        for key, value in settings.to_document(exclude_unset=True, exclude_none=True).items()
    }
    return await _patch_user(db, uid, fields)


async def update_appearance(db: AsyncDatabase, uid: str, settings: AppearanceUpdate) -> User:
    """Updates the supplied appearance flags, leaving the others untouched."""
    fields = {
        f"appearance.{key}": value
        for key, value in settings.to_document(exclude_unset=True, exclude_none=True).items()
    }
    return await _patch_user(db, uid, fields)


def encode_profile_image(
    content: bytes, content_type: str | None, max_bytes: int
) -> str:
    """Validates an uploaded image and returns it as a data URI.

    Raises:
        ValidationError: On an unsupported type, an empty file or a file over ``max_bytes``.
    """
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only JPEG, PNG and GIF images are allowed")
    if not content:
        raise ValidationError("Image file is empty")
    if len(content) > max_bytes:
        raise ValidationError(f"Image must be under {max_bytes / (1024 * 1024):g}MB")
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


async def set_profile_image(
    db: AsyncDatabase,
    uid: str,
    content: bytes,
    content_type: str | None,
    max_bytes: int,
) -> User:
    """Stores an uploaded image as the user's ``photoURL``."""
    photo_url = encode_profile_image(content, content_type, max_bytes)
    user = await _patch_user(db, uid, {"photoURL": photo_url})
    logger.info("Profile image updated", uid=uid, content_type=content_type, size=len(content))
    return user


async def clear_profile_image(db: AsyncDatabase, uid: str) -> User:
    """Removes the user's profile image."""
    user = await _patch_user(db, uid, {"photoURL": ""})
    logger.info("Profile image removed", uid=uid)
    return user
