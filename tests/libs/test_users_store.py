"""Unit tests for user profile MongoDB operations."""

import base64

import pytest
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from libs.common.errors import ConflictError, NotFoundError, ValidationError
from libs.models.documents import AppearanceUpdate, NotificationSettingsUpdate, ProfileUpdate
from libs.mongo.users import (
    clear_profile_image,
    default_display_name,
    encode_profile_image,
    get_user_by_uid,
    set_profile_image,
    update_appearance,
    update_notification_settings,
    update_profile,
    upsert_user,
)

MAX_BYTES = 2 * 1024 * 1024


def test_default_display_name_is_email_local_part():
    assert default_display_name("alice@example.com") == "alice"


@pytest.mark.asyncio
async def test_get_user_by_uid(mock_db, user_document):
    users = mock_db["users"]
    users.find_one.return_value = user_document()

    user = await get_user_by_uid(mock_db, "u1")

    users.find_one.assert_awaited_once_with({"uid": "u1"})
    assert user.uid == "u1"
    assert user.notification_settings.weekly_digest is True


@pytest.mark.asyncio
async def test_get_user_by_uid_missing(mock_db):
    mock_db["users"].find_one.return_value = None

    with pytest.raises(NotFoundError):
        await get_user_by_uid(mock_db, "ghost")


@pytest.mark.asyncio
async def test_upsert_user_defaults_display_name_and_settings(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document()

    user = await upsert_user(mock_db, uid="u1", email="alice@example.com")

    assert user.display_name == "alice"
    filter_, update = users.find_one_and_update.await_args.args
    kwargs = users.find_one_and_update.await_args.kwargs
    assert filter_ == {"uid": "u1"}
    assert "displayName" not in update["$set"]
    assert "photoURL" not in update["$set"]
    assert update["$setOnInsert"]["displayName"] == "alice"
    assert update["$setOnInsert"]["photoURL"] == ""
    assert update["$setOnInsert"]["notificationSettings"] == {
        "emailNotifications": True,
        "weeklyDigest": True,
        "upvoteNotifications": True,
    }
    assert update["$setOnInsert"]["appearance"] == {
        "darkMode": False,
        "compactView": False,
        "codeSyntaxHighlighting": True,
    }
    assert "createdAt" in update["$setOnInsert"]
    assert "createdAt" not in update["$set"]
    assert kwargs["upsert"] is True
    assert kwargs["return_document"] == ReturnDocument.AFTER


@pytest.mark.asyncio
async def test_upsert_user_keeps_supplied_display_name(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document(displayName="Alice")

    await upsert_user(mock_db, uid="u1", email="alice@example.com", display_name="Alice", photo_url="http://a/p.png")

    update = users.find_one_and_update.await_args.args[1]
    assert update["$set"]["displayName"] == "Alice"
    assert update["$set"]["photoURL"] == "http://a/p.png"
    assert "displayName" not in update["$setOnInsert"]
    assert "photoURL" not in update["$setOnInsert"]


@pytest.mark.asyncio
async def test_upsert_user_sign_in_keeps_stored_profile(mock_db, user_document):
    """Signing in again with only uid and email leaves the uploaded photo and custom name alone."""
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document(
        displayName="Ally", photoURL="data:image/png;base64,AAA"
    )

    user = await upsert_user(mock_db, uid="u1", email="alice@example.com")

    update = users.find_one_and_update.await_args.args[1]
    assert set(update["$set"]) == {"email", "updatedAt"}
    assert not set(update["$set"]) & set(update["$setOnInsert"])
    assert user.photo_url == "data:image/png;base64,AAA"
    assert user.display_name == "Ally"


@pytest.mark.asyncio
async def test_upsert_user_with_taken_email_conflicts(mock_db):
    mock_db["users"].find_one_and_update.side_effect = DuplicateKeyError(
        "E11000 duplicate key", 11000, {"keyPattern": {"email": 1}}
    )

    with pytest.raises(ConflictError):
        await upsert_user(mock_db, uid="u2", email="alice@example.com")


@pytest.mark.asyncio
async def test_upsert_user_reraises_other_duplicate_keys(mock_db):
    mock_db["users"].find_one_and_update.side_effect = DuplicateKeyError(
        "E11000 duplicate key", 11000, {"keyPattern": {"uid": 1}}
    )

    with pytest.raises(DuplicateKeyError):
        await upsert_user(mock_db, uid="u1", email="alice@example.com")


@pytest.mark.asyncio
async def test_update_profile_sets_supplied_fields(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document(displayName="Ally")

    user = await update_profile(mock_db, "u1", ProfileUpdate(display_name="Ally"))

    assert user.display_name == "Ally"
    fields = users.find_one_and_update.await_args.args[1]["$set"]
    assert fields["displayName"] == "Ally"
    assert "photoURL" not in fields
    assert "updatedAt" in fields


@pytest.mark.asyncio
async def test_update_profile_missing_user(mock_db):
    mock_db["users"].find_one_and_update.return_value = None

    with pytest.raises(NotFoundError):
        await update_profile(mock_db, "ghost", ProfileUpdate(display_name="x"))


@pytest.mark.asyncio
async def test_update_appearance_patches_only_supplied_flags(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document(
        appearance={"darkMode": True, "compactView": False, "codeSyntaxHighlighting": True}
    )

    user = await update_appearance(mock_db, "u1", AppearanceUpdate(dark_mode=True))

    assert user.appearance.dark_mode is True
    assert user.appearance.code_syntax_highlighting is True
    fields = users.find_one_and_update.await_args.args[1]["$set"]
    assert fields["appearance.darkMode"] is True
    assert "appearance.compactView" not in fields
    assert "appearance" not in fields


@pytest.mark.asyncio
async def test_update_notification_settings_patches_only_supplied_flags(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document()

    await update_notification_settings(mock_db, "u1", NotificationSettingsUpdate(weekly_digest=False))

    fields = users.find_one_and_update.await_args.args[1]["$set"]
    assert fields["notificationSettings.weeklyDigest"] is False
    assert "notificationSettings.emailNotifications" not in fields


def test_encode_profile_image_returns_data_uri():
    uri = encode_profile_image(b"\x89PNG", "image/png", max_bytes=MAX_BYTES)
    assert uri == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode("ascii")


@pytest.mark.parametrize("content_type", ["application/pdf", "image/svg+xml", None])
def test_encode_profile_image_rejects_other_types(content_type):
    with pytest.raises(ValidationError):
        encode_profile_image(b"data", content_type, max_bytes=MAX_BYTES)


def test_encode_profile_image_rejects_empty_file():
    with pytest.raises(ValidationError):
        encode_profile_image(b"", "image/png", max_bytes=MAX_BYTES)


def test_encode_profile_image_rejects_oversized_file():
    with pytest.raises(ValidationError) as exc_info:
        encode_profile_image(b"x" * 11, "image/gif", max_bytes=10)
    assert "under" in exc_info.value.message


@pytest.mark.asyncio
async def test_set_profile_image_stores_data_uri(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document(photoURL="data:image/jpeg;base64,AAA=")

    user = await set_profile_image(mock_db, "u1", b"\x00\x00", "image/jpeg", max_bytes=MAX_BYTES)

    assert user.photo_url.startswith("data:image/jpeg;base64,")
    fields = users.find_one_and_update.await_args.args[1]["$set"]
    assert fields["photoURL"].startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_set_profile_image_invalid_type_writes_nothing(mock_db):
    with pytest.raises(ValidationError):
        await set_profile_image(mock_db, "u1", b"%PDF", "application/pdf", max_bytes=MAX_BYTES)
    mock_db["users"].find_one_and_update.assert_not_awaited()


@pytest.mark.asyncio
async def test_clear_profile_image(mock_db, user_document):
    users = mock_db["users"]
    users.find_one_and_update.return_value = user_document()

    user = await clear_profile_image(mock_db, "u1")

    assert user.photo_url == ""
    assert users.find_one_and_update.await_args.args[1]["$set"]["photoURL"] == ""
