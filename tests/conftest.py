"""
Pytest configuration and fixtures for StackQA tests.

Provides shared fixtures for:
- Test environment variables
- Mock MongoDB databases and collections
- Stored document factories
"""

from datetime import datetime, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from libs.common.settings import get_settings


def _make_collection(docs=None):
    collection = MagicMock()
    for name in (
        "find_one",
        "find_one_and_update",
        "insert_one",
        "update_one",
        "delete_one",
        "count_documents",
        "create_index",
    ):
        setattr(collection, name, AsyncMock())

    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs or [])
    collection.find.return_value = cursor
    return collection


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("STACKQA_APP_ENV", "test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_db():
    """An AsyncDatabase double with one collection double per collection name."""
    collections = {}

    def get_collection(name):
        if name not in collections:
            collections[name] = _make_collection()
        return collections[name]

    db = MagicMock()
    db.name = "stackqa-test"
    db.__getitem__.side_effect = get_collection
    db.collections = collections
    return db


@pytest.fixture
def post_document():
    """Factory for stored post documents as the driver returns them."""

    def make(**overrides):
        doc = {
            "_id": ObjectId("652f1c2ab4d5e6f708192a3b"),
            "title": "How do hooks work?",
            "content": "Explain useEffect",
            "authorId": "u1",
            "authorName": "Alice",
            "createdAt": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
            "tags": ["react", "hooks"],
            "upvotes": 0,
            "upvotedBy": [],
            "views": 0,
            "answers": [],
        }
        doc.update(overrides)
        return doc

    return make


@pytest.fixture
def user_document():
    """Factory for stored user documents as the driver returns them."""

    def make(**overrides):
        doc = {
            "_id": ObjectId(),
            "uid": "u1",
            "email": "alice@example.com",
            "displayName": "alice",
            "photoURL": "",
            "notificationSettings": {
                "emailNotifications": True,
                "weeklyDigest": True,
                "upvoteNotifications": True,
            },
            "appearance": {"darkMode": False, "compactView": False, "codeSyntaxHighlighting": True},
            "createdAt": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
            "updatedAt": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        }
        doc.update(overrides)
        return doc

    return make
