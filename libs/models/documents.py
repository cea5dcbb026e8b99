"""Pydantic models for MongoDB collections.

These models define the structure of the documents stored in MongoDB
and are used for data validation and serialization. Attributes are
snake_case in Python; documents and JSON bodies use camelCase aliases.
"""
from datetime import datetime, UTC

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentModel(BaseModel):
    """Base model mapping snake_case attributes to camelCase document fields."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_document(cls, doc: dict):
        """Builds the model from a raw document, exposing ``_id`` as ``id``."""
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_document(self, **kwargs) -> dict:
        """Dumps the model using document field names."""
        return self.model_dump(by_alias=True, **kwargs)


class Answer(DocumentModel):
    """An answer embedded in a post's ``answers`` array."""
    id: str = Field(default_factory=lambda: str(ObjectId()), description="Answer id, unique within its post.")
    content: str = Field(..., description="Answer body.")
    author_id: str = Field(..., description="UID of the answer author.")
    author_name: str = Field(..., description="Display name of the author at answer time.")
    created_at: datetime = Field(default_factory=utcnow, description="Timestamp of answer creation.")
    upvotes: int = Field(0, ge=0, description="Number of users currently upvoting.")
    upvoted_by: list[str] = Field(default_factory=list, description="UIDs of users currently upvoting.")


class Post(DocumentModel):
    """Represents a question in the ``posts`` collection."""
    id: str = Field(..., description="Document ObjectId as a hex string.")
    title: str
    content: str
    author_id: str
    author_name: str
    created_at: datetime = Field(default_factory=utcnow)
    tags: list[str] = Field(default_factory=list, description="Normalized tag names.")
    upvotes: int = Field(0, ge=0)
    upvoted_by: list[str] = Field(default_factory=list)
    views: int = Field(0, ge=0)
    answers: list[Answer] = Field(default_factory=list)


class Tag(DocumentModel):
    """Represents a tag in the ``tags`` collection."""
    id: str = Field(..., description="Document ObjectId as a hex string.")
    name: str = Field(..., description="Lowercase, trimmed tag name.")
    count: int = Field(1, ge=0, description="Number of times the tag was attached to a post.")


class NotificationSettings(DocumentModel):
    email_notifications: bool = True
    weekly_digest: bool = True
    upvote_notifications: bool = True


class AppearanceSettings(DocumentModel):
    dark_mode: bool = False
    compact_view: bool = False
    code_syntax_highlighting: bool = True


class User(DocumentModel):
    """Represents a user profile, keyed by the identity provider UID."""
    uid: str = Field(..., description="The identity provider UID.")
    email: str = Field(..., description="The user's email address.")
    display_name: str = Field("", description="Public display name.")
    photo_url: str = Field("", alias="photoURL", description="Avatar URL or data URI.")
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    appearance: AppearanceSettings = Field(default_factory=AppearanceSettings)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UpvoteState(DocumentModel):
    """Upvote counters returned by the toggle operations."""
    upvotes: int = Field(..., ge=0)
    upvoted_by: list[str]


# Write models

def _require_text(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("must not be empty")
    return v


class PostCreate(DocumentModel):
    title: str
    content: str
    author_id: str
    author_name: str
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "content")
    @classmethod
    def text_must_not_be_empty(cls, v: str) -> str:
        """Validate that title and content carry text."""
        return _require_text(v)


class PostUpdate(DocumentModel):
    """Partial post update. Unset fields are left untouched."""
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    content: str | None = None
    author_name: str | None = None
    tags: list[str] | None = None

    @field_validator("title", "content")
    @classmethod
    def text_must_not_be_empty(cls, v: str | None) -> str | None:
        return v if v is None else _require_text(v)


class AnswerCreate(DocumentModel):
    content: str
    author_id: str
    author_name: str

    @field_validator("content")
    @classmethod
    def content_must_not_be_empty(cls, v: str) -> str:
        return _require_text(v)


class ProfileUpdate(DocumentModel):
    display_name: str | None = None
    photo_url: str | None = Field(None, alias="photoURL")


class NotificationSettingsUpdate(DocumentModel):
    email_notifications: bool | None = None
    weekly_digest: bool | None = None
    upvote_notifications: bool | None = None


class AppearanceUpdate(DocumentModel):
    dark_mode: bool | None = None
    compact_view: bool | None = None
    code_syntax_highlighting: bool | None = None
