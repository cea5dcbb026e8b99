"""Pydantic models for the StackQA API.

This module defines the request and response models used only by the HTTP
layer. Document models shared with the data access layer live in
``libs.models.documents``.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class UpvoteRequest(BaseModel):
    """Request model for toggling an upvote."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[str] = Field(None, description="UID of the voting user", examples=["u2"])


class TagsRequest(BaseModel):
    """Request model for creating or counting tags."""
    tags: List[str] = Field(..., description="Tag names, normalized server-side", examples=[["react", "Hooks"]])


class UserUpsertRequest(BaseModel):
    """Request model for creating or refreshing a user after sign-in.

    ``uid`` and ``email`` are optional at the schema level so the router can
    answer a missing value with a plain 400 message.
    """
    uid: Optional[str] = Field(None, description="Identity provider UID", examples=["u1"])
    email: Optional[EmailStr] = Field(None, description="User email", examples=["alice@example.com"])
    display_name: Optional[str] = Field(None, alias="displayName", description="Display name")
    photo_url: Optional[str] = Field(None, alias="photoURL", description="Avatar URL")

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""
    status: Literal["ok"] = Field(description="Health status", examples=["ok"])
    message: str = Field(description="Human-readable status", examples=["Server is running"])
    version: str = Field(description="Service version", examples=["0.1.0"])

