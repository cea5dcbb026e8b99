"""Functions for managing tags in MongoDB.

Counting a tag is a single upsert with ``$inc``: the tag is created with a
count of 1 the first time and incremented afterwards, atomically on the
server. The unique index on ``name`` keeps one document per tag.
"""

from typing import Iterable, List

import structlog
from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from libs.common.errors import NotFoundError
from libs.models.documents import Tag
from libs.mongo.client import TAGS_COLLECTION, object_id

logger = structlog.get_logger(__name__)


def normalize_tag_name(name: str) -> str:
    return name.strip().lower()


def normalize_tag_names(names: Iterable[str]) -> List[str]:
    """Normalizes tag names, dropping empty and repeated ones.

    Order of first appearance is preserved.
    """
    normalized = []
    for name in names:
        tag_name = normalize_tag_name(name)
        if tag_name and tag_name not in normalized:
            normalized.append(tag_name)
    return normalized


async def upsert_tags(db: AsyncDatabase, names: Iterable[str]) -> List[Tag]:
    """Creates missing tags and increments the count of existing ones.

    Args:
        db: The asynchronous MongoDB database.
        names: Raw tag names; they are normalized first.

    Returns:
        The tags after the increment, in the order their names were first given.
    """
    tags = []
    for name in normalize_tag_names(names):
        doc = await db[TAGS_COLLECTION].find_one_and_update(
            {"name": name},
            {"$inc": {"count": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        tags.append(Tag.from_document(doc))
    logger.debug("Tags counted", tags=[tag.name for tag in tags])
    return tags


async def list_tags(db: AsyncDatabase) -> List[Tag]:
    """Returns all tags, most used first."""
    cursor = db[TAGS_COLLECTION].find({}).sort("count", DESCENDING)
    return [Tag.from_document(doc) for doc in await cursor.to_list(length=None)]


async def get_tag_by_name(db: AsyncDatabase, name: str) -> Tag:
    """Retrieves a tag by name, ignoring case and surrounding whitespace.

    Raises:
        NotFoundError: If no tag has that name.
    """
    doc = await db[TAGS_COLLECTION].find_one({"name": normalize_tag_name(name)})
    if not doc:
        raise NotFoundError(f"Tag {normalize_tag_name(name)!r} not found")
    return Tag.from_document(doc)


async def delete_tag(db: AsyncDatabase, tag_id: str) -> None:
    """Hard deletes a tag. Posts keep the tag name.

    Raises:
        NotFoundError: If the tag does not exist.
    """
    result = await db[TAGS_COLLECTION].delete_one({"_id": object_id(tag_id, "Tag")})
    if result.deleted_count == 0:
        raise NotFoundError(f"Tag {tag_id} not found")
    logger.info("Tag deleted", tag_id=tag_id)
