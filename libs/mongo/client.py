"""MongoDB client construction, index setup and id parsing."""

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from libs.common.errors import NotFoundError
from libs.common.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

POSTS_COLLECTION = "posts"
TAGS_COLLECTION = "tags"
USERS_COLLECTION = "users"


def create_mongo_client(settings: Settings | None = None) -> AsyncMongoClient:
    """
    Creates the asynchronous MongoDB client from settings.

    Called once by the process entry point, which also owns closing it.
    The client connects lazily; the first operation surfaces connection errors.
    """
    settings = settings or get_settings()
    logger.info("Creating MongoDB client", database=settings.mongodb_database)
    return AsyncMongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
        tz_aware=True,
    )


def get_database(client: AsyncMongoClient, settings: Settings | None = None) -> AsyncDatabase:
    settings = settings or get_settings()
    return client[settings.mongodb_database]


async def ensure_indexes(db: AsyncDatabase) -> None:
    """Creates the unique indexes that back tag and user identity.

    Tag names and user uids/emails are unique; the upserts rely on these
    indexes to never create duplicates under concurrent requests.
    """
    await db[TAGS_COLLECTION].create_index([("name", ASCENDING)], unique=True)
    await db[USERS_COLLECTION].create_index([("uid", ASCENDING)], unique=True)
    await db[USERS_COLLECTION].create_index([("email", ASCENDING)], unique=True)
    logger.info("MongoDB indexes ensured", database=db.name)


def object_id(value: str, kind: str) -> ObjectId:
    """Parses a document id; an unparsable id cannot match any document."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise NotFoundError(f"{kind} {value} not found") from e
