"""Functions for managing posts, answers and upvotes in MongoDB.

Every mutation that can race with another request is one atomic
server-side update: ``$inc`` for views, ``$push`` for answers and an
aggregation pipeline update for the upvote toggles, so ``upvotes`` is
always recomputed from ``upvotedBy`` in the same write.
"""

from datetime import datetime, UTC
from typing import List

import structlog
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from libs.common.errors import NotFoundError
from libs.models.documents import Answer, AnswerCreate, Post, PostCreate, PostUpdate, UpvoteState
from libs.mongo.client import POSTS_COLLECTION, object_id
from libs.mongo.tags import normalize_tag_names, upsert_tags

logger = structlog.get_logger(__name__)


def toggled_voters(voters, user_id: str) -> dict:
    """Aggregation expression for ``voters`` with ``user_id`` removed if present, appended otherwise."""
    user = {"$literal": user_id}
    voters = {"$ifNull": [voters, []]}
    return {
        "$cond": [
            {"$in": [user, voters]},
            {"$filter": {"input": voters, "cond": {"$ne": ["$$this", user]}}},
            {"$concatArrays": [voters, [user]]},
        ]
    }


def post_upvote_pipeline(user_id: str) -> list:
    return [
        {"$set": {"upvotedBy": toggled_voters("$upvotedBy", user_id)}},
        {"$set": {"upvotes": {"$size": "$upvotedBy"}}},
    ]


def answer_upvote_pipeline(answer_id: str, user_id: str) -> list:
    return [
        {
            "$set": {
                "answers": {
                    "$map": {
                        "input": "$answers",
                        "as": "answer",
                        "in": {
                            "$cond": [
                                {"$eq": ["$$answer.id", {"$literal": answer_id}]},
                                {
                                    "$let": {
                                        "vars": {"voters": toggled_voters("$$answer.upvotedBy", user_id)},
                                        "in": {
                                            "$mergeObjects": [
                                                "$$answer",
                                                {"upvotedBy": "$$voters", "upvotes": {"$size": "$$voters"}},
                                            ]
                                        },
                                    }
                                },
                                "$$answer",
                            ]
                        },
                    }
                }
            }
        }
    ]


async def create_post(db: AsyncDatabase, post: PostCreate) -> Post:
    """Counts the post's tags and stores the new post.

    Args:
        db: The asynchronous MongoDB database.
        post: The validated post fields.

    Returns:
        The stored post, including its generated id.
    """
    tags = normalize_tag_names(post.tags)
    await upsert_tags(db, tags)

    new_post = Post(
        id=str(ObjectId()),
        title=post.title,
        content=post.content,
        author_id=post.author_id,
        author_name=post.author_name,
        created_at=datetime.now(UTC),
        tags=tags,
    )
    doc = new_post.to_document(exclude={"id"})
    doc["_id"] = ObjectId(new_post.id)
    await db[POSTS_COLLECTION].insert_one(doc)

    logger.info("Post created", post_id=new_post.id, author_id=post.author_id, tags=tags)
    return new_post


async def get_post_by_id(db: AsyncDatabase, post_id: str) -> Post:
    """Retrieves a post and counts the view.

    The view counter is incremented in the same operation that reads the
    post, so the returned post includes this fetch.

    Raises:
        NotFoundError: If the post does not exist.
    """
    doc = await db[POSTS_COLLECTION].find_one_and_update(
        {"_id": object_id(post_id, "Post")},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError(f"Post {post_id} not found")
    return Post.from_document(doc)


async def list_posts(db: AsyncDatabase) -> List[Post]:
    """Returns all posts, newest first."""
    cursor = db[POSTS_COLLECTION].find({}).sort("createdAt", DESCENDING)
    return [Post.from_document(doc) for doc in await cursor.to_list(length=None)]


async def update_post(db: AsyncDatabase, post_id: str, update: PostUpdate) -> Post:
    """Applies a partial update to a post.

    Only fields present in ``update`` are written. A non-empty ``tags`` list
    replaces the post's tags and counts every one of them again.

    Raises:
        NotFoundError: If the post does not exist. Tags are not counted then.
    """
    oid = object_id(post_id, "Post")
    fields = update.to_document(exclude_unset=True, exclude_none=True)
    if "tags" in fields:
        fields["tags"] = normalize_tag_names(fields["tags"])

    if fields:
        doc = await db[POSTS_COLLECTION].find_one_and_update(
            {"_id": oid},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
    else:
        doc = await db[POSTS_COLLECTION].find_one({"_id": oid})
    if not doc:
        raise NotFoundError(f"Post {post_id} not found")

    if fields.get("tags"):
        await upsert_tags(db, fields["tags"])

    logger.info("Post updated", post_id=post_id, fields=sorted(fields))
    return Post.from_document(doc)


async def delete_post(db: AsyncDatabase, post_id: str) -> None:
    """Hard deletes a post. Tag counts are left as they are.

    Raises:
        NotFoundError: If the post does not exist.
    """
    result = await db[POSTS_COLLECTION].delete_one({"_id": object_id(post_id, "Post")})
    if result.deleted_count == 0:
        raise NotFoundError(f"Post {post_id} not found")
    logger.info("Post deleted", post_id=post_id)


async def add_answer(db: AsyncDatabase, post_id: str, answer: AnswerCreate) -> Answer:
    """Appends an answer to a post.

    Raises:
        NotFoundError: If the post does not exist.
    """
    new_answer = Answer(
        content=answer.content,
        author_id=answer.author_id,
        author_name=answer.author_name,
        created_at=datetime.now(UTC),
    )
    result = await db[POSTS_COLLECTION].update_one(
        {"_id": object_id(post_id, "Post")},
        {"$push": {"answers": new_answer.to_document()}},
    )
    if result.matched_count == 0:
        raise NotFoundError(f"Post {post_id} not found")

    logger.info("Answer added", post_id=post_id, answer_id=new_answer.id, author_id=answer.author_id)
    return new_answer


async def toggle_post_upvote(db: AsyncDatabase, post_id: str, user_id: str) -> UpvoteState:
    """Adds or removes a user's upvote on a post.

    Raises:
        NotFoundError: If the post does not exist.
    """
    doc = await db[POSTS_COLLECTION].find_one_and_update(
        {"_id": object_id(post_id, "Post")},
        post_upvote_pipeline(user_id),
        projection={"upvotes": 1, "upvotedBy": 1},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError(f"Post {post_id} not found")

    state = UpvoteState(upvotes=doc["upvotes"], upvoted_by=doc["upvotedBy"])
    logger.info("Post upvote toggled", post_id=post_id, user_id=user_id, upvotes=state.upvotes)
    return state


async def toggle_answer_upvote(
    db: AsyncDatabase, post_id: str, answer_id: str, user_id: str
) -> UpvoteState:
    """Adds or removes a user's upvote on an answer.

    Raises:
        NotFoundError: If the post or the answer does not exist.
    """
    oid = object_id(post_id, "Post")
    doc = await db[POSTS_COLLECTION].find_one_and_update(
        {"_id": oid, "answers.id": answer_id},
        answer_upvote_pipeline(answer_id, user_id),
        projection={"answers": 1},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        if await db[POSTS_COLLECTION].count_documents({"_id": oid}, limit=1) == 0:
            raise NotFoundError(f"Post {post_id} not found")
        raise NotFoundError(f"Answer {answer_id} not found")

    answer = next(a for a in doc["answers"] if a.get("id") == answer_id)
    state = UpvoteState(upvotes=answer["upvotes"], upvoted_by=answer["upvotedBy"])
    logger.info(
        "Answer upvote toggled",
        post_id=post_id,
        answer_id=answer_id,
        user_id=user_id,
        upvotes=state.upvotes,
    )
    return state
