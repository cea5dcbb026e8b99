"""Posts router: questions, answers and upvotes."""

from __future__ import annotations

from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pymongo.asynchronous.database import AsyncDatabase

from api.deps import get_database
from api.models import UpvoteRequest
from libs.common.errors import NotFoundError
from libs.mongo.posts import (
    add_answer,
    create_post,
    delete_post,
    get_post_by_id,
    list_posts,
    toggle_answer_upvote,
    toggle_post_upvote,
    update_post,
)
from libs.models.documents import Answer, AnswerCreate, Post, PostCreate, PostUpdate, UpvoteState

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/posts", response_model=List[Post], summary="List posts, newest first")
async def list_posts_endpoint(
    db: AsyncDatabase = Depends(get_database),
) -> List[Post]:
    try:
        return await list_posts(db)
    except Exception as e:
        logger.error("Error fetching posts", error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch posts")


@router.get("/posts/{post_id}", response_model=Post, summary="Get a post and count the view")
async def get_post_endpoint(
    post_id: str,
    db: AsyncDatabase = Depends(get_database),
) -> Post:
    """
    Retrieve a single post.

    Every successful call increments the post's view counter; the returned
    ``views`` already includes this request.

    Example:
        ```bash
        curl http://localhost:3000/api/posts/abc123
        ```
    """
    try:
        return await get_post_by_id(db, post_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except Exception as e:
        logger.error("Error fetching post", post_id=post_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch post")


@router.post(
    "/posts",
    response_model=Post,
    status_code=status.HTTP_201_CREATED,
    summary="Create a post",
)
async def create_post_endpoint(
    post: PostCreate,
    db: AsyncDatabase = Depends(get_database),
) -> Post:
    """
    Create a question. Tag names are lowercased and trimmed, and each tag's
    usage count is incremented.

    Example:
        ```bash
        curl -X POST http://localhost:3000/api/posts \\
          -H "Content-Type: application/json" \\
          -d '{"title": "Q1", "content": "body", "authorId": "u1", "authorName": "Alice", "tags": ["react", "Hooks"]}'
        ```
    """
    try:
        return await create_post(db, post)
    except Exception as e:
        logger.error("Error creating post", author_id=post.author_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create post")


@router.patch("/posts/{post_id}", response_model=Post, summary="Update a post")
async def update_post_endpoint(
    post_id: str,
    update: PostUpdate,
    db: AsyncDatabase = Depends(get_database),
) -> Post:
    try:
        return await update_post(db, post_id, update)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except Exception as e:
        logger.error("Error updating post", post_id=post_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update post")


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a post")
async def delete_post_endpoint(
    post_id: str,
    db: AsyncDatabase = Depends(get_database),
) -> Response:
    try:
        await delete_post(db, post_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except Exception as e:
        logger.error("Error deleting post", post_id=post_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete post")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/posts/{post_id}/answers",
    response_model=Answer,
    status_code=status.HTTP_201_CREATED,
    summary="Answer a post",
)
async def add_answer_endpoint(
    post_id: str,
    answer: AnswerCreate,
    db: AsyncDatabase = Depends(get_database),
) -> Answer:
    try:
        return await add_answer(db, post_id, answer)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except Exception as e:
        logger.error("Error adding answer", post_id=post_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add answer")


@router.post("/posts/{post_id}/upvote", response_model=UpvoteState, summary="Toggle a post upvote")
async def toggle_post_upvote_endpoint(
    post_id: str,
    request: UpvoteRequest,
    db: AsyncDatabase = Depends(get_database),
) -> UpvoteState:
    """
    Toggle the user's upvote: the first call adds it, the next removes it.

    Example:
        ```bash
        curl -X POST http://localhost:3000/api/posts/abc123/upvote \\
          -H "Content-Type: application/json" -d '{"userId": "u2"}'
        ```
    """
    if not request.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID is required")

    try:
        return await toggle_post_upvote(db, post_id, request.user_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except Exception as e:
        logger.error("Error toggling post upvote", post_id=post_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upvote post")


@router.post(
    "/posts/{post_id}/answers/{answer_id}/upvote",
    response_model=UpvoteState,
    summary="Toggle an answer upvote",
)
async def toggle_answer_upvote_endpoint(
    post_id: str,
    answer_id: str,
    request: UpvoteRequest,
    db: AsyncDatabase = Depends(get_database),
) -> UpvoteState:
    if not request.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID is required")

    try:
        return await toggle_answer_upvote(db, post_id, answer_id, request.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except Exception as e:
        logger.error(
            "Error toggling answer upvote",
            post_id=post_id,
            answer_id=answer_id,
            error=str(e),
            exc_info=True,
        )
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upvote answer")
