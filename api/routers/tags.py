"""Tags router."""

from __future__ import annotations

from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pymongo.asynchronous.database import AsyncDatabase

from api.deps import get_database
from api.models import TagsRequest
from libs.common.errors import NotFoundError
from libs.mongo.tags import delete_tag, get_tag_by_name, list_tags, upsert_tags
from libs.models.documents import Tag

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/tags", response_model=List[Tag], summary="List tags by usage")
async def list_tags_endpoint(
    db: AsyncDatabase = Depends(get_database),
) -> List[Tag]:
    try:
        return await list_tags(db)
    except Exception as e:
        logger.error("Error fetching tags", error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch tags")


@router.get("/tags/{name}", response_model=Tag, summary="Get a tag by name")
async def get_tag_endpoint(
    name: str,
    db: AsyncDatabase = Depends(get_database),
) -> Tag:
    try:
        return await get_tag_by_name(db, name)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    except Exception as e:
        logger.error("Error fetching tag", name=name, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch tag")


@router.post(
    "/tags",
    response_model=List[Tag],
    status_code=status.HTTP_201_CREATED,
    summary="Create or count tags",
)
async def upsert_tags_endpoint(
    request: TagsRequest,
    db: AsyncDatabase = Depends(get_database),
) -> List[Tag]:
    """
    Create missing tags and increment the count of existing ones.

    Example:
        ```bash
        curl -X POST http://localhost:3000/api/tags \\
          -H "Content-Type: application/json" -d '{"tags": ["react", "Hooks"]}'
        ```
    """
    try:
        return await upsert_tags(db, request.tags)
    except Exception as e:
        logger.error("Error creating/updating tags", tags=request.tags, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create/update tags"
        )


@router.delete("/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a tag")
async def delete_tag_endpoint(
    tag_id: str,
    db: AsyncDatabase = Depends(get_database),
) -> Response:
    try:
        await delete_tag(db, tag_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    except Exception as e:
        logger.error("Error deleting tag", tag_id=tag_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete tag")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
