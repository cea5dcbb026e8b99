"""FastAPI dependencies shared by the routers."""

from fastapi import Request
from pymongo.asynchronous.database import AsyncDatabase


def get_database(request: Request) -> AsyncDatabase:
    """Returns the MongoDB database opened by the application lifespan."""
    return request.app.state.db
