"""StackQA API Service.

This package contains the FastAPI application serving the questions and
answers site.

Main components:
- main.py: FastAPI application, error handlers and request logging
- models.py: Pydantic models for requests and responses
- deps.py: Dependencies handing the database to the routers
- routers/: Posts, tags and users endpoints
"""
