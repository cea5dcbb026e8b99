"""StackQA shared libraries.

This package contains reusable components:
- common: Settings and the error taxonomy
- models: Pydantic document and write models
- mongo: Data access functions for posts, tags and users
"""
