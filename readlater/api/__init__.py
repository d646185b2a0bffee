"""FastAPI HTTP layer package.

Public re-export so callers can write::

    uvicorn readlater.api:app --reload
"""

from readlater.api.app import app, create_app

__all__ = ["app", "create_app"]
