from __future__ import annotations

"""
Database layer:
- Mongo connection
- Schemas
- Repositories (+ the async ProjectGateway over them)
"""

from canvas_studio.db import mongo, repositories, schemas

__all__ = [
    "mongo", 
    "repositories",
    "schemas"
]
