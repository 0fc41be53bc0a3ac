from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base application error"""


class ConfigError(AppError):
    """Missing or invalid configuration"""


class TransportError(AppError):
    """Network or collaborator failure during submit/poll/save/load"""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProjectNotFoundError(TransportError):
    """Project ID not found by the project collaborator"""


class DatabaseError(TransportError):
    """MongoDB connection or query failure"""


class LayerNotFoundError(AppError):
    """Mutation targets a layer id that is not in the store"""

    def __init__(self, layer_id: str):
        super().__init__(f"Layer not found: {layer_id}")
        self.layer_id = layer_id


class JobFailedError(AppError):
    """Generation job ended without results"""

    def __init__(self, message: str, *, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class TrackerClosedError(AppError):
    """Job tracker was torn down; no new jobs accepted"""
