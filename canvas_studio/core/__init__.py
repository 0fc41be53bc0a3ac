from __future__ import annotations

"""
This module provides core functionality for the application.

It includes utilities for ID generation and general helpers.
"""

from canvas_studio.core import ids, utils

__all__ = [
    "ids",
    "utils"
]
