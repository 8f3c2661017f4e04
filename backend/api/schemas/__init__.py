"""
API request and response schemas.
"""

from .common import ApiResponse, MessageData

__all__ = [
    "ApiResponse",
    "MessageData",
]
