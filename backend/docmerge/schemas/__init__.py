"""
Schemas - Pydantic models for request/response validation.
"""

from .merge import ErrorResponse, MergedFile, MergeResponse, SkippedRow

__all__ = [
    "ErrorResponse",
    "MergedFile",
    "MergeResponse",
    "SkippedRow",
]
