"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from app.schemas.common import BaseResponse

__all__ = ["BaseResponse"]
