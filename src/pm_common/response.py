"""Unified API response envelope.

Every endpoint returns:
{
    "code": 0,           // 0=success, otherwise the AppError code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}
WAD amounts inside ``data`` are decimal strings.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    request_id: str = Field(default_factory=_request_id)


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message)
