"""Response envelope: the single wire shape for every response.

    success    {"success": true,  "data": ..., "metadata": {"timestamp"}}
    paginated  success + metadata.pagination
    error      {"success": false, "error": {...}, "metadata": {"timestamp"}}

Field names are client contract.  Optional fields are omitted rather
than sent as null, so routes declare ``response_model_exclude_none=True``
and errors are dumped with ``exclude_none=True``.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


def _now() -> datetime:
    return datetime.now(UTC)


class PaginationInfo(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_records: int
    has_next: bool
    has_previous: bool

    @classmethod
    def compute(cls, *, page: int, page_size: int, total_records: int) -> PaginationInfo:
        total_pages = math.ceil(total_records / page_size) if page_size > 0 else 0
        return cls(
            current_page=page,
            page_size=page_size,
            total_pages=total_pages,
            total_records=total_records,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class Metadata(BaseModel):
    timestamp: datetime = Field(default_factory=_now)
    pagination: PaginationInfo | None = None


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: str | None = None
    timestamp: datetime = Field(default_factory=_now)
    request_id: str | None = None


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool
    data: DataT | None = None
    error: ErrorInfo | None = None
    metadata: Metadata = Field(default_factory=Metadata)


def success(data: DataT, metadata: Metadata | None = None) -> ApiResponse[DataT]:
    return ApiResponse[DataT](success=True, data=data, metadata=metadata or Metadata())


def paginated(
    data: DataT, *, page: int, page_size: int, total_records: int
) -> ApiResponse[DataT]:
    pagination = PaginationInfo.compute(
        page=page, page_size=page_size, total_records=total_records
    )
    return success(data, Metadata(pagination=pagination))


def error(
    code: str,
    message: str,
    *,
    details: str | None = None,
    request_id: str | None = None,
) -> ApiResponse[None]:
    info = ErrorInfo(code=code, message=message, details=details, request_id=request_id)
    return ApiResponse[None](
        success=False,
        error=info,
        metadata=Metadata(timestamp=info.timestamp),
    )
