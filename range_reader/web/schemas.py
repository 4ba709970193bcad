from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from range_reader.domain.models import Record


class UsersResponse(BaseModel):
    results: List[Record]
    preview: Optional[List[Record]] = None


class ErrorResponse(BaseModel):
    error: str
