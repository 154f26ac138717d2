from typing import Generic, TypeVar, Optional, List
from pydantic import BaseModel

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    """Standard API response model"""
    code: int = 200
    data: Optional[T] = None
    msg: str = "success"


class ErrorResponse(ResponseModel[None]):
    """Error envelope: stable kind plus an optional debug message"""
    kind: str
    debug: Optional[str] = None


class PagedData(BaseModel, Generic[T]):
    """Paginated data model"""
    records: List[T]
    total: int
    current: int
    size: int
