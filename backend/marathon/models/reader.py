"""
Bible Marathon Reader Pydantic Models
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, validator

class ReaderCreate(BaseModel):
    """Request model for creating a reader"""
    name: str = Field(..., min_length=1, description="Display name")
    email: Optional[str] = Field(None, description="Contact email")
    avatar_color: Optional[str] = Field(None, description="Hex color used for the avatar")
    is_active: bool = True
    reading_speed_wpm: Optional[int] = Field(None, gt=0, description="Reading speed in words per minute")

    @validator("name")
    def name_not_blank(cls, name):
        """Trim the display name, blank names are rejected"""
        name = name.strip()
        if not name:
            raise ValueError("name must not be blank")
        return name

class ReaderUpdate(BaseModel):
    """Request model for updating a reader"""
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    avatar_color: Optional[str] = None
    is_active: Optional[bool] = None
    reading_speed_wpm: Optional[int] = Field(None, gt=0)

    @validator("name")
    def name_not_blank(cls, name):
        if name is None:
            return name
        name = name.strip()
        if not name:
            raise ValueError("name must not be blank")
        return name

class ReaderResponse(BaseModel):
    """Reader with its cached counters"""
    id: int
    uuid: str
    name: str
    email: Optional[str] = None
    avatar_color: str
    is_active: bool
    reading_speed_wpm: int
    total_chapters_read: int
    total_verses_read: int
    created_at: Optional[datetime] = None

    class Config:
        """Pydantic config"""
        from_attributes = True

class ReaderCounts(BaseModel):
    """Chapter and verse counts of a reader"""
    total_chapters_read: int
    total_verses_read: int

class ReaderDetailResponse(ReaderResponse):
    """Reader with cached and freshly aggregated counters"""
    live_counts: ReaderCounts
    counters_in_sync: bool
