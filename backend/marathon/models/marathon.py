"""
Bible Marathon Configuration Pydantic Models
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

class MarathonConfigUpdate(BaseModel):
    """Request model for updating the active marathon"""
    name: Optional[str] = Field(None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None

class MarathonConfigResponse(BaseModel):
    """Marathon configuration row"""
    id: int
    name: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_active: bool
    description: Optional[str] = None
    total_participants: int

    class Config:
        """Pydantic config"""
        from_attributes = True
