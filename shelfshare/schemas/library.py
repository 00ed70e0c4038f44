from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class Library(BaseModel):
    id: int
    owner_id: str = Field(..., alias="ownerId")
    name: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True
