from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from shelfshare.core.models import DeliveryMethod

class Book(BaseModel):
    id: int
    library_id: int = Field(..., alias="libraryId")
    title: str
    author: Optional[str] = None
    isbn: Optional[str] = None
    is_free_to_good_home: bool = Field(False, alias="isFreeToGoodHome")
    delivery_method: DeliveryMethod = Field(DeliveryMethod.PICKUP, alias="deliveryMethod")
    created_at: Optional[datetime] = Field(None, alias="addedAt")

    class Config:
        from_attributes = True
        populate_by_name = True
