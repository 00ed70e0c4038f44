from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from shelfshare.core.models import TransferStatus

class Transfer(BaseModel):
    id: int
    book_id: int = Field(..., alias="bookId")
    from_library_id: int = Field(..., alias="fromLibraryId")
    to_library_id: int = Field(..., alias="toLibraryId")
    claimant_id: str = Field(..., alias="claimantId")
    status: TransferStatus
    transfer_initiated_at: datetime = Field(..., alias="transferInitiatedAt")
    transfer_completed_at: Optional[datetime] = Field(None, alias="transferCompletedAt")

    class Config:
        from_attributes = True
        populate_by_name = True
