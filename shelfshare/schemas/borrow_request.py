#!/usr/bin/env python
"""
    BorrowRequest Schema for Shelfshare,
    one lending episode as exposed to clients.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from shelfshare.core.models import RequestStatus

class BorrowRequest(BaseModel):
    id: int
    book_id: int = Field(..., alias="bookId")
    borrower_id: str = Field(..., alias="borrowerId")
    owner_id: str = Field(..., alias="ownerId")
    status: RequestStatus
    message: Optional[str] = None
    owner_notes: Optional[str] = Field(None, alias="ownerNotes")
    requested_at: datetime = Field(..., alias="requestedAt")
    responded_at: Optional[datetime] = Field(None, alias="respondedAt")
    checked_out_at: Optional[datetime] = Field(None, alias="checkedOutAt")
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    checked_in_at: Optional[datetime] = Field(None, alias="checkedInAt")
    was_overdue: bool = Field(False, alias="wasOverdue")

    class Config:
        from_attributes = True
        populate_by_name = True
