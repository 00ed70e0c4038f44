from pydantic import BaseModel, Field
from typing import Optional


class CamelModel(BaseModel):

    class Config:
        populate_by_name = True


class UserAction(CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")

class BorrowRequestCreate(CamelModel):
    book_id: int = Field(..., alias="bookId")
    owner_id: Optional[str] = Field(None, alias="ownerId")
    borrower_id: Optional[str] = Field(None, alias="borrowerId")
    message: Optional[str] = None

class BorrowRequestResponse(UserAction):
    action: str

class ToggleFree(CamelModel):
    is_free_to_good_home: bool = Field(..., alias="isFreeToGoodHome")
    delivery_method: Optional[str] = Field(None, alias="deliveryMethod")

class LibraryCreate(CamelModel):
    name: Optional[str] = None

class BookCreate(CamelModel):
    title: str = Field(..., min_length=1)
    author: Optional[str] = None
    isbn: Optional[str] = None
