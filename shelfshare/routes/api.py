#!/usr/bin/env python

"""
    API routes for Shelfshare,
    covering lending (borrow requests and returns), free-to-good-home
    claims and transfers, and the read-side notification views.

    Handlers are thin: they authenticate the caller, hand off to the
    engines in shelfshare.core, and shape the JSON response. Engine
    errors are rendered by the ShelfshareAPIError handler in app.py.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from typing import Optional, List
from fastapi import (
    APIRouter,
    Body,
    Cookie,
    Depends,
    Header,
    status,
)
from sqlalchemy.orm import Session
from shelfshare.core import auth
from shelfshare.core.db import get_session
from shelfshare.core.catalog import CatalogAPI
from shelfshare.core.claims import ClaimAPI
from shelfshare.core.lending import LendingAPI
from shelfshare.core.notifications import NotificationAPI
from shelfshare.core.exceptions import NotAuthenticatedError, NotAuthorizedError
from shelfshare.routes.schemas import (
    BookCreate,
    BorrowRequestCreate,
    BorrowRequestResponse,
    LibraryCreate,
    ToggleFree,
    UserAction,
)
from shelfshare.schemas.book import Book as BookSchema
from shelfshare.schemas.borrow_request import BorrowRequest as BorrowRequestSchema
from shelfshare.schemas.library import Library as LibrarySchema
from shelfshare.schemas.transfer import Transfer as TransferSchema

logger = logging.getLogger(__name__)

router = APIRouter()


def current_user_id(
        authorization: Optional[str] = Header(None),
        session: Optional[str] = Cookie(None)) -> str:
    """Resolves the caller from a Bearer token or the session cookie."""
    token = auth.token_from_request(authorization, session)
    if not token:
        raise NotAuthenticatedError("No authorization header")
    if user_id := auth.get_authenticated_user_id(token):
        return user_id
    raise NotAuthenticatedError("Invalid token")


def acting_user(caller: str, claimed: Optional[str]) -> str:
    """Body `userId` is accepted for compatibility but must be the caller."""
    if claimed and claimed != caller:
        raise NotAuthorizedError("userId does not match the authenticated user")
    return caller


def _dump(schema, obj):
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


@router.get('/', status_code=status.HTTP_200_OK)
async def home():
    return {"service": "shelfshare", "status": "ok"}


@router.post('/libraries', status_code=status.HTTP_201_CREATED)
def create_library(
        body: Optional[LibraryCreate] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    library = CatalogAPI.create_library(db, user_id, name=body.name if body else None)
    return {"library": _dump(LibrarySchema, library)}


@router.post('/books', status_code=status.HTTP_201_CREATED)
def add_book(
        body: BookCreate,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    book = CatalogAPI.add_book(db, user_id, body.title, author=body.author, isbn=body.isbn)
    return {"book": _dump(BookSchema, book)}


@router.get('/books/claimed-notifications')
def claimed_notifications(
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    return {"notifications": NotificationAPI.claimed_notifications(db, user_id)}


@router.get('/books/my-claims')
def my_claims(
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    return {"claims": NotificationAPI.my_claims(db, user_id)}


@router.get('/books/{book_id}')
def get_book(
        book_id: int,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    return {"book": NotificationAPI.book_status(db, book_id)}


@router.get('/users/{owner_id}/free-books', response_model=List[BookSchema])
def free_books(owner_id: str, db: Session = Depends(get_session)):
    """Public listing; no authentication required."""
    return NotificationAPI.free_books(db, owner_id)


# Lending

@router.post('/borrow-request', status_code=status.HTTP_200_OK)
@router.post('/borrow/request', status_code=status.HTTP_200_OK, include_in_schema=False)
def create_borrow_request(
        body: BorrowRequestCreate,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    borrower_id = acting_user(user_id, body.borrower_id)
    request = LendingAPI.request_borrow(
        db, body.book_id, borrower_id,
        owner_id=body.owner_id, message=body.message)
    return {"success": True, "request": _dump(BorrowRequestSchema, request)}


@router.get('/borrow/requests')
def list_borrow_requests(
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    return {
        "success": True,
        "incoming": [_dump(BorrowRequestSchema, r)
                     for r in NotificationAPI.pending_requests(db, user_id)],
        "outgoing": [_dump(BorrowRequestSchema, r)
                     for r in NotificationAPI.outgoing_requests(db, user_id)],
    }


@router.put('/borrow-request/{request_id}')
@router.put('/borrow/request/{request_id}', include_in_schema=False)
def respond_to_borrow_request(
        request_id: int,
        body: BorrowRequestResponse,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    owner_id = acting_user(user_id, body.user_id)
    request = LendingAPI.respond_to_request(db, request_id, owner_id, body.action)
    return {
        "message": f"Borrow request {request.status.value} successfully",
        "status": request.status.value,
    }


@router.get('/lending/history')
def lending_history(
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    rows = NotificationAPI.lending_history(db, user_id, offset=offset, limit=limit)
    return {"history": [_dump(BorrowRequestSchema, r) for r in rows]}


@router.put('/books/{book_id}/return')
def return_book(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    borrower_id = acting_user(user_id, body.user_id if body else None)
    book = LendingAPI.initiate_return(db, book_id, borrower_id)
    return {
        "message": "Book marked as returned, waiting for owner confirmation",
        "status": book.lending_state.value,
    }


@router.put('/books/{book_id}/cancel-return')
def cancel_return(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    borrower_id = acting_user(user_id, body.user_id if body else None)
    book = LendingAPI.cancel_return(db, book_id, borrower_id)
    return {
        "message": "Return request cancelled successfully",
        "status": book.lending_state.value,
    }


@router.put('/books/{book_id}/confirm-return')
def confirm_return(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    owner_id = acting_user(user_id, body.user_id if body else None)
    book = LendingAPI.confirm_return(db, book_id, owner_id)
    return {
        "message": "Book return confirmed successfully",
        "status": book.lending_state.value,
    }


# Free to good home

@router.put('/books/{book_id}/toggle-free')
def toggle_free(
        book_id: int,
        body: ToggleFree,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    book = ClaimAPI.set_free_status(
        db, book_id, user_id, body.is_free_to_good_home, body.delivery_method)
    return {
        "success": True,
        "message": ("Book marked as free to good home!" if book.is_free_to_good_home
                    else "Book removed from free offerings"),
        "isFreeToGoodHome": book.is_free_to_good_home,
        "deliveryMethod": book.delivery_method.value,
    }


@router.api_route('/books/{book_id}/claim', methods=['POST', 'PUT'])
def claim_book(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    claimant_id = acting_user(user_id, body.user_id if body else None)
    claim = ClaimAPI.claim_book(db, book_id, claimant_id)
    hours = int(ClaimAPI.CLAIM_HOLD.total_seconds() // 3600)
    return {
        "success": True,
        "message": (f"You've claimed \"{claim['bookTitle']}\"! "
                    f"You have {hours} hours to arrange pickup."),
        "claimedAt": claim["claimedAt"],
        "expiresAt": claim["expiresAt"],
        "deliveryMethod": claim["deliveryMethod"].value,
    }


@router.put('/books/{book_id}/release-claim')
def release_claim(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    claimant_id = acting_user(user_id, body.user_id if body else None)
    book = ClaimAPI.release_claim(db, book_id, claimant_id)
    return {
        "success": True,
        "message": (f"You've released your claim on \"{book.title}\". "
                    "It's now available for others to claim!"),
        "bookTitle": book.title,
        "deliveryMethod": book.delivery_method.value,
    }


@router.put('/books/{book_id}/mark-handed-off')
def mark_handed_off(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    owner_id = acting_user(user_id, body.user_id if body else None)
    transfer = ClaimAPI.mark_handed_off(db, book_id, owner_id)
    return {
        "message": "Book marked as handed off successfully",
        "transferId": transfer.id,
        "bookTitle": transfer.book.title,
        "transfer": _dump(TransferSchema, transfer),
    }


@router.put('/books/{book_id}/confirm-received')
def confirm_received(
        book_id: int,
        body: Optional[UserAction] = Body(None),
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_session)):
    claimant_id = acting_user(user_id, body.user_id if body else None)
    result = ClaimAPI.confirm_received(db, book_id, claimant_id)
    return {"message": "Book transfer completed successfully", **result}
