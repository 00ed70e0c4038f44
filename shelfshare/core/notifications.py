"""
    Read-side queries for Shelfshare: pending requests, claim alerts,
    lending history and public free-book listings. Nothing here writes.
"""

import logging
from sqlalchemy import or_
from shelfshare.core.models import (
    Book, BorrowRequest, Library, Transfer, RequestStatus, TransferStatus
)
from shelfshare.core.exceptions import BookNotFoundError
from shelfshare.core.utils import utcnow, hours_remaining

logger = logging.getLogger(__name__)


class NotificationAPI:

    @classmethod
    def pending_requests(cls, db, owner_id):
        """Requests awaiting `owner_id`'s decision."""
        return db.query(BorrowRequest).filter(
            BorrowRequest.owner_id == owner_id,
            BorrowRequest.status == RequestStatus.PENDING,
        ).order_by(BorrowRequest.requested_at.asc()).all()

    @classmethod
    def outgoing_requests(cls, db, borrower_id):
        return db.query(BorrowRequest).filter(
            BorrowRequest.borrower_id == borrower_id,
            BorrowRequest.status == RequestStatus.PENDING,
        ).order_by(BorrowRequest.requested_at.asc()).all()

    @classmethod
    def lending_history(cls, db, user_id, offset=None, limit=None):
        return db.query(BorrowRequest).filter(
            or_(BorrowRequest.borrower_id == user_id,
                BorrowRequest.owner_id == user_id)
        ).order_by(
            BorrowRequest.requested_at.desc(), BorrowRequest.id.desc()
        ).offset(offset).limit(limit).all()

    @classmethod
    def claimed_notifications(cls, db, owner_id, now=None):
        """Unexpired claims other users hold on `owner_id`'s free books."""
        now = now or utcnow()
        library = Library.for_owner(db, owner_id)
        if not library:
            return []
        books = db.query(Book).filter(
            Book.library_id == library.id,
            Book.is_free_to_good_home.is_(True),
            Book.claimed_by_user_id.isnot(None),
        ).order_by(Book.claim_expires_at.asc()).all()
        return [{
            "bookId": book.id,
            "bookTitle": book.title,
            "bookAuthor": book.author,
            "claimerId": book.claimed_by_user_id,
            "claimedAt": book.claimed_at,
            "expiresAt": book.claim_expires_at,
            "handedOff": book.transfer_status == TransferStatus.PENDING,
            "timeRemaining": hours_remaining(book.claim_expires_at, now),
        } for book in books if book.has_active_claim(now)]

    @classmethod
    def my_claims(cls, db, claimant_id, now=None):
        """Live claims held by `claimant_id`, with any handoff in progress."""
        now = now or utcnow()
        books = db.query(Book).filter(
            Book.claimed_by_user_id == claimant_id,
            Book.is_free_to_good_home.is_(True),
        ).all()
        claims = []
        for book in books:
            if not book.has_active_claim(now):
                continue
            transfer = (Transfer.pending_for(db, book.id)
                        if book.transfer_status == TransferStatus.PENDING else None)
            claims.append({
                "bookId": book.id,
                "bookTitle": book.title,
                "bookAuthor": book.author,
                "ownerId": book.owner_id,
                "deliveryMethod": book.delivery_method.value,
                "claimedAt": book.claimed_at,
                "expiresAt": book.claim_expires_at,
                "transferId": transfer.id if transfer else None,
                "timeRemaining": hours_remaining(book.claim_expires_at, now),
            })
        return claims

    @classmethod
    def free_books(cls, db, owner_id, now=None):
        """Books `owner_id` is giving away that nobody currently holds."""
        now = now or utcnow()
        library = Library.for_owner(db, owner_id)
        if not library:
            return []
        books = db.query(Book).filter(
            Book.library_id == library.id,
            Book.is_free_to_good_home.is_(True),
            Book.claimable(now),
        ).order_by(Book.created_at.desc()).all()
        return books

    @classmethod
    def book_status(cls, db, book_id, now=None):
        now = now or utcnow()
        book = Book.exists(db, book_id)
        if not book:
            raise BookNotFoundError()
        free_state = book.free_state(now)
        return {
            "id": book.id,
            "title": book.title,
            "author": book.author,
            "isbn": book.isbn,
            "libraryId": book.library_id,
            "ownerId": book.owner_id,
            "disposition": book.disposition.value,
            "lendingState": book.lending_state.value,
            "borrowerId": book.borrower_id,
            "checkedOutAt": book.checked_out_at,
            "dueDate": book.due_date,
            "isOverdue": bool(book.due_date and now > book.due_date),
            "isFreeToGoodHome": book.is_free_to_good_home,
            "deliveryMethod": book.delivery_method.value,
            "freeState": free_state.value if free_state else None,
            "claimedByUserId": book.active_claimant(now),
            "claimExpiresAt": book.claim_expires_at if book.has_active_claim(now) else None,
            "transferStatus": book.transfer_status.value,
        }
