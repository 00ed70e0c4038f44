#!/usr/bin/env python

"""
    Lending engine for Shelfshare.

    Drives a book through ``available -> requested -> borrowed ->
    return_pending -> available``, with ``requested -> available`` when
    the owner declines. Every transition is a single conditional UPDATE
    guarded on the state it expects to leave, so two callers racing on
    the same book cannot both win; the loser gets a typed error.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from sqlalchemy import exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from shelfshare.configs import LOAN_PERIOD_DAYS
from shelfshare.core.models import (
    Book, BorrowRequest, LendingState, RequestStatus
)
from shelfshare.core.exceptions import (
    BookNotFoundError,
    RequestNotFoundError,
    AlreadyProcessedError,
    InvalidActionError,
    InvalidStateError,
    NotOwnerError,
    NotBorrowerError,
    SelfBorrowError,
    DuplicateRequestError,
    DatabaseInsertError,
)
from shelfshare.core.utils import utcnow

logger = logging.getLogger(__name__)

APPROVE = "approve"
DECLINE = "decline"


class LendingAPI:

    LOAN_PERIOD = datetime.timedelta(days=LOAN_PERIOD_DAYS)

    @classmethod
    def _get_book(cls, db, book_id):
        if book := Book.exists(db, book_id):
            return book
        raise BookNotFoundError()

    @classmethod
    def _commit(cls, db, action):
        try:
            db.commit()
        except Exception as e:
            db.rollback()
            raise DatabaseInsertError(f"Failed to {action}: {str(e)}.")

    @classmethod
    def request_borrow(cls, db, book_id, borrower_id, owner_id=None, message=None, now=None):
        """Opens a pending lending episode for `borrower_id` and moves the
        book to ``requested`` if it was idle.
        """
        now = now or utcnow()
        book = cls._get_book(db, book_id)

        if book.owner_id == borrower_id:
            raise SelfBorrowError()
        if owner_id and owner_id != book.owner_id:
            raise NotOwnerError("ownerId does not own this book")
        if book.is_free_to_good_home:
            raise InvalidStateError("Free books are claimed, not borrowed")
        if BorrowRequest.exists(db, book.id, borrower_id):
            raise DuplicateRequestError()

        moved = Book.transition(
            db, book.id,
            Book.is_free_to_good_home.is_(False),
            Book.lending_state.in_([LendingState.AVAILABLE, LendingState.REQUESTED]),
            lending_state=LendingState.REQUESTED,
        )
        if not moved:
            db.rollback()
            raise InvalidStateError("This book is not available to borrow right now")

        request = BorrowRequest(
            book_id=book.id,
            borrower_id=borrower_id,
            owner_id=book.owner_id,
            message=message or None,
            status=RequestStatus.PENDING,
            requested_at=now,
        )
        db.add(request)
        try:
            db.commit()
        except IntegrityError:
            # Lost the race against an identical request
            db.rollback()
            raise DuplicateRequestError()
        except Exception as e:
            db.rollback()
            raise DatabaseInsertError(f"Failed to create borrow request: {str(e)}.")

        logger.info(f"Borrow request {request.id}: book {book.id} by {borrower_id}")
        return request

    @classmethod
    def respond_to_request(cls, db, request_id, acting_owner_id, action, now=None):
        """Approve or decline a pending request. Returns the request."""
        now = now or utcnow()
        if action not in (APPROVE, DECLINE):
            raise InvalidActionError()

        request = db.query(BorrowRequest).filter(BorrowRequest.id == request_id).first()
        if not request:
            raise RequestNotFoundError()
        book = cls._get_book(db, request.book_id)
        if book.owner_id != acting_owner_id:
            raise NotOwnerError()
        if request.status != RequestStatus.PENDING:
            raise AlreadyProcessedError()

        if action == APPROVE:
            return cls._approve(db, request, book, now)
        return cls._decline(db, request, book, now)

    @classmethod
    def _approve(cls, db, request, book, now):
        due_date = now + cls.LOAN_PERIOD
        closed = BorrowRequest.transition(
            db, request.id,
            BorrowRequest.status == RequestStatus.PENDING,
            status=RequestStatus.APPROVED,
            responded_at=now,
            checked_out_at=now,
            due_date=due_date,
            owner_notes="Approved by owner",
        )
        if not closed:
            db.rollback()
            raise AlreadyProcessedError()

        moved = Book.transition(
            db, book.id,
            Book.lending_state == LendingState.REQUESTED,
            lending_state=LendingState.BORROWED,
            borrower_id=request.borrower_id,
            checked_out_at=now,
            due_date=due_date,
            return_requested_at=None,
        )
        if not moved:
            db.rollback()
            raise InvalidStateError("Book is no longer waiting on a request")

        # One borrower at a time: everyone else queued on this book is turned away
        db.query(BorrowRequest).filter(
            BorrowRequest.book_id == book.id,
            BorrowRequest.id != request.id,
            BorrowRequest.status == RequestStatus.PENDING,
        ).update({
            'status': RequestStatus.DECLINED,
            'responded_at': now,
            'owner_notes': "Book lent to another borrower",
        }, synchronize_session=False)

        cls._commit(db, "approve borrow request")
        db.refresh(request)
        logger.info(f"Borrow request {request.id} approved: book {book.id} due {due_date}")
        return request

    @classmethod
    def _decline(cls, db, request, book, now):
        # Declines of sibling requests serialize on the book row
        Book.lock(db, book.id)
        closed = BorrowRequest.transition(
            db, request.id,
            BorrowRequest.status == RequestStatus.PENDING,
            status=RequestStatus.DECLINED,
            responded_at=now,
            owner_notes="Declined by owner",
        )
        if not closed:
            db.rollback()
            raise AlreadyProcessedError()

        Book.transition(
            db, book.id,
            Book.lending_state == LendingState.REQUESTED,
            ~exists().where(
                BorrowRequest.book_id == Book.id,
                BorrowRequest.status == RequestStatus.PENDING,
            ),
            lending_state=LendingState.AVAILABLE,
        )

        cls._commit(db, "decline borrow request")
        db.refresh(request)
        logger.info(f"Borrow request {request.id} declined")
        return request

    @classmethod
    def initiate_return(cls, db, book_id, acting_user_id, now=None):
        """Borrower reports the book as given back; the owner must confirm."""
        now = now or utcnow()
        book = cls._get_book(db, book_id)
        if book.borrower_id != acting_user_id:
            raise NotBorrowerError("You are not currently borrowing this book")
        if book.lending_state != LendingState.BORROWED:
            raise InvalidStateError("Book is not checked out")

        if not Book.transition(
                db, book.id,
                Book.lending_state == LendingState.BORROWED,
                Book.borrower_id == acting_user_id,
                lending_state=LendingState.RETURN_PENDING,
                return_requested_at=now):
            db.rollback()
            raise InvalidStateError("Book is not checked out")

        cls._commit(db, "mark book as returned")
        logger.info(f"Book {book.id} return requested by {acting_user_id}")
        return book

    @classmethod
    def cancel_return(cls, db, book_id, acting_user_id):
        book = cls._get_book(db, book_id)
        if book.lending_state != LendingState.RETURN_PENDING:
            raise InvalidStateError("Book is not pending return")
        if book.borrower_id != acting_user_id:
            raise NotBorrowerError()

        if not Book.transition(
                db, book.id,
                Book.lending_state == LendingState.RETURN_PENDING,
                Book.borrower_id == acting_user_id,
                lending_state=LendingState.BORROWED,
                return_requested_at=None):
            db.rollback()
            raise InvalidStateError("Book is not pending return")

        cls._commit(db, "cancel return")
        logger.info(f"Book {book.id} return cancelled by {acting_user_id}")
        return book

    @classmethod
    def confirm_return(cls, db, book_id, acting_owner_id, now=None):
        """Owner confirms the book is back: clears the loan and closes the
        lending-history row together.
        """
        now = now or utcnow()
        book = cls._get_book(db, book_id)
        if book.owner_id != acting_owner_id:
            raise NotOwnerError()
        if book.lending_state != LendingState.RETURN_PENDING:
            raise InvalidStateError("Book is not pending return")

        borrower_id = book.borrower_id
        if not Book.transition(
                db, book.id,
                Book.lending_state == LendingState.RETURN_PENDING,
                lending_state=LendingState.AVAILABLE,
                borrower_id=None,
                checked_out_at=None,
                due_date=None,
                return_requested_at=None):
            db.rollback()
            raise InvalidStateError("Book is not pending return")
        try:
            cls._close_episode(db, book.id, borrower_id, now)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseInsertError(f"Failed to close lending history: {str(e)}.")
        cls._commit(db, "confirm return")
        logger.info(f"Book {book.id} return confirmed by {acting_owner_id}")
        return book

    @classmethod
    def _close_episode(cls, db, book_id, borrower_id, now):
        episode = BorrowRequest.open_episode(db, book_id, borrower_id)
        if not episode:
            logger.warning(f"No open lending history for book {book_id}")
            return None
        episode.status = RequestStatus.RETURNED
        episode.checked_in_at = now
        episode.was_overdue = bool(episode.due_date and now > episode.due_date)
        episode.owner_notes = "Return confirmed by owner"
        return episode
