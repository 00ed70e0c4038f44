#!/usr/bin/env python

"""
    Models for Shelfshare,
    including libraries, books, borrow requests (lending history) and
    free-to-good-home transfers.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
from sqlalchemy import (
    Column, String, Boolean, Integer, DateTime, Text, ForeignKey, Index,
    Enum as SQLAlchemyEnum, or_, text
)
from sqlalchemy.orm import relationship
from shelfshare.core.db import Base
from shelfshare.core.utils import utcnow


def _enum_column(enum_cls, name, **kwargs):
    # Persist the lowercase values, not the member names
    return Column(
        SQLAlchemyEnum(
            enum_cls, name=name,
            values_callable=lambda members: [m.value for m in members]
        ),
        **kwargs
    )


class LendingState(enum.Enum):
    AVAILABLE = "available"
    REQUESTED = "requested"
    BORROWED = "borrowed"
    RETURN_PENDING = "return_pending"

class DeliveryMethod(enum.Enum):
    PICKUP = "pickup"
    MAIL = "mail"
    BOTH = "both"

class TransferStatus(enum.Enum):
    NONE = "none"
    PENDING = "pending"
    COMPLETED = "completed"

class RequestStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    RETURNED = "returned"

class Disposition(enum.Enum):
    """Which pipeline currently owns a book; never more than one."""
    IDLE = "idle"
    LENDING = "lending"
    FREE = "free"

class FreeState(enum.Enum):
    FREE_UNCLAIMED = "free_unclaimed"
    CLAIMED = "claimed"
    HANDED_OFF = "handed_off"


class Library(Base):
    __tablename__ = 'libraries'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, unique=True)
    name = Column(String(255), nullable=False, default="My Library")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    books = relationship('Book', back_populates='library')

    @classmethod
    def for_owner(cls, db, owner_id):
        if not owner_id:
            return None
        return db.query(cls).filter(cls.owner_id == owner_id).first()


class Book(Base):
    __tablename__ = 'books'

    id = Column(Integer, primary_key=True)
    library_id = Column(Integer, ForeignKey('libraries.id'), nullable=False)
    title = Column(String(500), nullable=False)
    author = Column(String(500))
    isbn = Column(String(20))

    # Lending pipeline
    lending_state = _enum_column(
        LendingState, 'lending_state',
        default=LendingState.AVAILABLE, nullable=False)
    borrower_id = Column(String(64))
    checked_out_at = Column(DateTime)
    due_date = Column(DateTime)
    return_requested_at = Column(DateTime)

    # Free-to-good-home pipeline
    is_free_to_good_home = Column(Boolean, default=False, nullable=False)
    delivery_method = _enum_column(
        DeliveryMethod, 'delivery_method',
        default=DeliveryMethod.PICKUP, nullable=False)
    claimed_by_user_id = Column(String(64))
    claimed_at = Column(DateTime)
    claim_expires_at = Column(DateTime)
    transfer_status = _enum_column(
        TransferStatus, 'transfer_status',
        default=TransferStatus.NONE, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    library = relationship('Library', back_populates='books')
    requests = relationship('BorrowRequest', back_populates='book')
    transfers = relationship('Transfer', back_populates='book')

    CLEARED_CLAIM = {
        'claimed_by_user_id': None,
        'claimed_at': None,
        'claim_expires_at': None,
    }

    @property
    def owner_id(self):
        return self.library.owner_id if self.library else None

    @property
    def disposition(self):
        if self.lending_state != LendingState.AVAILABLE:
            return Disposition.LENDING
        if self.is_free_to_good_home:
            return Disposition.FREE
        return Disposition.IDLE

    def has_active_claim(self, now):
        """A claim is live until it expires, unless the owner has already
        handed the book off, which freezes it until receipt is confirmed.
        """
        if not self.claimed_by_user_id:
            return False
        if self.transfer_status == TransferStatus.PENDING:
            return True
        return bool(self.claim_expires_at and self.claim_expires_at > now)

    def active_claimant(self, now):
        return self.claimed_by_user_id if self.has_active_claim(now) else None

    def free_state(self, now):
        if not self.is_free_to_good_home:
            return None
        if self.transfer_status == TransferStatus.PENDING:
            return FreeState.HANDED_OFF
        if self.has_active_claim(now):
            return FreeState.CLAIMED
        return FreeState.FREE_UNCLAIMED

    @classmethod
    def exists(cls, db, book_id):
        return db.query(cls).filter(cls.id == book_id).first()

    @classmethod
    def lock(cls, db, book_id):
        """SELECT ... FOR UPDATE on the book row; a no-op on SQLite."""
        return db.query(cls).filter(cls.id == book_id).with_for_update().one()

    @classmethod
    def claimable(cls, now):
        """SQL criterion: no live claim holds the book."""
        return (
            (cls.transfer_status != TransferStatus.PENDING) &
            or_(cls.claimed_by_user_id.is_(None),
                cls.claim_expires_at.is_(None),
                cls.claim_expires_at <= now)
        )

    @classmethod
    def transition(cls, db, book_id, *criteria, **values):
        """Conditional update: apply `values` only when the row still
        matches `criteria`. Returns True if the row was updated.
        """
        values.setdefault('updated_at', utcnow())
        count = db.query(cls).filter(cls.id == book_id, *criteria).update(
            values, synchronize_session=False)
        return count == 1


class BorrowRequest(Base):
    """One lending episode, from request through return."""
    __tablename__ = 'borrow_requests'

    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey('books.id', ondelete='CASCADE'), nullable=False)
    borrower_id = Column(String(64), nullable=False)
    owner_id = Column(String(64), nullable=False)
    status = _enum_column(
        RequestStatus, 'request_status',
        default=RequestStatus.PENDING, nullable=False)
    message = Column(Text)
    owner_notes = Column(Text)
    requested_at = Column(DateTime, default=utcnow, nullable=False)
    responded_at = Column(DateTime)
    checked_out_at = Column(DateTime)
    due_date = Column(DateTime)
    checked_in_at = Column(DateTime)
    was_overdue = Column(Boolean, default=False, nullable=False)

    book = relationship('Book', back_populates='requests')

    __table_args__ = (
        Index(
            'uq_borrow_requests_open', 'book_id', 'borrower_id', unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    @classmethod
    def exists(cls, db, book_id, borrower_id):
        return db.query(cls).filter(
            cls.book_id == book_id,
            cls.borrower_id == borrower_id,
            cls.status == RequestStatus.PENDING
        ).first()

    @classmethod
    def open_episode(cls, db, book_id, borrower_id):
        """The approved, not yet checked-in episode for a loan."""
        return db.query(cls).filter(
            cls.book_id == book_id,
            cls.borrower_id == borrower_id,
            cls.status == RequestStatus.APPROVED,
            cls.checked_in_at.is_(None)
        ).first()

    @classmethod
    def transition(cls, db, request_id, *criteria, **values):
        count = db.query(cls).filter(cls.id == request_id, *criteria).update(
            values, synchronize_session=False)
        return count == 1


class Transfer(Base):
    """One free-book handoff from the owner's library to the claimant's."""
    __tablename__ = 'book_transfers'

    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey('books.id', ondelete='CASCADE'), nullable=False)
    from_library_id = Column(Integer, ForeignKey('libraries.id'), nullable=False)
    to_library_id = Column(Integer, ForeignKey('libraries.id'), nullable=False)
    claimant_id = Column(String(64), nullable=False)
    status = _enum_column(
        TransferStatus, 'transfer_row_status',
        default=TransferStatus.PENDING, nullable=False)
    transfer_initiated_at = Column(DateTime, default=utcnow, nullable=False)
    transfer_completed_at = Column(DateTime)

    book = relationship('Book', back_populates='transfers')

    __table_args__ = (
        Index(
            'uq_book_transfers_pending', 'book_id', unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    @classmethod
    def pending_for(cls, db, book_id):
        return db.query(cls).filter(
            cls.book_id == book_id,
            cls.status == TransferStatus.PENDING
        ).first()
