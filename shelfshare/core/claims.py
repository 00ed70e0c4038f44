#!/usr/bin/env python

"""
    Claim and transfer engine for Shelfshare.

    A free book moves ``free_unclaimed -> claimed -> handed_off ->
    transferred``. Claims are a time-boxed hold and expire lazily: every
    read and every guard compares ``claim_expires_at`` against ``now``,
    there is no timer. Once the owner hands the book off the claim is
    frozen until the claimant confirms receipt, at which point the book
    changes library.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from sqlalchemy.exc import IntegrityError
from shelfshare.configs import CLAIM_HOLD_HOURS
from shelfshare.core.models import (
    Book, Library, Transfer, DeliveryMethod, LendingState, TransferStatus
)
from shelfshare.core.exceptions import (
    AlreadyClaimedError,
    BookNotFoundError,
    ClaimExpiredError,
    ClaimantLibraryMissingError,
    DatabaseInsertError,
    InvalidStateError,
    NoTransferPendingError,
    NotClaimantError,
    NotClaimedError,
    NotFreeError,
    NotOwnerError,
    SelfClaimError,
    TransferPendingError,
)
from shelfshare.core.utils import utcnow

logger = logging.getLogger(__name__)


class ClaimAPI:

    CLAIM_HOLD = datetime.timedelta(hours=CLAIM_HOLD_HOURS)

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
    def parse_delivery_method(cls, value):
        if isinstance(value, DeliveryMethod):
            return value
        try:
            return DeliveryMethod(value or DeliveryMethod.PICKUP.value)
        except ValueError:
            raise InvalidStateError(
                f"Invalid delivery method {value!r}; expected pickup, mail or both")

    @classmethod
    def set_free_status(cls, db, book_id, acting_owner_id, is_free, delivery_method=None):
        """Offer or withdraw a book as free to a good home.

        Any outstanding claim is dropped either way; new terms start a
        new giveaway episode.
        """
        book = cls._get_book(db, book_id)
        if book.owner_id != acting_owner_id:
            raise NotOwnerError()
        delivery = cls.parse_delivery_method(delivery_method)
        if is_free and book.lending_state != LendingState.AVAILABLE:
            raise InvalidStateError("Books out on loan cannot be given away")
        if book.transfer_status == TransferStatus.PENDING:
            raise TransferPendingError(
                "This book has been handed off; wait for the claimant to confirm receipt")

        criteria = [Book.transfer_status != TransferStatus.PENDING]
        if is_free:
            criteria.append(Book.lending_state == LendingState.AVAILABLE)
        if not Book.transition(
                db, book.id, *criteria,
                is_free_to_good_home=bool(is_free),
                delivery_method=delivery,
                transfer_status=TransferStatus.NONE,
                **Book.CLEARED_CLAIM):
            db.rollback()
            raise InvalidStateError("Book changed while updating its free status")

        cls._commit(db, "update free status")
        logger.info(
            f"Book {book.id} free_to_good_home={bool(is_free)} "
            f"delivery={delivery.value} by {acting_owner_id}")
        return book

    @classmethod
    def claim_book(cls, db, book_id, claimant_id, now=None):
        """Place a hold on a free book for `CLAIM_HOLD`.

        Raises AlreadyClaimedError carrying the current claimant and
        expiry when someone else holds a live claim.
        """
        now = now or utcnow()
        book = cls._get_book(db, book_id)
        if book.owner_id == claimant_id:
            raise SelfClaimError()
        if not book.is_free_to_good_home:
            raise NotFreeError()
        if book.has_active_claim(now):
            raise AlreadyClaimedError(book.claimed_by_user_id, book.claim_expires_at)

        expires_at = now + cls.CLAIM_HOLD
        won = Book.transition(
            db, book.id,
            Book.is_free_to_good_home.is_(True),
            Book.claimable(now),
            claimed_by_user_id=claimant_id,
            claimed_at=now,
            claim_expires_at=expires_at,
        )
        if not won:
            db.rollback()
            return cls._lost_claim_race(db, book, now)

        cls._commit(db, "claim book")
        logger.info(f"Book {book.id} claimed by {claimant_id} until {expires_at}")
        return {
            "claimedAt": now,
            "expiresAt": expires_at,
            "deliveryMethod": book.delivery_method,
            "bookTitle": book.title,
        }

    @classmethod
    def _lost_claim_race(cls, db, book, now):
        db.refresh(book)
        if not book.is_free_to_good_home:
            raise NotFreeError()
        logger.info(f"Book {book.id} claim lost to {book.claimed_by_user_id}")
        raise AlreadyClaimedError(book.claimed_by_user_id, book.claim_expires_at)

    @classmethod
    def release_claim(cls, db, book_id, acting_user_id, now=None):
        now = now or utcnow()
        book = cls._get_book(db, book_id)
        if book.claimed_by_user_id != acting_user_id:
            raise NotClaimantError("You can only release claims on books you have claimed")
        if book.transfer_status == TransferStatus.PENDING:
            raise TransferPendingError(
                "The owner has already handed this book off; confirm receipt instead")
        if not book.has_active_claim(now):
            raise ClaimExpiredError()

        if not Book.transition(
                db, book.id,
                Book.claimed_by_user_id == acting_user_id,
                Book.claim_expires_at > now,
                Book.transfer_status != TransferStatus.PENDING,
                **Book.CLEARED_CLAIM):
            db.rollback()
            raise ClaimExpiredError()

        cls._commit(db, "release claim")
        logger.info(f"Book {book.id} claim released by {acting_user_id}")
        return book

    @classmethod
    def mark_handed_off(cls, db, book_id, acting_owner_id, now=None):
        """Owner attests the book has left their hands; opens a Transfer."""
        now = now or utcnow()
        book = cls._get_book(db, book_id)
        if book.owner_id != acting_owner_id:
            raise NotOwnerError("You can only mark your own books as handed off")
        if not book.is_free_to_good_home:
            raise NotFreeError("Book is not marked as free to good home")
        if not book.claimed_by_user_id:
            raise NotClaimedError()
        if book.transfer_status == TransferStatus.PENDING:
            raise TransferPendingError()
        if not book.has_active_claim(now):
            raise ClaimExpiredError("Claim has expired")

        claimant_id = book.claimed_by_user_id
        claimant_library = Library.for_owner(db, claimant_id)
        if not claimant_library:
            raise ClaimantLibraryMissingError()

        if not Book.transition(
                db, book.id,
                Book.claimed_by_user_id == claimant_id,
                Book.claim_expires_at > now,
                Book.transfer_status != TransferStatus.PENDING,
                transfer_status=TransferStatus.PENDING):
            db.rollback()
            raise TransferPendingError("Book changed while marking it handed off")

        cls._close_stale_transfers(db, book.id, now)
        transfer = Transfer(
            book_id=book.id,
            from_library_id=book.library_id,
            to_library_id=claimant_library.id,
            claimant_id=claimant_id,
            status=TransferStatus.PENDING,
            transfer_initiated_at=now,
        )
        db.add(transfer)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise TransferPendingError()
        except Exception as e:
            db.rollback()
            raise DatabaseInsertError(f"Failed to initiate transfer: {str(e)}.")

        logger.info(
            f"Book {book.id} handed off: transfer {transfer.id} "
            f"library {transfer.from_library_id} -> {transfer.to_library_id}")
        return transfer

    @classmethod
    def confirm_received(cls, db, book_id, acting_claimant_id, now=None):
        """Claimant confirms receipt: the book moves into their library.

        The book move is authoritative. If closing the Transfer row fails
        afterwards the error is logged and the call still succeeds.
        """
        now = now or utcnow()
        book = cls._get_book(db, book_id)
        if book.claimed_by_user_id != acting_claimant_id:
            raise NotClaimantError("You can only confirm receipt of books you claimed")
        transfer = Transfer.pending_for(db, book.id)
        if not transfer or book.transfer_status != TransferStatus.PENDING:
            raise NoTransferPendingError()
        claimant_library = Library.for_owner(db, acting_claimant_id)
        if not claimant_library:
            raise ClaimantLibraryMissingError("Your library not found")

        title, author = book.title, book.author
        transfer_id = transfer.id
        if not Book.transition(
                db, book.id,
                Book.claimed_by_user_id == acting_claimant_id,
                Book.transfer_status == TransferStatus.PENDING,
                library_id=claimant_library.id,
                is_free_to_good_home=False,
                transfer_status=TransferStatus.COMPLETED,
                **Book.CLEARED_CLAIM):
            db.rollback()
            raise NoTransferPendingError()
        cls._commit(db, "transfer book")
        logger.info(
            f"Book {book.id} transferred to library {claimant_library.id} "
            f"({acting_claimant_id})")

        try:
            cls._complete_transfer(db, transfer_id, now)
        except Exception:
            db.rollback()
            logger.exception(f"Error updating transfer {transfer_id} for book {book.id}")

        return {"bookTitle": title, "bookAuthor": author, "transferId": transfer_id}

    @classmethod
    def _complete_transfer(cls, db, transfer_id, now):
        db.query(Transfer).filter(
            Transfer.id == transfer_id,
            Transfer.status == TransferStatus.PENDING,
        ).update({
            'status': TransferStatus.COMPLETED,
            'transfer_completed_at': now,
        }, synchronize_session=False)
        db.commit()

    @classmethod
    def _close_stale_transfers(cls, db, book_id, now):
        """Completes Transfer rows left pending by an earlier receipt whose
        row update failed. Runs inside the caller's transaction, only once
        the book itself has been moved to a new pending handoff.
        """
        count = db.query(Transfer).filter(
            Transfer.book_id == book_id,
            Transfer.status == TransferStatus.PENDING,
        ).update({
            'status': TransferStatus.COMPLETED,
            'transfer_completed_at': now,
        }, synchronize_session=False)
        if count:
            logger.warning(f"Closed {count} stale transfer row(s) for book {book_id}")
        return count

    @classmethod
    def release_expired_claims(cls, db, now=None):
        """Clears stale claim fields. Purely cosmetic: every reader already
        treats an expired claim as released.
        """
        now = now or utcnow()
        count = db.query(Book).filter(
            Book.claimed_by_user_id.isnot(None),
            Book.claim_expires_at <= now,
            Book.transfer_status != TransferStatus.PENDING,
        ).update(dict(Book.CLEARED_CLAIM, updated_at=now), synchronize_session=False)
        cls._commit(db, "release expired claims")
        if count:
            logger.info(f"Released {count} expired claim(s)")
        return count
