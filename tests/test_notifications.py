import pytest
from conftest import T0, HOUR, OWNER, ALICE, BOB
from shelfshare.core.catalog import CatalogAPI
from shelfshare.core.claims import ClaimAPI
from shelfshare.core.lending import LendingAPI
from shelfshare.core.notifications import NotificationAPI
from shelfshare.core.exceptions import BookNotFoundError, LibraryExistsError, LibraryNotFoundError


def test_pending_and_outgoing_requests(db_session, book):
    request = LendingAPI.request_borrow(db_session, book.id, ALICE, now=T0)

    assert [r.id for r in NotificationAPI.pending_requests(db_session, OWNER)] == [request.id]
    assert [r.id for r in NotificationAPI.outgoing_requests(db_session, ALICE)] == [request.id]
    assert NotificationAPI.pending_requests(db_session, ALICE) == []

    LendingAPI.respond_to_request(db_session, request.id, OWNER, "decline", now=T0)
    assert NotificationAPI.pending_requests(db_session, OWNER) == []


def test_lending_history_visible_to_both_parties(db_session, book):
    first = LendingAPI.request_borrow(db_session, book.id, ALICE, now=T0)
    LendingAPI.respond_to_request(db_session, first.id, OWNER, "decline", now=T0)
    second = LendingAPI.request_borrow(db_session, book.id, BOB, now=T0 + HOUR)

    owner_view = NotificationAPI.lending_history(db_session, OWNER)
    assert [r.id for r in owner_view] == [second.id, first.id]
    assert [r.id for r in NotificationAPI.lending_history(db_session, ALICE)] == [first.id]
    assert len(NotificationAPI.lending_history(db_session, OWNER, limit=1)) == 1


def test_claimed_notifications_skip_expired_claims(db_session, book):
    ClaimAPI.set_free_status(db_session, book.id, OWNER, True)
    ClaimAPI.claim_book(db_session, book.id, ALICE, now=T0)

    alerts = NotificationAPI.claimed_notifications(db_session, OWNER, now=T0 + HOUR + HOUR / 2)
    assert len(alerts) == 1
    assert alerts[0]["bookId"] == book.id
    assert alerts[0]["claimerId"] == ALICE
    assert alerts[0]["timeRemaining"] == 47  # 46.5 hours left, rounded up
    assert alerts[0]["handedOff"] is False

    assert NotificationAPI.claimed_notifications(db_session, OWNER, now=T0 + 48 * HOUR) == []


def test_claimed_notifications_without_library(db_session):
    assert NotificationAPI.claimed_notifications(db_session, "user-nobody", now=T0) == []


def test_my_claims_includes_pending_transfer(db_session, book):
    ClaimAPI.set_free_status(db_session, book.id, OWNER, True, "mail")
    ClaimAPI.claim_book(db_session, book.id, ALICE, now=T0)
    assert NotificationAPI.my_claims(db_session, ALICE, now=T0)[0]["transferId"] is None

    transfer = ClaimAPI.mark_handed_off(db_session, book.id, OWNER, now=T0 + HOUR)
    claims = NotificationAPI.my_claims(db_session, ALICE, now=T0 + 100 * HOUR)
    assert len(claims) == 1
    assert claims[0]["transferId"] == transfer.id
    assert claims[0]["ownerId"] == OWNER
    assert claims[0]["deliveryMethod"] == "mail"
    assert claims[0]["timeRemaining"] == 0


def test_free_books_lists_only_unheld_books(db_session, book):
    other = CatalogAPI.add_book(db_session, OWNER, "Parable of the Sower")
    CatalogAPI.add_book(db_session, OWNER, "Not free")
    ClaimAPI.set_free_status(db_session, book.id, OWNER, True)
    ClaimAPI.set_free_status(db_session, other.id, OWNER, True)
    ClaimAPI.claim_book(db_session, other.id, ALICE, now=T0)

    assert {b.id for b in NotificationAPI.free_books(db_session, OWNER, now=T0)} == {book.id}
    expired = NotificationAPI.free_books(db_session, OWNER, now=T0 + 49 * HOUR)
    assert {b.id for b in expired} == {book.id, other.id}


def test_book_status_applies_lazy_expiry(db_session, book):
    ClaimAPI.set_free_status(db_session, book.id, OWNER, True)
    ClaimAPI.claim_book(db_session, book.id, ALICE, now=T0)

    live = NotificationAPI.book_status(db_session, book.id, now=T0 + HOUR)
    assert live["disposition"] == "free"
    assert live["freeState"] == "claimed"
    assert live["claimedByUserId"] == ALICE

    stale = NotificationAPI.book_status(db_session, book.id, now=T0 + 49 * HOUR)
    assert stale["freeState"] == "free_unclaimed"
    assert stale["claimedByUserId"] is None
    assert stale["claimExpiresAt"] is None


def test_book_status_for_loan(db_session, book):
    request = LendingAPI.request_borrow(db_session, book.id, ALICE, now=T0)
    LendingAPI.respond_to_request(db_session, request.id, OWNER, "approve", now=T0)

    status = NotificationAPI.book_status(db_session, book.id, now=T0 + 15 * 24 * HOUR)
    assert status["disposition"] == "lending"
    assert status["lendingState"] == "borrowed"
    assert status["borrowerId"] == ALICE
    assert status["isOverdue"] is True
    assert status["freeState"] is None

    with pytest.raises(BookNotFoundError):
        NotificationAPI.book_status(db_session, 9999)


def test_catalog_guards(db_session, libraries):
    with pytest.raises(LibraryExistsError):
        CatalogAPI.create_library(db_session, OWNER)
    with pytest.raises(LibraryNotFoundError):
        CatalogAPI.add_book(db_session, "user-nobody", "Orphan")
