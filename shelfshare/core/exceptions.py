from shelfshare.core.utils import isoformat


class ShelfshareAPIError(Exception):
    """Base for every error the engines raise.

    `kind` is the machine-readable category sent to clients and
    `status_code` the HTTP status the route layer maps it to. `extra`
    carries additional fields merged into the JSON error body.
    """

    kind = "error"
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.kind, "message": self.message, **self.extra}


class NotAuthenticatedError(ShelfshareAPIError):
    kind = "not_authenticated"
    status_code = 401
    default_message = "Missing or invalid credentials"

class NotAuthorizedError(ShelfshareAPIError):
    kind = "not_authorized"
    status_code = 403
    default_message = "You are not allowed to do that"

class NotOwnerError(NotAuthorizedError):
    default_message = "You do not own this book"

class NotBorrowerError(NotAuthorizedError):
    default_message = "You are not the borrower of this book"

class NotClaimantError(NotAuthorizedError):
    default_message = "You have not claimed this book"

class NotFoundError(ShelfshareAPIError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"

class BookNotFoundError(NotFoundError):
    default_message = "Book not found"

class RequestNotFoundError(NotFoundError):
    default_message = "Borrow request not found or already processed"

class LibraryNotFoundError(NotFoundError):
    default_message = "Library not found"

class InvalidStateError(ShelfshareAPIError):
    kind = "invalid_state"
    status_code = 400
    default_message = "Book is not in a state that allows this"

class AlreadyProcessedError(InvalidStateError):
    default_message = "Borrow request already processed"

class InvalidActionError(InvalidStateError):
    default_message = 'Invalid action. Must be "approve" or "decline"'

class SelfBorrowError(InvalidStateError):
    default_message = "You cannot borrow your own book"

class NotFreeError(InvalidStateError):
    default_message = "This book is not available for free"

class SelfClaimError(InvalidStateError):
    default_message = "You cannot claim your own book"

class NotClaimedError(InvalidStateError):
    default_message = "Book has not been claimed by anyone"

class TransferPendingError(InvalidStateError):
    default_message = "Transfer already pending for this book"

class NoTransferPendingError(InvalidStateError):
    default_message = "No pending transfer found for this book"

class ClaimantLibraryMissingError(InvalidStateError):
    default_message = "Claimer library not found"

class ConflictError(ShelfshareAPIError):
    kind = "conflict"
    status_code = 409
    default_message = "Another request holds this book"

class AlreadyClaimedError(ConflictError):
    default_message = "This book is already claimed by someone else"

    def __init__(self, claimed_by, expires_at, message=None):
        self.claimed_by = claimed_by
        self.expires_at = expires_at
        super().__init__(
            message,
            claimedBy=claimed_by,
            expiresAt=isoformat(expires_at),
        )

class LibraryExistsError(ConflictError):
    default_message = "You already have a library"

class ClaimExpiredError(ShelfshareAPIError):
    kind = "expired"
    status_code = 400
    default_message = "This claim has already expired"

class DuplicateRequestError(ShelfshareAPIError):
    kind = "duplicate_request"
    status_code = 400
    default_message = "Request already sent"

class DatabaseInsertError(ShelfshareAPIError):
    kind = "database_error"
    status_code = 500
    default_message = "Database write failed"
