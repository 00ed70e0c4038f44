#!/usr/bin/env python3
"""
Script to add a book to a user's library, creating the library if needed.
"""
import argparse
import sys
from dotenv import load_dotenv

load_dotenv()

from shelfshare.core.db import session, init as db_init
from shelfshare.core.catalog import CatalogAPI
from shelfshare.core.claims import ClaimAPI
from shelfshare.core.models import Library
from shelfshare.core.exceptions import ShelfshareAPIError


def main():
    parser = argparse.ArgumentParser(description="Add a book to a Shelfshare library")
    parser.add_argument("--owner-id", required=True, help="User id of the library owner")
    parser.add_argument("--title", required=True)
    parser.add_argument("--author", default=None)
    parser.add_argument("--isbn", default=None)
    parser.add_argument(
        "--free",
        choices=["pickup", "mail", "both"],
        default=None,
        help="Offer the book free to a good home with this delivery method"
    )
    args = parser.parse_args()

    try:
        db_init()
        if not Library.for_owner(session, args.owner_id):
            library = CatalogAPI.create_library(session, args.owner_id)
            print(f"Created library {library.id} for {args.owner_id}")
        book = CatalogAPI.add_book(
            session, args.owner_id, args.title, author=args.author, isbn=args.isbn)
        if args.free:
            ClaimAPI.set_free_status(session, book.id, args.owner_id, True, args.free)
        print(f"Success! Book {book.id} '{book.title}' added.")
    except ShelfshareAPIError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()


if __name__ == "__main__":
    main()
