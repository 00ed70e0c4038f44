#!/usr/bin/env python3
"""
Clear expired free-book claims. Optional housekeeping: expired claims are
already treated as released everywhere they are read.
"""
import logging
import sys
from dotenv import load_dotenv

load_dotenv()

from shelfshare.core.db import session, init as db_init
from shelfshare.core.claims import ClaimAPI
from shelfshare.core.exceptions import ShelfshareAPIError

logging.basicConfig(level=logging.INFO)


def main():
    try:
        db_init()
        count = ClaimAPI.release_expired_claims(session)
        print(f"Released {count} expired claim(s).")
    except ShelfshareAPIError as e:
        print(f"Database error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()


if __name__ == "__main__":
    main()
