#!/usr/bin/env python3
"""
Mint a signed bearer token for a user id (development helper).
"""
import argparse
from dotenv import load_dotenv

load_dotenv()

from shelfshare.core import auth


def main():
    parser = argparse.ArgumentParser(description="Issue a Shelfshare bearer token")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--email", default=None)
    args = parser.parse_args()

    print(auth.create_session_token(args.user_id, email=args.email))


if __name__ == "__main__":
    main()
