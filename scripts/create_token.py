"""
Create Access Token Script.

Issues a bearer token for a user ID so the upload endpoints can be exercised
by hand, e.g. with curl.

Run: python scripts/create_token.py <user-id> [--minutes 60]
"""

import argparse
import os
import sys
from datetime import timedelta

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tubely.core.config import settings
from tubely.modules.auth.jwt import create_access_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a Tubely access token")
    parser.add_argument("user_id", help="User ID to embed as the token subject")
    parser.add_argument(
        "--minutes",
        type=int,
        default=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        help="Token lifetime in minutes",
    )
    args = parser.parse_args()

    token = create_access_token(
        args.user_id,
        settings.SECRET_KEY,
        expires_delta=timedelta(minutes=args.minutes),
    )
    print(token)


if __name__ == "__main__":
    main()
