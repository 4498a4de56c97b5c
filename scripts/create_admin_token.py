import argparse
import sys
from datetime import timedelta
from pathlib import Path

try:
    import dblocator
except ImportError:
    sys.path.append(str(Path(__file__).resolve().parent.parent / "src"))

from dblocator.core.config import settings
from dblocator.core.security import create_access_token

def main():
    parser = argparse.ArgumentParser(description="Mint a bearer token for the DbLocator admin API.")
    parser.add_argument("subject", help="Token subject")
    parser.add_argument("--minutes", type=int, default=settings.ACCESS_TOKEN_EXPIRE_MINUTES, help="Lifetime in minutes")
    args = parser.parse_args()

    token = create_access_token(
        args.subject,
        scopes=[settings.ADMIN_SCOPE],
        expires_delta=timedelta(minutes=args.minutes),
    )
    print(token)

if __name__ == "__main__":
    main()
