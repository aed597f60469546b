# app/scripts/issue_token.py
"""Print a bearer token for an operator: python -m app.scripts.issue_token <name> [minutes]"""
import sys
from datetime import timedelta

from app.core.security import create_access_token


def main(argv: list[str]) -> int:
    if not argv:
        print("usage: python -m app.scripts.issue_token <operator> [expire_minutes]", file=sys.stderr)
        return 2

    expires = timedelta(minutes=int(argv[1])) if len(argv) > 1 else None
    print(create_access_token(argv[0], expires_delta=expires))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
