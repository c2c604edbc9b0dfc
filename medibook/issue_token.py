"""Print a bearer token for a principal, for local testing.

Usage:
    python -m medibook.issue_token --id 1 --role provider
"""
import argparse
import sys

from medibook.auth.jwt_handler import create_access_token
from medibook.auth.principal import Principal, Role


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--id", type=int, required=True, dest="principal_id")
    parser.add_argument("--role", choices=[role.value for role in Role], required=True)
    parser.add_argument("--expires-minutes", type=int, default=None)
    args = parser.parse_args(argv)

    if args.principal_id <= 0:
        print("Principal id must be positive.", file=sys.stderr)
        sys.exit(1)

    principal = Principal(id=args.principal_id, role=Role(args.role))
    print(create_access_token(principal, expires_minutes=args.expires_minutes))


if __name__ == "__main__":
    main()
