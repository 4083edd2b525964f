"""Change the role of an existing account."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from models.account import Role
from models.audit_entry import Actor

PROCESS_TAG = "change-role-script"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email", help="Email of the account to change")
    parser.add_argument("role", choices=[role.value for role in Role], type=str.upper)
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        service = app.extensions["identity"]
        account = service.store.find_by_email(args.email)
        if account is None:
            print(f"No account registered with {args.email}")
            return 1

        previous = account.role.value
        outcome = service.change_role(account.id, args.role, Actor.system(PROCESS_TAG))
        if outcome.no_change:
            print(f"{account.email} already has the {args.role} role")
            return 0
        if not outcome.ok:
            print(f"Role change failed: {outcome.error.value}: {outcome.message}")
            return 1
        print(f"Changed {account.email} from {previous} to {args.role}")
        return 0


if __name__ == "__main__":
    sys.exit(main())
