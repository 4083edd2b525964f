"""Promote an existing account to administrator."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from models.audit_entry import Actor

PROCESS_TAG = "promote-admin-script"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email", help="Email of the account to promote")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        service = app.extensions["identity"]
        account = service.store.find_by_email(args.email)
        if account is None:
            print(f"No account registered with {args.email}")
            return 1

        outcome = service.promote_to_admin(account.id, Actor.system(PROCESS_TAG))
        if outcome.no_change:
            print(f"{account.email} is already an ADMIN")
            return 0
        if not outcome.ok:
            print(f"Promotion failed: {outcome.error.value}: {outcome.message}")
            return 1
        print(f"Promoted {account.email} to ADMIN")
        return 0


if __name__ == "__main__":
    sys.exit(main())
