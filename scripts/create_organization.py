#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from claimdesk.core.config import DEV_BOOTSTRAP_ALLOW, IS_DEV  # noqa: E402
from claimdesk.core.database import SessionLocal, engine  # noqa: E402
from claimdesk.core.startup_checks import ensure_identity_tables_exist  # noqa: E402
from claimdesk.services.registration import (  # noqa: E402
    EmailAlreadyRegistered,
    register_organization,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an organization and its owner account.")
    parser.add_argument("--organization", required=True, help="Organization name")
    parser.add_argument("--email", required=True, help="Owner email")
    parser.add_argument("--password", required=True, help="Owner password")
    parser.add_argument("--name", help="Owner display name")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run without DEV_BOOTSTRAP_ALLOW=1",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if not DEV_BOOTSTRAP_ALLOW and not args.force:
        print("Bootstrap disabled. Set DEV_BOOTSTRAP_ALLOW=1 or pass --force.")
        return 1

    try:
        ensure_identity_tables_exist(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        owner, organization = register_organization(
            db,
            email=args.email,
            password=args.password,
            organization_name=args.organization,
            name=args.name,
        )
    except EmailAlreadyRegistered as exc:
        print(str(exc))
        return 2
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    print(f"Organization created: id={organization.id} name={organization.name}")
    if IS_DEV:
        print(f"Owner -> id: {owner.id} | email: {owner.email} | role: {owner.role.value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
