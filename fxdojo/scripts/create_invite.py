#!/usr/bin/env python3
"""Create an invite link from the command line.

Usage:
  python -m fxdojo.scripts.create_invite --max-uses 10 --days 7 --description "Discord batch"
"""

import argparse
from datetime import datetime, timedelta

from fxdojo.core.env import load_env

load_env()

from fxdojo.core.config import settings
from fxdojo.core.logging import configure_logging, get_logger
from fxdojo.db.session import SessionLocal
from fxdojo.modules.auth.repository import UserRepository
from fxdojo.modules.invites.service import InviteService

logger = get_logger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create an fxdojo invite link")
    parser.add_argument("--max-uses", type=int, default=None, help="unlimited when omitted")
    parser.add_argument("--days", type=int, default=None, help="days until the link expires")
    parser.add_argument("--description", default=None)
    parser.add_argument("--admin-email", default=settings.ADMIN_EMAIL, help="recorded as the creator")
    args = parser.parse_args()

    configure_logging()
    db = SessionLocal()
    try:
        creator = UserRepository(db).get_by_email(args.admin_email.lower())
        if creator is None:
            parser.error(f"no user with email {args.admin_email}")

        expires_at = datetime.utcnow() + timedelta(days=args.days) if args.days else None
        invite = InviteService(db).create_invite(
            created_by=creator,
            max_uses=args.max_uses,
            expires_at=expires_at,
            description=args.description,
        )
    finally:
        db.close()

    logger.info(
        "invite link created",
        code=invite.code,
        url=f"{settings.FRONTEND_URL}/register?invite={invite.code}",
        max_uses=invite.max_uses,
        expires_at=invite.expires_at.isoformat() if invite.expires_at else None,
    )


if __name__ == "__main__":
    main()
