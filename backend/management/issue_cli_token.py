"""
Mints a CLI token for local development, normally the dashboard does this.

    python management/issue_cli_token.py --user-id user_abc --email me@example.com --org-id org_abc
"""

import argparse
import os
import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# ruff: noqa: E402
from src import settings
from src.common.logs import configure_logging

configure_logging()
from loguru import logger

from src.core.authentication import AuthenticationService, ResolvedIdentity


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Issue a Claudometer CLI token')
    parser.add_argument('--user-id', required=True)
    parser.add_argument('--email', required=True)
    parser.add_argument('--name', default=None)
    parser.add_argument('--org-id', default=None)
    parser.add_argument('--org-name', default=None)
    parser.add_argument('--days', type=int, default=settings.CLI_TOKEN_LIFETIME.days)
    return parser.parse_args()


def main():
    args = parse_args()
    identity = ResolvedIdentity(
        user_id=args.user_id,
        email=args.email,
        name=args.name,
        org_id=args.org_id,
        org_name=args.org_name,
    )
    expires_at = datetime.now(tz=timezone.utc) + timedelta(days=args.days)
    token = AuthenticationService.issue_cli_token(identity, expires_at=expires_at)
    logger.info(f'Issued CLI token for {identity.user_id} expiring {expires_at.isoformat()}')
    print(token)


if __name__ == '__main__':
    main()
