#!/usr/bin/env python3
"""
CLI tool to inspect users and mint bearer tokens.

Usage:
    python -m kpower.cli.manage_users list
    python -m kpower.cli.manage_users list --search ali --page 2 --limit 20
    python -m kpower.cli.manage_users token --username alice

Examples:
    # List the newest users with their invite codes and referral counts
    python -m kpower.cli.manage_users list

    # Issue a token for an existing user to call protected endpoints
    TOKEN=$(python -m kpower.cli.manage_users token --username alice)
    curl -H "Authorization: Bearer $TOKEN" http://localhost:8000/users/me
"""
import argparse
import asyncio
import sys
from datetime import timedelta
from typing import Optional

from kpower.application.user_directory import paginate
from kpower.config import Settings, settings
from kpower.core.interfaces import UserListQuery
from kpower.db.connection import Database
from kpower.domain.errors import ApiError
from kpower.domain.value_objects import Username
from kpower.repositories.user_repository import UserRepository
from kpower.services.token_service import TokenService


def _database(config: Settings) -> Database:
    return Database(
        config.database_url,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_timeout=config.db_pool_timeout,
    )


async def list_users(
    config: Settings,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> int:
    """List users, newest first"""
    database = _database(config)
    await database.init()

    try:
        async with database.session() as session:
            # No requesting user here: an empty auth_user excludes nobody
            query = UserListQuery(auth_user="", username=search, skip=(page - 1) * limit, limit=limit)
            users, total = await UserRepository(session).list_users(query)

        pagination = paginate(page, limit, total)
        if not users:
            print("No users found")
            return 0

        print(f"\n{'Username':<24} {'Invite code':<12} {'Referred by':<24} {'Referrals':>9}")
        print("-" * 72)
        for user in users:
            referred_by = user.referred_by.value if user.referred_by else "-"
            print(f"{user.username.value:<24} {user.invite_code.value:<12} {referred_by:<24} {user.referrals:>9}")
        print()
        print(f"Page {pagination.current_page} of {pagination.total_pages} ({total} users)")
        return 0

    except ApiError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    finally:
        await database.close()


async def issue_token(config: Settings, username: str) -> int:
    """Print a bearer token for an existing user"""
    database = _database(config)
    await database.init()

    try:
        async with database.session() as session:
            user = await UserRepository(session).get_by_username(Username(username))

        if user is None:
            print(f"[ERROR] User '{username}' not found", file=sys.stderr)
            return 1

        tokens = TokenService(
            secret=config.jwt_secret,
            issuer=config.jwt_issuer,
            ttl=timedelta(seconds=config.jwt_expiration_seconds),
            algorithm=config.jwt_algorithm,
        )
        print(tokens.issue(user.username.value))
        return 0

    except ApiError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    finally:
        await database.close()


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Inspect users and issue bearer tokens',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # List users command
    list_parser = subparsers.add_parser('list', help='List users')
    list_parser.add_argument('--search', help='Substring to match in usernames')
    list_parser.add_argument('--page', type=int, default=1, help='Page number (1-indexed)')
    list_parser.add_argument('--limit', type=int, default=10, help='Users per page')

    # Token command
    token_parser = subparsers.add_parser('token', help='Issue a bearer token for a user')
    token_parser.add_argument('--username', required=True, help='Existing username')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'list':
        if args.page < 1 or args.limit < 1:
            parser.error('--page and --limit must be positive')
        return asyncio.run(list_users(settings, args.search, args.page, args.limit))
    elif args.command == 'token':
        return asyncio.run(issue_token(settings, args.username))
    return 1


if __name__ == '__main__':
    sys.exit(main())
