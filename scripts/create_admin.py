#!/usr/bin/env python3
"""
Create an Admin User

Creates an administrator account in the database so it can log in to the
admin back-office. The password is hashed before it is stored.

Usage:
    python scripts/create_admin.py --username ops
    python scripts/create_admin.py --username ops --database-url postgresql+psycopg://...
    python scripts/create_admin.py --list
"""

import argparse
import getpass
import sys
from pathlib import Path

# Allow running from the repository root without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv
from sqlalchemy import select

from app.auth.sessions import SessionManager
from app.config import get_config
from app.errors import ValidationFailed
from database_orm.connection import get_session, init_connection, create_schema
from database_orm.models import AdminUser


def list_admins() -> list[dict]:
    with get_session() as session:
        admins = session.scalars(select(AdminUser).order_by(AdminUser.created_at))
        return [
            {
                "username": admin.username,
                "created": admin.created_at,
                "last_login": admin.last_login_at,
            }
            for admin in admins
        ]


def read_password(args) -> str:
    if args.password:
        return args.password

    password = getpass.getpass("Password: ")
    confirm = getpass.getpass("Confirm password: ")
    if password != confirm:
        print("✗ Passwords do not match")
        sys.exit(1)
    return password


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(
        description='Create an admin user for the back-office'
    )
    parser.add_argument(
        '--username',
        help='Admin username'
    )
    parser.add_argument(
        '--password',
        help='Admin password (prompted if omitted)'
    )
    parser.add_argument(
        '--database-url',
        help='Database URL (default: DATABASE_URL from the environment)'
    )
    parser.add_argument(
        '--list',
        action='store_true',
        help='List existing admins and exit'
    )

    args = parser.parse_args(argv)

    config = get_config()
    database_url = args.database_url or config.get_database_url()
    if not database_url:
        print("✗ No database configured. Set DATABASE_URL or pass --database-url.")
        sys.exit(1)

    init_connection(database_url)
    create_schema()

    if args.list:
        admins = list_admins()
        for admin in admins:
            print(f"  Username:    {admin['username']}")
            print(f"  Created:     {admin['created']}")
            print(f"  Last login:  {admin['last_login'] or 'never'}")
            print()
        print(f"Total admins: {len(admins)}")
        return

    if not args.username:
        parser.error("--username is required unless --list is given")

    password = read_password(args)

    settings = config.get_session_config()
    manager = SessionManager(secret=settings.secret, ttl=settings.ttl)
    try:
        admin = manager.create_admin(args.username, password)
    except (ValidationFailed, ValueError) as e:
        print(f"✗ {e}")
        sys.exit(1)

    print(f"✓ Created admin '{admin.username}' ({admin.id})")


if __name__ == '__main__':
    main()
