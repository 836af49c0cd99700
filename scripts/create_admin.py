#!/usr/bin/env python3
"""
Create an admin account: python scripts/create_admin.py coach@example.com "Coach Name"
The password is read from the terminal.
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import getpass
from replaycoach.database import init_db
from replaycoach.errors import ApiError
from replaycoach.services.auth_service import AuthService
from replaycoach.utils.validators import validate_email


def main():
    parser = argparse.ArgumentParser(description='Create a Replay Coach admin account')
    parser.add_argument('email')
    parser.add_argument('name', nargs='?')
    args = parser.parse_args()

    valid, error = validate_email(args.email)
    if not valid:
        sys.exit(error)

    password = getpass.getpass('Password: ')
    if len(password) < 8:
        sys.exit('Password must be at least 8 characters')
    if password != getpass.getpass('Confirm password: '):
        sys.exit('Passwords do not match')

    init_db()
    try:
        admin = AuthService().create_admin(args.email, password, args.name)
    except ApiError as e:
        sys.exit(e.message)

    print(f"Created admin {admin['email']} (id {admin['id']})")


if __name__ == "__main__":
    main()
