#!/usr/bin/env python3
"""
Create a back-office login.

The schema seeds roles but no users, so the first admin (and any later
account) is provisioned here.

Usage (from the backoffice/ directory):
    DATABASE_URL='postgresql://...' python -m migrations.create_user \
        owner@salon.test "Salon Owner" --role Admin

Options:
    --role NAME       Role to assign (Admin, Manager, Front Desk)
    --password PASS   Password; prompted for when omitted
"""
import argparse
import getpass
import sys

from core.auth.repositories import UserRepository

MIN_PASSWORD_LENGTH = 10


def create_user(email, name, password, role='Admin', repo=None):
    """Validate and insert a user. Raises ValueError on bad input."""
    repo = repo or UserRepository()
    email = (email or '').strip().lower()
    name = (name or '').strip()

    if '@' not in email:
        raise ValueError(f'Invalid email: {email!r}')
    if not name:
        raise ValueError('Name is required')
    if len(password or '') < MIN_PASSWORD_LENGTH:
        raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    role_id = repo.get_role_id(role)
    if role_id is None:
        raise ValueError(f'Unknown role: {role}')
    if repo.get_by_email(email):
        raise ValueError(f'A user with email {email} already exists')

    return repo.create(email, name, password, role_id=role_id)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create a back-office user')
    parser.add_argument('email')
    parser.add_argument('name')
    parser.add_argument('--role', default='Admin', help='Role name (default: Admin)')
    parser.add_argument('--password', help='Password (prompted when omitted)')
    args = parser.parse_args(argv)

    password = args.password
    if password is None:
        password = getpass.getpass('Password: ')
        if password != getpass.getpass('Confirm password: '):
            print('ERROR: Passwords do not match')
            return 1

    try:
        user = create_user(args.email, args.name, password, role=args.role)
    except ValueError as e:
        print(f'ERROR: {e}')
        return 1

    print(f"Created user {user['id']}: {user['email']} ({args.role})")
    return 0


if __name__ == '__main__':
    sys.exit(main())
