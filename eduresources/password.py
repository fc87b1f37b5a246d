# eduresources/password.py
"""Bootstraps an administrator account.

Usage: python -m eduresources.password [email] ["full name"]

Prompts for the password twice and prints its werkzeug hash. Given an email,
also prints the INSERT statement for the admins table, to be run in the
Supabase SQL editor.
"""
import getpass  # Use getpass to hide password input
import sys

from werkzeug.security import generate_password_hash

from eduresources.config import ADMIN_TABLE


def _sql_literal(value):
    return "'" + value.replace("'", "''") + "'"


def admin_insert_sql(email, full_name, password_hash):
    """INSERT statement creating one admin row."""
    return (
        f"INSERT INTO {ADMIN_TABLE} (email, full_name, password_hash) VALUES "
        f"({_sql_literal(email.strip().lower())}, {_sql_literal(full_name or '')}, "
        f"{_sql_literal(password_hash)});"
    )


def create_hash(email=None, full_name=None):
    """Prompts for a password and prints its hash (and the admin INSERT when an email is given)."""
    password = getpass.getpass("Admin password: ")
    confirm_password = getpass.getpass("Confirm the password: ")

    if not password:
        print("\nError: Password cannot be empty.")
        return None
    if password != confirm_password:
        print("\nError: Passwords do not match.")
        return None

    password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    if email:
        print(f"\n-- Run in the Supabase SQL editor to add {email}:")
        print(admin_insert_sql(email, full_name, password_hash))
    else:
        print(f"\nValue for {ADMIN_TABLE}.password_hash:")
        print(password_hash)
    return password_hash


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if len(args) > 2:
        print("Usage: python -m eduresources.password [email] [\"full name\"]")
        return 2
    email = args[0].strip() if args else None
    full_name = args[1].strip() if len(args) > 1 else ""
    return 0 if create_hash(email, full_name) else 1


if __name__ == "__main__":
    raise SystemExit(main())
