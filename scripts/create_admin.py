"""
Create the seed administrator with a password from the environment.
Usage: ADMIN_PASSWORD=your-secure-password python scripts/create_admin.py

Seeded accounts are tagged registration_source="seed", so the first person
to register through the site still becomes an administrator.
"""
import os
import secrets
from sqlmodel import Session
from app.db import engine, create_db_and_tables
from app.models import Role
from app.services.accounts import SEED_SOURCE, create_account, get_account_by_email


def create_admin():
    # Require password from environment variable
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    admin_name = os.getenv("ADMIN_NAME", "Administrator")
    admin_password = os.getenv("ADMIN_PASSWORD")

    if not admin_password:
        # Generate secure random password if not provided
        admin_password = secrets.token_urlsafe(32)
        print("No ADMIN_PASSWORD env var set. Generated secure password:")
        print(f"  {admin_password}")
        print("\nSave this password securely - it will not be shown again!")
        print("Or set ADMIN_PASSWORD environment variable before running.\n")

    create_db_and_tables()

    with Session(engine) as session:
        if get_account_by_email(session, admin_email):
            print(f"Admin user {admin_email} already exists.")
            return

        print(f"Creating admin user: {admin_email}")
        create_account(
            session,
            email=admin_email,
            password=admin_password,
            name=admin_name,
            role=Role.ADMIN,
            email_verified=True,
            registration_source=SEED_SOURCE,
        )
        print("Admin user created successfully.")


if __name__ == "__main__":
    create_admin()
