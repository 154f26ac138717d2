#!/usr/bin/env python3
"""
Create a user account and print an access token for it.

Users are provisioned by the operator; the API has no sign-up or login.

Usage:
    python scripts/create_user.py

Type 'q' or 'quit' at any prompt to exit.
"""

import sys
import os
import re
from typing import Optional

from sqlalchemy import or_

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mindcare.core.database import SessionLocal, engine, Base
from mindcare.core.security import create_access_token
from mindcare.models import User
from mindcare.models.user import ROLE_ADMIN, ROLE_STUDENT


def create_or_update_user(
        username: str,
        email: str,
        full_name: Optional[str] = None,
        role: str = ROLE_STUDENT,
        session_factory=SessionLocal
) -> Optional[str]:
    """Create the user (or promote an existing one) and return a fresh token"""
    db = session_factory()
    try:
        user = db.query(User).filter(or_(User.username == username, User.email == email)).first()

        if user:
            print(f"\n⚠️  User already exists: {user.username} (email: {user.email}, role: {user.role})")
            if full_name:
                user.full_name = full_name
            if role == ROLE_ADMIN and not user.is_admin:
                user.role = ROLE_ADMIN
                print("    Promoted to admin")
            user.is_active = True
        else:
            user = User(
                username=username,
                email=email,
                full_name=full_name or username,
                role=role,
                is_active=True
            )
            db.add(user)

        db.commit()
        db.refresh(user)
        token = create_access_token({"sub": str(user.id)})

        print("\n" + "=" * 50)
        print(f"✅ {user.role} account ready")
        print(f"   Username: {user.username}")
        print(f"   Email: {user.email}")
        print(f"   ID: {user.id}")
        print(f"   Token: {token}")
        print("=" * 50 + "\n")
        return token

    except Exception as e:
        db.rollback()
        print(f"\n❌ Failed: {e}")
        return None
    finally:
        db.close()


def validate_username(username: str) -> bool:
    if len(username) < 3 or len(username) > 50:
        print("🚨 Username must be 3 to 50 characters.")
        return False
    return True


def validate_email(email: str) -> bool:
    if not re.match(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$", email):
        print("🚨 Please enter a valid email address (e.g. user@example.com).")
        return False
    return True


def validate_yes_no(choice: str) -> bool:
    if choice.lower() not in ['y', 'n']:
        print("🚨 Please type 'y' or 'n'.")
        return False
    return True


def get_validated_input(prompt: str, validator, allow_empty: bool = False):
    while True:
        user_input = input(f"{prompt} (q/quit to exit): ").strip()

        if user_input.lower() in ['q', 'quit']:
            print("\n👋 Bye.")
            sys.exit(0)

        if not user_input:
            if allow_empty:
                return user_input
            print("🚨 Input cannot be empty.")
            continue

        if validator(user_input):
            return user_input


def interactive_mode():
    print("=" * 60)
    print("          MindCare account setup")
    print("=" * 60)
    print()

    username = get_validated_input("1. Username (3-50 characters)", validate_username)
    email = get_validated_input("2. Email", validate_email)
    full_name = get_validated_input("3. Full name (optional)", lambda x: True, allow_empty=True)
    is_admin = get_validated_input("4. Counselor/admin account? (y/n)", validate_yes_no).lower() == 'y'
    role = ROLE_ADMIN if is_admin else ROLE_STUDENT

    print("\n" + "-" * 30)
    print(f"  Username: {username}")
    print(f"  Email: {email}")
    print(f"  Full name: {full_name or username}")
    print(f"  Role: {role}")
    print("-" * 30)

    if get_validated_input("Create this account? (y/n)", validate_yes_no).lower() == 'y':
        Base.metadata.create_all(bind=engine)
        create_or_update_user(username, email, full_name or None, role)
    else:
        print("\nCancelled.")


if __name__ == "__main__":
    interactive_mode()
