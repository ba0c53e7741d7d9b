"""
scripts/create_admin.py

Run this once from your project root to create the first admin user:

    python -m scripts.create_admin

You will be prompted for email, phone, and password. Admin accounts
cannot be created through the public signup endpoint.
"""

import sys
import os

# Make sure app is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.database import SessionLocal, init_db
from app.models.user import User, UserRole, UserStatus
from app.utils.auth import get_password_hash


def create_admin():
    print("\n── Create Admin User ─────────────────────")

    email    = input("Email:          ").strip().lower()
    phone    = input("Phone (+971...): ").strip()
    password = input("Password:       ").strip()

    if not all([email, password]):
        print("❌ Email and password are required.")
        sys.exit(1)

    if len(password) < 8:
        print("❌ Password must be at least 8 characters.")
        sys.exit(1)

    init_db()
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            print(f"❌ Email '{email}' is already registered.")
            sys.exit(1)

        admin = User(
            email=email,
            phone=phone or None,
            password_hash=get_password_hash(password),
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
        )

        db.add(admin)
        db.commit()
        db.refresh(admin)

        print(f"\n✅ Admin user created successfully!")
        print(f"   ID:    {admin.id}")
        print(f"   Email: {admin.email}")
        print(f"\nLog in at /api/v1/admin/auth/token.\n")

    except Exception as e:
        db.rollback()
        print(f"❌ Failed: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
