"""Database initialization script with an optional admin account."""

import os

from sqlalchemy.orm import Session

from pennywise.constants import UserRole
from pennywise.database import Base, SessionLocal, engine
from pennywise.models import User
from pennywise.services.password_service import PasswordService


def create_tables():
    """Create all database tables."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")


def seed_admin(db: Session, email: str, password: str, name: str = "Administrator") -> User:
    """Create the first admin account."""
    admin = User(
        name=name,
        email=email,
        role=UserRole.ADMIN,
        password_hash=PasswordService.hash_password(password),
    )
    db.add(admin)
    db.commit()
    print(f"  Admin: {admin.email}")
    return admin


def init_db():
    """Initialize database with tables and, if configured, an admin user.

    The admin is read from ADMIN_EMAIL / ADMIN_PASSWORD and only created on an
    empty users table.
    """
    print("Initializing database...")

    create_tables()

    admin_email = os.environ.get("ADMIN_EMAIL")
    admin_password = os.environ.get("ADMIN_PASSWORD")
    if not admin_email or not admin_password:
        print("\nADMIN_EMAIL/ADMIN_PASSWORD not set. Skipping admin seed.")
        return

    db = SessionLocal()
    try:
        existing_users = db.query(User).count()
        if existing_users > 0:
            print(f"\nDatabase already has {existing_users} users. Skipping admin seed.")
            return

        seed_admin(db, admin_email, admin_password)
        print("\nDatabase initialization complete!")

    except Exception as e:
        print(f"\nError during database initialization: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
