import secrets

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from classifieds.models import Role

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def generate_session_token() -> str:
    """Generate an opaque, URL-safe session token."""
    return secrets.token_urlsafe(32)


def get_or_create_role(db: Session, name: str) -> Role:
    """Look up a role by name, inserting it if the roles table lacks it.

    Flushes but does not commit; the caller owns the transaction.
    """
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name)
        db.add(role)
        db.flush()
    return role
