from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func

from classifieds.database import Base


class UserSession(Base):
    """Server-side session keyed by the opaque token stored in the cookie.

    user_id is not a foreign key: sessions outlive users until the next
    refresh notices the user is gone.
    """
    __tablename__ = "sessions"

    sid = Column(String(64), primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    data = Column(Text, nullable=False)  # JSON user snapshot
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
