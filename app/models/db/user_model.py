from sqlalchemy import Column, DateTime, String

from app.database import Base
from app.timeutils import utcnow


class UserModel(Base):
    """SQLAlchemy model for users table (member and trainer profiles)."""

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=False, default="")
    role = Column(String(10), nullable=False, default="member")
    last_seen = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Constraints (enforced by database CHECK constraints in migrations)
    # role IN ('member', 'trainer')
