"""User model - learner accounts (self-registered, Google, or CSV-imported)"""
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base


class User(Base):
    """A learner account.

    ``password_hash`` is empty for accounts created through Google sign-in.
    Imported accounts get a random password and ``import_source="csv_import"``.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(50), unique=True, nullable=False, index=True)     # "usr_xxx"
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)      # always lower-case
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), default="user", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    google_id = Column(String(255), unique=True, nullable=True)
    import_source = Column(String(20), default="manual", nullable=False)       # manual|csv_import|google_oauth
    import_date = Column(DateTime, nullable=True)

    # Profile
    first_name = Column(String(100), default="", nullable=False)
    last_name = Column(String(100), default="", nullable=False)
    phone = Column(String(30), default="", nullable=False)
    phone2 = Column(String(30), default="", nullable=False)
    birthday = Column(DateTime, nullable=True)
    discord_id = Column(String(100), default="", nullable=False)
    tradingview_id = Column(String(100), default="", nullable=False)
    trading_segment = Column(String(100), default="", nullable=False)
    badge = Column(String(50), default="Beginner", nullable=False)
    address = Column(JSON, nullable=True)       # {"street", "city", "state", "zip_code", "country"}
    address2 = Column(JSON, nullable=True)
    address3 = Column(JSON, nullable=True)
    labels = Column(JSON, default=list, nullable=False)
    email_subscriber_status = Column(String(50), default="", nullable=False)
    sms_subscriber_status = Column(String(50), default="", nullable=False)
    source = Column(String(100), default="", nullable=False)
    language = Column(String(50), default="", nullable=False)
    last_activity = Column(String(255), default="", nullable=False)
    last_activity_date = Column(DateTime, nullable=True)
    created_at_utc = Column(DateTime, nullable=True)                          # join date from the import source

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.first_name or self.username
