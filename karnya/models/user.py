from sqlalchemy import Column, Integer, String, Boolean, DateTime

from karnya.core.db import Base, utcnow


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    # uniqueness lives here, not in the register pre-check
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    password_hash = Column(String(255), nullable=False)

    user_type = Column(String(20), nullable=False)
    role = Column(String(20), nullable=False, default="user")

    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(255), unique=True, nullable=True, index=True)

    # token and expiry are independent columns
    reset_token = Column(String(255), nullable=True, index=True)
    reset_token_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
