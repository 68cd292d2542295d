from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Integer, Text
from sqlalchemy.orm import relationship

from stravach.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    strava_id = Column(BigInteger, unique=True)
    telegram_chat_id = Column(BigInteger, unique=True, nullable=False)
    username = Column(Text, default="anonymous")
    strava_access_token = Column(Text)
    strava_refresh_token = Column(Text)
    token_expires_at = Column(BigInteger)  # unix seconds
    language = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    activities = relationship("UserActivity", back_populates="user")

    def auth_required(self, now: float) -> bool:
        return self.token_expires_at is None or self.token_expires_at <= now
