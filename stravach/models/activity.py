from sqlalchemy import BigInteger, Boolean, Column, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from stravach.database import Base


class UserActivity(Base):
    __tablename__ = "user_activities"

    id = Column(BigInteger, primary_key=True, autoincrement=False)  # Strava activity id
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(Text)
    distance = Column(Float, default=0.0)  # meters
    moving_time = Column(Integer, default=0)  # seconds
    elapsed_time = Column(Integer, default=0)  # seconds
    activity_type = Column(Text)
    start_date = Column(DateTime(timezone=True))
    average_heartrate = Column(Float)
    average_speed = Column(Float)  # m/s
    renamed = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="activities")
