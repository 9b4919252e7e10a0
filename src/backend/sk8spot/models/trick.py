from sqlalchemy import Column, Integer, String, Text, Boolean
from sk8spot.db.base_class import Base

class Trick(Base):
    __tablename__ = "tricks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    difficulty = Column(String, nullable=True)
    description = Column(Text, nullable=True)

class DailyChallenge(Base):
    __tablename__ = "daily_challenges"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, server_default='true', index=True)
