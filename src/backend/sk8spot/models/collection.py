from sqlalchemy import Column, String, Text, DateTime, ForeignKey, func
from sk8spot.db.base_class import Base

class Collection(Base):
    __tablename__ = "collections"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

class CollectionSpot(Base):
    __tablename__ = "collection_spots"

    # 複合主キー：同じスポットを同じコレクションに二重登録できない．
    collection_id = Column(String(36), ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True)
    spot_id = Column(String(36), ForeignKey("spots.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
