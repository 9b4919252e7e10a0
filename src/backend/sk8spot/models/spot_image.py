from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from sk8spot.db.base_class import Base

class SpotImage(Base):
    __tablename__ = "spot_images"

    id = Column(String(36), primary_key=True, index=True)
    spot_id = Column(String(36), ForeignKey("spots.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=True)
    image_url = Column(String, nullable=False)
    is_primary = Column(Boolean, nullable=False, server_default='false')
    angle = Column(String, nullable=False, server_default='main') # main / side / front / back / top / other
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    spot = relationship("Spot", back_populates="images")
