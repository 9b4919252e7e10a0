from sqlalchemy import Column, String, Float, Boolean, Text, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sk8spot.db.base_class import Base
from geoalchemy2 import Geography

class Spot(Base):
    __tablename__ = "spots"

    id = Column(String(36), primary_key=True, index=True) # UUID4文字列．作成時に採番し変更しない．
    user_id = Column(String, index=True, nullable=True) # 登録したユーザー

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    type = Column(String, nullable=False, server_default='unknown', index=True)
    difficulty = Column(String, nullable=False, server_default='unknown', index=True)
    surface = Column(String, nullable=True, index=True)
    skateability_score = Column(Float, nullable=True)
    features = Column(JSONB, nullable=False, server_default='{}') # {height, width, length, angle, steps, ...}

    # 座標は数値カラムとGeography型の両方で保持する．
    # 数値カラム：読み出し・距離計算用，Geography型：空間インデックス（ST_DWithin）用．SRID=4326は世界測地系(WGS84)を示す値．
    # 旧データには座標欠損の行がありうるため，NOT NULLにはせず読み出し側で弾く．
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    geom = Column(Geography(geometry_type='POINT', srid=4326), nullable=True)
    address = Column(String, nullable=True)

    status = Column(String, nullable=False, server_default='active', index=True) # active / archived / flagged
    verified = Column(Boolean, nullable=False, server_default='false')

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # メイン画像を先頭にする並べ替えはリポジトリ側で行う．
    images = relationship(
        "SpotImage",
        back_populates="spot",
        order_by="SpotImage.created_at",
        lazy="selectin",
        cascade="all, delete-orphan"
    )
