# 全てのモデルが継承する基底クラス．
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# 制約名の命名規則（Alembicのマイグレーションと揃える）
NAMING_CONVENTION = {
    'ix': 'ix_%(column_0_label)s',
}

class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
