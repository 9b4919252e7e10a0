from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sk8spot.core.config import get_settings

settings = get_settings()

# pool_pre_ping：切れたコネクションをプールから払い出さない．
engine = create_engine(str(settings.DATABASE_URL), pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# FastAPIのDependsで使うためのDBセッション取得関数
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
