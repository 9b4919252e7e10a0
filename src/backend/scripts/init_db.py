# scripts/init_db.py

# このスクリプトを動かす前に：`docker-compose up -d db`
# 本番ではAlembic（`alembic upgrade head`）を使う．これはローカルで手早くテーブルを作る用．

import sys
from pathlib import Path
from sqlalchemy import create_engine, text

# backend/ をPythonの検索パスに追加（先に実行しないとsk8spotが見つからないよ．）
sys.path.append(str(Path(__file__).resolve().parent.parent))

# base.pyをインポートすることで、Baseを継承した全てのモデルがSQLAlchemyに認識される
from sk8spot.db import base
from sk8spot.core.config import get_settings

settings = get_settings()

def main():
    engine = create_engine(str(settings.DATABASE_URL))

    # Geography型を使うのでPostGIS拡張が必要．
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))

    print("データベースのテーブルを作成します...")
    base.Base.metadata.create_all(bind=engine)
    print("テーブルの作成が完了しました。")

if __name__ == "__main__":
    main()
