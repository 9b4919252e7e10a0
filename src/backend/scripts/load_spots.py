# scripts/load_spots.py

# このスクリプトを動かす前に：`docker-compose up -d db` -> `python scripts/init_db.py`
# CSVの列：name, latitude, longitude, type, difficulty, surface, address, description, height, width, length, angle, steps

import sys
import csv
import uuid
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

# backend/ をPythonの検索パスに追加（先に実行しないとsk8spotが見つからないよ．）
sys.path.append(str(Path(__file__).resolve().parent.parent))

from sk8spot.models import Spot, Trick, DailyChallenge
from sk8spot.core.config import get_settings
from sk8spot.crud.spot import to_wkt_point

settings = get_settings()

# このスクリプト専用のDBセッションを確立
engine = create_engine(str(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DATA_DIR = Path(__file__).resolve().parents[2] / "data" / "spots"
FEATURE_COLUMNS = ['height', 'width', 'length', 'angle', 'steps']

DEFAULT_TRICKS = [
    {'name': 'Ollie', 'difficulty': 'easy', 'description': 'The foundation of street skating.'},
    {'name': 'Kickflip', 'difficulty': 'medium', 'description': 'Flick the board into a full flip.'},
    {'name': 'Heelflip', 'difficulty': 'medium', 'description': 'Flip the board with the heel.'},
    {'name': '50-50 Grind', 'difficulty': 'medium', 'description': 'Grind on both trucks.'},
    {'name': 'Boardslide', 'difficulty': 'medium', 'description': 'Slide the middle of the board on a rail.'},
    {'name': '360 Flip', 'difficulty': 'hard', 'description': 'A kickflip combined with a 360 shove-it.'},
]
DEFAULT_CHALLENGES = [
    {'title': 'Ten Ollies', 'description': 'Land ten ollies in a row.'},
    {'title': 'New Spot', 'description': 'Skate a spot you have never visited.'},
]

def _to_float(value):
    try:
        return float(value) if value not in (None, '') else None
    except (ValueError, TypeError):
        return None

def parse_row(row: dict) -> dict | None:
    """
    CSVの1行をspotsテーブルの行に変換する．座標の無い・範囲外の行はNone．
    """
    lat, lon = _to_float(row.get('latitude')), _to_float(row.get('longitude'))
    if lat is None or lon is None or not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    name = (row.get('name') or '').strip()
    if not name:
        return None

    features = {}
    for column in FEATURE_COLUMNS:
        value = _to_float(row.get(column))
        if value is not None:
            features[column] = value

    return {
        'id': str(uuid.uuid4()),
        'name': name,
        'description': row.get('description') or None,
        'type': row.get('type') or 'unknown',
        'difficulty': row.get('difficulty') or 'unknown',
        'surface': row.get('surface') or None,
        'skateability_score': _to_float(row.get('skateability_score')) or 5.0,
        'features': features,
        'latitude': lat,
        'longitude': lon,
        'geom': to_wkt_point(lat, lon),
        'address': row.get('address') or None,
        'status': 'active',
        'verified': False,
    }

def main():
    print("データベースの登録を開始します．")

    db: Session = SessionLocal()

    try:
        spots_to_create = []
        skipped = 0
        for csv_path in sorted(DATA_DIR.rglob("*.csv")):
            print(f"{csv_path} を処理中...")
            with open(csv_path, mode='r', encoding='utf-8') as f:
                reader = csv.DictReader(f) # 各行を辞書として読み込み
                for row in reader:
                    spot_data = parse_row(row)
                    if spot_data is None:
                        skipped += 1
                        continue
                    spots_to_create.append(spot_data)

        # 全てのデータを一括で挿入（バルクインサート）
        print(f"{len(spots_to_create)}件のデータを登録します（{skipped}件は座標・名前が無いためスキップ）...")
        db.bulk_insert_mappings(Spot, spots_to_create)

        # ホーム画面用のトリックとチャレンジは，空の時だけ初期データを入れる．
        if db.query(Trick).count() == 0:
            db.bulk_insert_mappings(Trick, DEFAULT_TRICKS)
        if db.query(DailyChallenge).count() == 0:
            db.bulk_insert_mappings(DailyChallenge, DEFAULT_CHALLENGES)

        db.commit()
        print("データ登録が正常に完了しました．")

    except Exception as e:
        print(f"エラーが発生しました: {e}")
        db.rollback() # エラーが発生した場合はロールバック
        raise
    finally:
        db.close() # セッションを閉じる

if __name__ == "__main__":
    main()
