# sk8spot/crud/spot.py
import logging
import uuid
from sqlalchemy.orm import Session
from sqlalchemy import Select, and_, or_, func, select
from sqlalchemy.exc import SQLAlchemyError
from geoalchemy2.functions import ST_DWithin, ST_Distance
from sk8spot.models import Spot, SpotImage
from sk8spot.schemas.query import SpotQueryOptions, SortField, SortOrder
from sk8spot.core.exceptions import DatastoreError

logger = logging.getLogger(__name__)

# ソート許可リストとカラムの対応（distanceは検索中心が必要なので別扱い）
SORT_COLUMNS = {
    SortField.CREATED_AT: Spot.created_at,
    SortField.UPDATED_AT: Spot.updated_at,
    SortField.NAME: Spot.name,
    SortField.SKATEABILITY_SCORE: Spot.skateability_score,
    SortField.DIFFICULTY: Spot.difficulty,
    SortField.TYPE: Spot.type,
}

def to_wkt_point(lat: float, lon: float) -> str:
    return f"SRID=4326;POINT({lon} {lat})" # lon -> latの順に注意！

def search_statements(options: SpotQueryOptions) -> tuple[Select, Select]:
    """
    検索条件から（総件数を数えるSELECT，ページ内の行を取るSELECT）を組み立てる．
    条件は全てANDで組み合わせ，near_locationがあれば ST_DWithin による半径検索になる．
    """
    conditions = [Spot.status == options.status.value]
    if options.type is not None:
        conditions.append(Spot.type == options.type.value)
    if options.surface is not None:
        conditions.append(Spot.surface == options.surface.value)
    if options.difficulty is not None:
        conditions.append(Spot.difficulty == options.difficulty.value)
    if options.verified is not None:
        conditions.append(Spot.verified == options.verified)
    if options.user_id is not None:
        conditions.append(Spot.user_id == options.user_id)
    if options.min_skateability_score is not None:
        conditions.append(Spot.skateability_score >= options.min_skateability_score)

    # スペース区切りのキーワードは全て，名前か説明のどちらかに含まれていなければならない（大文字小文字は区別しない）．
    if options.search:
        for kw in options.search.split():
            conditions.append(or_(Spot.name.icontains(kw), Spot.description.icontains(kw)))

    center_point = None
    if options.near_location is not None:
        center_point = to_wkt_point(options.near_location.latitude, options.near_location.longitude)
        radius_m = options.radius * 1000
        conditions.append(
            ST_DWithin(
                Spot.geom,    # スポットのgeomカラム
                center_point, # 検索中心のポイント
                radius_m      # 検索半径（m）
            )
        )

    if options.sort_by == SortField.DISTANCE:
        sort_expr = ST_Distance(Spot.geom, center_point)
    else:
        sort_expr = SORT_COLUMNS[options.sort_by]
    sort_expr = sort_expr.asc() if options.sort_order == SortOrder.ASC else sort_expr.desc()

    filtered = select(Spot).where(and_(*conditions))

    # ページネーション前の総件数
    count_stmt = select(func.count()).select_from(filtered.subquery())
    page_stmt = (
        filtered
        .order_by(sort_expr, Spot.id) # 同順位の並びを安定させる．
        .offset(options.offset)
        .limit(options.limit)
    )
    return count_stmt, page_stmt

def bounds_statement(min_lat: float, max_lat: float, min_lon: float, max_lon: float, status: str = 'active') -> Select:
    return select(Spot).where(
        Spot.status == status,
        Spot.latitude.between(min_lat, max_lat),
        Spot.longitude.between(min_lon, max_lon)
    )

class SpotRepository:
    """
    spotsテーブルへのアクセスをまとめたもの．
    SQLAlchemyの例外はロールバックした上でDatastoreErrorに包んで投げ直す．
    """
    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, e: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Datastore error during {action}: {e}")
        raise DatastoreError(f"{action} failed: {e}") from e

    def search(self, options: SpotQueryOptions) -> tuple[int, list[Spot]]:
        """
        （ページネーション前の総件数，ページ内の行）を返す．
        """
        count_stmt, page_stmt = search_statements(options)
        try:
            total = self.db.scalar(count_stmt)
            rows = self.db.scalars(page_stmt).all()
        except SQLAlchemyError as e:
            self._fail('spot search', e)
        return total, list(rows)

    def get_by_id(self, spot_id: str) -> Spot | None:
        try:
            return self.db.query(Spot).filter(Spot.id == spot_id).first()
        except SQLAlchemyError as e:
            self._fail('spot lookup', e)

    def find_in_bounds(
        self,
        min_lat: float,
        max_lat: float,
        min_lon: float,
        max_lon: float,
        status: str = 'active'
    ) -> list[Spot]:
        """
        緯度経度の矩形で粗く絞り込む（正確な距離判定は呼び出し側）．
        """
        try:
            return list(self.db.scalars(bounds_statement(min_lat, max_lat, min_lon, max_lon, status)).all())
        except SQLAlchemyError as e:
            self._fail('bounding box search', e)

    def insert(self, values: dict) -> Spot:
        spot = Spot(**values)
        try:
            self.db.add(spot)
            self.db.commit()
            self.db.refresh(spot)
        except SQLAlchemyError as e:
            self._fail('spot insert', e)
        return spot

    def add_image(
        self,
        spot_id: str,
        image_url: str,
        is_primary: bool = False,
        user_id: str | None = None,
        angle: str = 'main'
    ) -> SpotImage:
        image = SpotImage(
            id=str(uuid.uuid4()),
            spot_id=spot_id,
            user_id=user_id,
            image_url=image_url,
            is_primary=is_primary,
            angle=angle
        )
        try:
            self.db.add(image)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail('spot image insert', e)
        return image

    def update(self, spot_id: str, values: dict) -> Spot | None:
        try:
            spot = self.db.query(Spot).filter(Spot.id == spot_id).first()
            if spot is None:
                return None
            for key, value in values.items():
                setattr(spot, key, value)
            self.db.commit()
            self.db.refresh(spot)
        except SQLAlchemyError as e:
            self._fail('spot update', e)
        return spot

    def delete(self, spot_id: str) -> bool:
        try:
            deleted = self.db.query(Spot).filter(Spot.id == spot_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail('spot delete', e)
        return deleted > 0
