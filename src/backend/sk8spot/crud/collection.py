# sk8spot/crud/collection.py
import logging
from sqlalchemy.orm import Session
from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sk8spot.models import Collection, CollectionSpot, Spot
from sk8spot.core.exceptions import DatastoreError

logger = logging.getLogger(__name__)

def user_collections_statements(user_id: str, offset: int, limit: int) -> tuple[Select, Select]:
    """
    ユーザーのコレクションを名前順に取るSELECTと，その総件数のSELECT．
    各コレクションのスポット数は集計サブクエリを外部結合して数える（空なら0）．
    """
    spot_counts = (
        select(
            CollectionSpot.collection_id.label('collection_id'),
            func.count(CollectionSpot.spot_id).label('spot_count')
        )
        .group_by(CollectionSpot.collection_id)
        .subquery('spot_counts')
    )
    count_stmt = select(func.count(Collection.id)).where(Collection.user_id == user_id)
    page_stmt = (
        select(Collection, func.coalesce(spot_counts.c.spot_count, 0))
        .outerjoin(spot_counts, spot_counts.c.collection_id == Collection.id)
        .where(Collection.user_id == user_id)
        .order_by(Collection.name.asc(), Collection.id)
        .offset(offset)
        .limit(limit)
    )
    return count_stmt, page_stmt

def collection_spots_statements(collection_id: str, offset: int, limit: int) -> tuple[Select, Select]:
    """
    コレクション内のスポットを，追加が新しい順に取る．
    """
    filtered = (
        select(Spot)
        .join(CollectionSpot, CollectionSpot.spot_id == Spot.id)
        .where(CollectionSpot.collection_id == collection_id)
    )
    count_stmt = select(func.count()).select_from(filtered.subquery())
    page_stmt = (
        filtered
        .order_by(CollectionSpot.added_at.desc(), Spot.id)
        .offset(offset)
        .limit(limit)
    )
    return count_stmt, page_stmt

class CollectionRepository:
    """
    collections と，スポットとの中間テーブル collection_spots へのアクセス．
    """
    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, e: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Datastore error during {action}: {e}")
        raise DatastoreError(f"{action} failed: {e}") from e

    def create(self, values: dict) -> Collection:
        collection = Collection(**values)
        try:
            self.db.add(collection)
            self.db.commit()
            self.db.refresh(collection)
        except SQLAlchemyError as e:
            self._fail('collection insert', e)
        return collection

    def get(self, collection_id: str) -> Collection | None:
        try:
            return self.db.query(Collection).filter(Collection.id == collection_id).first()
        except SQLAlchemyError as e:
            self._fail('collection lookup', e)

    def spot_count(self, collection_id: str) -> int:
        try:
            return (
                self.db.query(func.count(CollectionSpot.spot_id))
                .filter(CollectionSpot.collection_id == collection_id)
                .scalar()
            ) or 0
        except SQLAlchemyError as e:
            self._fail('collection spot count', e)

    def list_by_user(self, user_id: str, offset: int, limit: int) -> tuple[int, list[tuple[Collection, int]]]:
        count_stmt, page_stmt = user_collections_statements(user_id, offset, limit)
        try:
            total = self.db.scalar(count_stmt)
            rows = self.db.execute(page_stmt).all()
        except SQLAlchemyError as e:
            self._fail('collection list', e)
        return total, [(collection, count) for collection, count in rows]

    def spot_exists(self, spot_id: str) -> bool:
        try:
            return self.db.get(Spot, spot_id) is not None
        except SQLAlchemyError as e:
            self._fail('spot lookup', e)

    def update(self, collection_id: str, values: dict) -> Collection | None:
        try:
            collection = self.db.query(Collection).filter(Collection.id == collection_id).first()
            if collection is None:
                return None
            for key, value in values.items():
                setattr(collection, key, value)
            self.db.commit()
            self.db.refresh(collection)
        except SQLAlchemyError as e:
            self._fail('collection update', e)
        return collection

    def delete(self, collection_id: str) -> bool:
        # collection_spots の行は ON DELETE CASCADE で消える．
        try:
            deleted = (
                self.db.query(Collection)
                .filter(Collection.id == collection_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail('collection delete', e)
        return deleted > 0

    def has_spot(self, collection_id: str, spot_id: str) -> bool:
        try:
            return self.db.get(CollectionSpot, (collection_id, spot_id)) is not None
        except SQLAlchemyError as e:
            self._fail('collection spot lookup', e)

    def add_spot(self, collection_id: str, spot_id: str) -> None:
        try:
            self.db.add(CollectionSpot(collection_id=collection_id, spot_id=spot_id))
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail('collection spot insert', e)

    def remove_spot(self, collection_id: str, spot_id: str) -> bool:
        try:
            deleted = (
                self.db.query(CollectionSpot)
                .filter(CollectionSpot.collection_id == collection_id, CollectionSpot.spot_id == spot_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail('collection spot delete', e)
        return deleted > 0

    def list_spots(self, collection_id: str, offset: int, limit: int) -> tuple[int, list[Spot]]:
        count_stmt, page_stmt = collection_spots_statements(collection_id, offset, limit)
        try:
            total = self.db.scalar(count_stmt)
            rows = self.db.scalars(page_stmt).all()
        except SQLAlchemyError as e:
            self._fail('collection spot list', e)
        return total, list(rows)
