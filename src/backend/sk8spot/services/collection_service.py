import logging
import math
import uuid
from datetime import datetime, timezone
from fastapi import Depends
from sqlalchemy.orm import Session
from sk8spot.core.config import Settings, get_settings
from sk8spot.core.exceptions import DatastoreError, QueryFailedError, NotFoundError
from sk8spot.crud.collection import CollectionRepository
from sk8spot.db.cache import CacheClient, get_cache
from sk8spot.db.session import get_db
from sk8spot.schemas.collection import Collection, CollectionCreate, CollectionUpdate, CollectionsPage
from sk8spot.schemas.spot import SpotsPage
from sk8spot.services.spot_query import format_spot

logger = logging.getLogger(__name__)

def collection_key(collection_id: str) -> str:
    return f"collections:{collection_id}"

def user_collections_pattern(user_id: str) -> str:
    return f"collections:user:{user_id}:*"

def collection_spots_pattern(collection_id: str) -> str:
    return f"collections:spots:{collection_id}:*"

def to_schema(row, spot_count: int = 0) -> Collection:
    return Collection(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        icon=row.icon,
        created_at=row.created_at,
        updated_at=row.updated_at,
        spot_count=spot_count
    )

class CollectionService:
    """
    ユーザーが作るスポットのコレクション．読み出しはキャッシュ優先．
    """
    def __init__(self, repository: CollectionRepository, cache: CacheClient, cache_ttl: int = 3600):
        self.repository = repository
        self.cache = cache
        self.cache_ttl = cache_ttl

    def _run(self, fn, *args):
        try:
            return fn(*args)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e

    def create_collection(self, user_id: str, draft: CollectionCreate) -> Collection:
        now = datetime.now(timezone.utc)
        row = self._run(self.repository.create, {
            'id': str(uuid.uuid4()),
            'user_id': user_id,
            'name': draft.name.strip(),
            'description': draft.description or None,
            'icon': draft.icon or None,
            'created_at': now,
            'updated_at': now,
        })
        self.cache.clear_pattern(user_collections_pattern(user_id))
        logger.info(f"Created collection {row.id} for user {user_id}")
        return to_schema(row)

    def get_collection(self, collection_id: str) -> Collection | None:
        cached = self.cache.get(collection_key(collection_id))
        if cached is not None:
            return Collection.model_validate(cached)

        row = self._run(self.repository.get, collection_id)
        if row is None:
            return None
        collection = to_schema(row, self._run(self.repository.spot_count, collection_id))
        self.cache.set(collection_key(collection_id), collection.model_dump(mode='json'), self.cache_ttl)
        return collection

    def get_user_collections(self, user_id: str, page: int = 1, limit: int = 20) -> CollectionsPage:
        key = f"collections:user:{user_id}:{page}:{limit}"
        cached = self.cache.get(key)
        if cached is not None:
            return CollectionsPage.model_validate(cached)

        total, rows = self._run(self.repository.list_by_user, user_id, (page - 1) * limit, limit)
        result = CollectionsPage(
            data=[to_schema(row, count) for row, count in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit)
        )
        self.cache.set(key, result.model_dump(mode='json', by_alias=True), self.cache_ttl)
        return result

    def update_collection(self, collection_id: str, changes: CollectionUpdate) -> Collection | None:
        # user_idは変更させない（スキーマに含まれていない）．
        values = changes.model_dump(exclude_unset=True)
        values['updated_at'] = datetime.now(timezone.utc)
        row = self._run(self.repository.update, collection_id, values)
        if row is None:
            return None

        self.cache.delete(collection_key(collection_id))
        self.cache.clear_pattern(user_collections_pattern(row.user_id))
        return to_schema(row, self._run(self.repository.spot_count, collection_id))

    def delete_collection(self, collection_id: str) -> bool:
        existing = self._run(self.repository.get, collection_id)
        if existing is None:
            return False
        user_id = existing.user_id

        self._run(self.repository.delete, collection_id)
        self.cache.delete(collection_key(collection_id))
        self.cache.clear_pattern(collection_spots_pattern(collection_id))
        self.cache.clear_pattern(user_collections_pattern(user_id))
        return True

    def add_spot(self, collection_id: str, spot_id: str) -> None:
        """
        スポットをコレクションに追加する．既に入っていれば何もしない．
        """
        if self._run(self.repository.get, collection_id) is None:
            raise NotFoundError(f"Collection {collection_id} not found")
        if not self._run(self.repository.spot_exists, spot_id):
            raise NotFoundError(f"Spot {spot_id} not found")
        if self._run(self.repository.has_spot, collection_id, spot_id):
            return

        self._run(self.repository.add_spot, collection_id, spot_id)
        self._invalidate_spots(collection_id)

    def remove_spot(self, collection_id: str, spot_id: str) -> bool:
        removed = self._run(self.repository.remove_spot, collection_id, spot_id)
        if removed:
            self._invalidate_spots(collection_id)
        return removed

    def _invalidate_spots(self, collection_id: str) -> None:
        # スポット数が変わるので，コレクション本体とユーザー一覧のキャッシュも消す．
        self.cache.clear_pattern(collection_spots_pattern(collection_id))
        self.cache.delete(collection_key(collection_id))
        self.cache.clear_pattern('collections:user:*')

    def get_collection_spots(self, collection_id: str, page: int = 1, limit: int = 20) -> SpotsPage:
        key = f"collections:spots:{collection_id}:{page}:{limit}"
        cached = self.cache.get(key)
        if cached is not None:
            return SpotsPage.model_validate(cached)

        total, rows = self._run(self.repository.list_spots, collection_id, (page - 1) * limit, limit)
        result = SpotsPage(
            data=[format_spot(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit)
        )
        self.cache.set(key, result.model_dump(mode='json', by_alias=True), self.cache_ttl)
        return result

def get_collection_service(
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
    settings: Settings = Depends(get_settings)
) -> CollectionService:
    return CollectionService(CollectionRepository(db), cache, settings.CACHE_TTL)
