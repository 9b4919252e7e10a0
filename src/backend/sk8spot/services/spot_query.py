import logging
import math
import uuid
from datetime import datetime, timezone
from fastapi import Depends
from sqlalchemy.orm import Session
from sk8spot.core.config import Settings, get_settings
from sk8spot.core.exceptions import ValidationError, DataIntegrityError, DatastoreError, QueryFailedError
from sk8spot.crud.spot import SpotRepository, to_wkt_point
from sk8spot.db.cache import CacheClient, get_cache
from sk8spot.db.session import get_db
from sk8spot.schemas.query import SpotQueryOptions, SortField, DEFAULT_RADIUS_KM
from sk8spot.schemas.spot import (
    Spot, SpotDraft, SpotUpdate, SpotsPage, GeoLocation,
    SpotType, DifficultyRating, SurfaceType, SpotStatus
)
from sk8spot.services.geo import haversine_km, bounding_box, rank_by_distance

logger = logging.getLogger(__name__)

SPOT_LIST_PATTERN = 'spots:*'
# コレクション内スポットの一覧にも整形済みのスポットが入っている．
COLLECTION_SPOTS_PATTERN = 'collections:spots:*'
# DB側でNOT NULLの列．更新でnullを渡されたら弾く．
NON_NULLABLE_FIELDS = ('type', 'difficulty', 'features')
DEFAULT_SKATEABILITY_SCORE = 5.0

def spot_cache_key(spot_id: str) -> str:
    return f"spot:{spot_id}"

def validate_coordinates(lat, lon) -> tuple[float, float]:
    """
    数値であり，かつ緯度経度の定義域に収まっていることを確かめる．
    """
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        raise ValidationError('latitude and longitude must be numbers')
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValidationError('latitude and longitude must be finite numbers')
    if not -90 <= lat <= 90:
        raise ValidationError('latitude must be between -90 and 90')
    if not -180 <= lon <= 180:
        raise ValidationError('longitude must be between -180 and 180')
    return lat, lon

def _coerce(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default

def format_spot(row, near: GeoLocation | None = None, distance: float | None = None) -> Spot:
    """
    DBの行を正規化したSpotに変換する．
    位置情報の無い行は既定の座標で埋めずにDataIntegrityErrorとし，リクエスト全体を失敗させる．
    """
    if row.latitude is None or row.longitude is None:
        raise DataIntegrityError(f"Spot with id {row.id} has no location data.")

    # 数値以外の特徴量（旧データの文字列など）は捨てる．
    features = {
        key: float(value)
        for key, value in (row.features or {}).items()
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    }

    # 関係は作成順で読み込まれるので，安定ソートでメイン画像だけ先頭に出す．
    images = sorted(row.images or [], key=lambda image: not image.is_primary)

    if distance is None and near is not None:
        distance = haversine_km(near.latitude, near.longitude, row.latitude, row.longitude)

    return Spot(
        id=row.id,
        name=row.name,
        description=row.description,
        type=_coerce(SpotType, row.type, SpotType.UNKNOWN),
        difficulty=_coerce(DifficultyRating, row.difficulty, DifficultyRating.UNKNOWN),
        surface=_coerce(SurfaceType, row.surface, SurfaceType.UNKNOWN) if row.surface else None,
        skateability_score=row.skateability_score,
        features=features,
        location=GeoLocation(latitude=row.latitude, longitude=row.longitude),
        address=row.address,
        images=[image.image_url for image in images],
        status=_coerce(SpotStatus, row.status, SpotStatus.ACTIVE),
        verified=bool(row.verified),
        user_id=row.user_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        distance=distance
    )

class SpotQueryEngine:
    """
    スポットの検索・作成・更新をまとめたもの．
    読み出しはキャッシュ優先（read-through），書き込み後は一覧キャッシュを全て破棄する．
    """
    def __init__(self, repository: SpotRepository, cache: CacheClient, cache_ttl: int = 3600):
        self.repository = repository
        self.cache = cache
        self.cache_ttl = cache_ttl

    def _invalidate(self, spot_id: str | None = None) -> None:
        if spot_id is not None:
            self.cache.delete(spot_cache_key(spot_id))
            self.cache.clear_pattern(COLLECTION_SPOTS_PATTERN)
        self.cache.clear_pattern(SPOT_LIST_PATTERN)

    # ------------------------------------------------------------------ 読み出し

    def get_spots(self, options: SpotQueryOptions | None = None) -> SpotsPage:
        options = (options or SpotQueryOptions()).normalized()

        if options.min_skateability_score is not None and options.min_skateability_score < 0:
            raise ValidationError('minSkateabilityScore must be 0 or greater')
        if options.sort_by == SortField.DISTANCE and options.near_location is None:
            raise ValidationError('sortBy=distance requires nearLocation')

        key = options.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            return SpotsPage.model_validate(cached)

        try:
            total, rows = self.repository.search(options)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e

        spots = [format_spot(row, near=options.near_location) for row in rows]
        page = SpotsPage(
            data=spots,
            total=total,
            page=options.page,
            limit=options.limit,
            total_pages=math.ceil(total / options.limit)
        )

        self.cache.set(key, page.model_dump(mode='json', by_alias=True), self.cache_ttl)
        return page

    def get_spot_by_id(self, spot_id: str) -> Spot | None:
        key = spot_cache_key(spot_id)
        cached = self.cache.get(key)
        if cached is not None:
            return Spot.model_validate(cached)

        try:
            row = self.repository.get_by_id(spot_id)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e
        if row is None:
            return None

        spot = format_spot(row)
        self.cache.set(key, spot.model_dump(mode='json'), self.cache_ttl)
        return spot

    def search_spots(self, query: str, options: SpotQueryOptions | None = None) -> SpotsPage:
        options = (options or SpotQueryOptions()).model_copy(update={'search': query})
        return self.get_spots(options)

    def find_nearby_spots(
        self,
        location: GeoLocation,
        radius: float = DEFAULT_RADIUS_KM,
        options: SpotQueryOptions | None = None
    ) -> SpotsPage:
        validate_coordinates(location.latitude, location.longitude)
        options = (options or SpotQueryOptions()).model_copy(
            update={'near_location': location, 'radius': radius}
        )
        return self.get_spots(options)

    def get_user_spots(self, user_id: str, options: SpotQueryOptions | None = None) -> SpotsPage:
        options = (options or SpotQueryOptions()).model_copy(update={'user_id': user_id})
        return self.get_spots(options)

    def get_spots_by_distance(
        self,
        lat: float,
        lon: float,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int = 20
    ) -> list[Spot]:
        """
        矩形でDBから粗く取り出した後，Haversine距離で半径外を除き，近い順に並べる．
        """
        lat, lon = validate_coordinates(lat, lon)
        if radius_km <= 0:
            raise ValidationError('radius must be greater than 0')

        min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius_km)
        try:
            rows = self.repository.find_in_bounds(min_lat, max_lat, min_lon, max_lon)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e

        for row in rows:
            if row.latitude is None or row.longitude is None:
                raise DataIntegrityError(f"Spot with id {row.id} has no location data.")

        ranked = rank_by_distance(lat, lon, rows, radius_km, limit)
        return [format_spot(row, distance=distance) for row, distance in ranked]

    # ------------------------------------------------------------------ 書き込み

    def create_spot(self, draft: SpotDraft, user_id: str | None = None) -> Spot:
        if not draft.name or not draft.name.strip():
            raise ValidationError('name is required')

        has_flat = draft.latitude is not None or draft.longitude is not None
        if draft.location is not None and has_flat:
            raise ValidationError('provide either location or latitude/longitude, not both')
        if draft.location is not None:
            lat, lon = draft.location.latitude, draft.location.longitude
        elif draft.latitude is not None and draft.longitude is not None:
            lat, lon = draft.latitude, draft.longitude
        else:
            raise ValidationError('Missing location data: latitude and longitude are required')
        lat, lon = validate_coordinates(lat, lon)

        now = datetime.now(timezone.utc)
        score = draft.skateability_score if draft.skateability_score is not None else DEFAULT_SKATEABILITY_SCORE
        values = {
            'id': str(uuid.uuid4()),
            'user_id': user_id,
            'name': draft.name.strip(),
            'description': draft.description,
            'type': draft.type.value,
            'difficulty': draft.difficulty.value,
            'surface': draft.surface.value if draft.surface is not None else None,
            'skateability_score': score,
            'features': dict(draft.features),
            'latitude': lat,
            'longitude': lon,
            'geom': to_wkt_point(lat, lon),
            'address': draft.address,
            'status': (draft.status or SpotStatus.ACTIVE).value,
            'verified': False, # 検証済みフラグは管理者のみが立てる．
            'created_at': now,
            'updated_at': now,
        }

        try:
            row = self.repository.insert(values)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e
        logger.info(f"Created spot {row.id}")

        # 画像の紐付けに失敗してもスポット自体は取り消さない．
        for index, image_url in enumerate(draft.images):
            try:
                self.repository.add_image(row.id, image_url, is_primary=(index == 0), user_id=user_id)
            except DatastoreError as e:
                logger.warning(f"Failed to link image {image_url} to spot {row.id}: {e.message}")

        self._invalidate()
        return format_spot(row)

    def update_spot(self, spot_id: str, changes: SpotUpdate) -> Spot | None:
        values = changes.model_dump(mode='json', exclude_unset=True, exclude={'location'})
        if 'name' in values:
            if values['name'] is None or not values['name'].strip():
                raise ValidationError('name must not be empty')
            values['name'] = values['name'].strip()
        for field in NON_NULLABLE_FIELDS:
            if field in values and values[field] is None:
                raise ValidationError(f"{field} must not be null")
        if changes.location is not None:
            lat, lon = validate_coordinates(changes.location.latitude, changes.location.longitude)
            values.update({'latitude': lat, 'longitude': lon, 'geom': to_wkt_point(lat, lon)})
        return self._apply(spot_id, values)

    def _apply(self, spot_id: str, values: dict) -> Spot | None:
        # idとcreated_atは変更させない．
        values = {k: v for k, v in values.items() if k not in ('id', 'created_at')}
        values['updated_at'] = datetime.now(timezone.utc)
        try:
            row = self.repository.update(spot_id, values)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e
        if row is None:
            return None
        self._invalidate(spot_id)
        return format_spot(row)

    def delete_spot(self, spot_id: str) -> bool:
        try:
            deleted = self.repository.delete(spot_id)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e
        if deleted:
            self._invalidate(spot_id)
        return deleted

    def verify_spot(self, spot_id: str) -> Spot | None:
        return self._apply(spot_id, {'verified': True})

    def change_spot_status(self, spot_id: str, status: SpotStatus) -> Spot | None:
        return self._apply(spot_id, {'status': SpotStatus(status).value})

    def update_skateability_score(self, spot_id: str, score: float) -> Spot | None:
        if score is None or not 0 <= score <= 10:
            raise ValidationError('Skateability score must be between 0 and 10')
        return self._apply(spot_id, {'skateability_score': float(score)})

    def add_image(self, spot_id: str, image_url: str, user_id: str | None = None, angle: str = 'main') -> bool:
        """
        アップロード済み画像をスポットに紐付ける．既存画像が無ければメイン画像にする．
        """
        try:
            row = self.repository.get_by_id(spot_id)
            if row is None:
                return False
            is_primary = not any(image.is_primary for image in (row.images or []))
            self.repository.add_image(spot_id, image_url, is_primary=is_primary, user_id=user_id, angle=angle)
        except DatastoreError as e:
            raise QueryFailedError(f"query failed: {e.message}") from e
        self._invalidate(spot_id)
        return True

def get_spot_query_engine(
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
    settings: Settings = Depends(get_settings)
) -> SpotQueryEngine:
    return SpotQueryEngine(SpotRepository(db), cache, settings.CACHE_TTL)
