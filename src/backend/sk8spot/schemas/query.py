import json
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from sk8spot.schemas.spot import SpotType, SurfaceType, DifficultyRating, SpotStatus, GeoLocation

CACHE_KEY_PREFIX = 'spots'
DEFAULT_RADIUS_KM = 10.0

class SortField(str, Enum):
    """
    ソート可能なフィールドの許可リスト．
    DISTANCEは近傍検索（near_location指定時）のみ有効．
    """
    CREATED_AT = 'created_at'
    UPDATED_AT = 'updated_at'
    NAME = 'name'
    SKATEABILITY_SCORE = 'skateability_score'
    DIFFICULTY = 'difficulty'
    TYPE = 'type'
    DISTANCE = 'distance'

class SortOrder(str, Enum):
    ASC = 'asc'
    DESC = 'desc'

class SpotQueryOptions(BaseModel):
    """
    スポット一覧の検索条件．DBクエリの形であると同時に，キャッシュキーそのものでもある．
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    type: SpotType | None = None
    surface: SurfaceType | None = None
    difficulty: DifficultyRating | None = None
    verified: bool | None = None
    user_id: str | None = Field(default=None, alias='userId')
    search: str | None = None
    status: SpotStatus = SpotStatus.ACTIVE
    near_location: GeoLocation | None = Field(default=None, alias='nearLocation')
    radius: float | None = None # km
    min_skateability_score: float | None = Field(default=None, alias='minSkateabilityScore')
    sort_by: SortField = Field(default=SortField.CREATED_AT, alias='sortBy')
    sort_order: SortOrder = Field(default=SortOrder.DESC, alias='sortOrder')

    def normalized(self) -> 'SpotQueryOptions':
        """
        既定値を埋めた検索条件を返す．
        半径は近傍検索の時だけ意味を持つので，それ以外では捨てる．
        """
        search = self.search.strip() if self.search else None
        if self.near_location is not None:
            radius = self.radius if self.radius is not None else DEFAULT_RADIUS_KM
        else:
            radius = None
        return self.model_copy(update={'radius': radius, 'search': search or None})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def range_end(self) -> int:
        # 両端を含む範囲 [offset, range_end]
        return self.page * self.limit - 1

    def cache_key(self) -> str:
        """
        正規化済みの全条件を，キー順を固定したJSONにしてキャッシュキーとする．
        """
        payload = self.normalized().model_dump(mode='json', exclude_none=True)
        return f"{CACHE_KEY_PREFIX}:{json.dumps(payload, sort_keys=True, separators=(',', ':'))}"
