from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, RootModel

class SpotType(str, Enum):
    STAIRS = 'stairs'
    RAIL = 'rail'
    LEDGE = 'ledge'
    GAP = 'gap'
    MANUAL_PAD = 'manual_pad'
    BOWL = 'bowl'
    RAMP = 'ramp'
    HALFPIPE = 'halfpipe'
    PLAZA = 'plaza'
    OTHER = 'other'
    UNKNOWN = 'unknown'

class DifficultyRating(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'
    PRO = 'pro'
    UNKNOWN = 'unknown'

class SurfaceType(str, Enum):
    CONCRETE = 'concrete'
    WOOD = 'wood'
    METAL = 'metal'
    ASPHALT = 'asphalt'
    TILE = 'tile'
    BRICK = 'brick'
    SMOOTH = 'smooth'
    ROUGH = 'rough'
    CRACKED = 'cracked'
    POLISHED = 'polished'
    TEXTURED = 'textured'
    OTHER = 'other'
    UNKNOWN = 'unknown'

class SpotStatus(str, Enum):
    ACTIVE = 'active'
    ARCHIVED = 'archived'
    FLAGGED = 'flagged'

class SpotFeatures(RootModel[dict[str, float]]):
    """
    寸法などの数値特徴量（単位：cm，角度は度）．
    キーは自由に追加できるが，よく使うキーはプロパティで取り出せる．
    """
    root: dict[str, float] = Field(default_factory=dict)

    def get(self, key: str) -> float | None:
        return self.root.get(key)

    @property
    def height(self) -> float | None:
        return self.root.get('height')

    @property
    def width(self) -> float | None:
        return self.root.get('width')

    @property
    def length(self) -> float | None:
        return self.root.get('length')

    @property
    def angle(self) -> float | None:
        return self.root.get('angle')

    @property
    def steps(self) -> float | None:
        return self.root.get('steps')

class GeoLocation(BaseModel):
    # 範囲チェックはHTTP境界とスポット作成時に行う．
    latitude: float
    longitude: float

# APIレスポンスとして返す正規化済みのスポット
class Spot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    type: SpotType = SpotType.UNKNOWN
    difficulty: DifficultyRating = DifficultyRating.UNKNOWN
    surface: SurfaceType | None = None
    skateability_score: float | None = None
    features: SpotFeatures = Field(default_factory=SpotFeatures)
    location: GeoLocation
    address: str | None = None
    images: list[str] = Field(default_factory=list)
    status: SpotStatus = SpotStatus.ACTIVE
    verified: bool = False
    user_id: str | None = None
    created_at: datetime
    updated_at: datetime
    distance: float | None = None # 近傍検索の時のみ（km）

# スポット作成の下書き．必須チェックはエンジン側で行い，ValidationErrorとして返す．
class SpotDraft(BaseModel):
    name: str | None = None
    description: str | None = None
    location: GeoLocation | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None
    type: SpotType = SpotType.UNKNOWN
    difficulty: DifficultyRating = DifficultyRating.UNKNOWN
    surface: SurfaceType | None = None
    features: dict[str, float] = Field(default_factory=dict)
    skateability_score: float | None = Field(default=None, ge=0, le=10)
    images: list[str] = Field(default_factory=list)
    status: SpotStatus | None = None

class SpotUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    location: GeoLocation | None = None
    address: str | None = None
    type: SpotType | None = None
    difficulty: DifficultyRating | None = None
    surface: SurfaceType | None = None
    features: dict[str, float] | None = None
    skateability_score: float | None = Field(default=None, ge=0, le=10)

class SpotStatusUpdate(BaseModel):
    status: SpotStatus

class SkateabilityUpdate(BaseModel):
    score: float

# APIレスポンス全体を表すスキーマ
class SpotsPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: list[Spot]
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias='totalPages')

class SpotImageResponse(BaseModel):
    image_url: str = Field(serialization_alias='imageUrl')
