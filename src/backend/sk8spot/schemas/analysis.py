from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from sk8spot.schemas.spot import SpotType, DifficultyRating

class AnalysisSource(str, Enum):
    PRIMARY = 'primary'   # 外部分類器による推論
    DEGRADED = 'degraded' # 分類器が使えない時のランダム代替（推論ではない）
    DEFAULT = 'default'   # 画像すら読めない時の安全な既定値

# 外部分類器が返す検出結果1件（Roboflow形式）．x, yはバウンディングボックスの中心．
class Detection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(alias='class')
    confidence: float
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def area(self) -> float:
        return self.width * self.height

class ClassifierResponse(BaseModel):
    predictions: list[Detection]

class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: SpotType = SpotType.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    features: dict[str, float] = Field(default_factory=dict)
    surface_quality: str = Field(default='unknown', alias='surfaceQuality')
    difficulty: DifficultyRating = DifficultyRating.MEDIUM
    skateability_score: float | None = Field(default=None, alias='skateabilityScore')
    suggested_tricks: list[str] | None = Field(default=None, alias='suggestedTricks')
    source: AnalysisSource = AnalysisSource.DEFAULT

class DifficultyRequest(BaseModel):
    features: dict[str, float] = Field(default_factory=dict)

class DifficultyResponse(BaseModel):
    difficulty: DifficultyRating

class SpotTypeResponse(BaseModel):
    type: SpotType

class SurfaceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    surface_quality: str = Field(alias='surfaceQuality')
