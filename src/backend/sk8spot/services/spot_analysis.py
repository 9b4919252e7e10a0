import logging
import random
from collections import Counter
from pathlib import Path
import numpy as np
from fastapi import Depends
from sk8spot.core.exceptions import ClassifierError
from sk8spot.schemas.analysis import AnalysisResult, AnalysisSource, Detection
from sk8spot.schemas.spot import SpotType, DifficultyRating
from sk8spot.services.classifier_client import ClassifierClient, get_classifier_client

logger = logging.getLogger(__name__)

# バウンディングボックス（px）から寸法（cm）への換算係数．実測ではなく大まかな目安．
HEIGHT_CM_PER_PX = 0.5
WIDTH_CM_PER_PX = 0.5
LENGTH_PER_WIDTH = 1.2
STEP_HEIGHT_CM = 17.0

DEFAULT_CONFIDENCE = 0.7

SURFACE_KEYWORDS = ['smooth', 'rough', 'cracked', 'polished', 'textured']

SUGGESTED_TRICKS = {
    SpotType.RAIL: ['50-50 Grind', 'Boardslide', 'Lipslide', 'Smith Grind', 'Feeble Grind'],
    SpotType.STAIRS: ['Ollie', 'Kickflip', 'Heelflip', 'Pop Shove-it', '360 Flip'],
    SpotType.LEDGE: ['50-50 Grind', '5-0 Grind', 'Nosegrind', 'Crooked Grind', 'Boardslide'],
    SpotType.GAP: ['Ollie', 'Kickflip', 'Frontside 180', 'Backside 180'],
    SpotType.MANUAL_PAD: ['Manual', 'Nose Manual', 'Manual Kickflip Out'],
    SpotType.BOWL: ['Drop In', 'Rock to Fakie', 'Axle Stall', 'Frontside Grind'],
    SpotType.RAMP: ['Drop In', 'Rock to Fakie', 'Axle Stall', 'Frontside Grind'],
    SpotType.HALFPIPE: ['Drop In', 'Rock to Fakie', 'Axle Stall', 'Frontside Grind'],
}
STARTER_TRICKS = ['Ollie', 'Manual', 'Kickflip', 'Pop Shove-it']

# 障害物の種類ごとの典型的な寸法（cm，角度は度）．画像から寸法が取れない時に使う．
TYPICAL_DIMENSIONS = {
    'stairs': {'height': 80, 'width': 200, 'length': 300, 'steps': 5},
    'rail': {'height': 60, 'length': 250, 'angle': 20},
    'ledge': {'height': 40, 'width': 30, 'length': 200},
    'gap': {'height': 50, 'width': 150, 'length': 200},
    'manual_pad': {'height': 30, 'width': 100, 'length': 200},
    'ramp': {'height': 120, 'width': 300, 'length': 400, 'angle': 45},
    'bowl': {'height': 120, 'width': 300, 'length': 400, 'angle': 45},
    'halfpipe': {'height': 120, 'width': 300, 'length': 400, 'angle': 45},
}
DEFAULT_DIMENSIONS = {'height': 50, 'width': 100, 'length': 200}

# 代替結果（degraded）でランダムに選ぶ候補
FALLBACK_TYPES = [
    SpotType.LEDGE, SpotType.RAIL, SpotType.STAIRS, SpotType.GAP,
    SpotType.RAMP, SpotType.BOWL, SpotType.MANUAL_PAD, SpotType.HALFPIPE
]
FALLBACK_DIFFICULTIES = [DifficultyRating.EASY, DifficultyRating.MEDIUM, DifficultyRating.HARD, DifficultyRating.PRO]

def default_result() -> AnalysisResult:
    """
    画像を読めない・予期しない失敗の時に返す，安全な既定値．
    """
    return AnalysisResult(
        type=SpotType.UNKNOWN,
        confidence=0.0,
        features={},
        surface_quality='unknown',
        difficulty=DifficultyRating.MEDIUM,
        source=AnalysisSource.DEFAULT
    )

def class_to_spot_type(class_name: str) -> SpotType:
    """
    検出クラス名（部分一致）をスポットの種類に対応付ける．
    halfpipeは'pipe'の他に'ramp'を含む名前もありうるので先に判定する．
    """
    c = class_name.lower()
    if 'half' in c and 'pipe' in c:
        return SpotType.HALFPIPE
    if 'rail' in c:
        return SpotType.RAIL
    if 'ledge' in c:
        return SpotType.LEDGE
    if 'stair' in c:
        return SpotType.STAIRS
    if 'gap' in c:
        return SpotType.GAP
    if 'manual' in c or 'pad' in c:
        return SpotType.MANUAL_PAD
    if 'bowl' in c:
        return SpotType.BOWL
    if 'ramp' in c:
        return SpotType.RAMP
    if 'plaza' in c:
        return SpotType.PLAZA
    return SpotType.OTHER

def skateability_from_confidence(confidence: float) -> float:
    return min(round(confidence * 10, 1), 10.0)

def suggest_tricks(spot_type: SpotType) -> list[str]:
    return list(SUGGESTED_TRICKS.get(spot_type, STARTER_TRICKS))

def rate_difficulty(features: dict) -> DifficultyRating:
    """
    特徴量から難易度を点数制で決める．無い特徴量は0点なので，{}は常にeasyになる．
    """
    score = 0

    height = features.get('height')
    if height is not None:
        if height > 200:
            score += 6
        elif height > 150:
            score += 5
        elif height > 100:
            score += 4
        elif height > 50:
            score += 2
        else:
            score += 1

    angle = features.get('angle')
    if angle is not None:
        if angle > 45:
            score += 3
        elif angle > 30:
            score += 2
        elif angle > 15:
            score += 1

    length = features.get('length')
    if length is not None:
        if length > 1000:
            score += 2
        elif length > 500:
            score += 1

    if score >= 7:
        return DifficultyRating.PRO
    if score >= 5:
        return DifficultyRating.HARD
    if score >= 3:
        return DifficultyRating.MEDIUM
    return DifficultyRating.EASY

def typical_dimensions(obstacle_type: str | None) -> dict[str, float]:
    key = (obstacle_type or '').strip().lower().replace(' ', '_')
    return {k: float(v) for k, v in TYPICAL_DIMENSIONS.get(key, DEFAULT_DIMENSIONS).items()}

class SpotClassificationEngine:
    """
    画像から正規化された解析結果（AnalysisResult）を作る．
    analyze は決して例外を投げない．
        ・primary：分類器の検出結果から決定的に組み立てる．
        ・degraded：分類器が使えない時，同じ列挙値の範囲でランダムに作る（推論ではない）．
        ・default：画像が空・予期しない失敗の時の既定値．
    """
    def __init__(self, classifier: ClassifierClient, rng: random.Random | None = None):
        self.classifier = classifier
        self.rng = rng or random.Random()

    async def analyze(self, image_bytes: bytes | None) -> AnalysisResult:
        if not image_bytes:
            logger.warning("Empty image received, returning default analysis")
            return default_result()

        try:
            try:
                detections = await self.classifier.predict(image_bytes)
            except ClassifierError as e:
                logger.warning(f"Classifier unavailable, returning degraded analysis: {e.message}")
                return self.degraded_result()
            return self.from_detections(detections)
        except Exception:
            # 解析ステップで呼び出し元を失敗させない．
            logger.error("Unexpected error while analyzing image", exc_info=True)
            return default_result()

    def from_detections(self, detections: list[Detection]) -> AnalysisResult:
        """
        検出結果を解析結果に変換する（primary）．
        """
        class_names = [d.class_name.lower() for d in detections]

        if class_names:
            # most_commonは同数の時に先に現れたものを優先する．
            dominant_class = Counter(class_names).most_common(1)[0][0]
            spot_type = class_to_spot_type(dominant_class)
            confidence = float(np.mean([d.confidence for d in detections]))
        else:
            dominant_class = None
            spot_type = SpotType.OTHER
            confidence = DEFAULT_CONFIDENCE
        confidence = float(np.clip(confidence, 0.0, 1.0))

        if spot_type in (SpotType.RAIL, SpotType.STAIRS) or any('gap' in c for c in class_names):
            difficulty = DifficultyRating.HARD
        elif spot_type in (SpotType.LEDGE, SpotType.MANUAL_PAD):
            difficulty = DifficultyRating.MEDIUM
        elif spot_type == SpotType.OTHER and any('flat' in c for c in class_names):
            difficulty = DifficultyRating.EASY
        else:
            difficulty = DifficultyRating.MEDIUM

        features = {}
        if dominant_class is not None:
            candidates = [d for d in detections if d.class_name.lower() == dominant_class]
            largest = max(candidates, key=lambda d: d.area)
            features = self._estimate_dimensions(largest, spot_type)

        surface_quality = 'unknown'
        for c in class_names:
            keyword = next((k for k in SURFACE_KEYWORDS if k in c), None)
            if keyword is not None:
                surface_quality = keyword
                break

        return AnalysisResult(
            type=spot_type,
            confidence=confidence,
            features=features,
            surface_quality=surface_quality,
            difficulty=difficulty,
            skateability_score=skateability_from_confidence(confidence),
            suggested_tricks=suggest_tricks(spot_type),
            source=AnalysisSource.PRIMARY
        )

    @staticmethod
    def _estimate_dimensions(detection: Detection, spot_type: SpotType) -> dict[str, float]:
        if detection.area <= 0:
            return {}
        height = round(detection.height * HEIGHT_CM_PER_PX, 1)
        width = round(detection.width * WIDTH_CM_PER_PX, 1)
        features = {
            'height': height,
            'width': width,
            'length': round(width * LENGTH_PER_WIDTH, 1),
        }
        if spot_type == SpotType.STAIRS:
            features['steps'] = float(max(1, round(height / STEP_HEIGHT_CM)))
        return features

    def degraded_result(self) -> AnalysisResult:
        """
        分類器が使えない時の代替結果．見た目はもっともらしいが推論ではないので，sourceで区別する．
        """
        rng = self.rng
        spot_type = rng.choice(FALLBACK_TYPES)

        if spot_type == SpotType.LEDGE:
            features = {
                'height': 40 + rng.randrange(20),
                'width': 30 + rng.randrange(10),
                'length': 200 + rng.randrange(100)
            }
        elif spot_type == SpotType.RAIL:
            features = {
                'height': 60 + rng.randrange(20),
                'length': 250 + rng.randrange(100),
                'angle': 15 + rng.randrange(15)
            }
        elif spot_type == SpotType.STAIRS:
            features = {
                'height': 80 + rng.randrange(40),
                'width': 200 + rng.randrange(50),
                'length': 300 + rng.randrange(100),
                'steps': 4 + rng.randrange(4)
            }
        else:
            features = {
                'height': 50 + rng.randrange(50),
                'width': 100 + rng.randrange(100),
                'length': 200 + rng.randrange(100)
            }

        confidence = 0.7 + rng.random() * 0.3
        return AnalysisResult(
            type=spot_type,
            confidence=confidence,
            features={k: float(v) for k, v in features.items()},
            surface_quality=rng.choice(SURFACE_KEYWORDS),
            difficulty=rng.choice(FALLBACK_DIFFICULTIES),
            skateability_score=skateability_from_confidence(confidence),
            suggested_tricks=suggest_tricks(spot_type),
            source=AnalysisSource.DEGRADED
        )

    def rate_difficulty(self, features: dict) -> DifficultyRating:
        return rate_difficulty(features or {})

    async def detect_spot_type(self, image_bytes: bytes | None) -> SpotType:
        result = await self.analyze(image_bytes)
        return result.type

    async def analyze_surface(self, image_bytes: bytes | None) -> str:
        result = await self.analyze(image_bytes)
        return result.surface_quality

    async def measure_obstacle(self, image_bytes: bytes | None, obstacle_type: str | None = None) -> dict[str, float]:
        """
        画像から寸法を推定する．取れなければ障害物の種類ごとの典型値を返す．
        """
        result = await self.analyze(image_bytes)
        if result.features:
            return result.features
        return typical_dimensions(obstacle_type)

    async def analyze_image_file(self, path: str | Path) -> AnalysisResult:
        try:
            image_bytes = Path(path).read_bytes()
        except OSError as e:
            logger.error(f"Failed to read image file {path}: {e}")
            return default_result()
        logger.info(f"Analyzing spot image: {path}")
        return await self.analyze(image_bytes)

def get_spot_classification_engine(
    classifier: ClassifierClient = Depends(get_classifier_client)
) -> SpotClassificationEngine:
    return SpotClassificationEngine(classifier)
