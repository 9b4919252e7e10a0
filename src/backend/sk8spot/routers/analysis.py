# sk8spot/routers/analysis.py
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile

from sk8spot.core.config import Settings, get_settings
from sk8spot.core.security import CurrentUser, get_current_user
from sk8spot.routers.uploads import read_image_upload
from sk8spot.schemas import analysis as schemas_analysis
from sk8spot.services.notification import Notifier, get_notifier
from sk8spot.services.spot_analysis import SpotClassificationEngine, get_spot_classification_engine

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/api/v1/spots/analyze", response_model=schemas_analysis.AnalysisResult)
async def analyze_spot_image(
        background_tasks: BackgroundTasks,
        image: UploadFile = File(...),
        spot_id: str | None = Form(None, alias='spotId'),
        user: CurrentUser = Depends(get_current_user),
        engine: SpotClassificationEngine = Depends(get_spot_classification_engine),
        notifier: Notifier = Depends(get_notifier),
        settings: Settings = Depends(get_settings)
    ):
    """
    画像からスポットの種類・寸法・難易度などを推定する．
    解析に失敗しても既定値を返し，このエンドポイント自体は失敗しない．
    """
    try:
        data = await read_image_upload(image, settings.MAX_FILE_SIZE)
    except OSError as e:
        logger.warning(f"Failed to read uploaded image: {e}")
        data = b''
    result = await engine.analyze(data)

    # 通知はレスポンスを返した後に送る（失敗しても呼び出し元には影響しない）．既定値（解析失敗）では送らない．
    if result.source != schemas_analysis.AnalysisSource.DEFAULT:
        background_tasks.add_task(notifier.notify_analysis_complete, user.id, result, spot_id)
    return result

@router.post("/api/v1/spots/type", response_model=schemas_analysis.SpotTypeResponse)
async def detect_spot_type(
        image: UploadFile = File(...),
        user: CurrentUser = Depends(get_current_user),
        engine: SpotClassificationEngine = Depends(get_spot_classification_engine),
        settings: Settings = Depends(get_settings)
    ):
    data = await read_image_upload(image, settings.MAX_FILE_SIZE)
    return {"type": await engine.detect_spot_type(data)}

@router.post("/api/v1/spots/surface", response_model=schemas_analysis.SurfaceResponse)
async def analyze_surface(
        image: UploadFile = File(...),
        user: CurrentUser = Depends(get_current_user),
        engine: SpotClassificationEngine = Depends(get_spot_classification_engine),
        settings: Settings = Depends(get_settings)
    ):
    data = await read_image_upload(image, settings.MAX_FILE_SIZE)
    return schemas_analysis.SurfaceResponse(surface_quality=await engine.analyze_surface(data))

@router.post("/api/v1/spots/obstacle", response_model=dict[str, float])
async def measure_obstacle(
        image: UploadFile = File(...),
        obstacle_type: str | None = Form(None, alias='obstacleType'),
        user: CurrentUser = Depends(get_current_user),
        engine: SpotClassificationEngine = Depends(get_spot_classification_engine),
        settings: Settings = Depends(get_settings)
    ):
    data = await read_image_upload(image, settings.MAX_FILE_SIZE)
    return await engine.measure_obstacle(data, obstacle_type)

@router.post("/api/v1/spots/difficulty", response_model=schemas_analysis.DifficultyResponse)
def rate_difficulty(
        body: schemas_analysis.DifficultyRequest,
        user: CurrentUser = Depends(get_current_user),
        engine: SpotClassificationEngine = Depends(get_spot_classification_engine)
    ):
    return {"difficulty": engine.rate_difficulty(body.features)}
