# sk8spot/routers/spots.py
from fastapi import APIRouter, Depends, Query, UploadFile, File, Response, status
from starlette.concurrency import run_in_threadpool

from sk8spot.core.config import Settings, get_settings
from sk8spot.core.exceptions import ValidationError, NotFoundError
from sk8spot.core.security import CurrentUser, get_current_user, require_admin, ensure_owner_or_admin
from sk8spot.routers.uploads import read_image_upload
from sk8spot.schemas import spot as schemas_spot
from sk8spot.schemas.query import SpotQueryOptions, SortField, SortOrder
from sk8spot.services.spot_query import SpotQueryEngine, get_spot_query_engine
from sk8spot.services.storage_service import SpotImageStorage, get_spot_image_storage

router = APIRouter()

def spot_query_options(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        type: schemas_spot.SpotType | None = Query(None),
        surface: schemas_spot.SurfaceType | None = Query(None),
        difficulty: schemas_spot.DifficultyRating | None = Query(None),
        verified: bool | None = Query(None),
        owner_id: str | None = Query(None, alias='userId'),
        search: str | None = Query(None),
        spot_status: schemas_spot.SpotStatus = Query(schemas_spot.SpotStatus.ACTIVE, alias='status'),
        lat: float | None = Query(None, ge=-90, le=90),
        lon: float | None = Query(None, ge=-180, le=180),
        radius: float | None = Query(None, gt=0),
        min_skateability_score: float | None = Query(None, alias='minSkateabilityScore'),
        sort_by: str = Query('created_at', alias='sortBy'),
        sort_order: str = Query('desc', alias='sortOrder')
    ) -> SpotQueryOptions:
    """
    クエリパラメータを検索条件にまとめる．座標の範囲はここ（HTTPの境界）で検証する．
    """
    if (lat is None) != (lon is None):
        raise ValidationError('lat and lon must be given together')
    try:
        sort_field = SortField(sort_by)
    except ValueError:
        raise ValidationError(f"sortBy must be one of: {', '.join(f.value for f in SortField)}")
    try:
        order = SortOrder(sort_order.lower())
    except ValueError:
        raise ValidationError('sortOrder must be asc or desc')

    near = schemas_spot.GeoLocation(latitude=lat, longitude=lon) if lat is not None else None
    return SpotQueryOptions(
        page=page,
        limit=limit,
        type=type,
        surface=surface,
        difficulty=difficulty,
        verified=verified,
        user_id=owner_id,
        search=search,
        status=spot_status,
        near_location=near,
        radius=radius,
        min_skateability_score=min_skateability_score,
        sort_by=sort_field,
        sort_order=order
    )

@router.get("/api/v1/spots", response_model=schemas_spot.SpotsPage)
def list_spots(
        options: SpotQueryOptions = Depends(spot_query_options),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    """
    条件に合うスポットをページ単位で返す．lat，lonを指定すると半径radius(km)以内の検索になる．
    """
    return engine.get_spots(options)

@router.post("/api/v1/spots", response_model=schemas_spot.Spot, status_code=status.HTTP_201_CREATED)
def create_spot(
        draft: schemas_spot.SpotDraft,
        user: CurrentUser = Depends(get_current_user),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    return engine.create_spot(draft, user_id=user.id)

# /spots/{spot_id} より先に登録しないと，"nearby"がIDとして解釈される．
@router.get("/api/v1/spots/nearby", response_model=schemas_spot.SpotsPage)
def nearby_spots(
        lat: float = Query(..., ge=-90, le=90),
        lon: float = Query(..., ge=-180, le=180),
        radius: float = Query(10, gt=0),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    location = schemas_spot.GeoLocation(latitude=lat, longitude=lon)
    options = SpotQueryOptions(page=page, limit=limit, sort_by=SortField.DISTANCE, sort_order=SortOrder.ASC)
    return engine.find_nearby_spots(location, radius, options)

@router.get("/api/v1/spots/{spot_id}", response_model=schemas_spot.Spot)
def get_spot(spot_id: str, engine: SpotQueryEngine = Depends(get_spot_query_engine)):
    spot = engine.get_spot_by_id(spot_id)
    if spot is None:
        raise NotFoundError(f"Spot {spot_id} not found")
    return spot

def _get_owned_spot(engine: SpotQueryEngine, spot_id: str, user: CurrentUser) -> schemas_spot.Spot:
    spot = engine.get_spot_by_id(spot_id)
    if spot is None:
        raise NotFoundError(f"Spot {spot_id} not found")
    ensure_owner_or_admin(user, spot.user_id)
    return spot

@router.patch("/api/v1/spots/{spot_id}", response_model=schemas_spot.Spot)
def update_spot(
        spot_id: str,
        changes: schemas_spot.SpotUpdate,
        user: CurrentUser = Depends(get_current_user),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    _get_owned_spot(engine, spot_id, user)
    spot = engine.update_spot(spot_id, changes)
    if spot is None:
        raise NotFoundError(f"Spot {spot_id} not found")
    return spot

@router.delete("/api/v1/spots/{spot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_spot(
        spot_id: str,
        user: CurrentUser = Depends(get_current_user),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    _get_owned_spot(engine, spot_id, user)
    if not engine.delete_spot(spot_id):
        raise NotFoundError(f"Spot {spot_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/api/v1/spots/{spot_id}/verify", response_model=schemas_spot.Spot)
def verify_spot(
        spot_id: str,
        admin: CurrentUser = Depends(require_admin),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    spot = engine.verify_spot(spot_id)
    if spot is None:
        raise NotFoundError(f"Spot {spot_id} not found")
    return spot

@router.patch("/api/v1/spots/{spot_id}/status", response_model=schemas_spot.Spot)
def change_spot_status(
        spot_id: str,
        body: schemas_spot.SpotStatusUpdate,
        admin: CurrentUser = Depends(require_admin),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    spot = engine.change_spot_status(spot_id, body.status)
    if spot is None:
        raise NotFoundError(f"Spot {spot_id} not found")
    return spot

@router.put("/api/v1/spots/{spot_id}/skateability", response_model=schemas_spot.Spot)
def update_skateability(
        spot_id: str,
        body: schemas_spot.SkateabilityUpdate,
        user: CurrentUser = Depends(get_current_user),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    spot = engine.update_skateability_score(spot_id, body.score)
    if spot is None:
        raise NotFoundError(f"Spot {spot_id} not found")
    return spot

@router.post(
    "/api/v1/spots/{spot_id}/images",
    response_model=schemas_spot.SpotImageResponse,
    status_code=status.HTTP_201_CREATED
)
async def upload_spot_image(
        spot_id: str,
        image: UploadFile = File(...),
        user: CurrentUser = Depends(get_current_user),
        storage: SpotImageStorage = Depends(get_spot_image_storage),
        settings: Settings = Depends(get_settings)
    ):
    data = await read_image_upload(image, settings.MAX_FILE_SIZE)
    # S3とDBへの書き込みは同期処理なので，イベントループを塞がないようスレッドで実行する．
    url = await run_in_threadpool(
        storage.upload_spot_image, spot_id, data, image.filename, image.content_type, user.id
    )
    return schemas_spot.SpotImageResponse(image_url=url)
