# sk8spot/routers/users.py
from fastapi import APIRouter, Depends, Query

from sk8spot.routers.spots import spot_query_options
from sk8spot.schemas import spot as schemas_spot
from sk8spot.schemas import collection as schemas_collection
from sk8spot.schemas.query import SpotQueryOptions
from sk8spot.services.collection_service import CollectionService, get_collection_service
from sk8spot.services.spot_query import SpotQueryEngine, get_spot_query_engine

router = APIRouter()

@router.get("/api/v1/users/{user_id}/spots", response_model=schemas_spot.SpotsPage)
def list_user_spots(
        user_id: str,
        options: SpotQueryOptions = Depends(spot_query_options),
        engine: SpotQueryEngine = Depends(get_spot_query_engine)
    ):
    return engine.get_user_spots(user_id, options)

@router.get("/api/v1/users/{user_id}/collections", response_model=schemas_collection.CollectionsPage)
def list_user_collections(
        user_id: str,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        service: CollectionService = Depends(get_collection_service)
    ):
    return service.get_user_collections(user_id, page, limit)
