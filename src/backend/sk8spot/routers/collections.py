# sk8spot/routers/collections.py
from fastapi import APIRouter, Depends, Query, Response, status

from sk8spot.core.exceptions import NotFoundError
from sk8spot.core.security import CurrentUser, get_current_user, ensure_owner_or_admin
from sk8spot.schemas import collection as schemas_collection
from sk8spot.schemas import spot as schemas_spot
from sk8spot.services.collection_service import CollectionService, get_collection_service

router = APIRouter()

def _get_owned_collection(service: CollectionService, collection_id: str, user: CurrentUser):
    collection = service.get_collection(collection_id)
    if collection is None:
        raise NotFoundError(f"Collection {collection_id} not found")
    ensure_owner_or_admin(user, collection.user_id)
    return collection

@router.post(
    "/api/v1/collections",
    response_model=schemas_collection.Collection,
    status_code=status.HTTP_201_CREATED
)
def create_collection(
        draft: schemas_collection.CollectionCreate,
        user: CurrentUser = Depends(get_current_user),
        service: CollectionService = Depends(get_collection_service)
    ):
    return service.create_collection(user.id, draft)

@router.get("/api/v1/collections", response_model=schemas_collection.CollectionsPage)
def list_my_collections(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        user: CurrentUser = Depends(get_current_user),
        service: CollectionService = Depends(get_collection_service)
    ):
    return service.get_user_collections(user.id, page, limit)

@router.get("/api/v1/collections/{collection_id}", response_model=schemas_collection.Collection)
def get_collection(collection_id: str, service: CollectionService = Depends(get_collection_service)):
    collection = service.get_collection(collection_id)
    if collection is None:
        raise NotFoundError(f"Collection {collection_id} not found")
    return collection

@router.patch("/api/v1/collections/{collection_id}", response_model=schemas_collection.Collection)
def update_collection(
        collection_id: str,
        changes: schemas_collection.CollectionUpdate,
        user: CurrentUser = Depends(get_current_user),
        service: CollectionService = Depends(get_collection_service)
    ):
    _get_owned_collection(service, collection_id, user)
    collection = service.update_collection(collection_id, changes)
    if collection is None:
        raise NotFoundError(f"Collection {collection_id} not found")
    return collection

@router.delete("/api/v1/collections/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_collection(
        collection_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: CollectionService = Depends(get_collection_service)
    ):
    _get_owned_collection(service, collection_id, user)
    service.delete_collection(collection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/api/v1/collections/{collection_id}/spots", response_model=schemas_spot.SpotsPage)
def list_collection_spots(
        collection_id: str,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        service: CollectionService = Depends(get_collection_service)
    ):
    return service.get_collection_spots(collection_id, page, limit)

@router.post("/api/v1/collections/{collection_id}/spots", status_code=status.HTTP_204_NO_CONTENT)
def add_spot_to_collection(
        collection_id: str,
        body: schemas_collection.CollectionSpotAdd,
        user: CurrentUser = Depends(get_current_user),
        service: CollectionService = Depends(get_collection_service)
    ):
    _get_owned_collection(service, collection_id, user)
    service.add_spot(collection_id, body.spot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.delete("/api/v1/collections/{collection_id}/spots/{spot_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_spot_from_collection(
        collection_id: str,
        spot_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: CollectionService = Depends(get_collection_service)
    ):
    _get_owned_collection(service, collection_id, user)
    service.remove_spot(collection_id, spot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
