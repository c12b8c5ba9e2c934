"""API routes for stores."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from delicious.database import get_db
from delicious.services import stores as store_service
from delicious.services.stores import (
    PopulatedStore,
    SlugConflictError,
    StoreValidationError,
)

router = APIRouter(prefix="/stores", tags=["stores"])


# --- Schemas ---

class LocationIn(BaseModel):
    coordinates: list[float] | None = None
    address: str | None = None


class StoreCreateRequest(BaseModel):
    # Required fields are checked by the service so every missing one is
    # reported with its own message.
    name: str | None = None
    description: str | None = None
    tags: list[str] = []
    location: LocationIn | None = None
    photo: str | None = None
    author_id: uuid.UUID | None = None


class StoreUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    location: LocationIn | None = None
    photo: str | None = None
    author_id: uuid.UUID | None = None


class LocationResponse(BaseModel):
    type: str
    coordinates: list[float]
    address: str


class ReviewResponse(BaseModel):
    id: uuid.UUID
    store_id: uuid.UUID
    author_id: uuid.UUID | None
    text: str | None
    rating: int | None
    created: datetime

    model_config = {"from_attributes": True}


class StoreResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    tags: list[str]
    created: datetime
    location: LocationResponse
    photo: str | None
    author_id: uuid.UUID
    reviews: list[ReviewResponse]


class TagResponse(BaseModel):
    tag: str
    count: int


class TopStoreResponse(BaseModel):
    id: uuid.UUID
    photo: str | None
    name: str
    slug: str
    average_rating: float | None = Field(serialization_alias="averageRating")
    reviews: list[ReviewResponse]


def _store_response(entry: PopulatedStore) -> StoreResponse:
    store = entry.store
    return StoreResponse(
        id=store.id,
        name=store.name,
        slug=store.slug,
        description=store.description,
        tags=store.tags or [],
        created=store.created,
        location=LocationResponse(
            type=store.location_type,
            coordinates=store.coordinates,
            address=store.address,
        ),
        photo=store.photo,
        author_id=store.author_id,
        reviews=[ReviewResponse.model_validate(r) for r in entry.reviews],
    )


# --- Endpoints ---

@router.get("", response_model=list[StoreResponse])
async def list_stores(
    offset: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    entries = await store_service.list_stores(db, offset=offset, limit=limit)
    return [_store_response(e) for e in entries]


@router.get("/tags", response_model=list[TagResponse])
async def get_tags(db: AsyncSession = Depends(get_db)):
    tags = await store_service.get_tags_list(db)
    return [TagResponse(tag=t.tag, count=t.count) for t in tags]


@router.get("/top", response_model=list[TopStoreResponse])
async def get_top_stores(db: AsyncSession = Depends(get_db)):
    top = await store_service.get_top_stores(db)
    return [
        TopStoreResponse(
            id=s.id,
            photo=s.photo,
            name=s.name,
            slug=s.slug,
            average_rating=s.average_rating,
            reviews=[ReviewResponse.model_validate(r) for r in s.reviews],
        )
        for s in top
    ]


@router.get("/{slug}", response_model=StoreResponse)
async def get_store(slug: str, db: AsyncSession = Depends(get_db)):
    entry = await store_service.get_store_by_slug(db, slug)
    if not entry:
        raise HTTPException(status_code=404, detail="Store not found")
    return _store_response(entry)


@router.post("", response_model=StoreResponse, status_code=201)
async def create_store(data: StoreCreateRequest, db: AsyncSession = Depends(get_db)):
    try:
        entry = await store_service.create_store(db, data.model_dump())
    except StoreValidationError as exc:
        raise HTTPException(status_code=422, detail={"errors": exc.errors})
    except SlugConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return _store_response(entry)


@router.patch("/{store_id}", response_model=StoreResponse)
async def update_store(
    store_id: uuid.UUID,
    data: StoreUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        entry = await store_service.update_store(db, store_id, data.model_dump(exclude_unset=True))
    except StoreValidationError as exc:
        raise HTTPException(status_code=422, detail={"errors": exc.errors})
    except SlugConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if not entry:
        raise HTTPException(status_code=404, detail="Store not found")
    return _store_response(entry)
