"""Entity registry endpoints."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from entity_resolver import (
    CanonicalEntity,
    EntityResolution,
    EntityResolver,
    EntitySuggestion,
    RegisteredEntity,
)

from api.dependencies import get_resolver


router = APIRouter()


class ResolveRequest(BaseModel):
    name: str


class VariantRequest(BaseModel):
    canonical_name: str
    variant: str


@router.get("", response_model=List[RegisteredEntity])
def list_entities(resolver: EntityResolver = Depends(get_resolver)) -> List[RegisteredEntity]:
    """Registry snapshot in registration order."""
    return resolver.entities()


@router.post("/resolve", response_model=EntityResolution)
def resolve_name(
    request: ResolveRequest,
    resolver: EntityResolver = Depends(get_resolver),
) -> EntityResolution:
    """Resolve a raw name, registering it if it is new."""
    return resolver.resolve_with_details(request.name)


@router.post("/variants", response_model=CanonicalEntity)
def register_variant(
    request: VariantRequest,
    resolver: EntityResolver = Depends(get_resolver),
) -> CanonicalEntity:
    """Confirm that a spelling denotes a canonical entity."""
    try:
        return resolver.register_variant(request.canonical_name, request.variant)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/suggest", response_model=List[EntitySuggestion])
def suggest(
    name: str = Query(..., min_length=1),
    limit: int = Query(default=3, ge=1, le=20),
    resolver: EntityResolver = Depends(get_resolver),
) -> List[EntitySuggestion]:
    """Entities that look like a name without resolving to it."""
    return resolver.suggest(name, limit=limit)
