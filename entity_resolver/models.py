"""Entity Resolver Data Models.

This module defines the Pydantic models for entity resolution:
- CanonicalEntity: The identity one or more raw names resolve to
- EntityResolution: The result of resolving a raw name, with reasons
- EntitySuggestion: A scored near-match offered for confirmation
- RegisteredEntity: A registry snapshot row (canonical name + variants)
- EntityCluster: Observed raw names grouped under one canonical entity
"""

from decimal import Decimal
from enum import Enum
from typing import FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field


class MatchType(str, Enum):
    """How a raw name was resolved."""
    EXACT_CANONICAL = "exact_canonical"  # Raw name is a canonical name
    EXACT_VARIANT = "exact_variant"      # Raw name is a registered variant
    NORMALIZED = "normalized"            # Normalized forms are equal
    NEW_SINGLETON = "new_singleton"      # Unseen name, registered as its own entity


class CanonicalEntity(BaseModel):
    """A canonical business entity.

    Two raw names denote the same entity iff they resolve to equal
    CanonicalEntity values.

    Attributes:
        entity_id: Registry-assigned identifier (e.g. "ENT-00001")
        canonical_name: The name every variant resolves to
        seeded: True when the entity came from the configured seed
    """
    model_config = ConfigDict(frozen=True)

    entity_id: str
    canonical_name: str
    seeded: bool = False


class EntityResolution(BaseModel):
    """Result of resolving a raw name.

    Attributes:
        raw_name: The name that was resolved
        normalized_name: Normalized form used for rule 3
        entity: The canonical entity the name resolved to
        match_type: Which resolution rule matched
        matched_name: The registered name that produced the match
        reasons: Explanation of the resolution
    """
    raw_name: str
    normalized_name: str
    entity: CanonicalEntity
    match_type: MatchType
    matched_name: str
    reasons: List[str] = Field(default_factory=list)


class EntitySuggestion(BaseModel):
    """A canonical entity that looks like a raw name but did not resolve to it."""
    entity: CanonicalEntity
    score: Decimal = Field(..., description="Token similarity (0-100)")
    matched_tokens: List[str] = Field(default_factory=list)


class RegisteredEntity(BaseModel):
    """Registry snapshot row."""
    entity: CanonicalEntity
    variants: List[str] = Field(default_factory=list)


class EntityCluster(BaseModel):
    """Raw payer names observed for one canonical entity.

    Built from reconciliation results, not owned by them.
    """
    model_config = ConfigDict(frozen=True)

    canonical_name: str
    count: int = Field(default=0, ge=0)
    total_amount: Decimal = Field(default=Decimal("0"))
    variants: FrozenSet[str] = Field(default_factory=frozenset)
