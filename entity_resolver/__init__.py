"""Entity Resolver - groups payer/customer names into canonical entities.

This package recognizes superficially different names ("Acme Corp",
"ACME CORP", "Acme Corporation", "Acme Co.") as one business entity. It is
used by the issue detector for the payer-name check and by the summary
aggregator for per-entity totals.

Key Features:
- Seeded registry of canonical names and known variants
- Normalization that ignores case, punctuation and corporate suffixes
- Unknown names become singleton entities, so resolution never fails
- Thread-safe insert-if-absent for concurrent classification

Usage:
    from entity_resolver import EntityResolver, DEFAULT_SEED

    resolver = EntityResolver(seed=DEFAULT_SEED)
    entity = resolver.resolve("Acme Corporation")

    if resolver.same_entity("Acme Corporation", "Acme Corp"):
        print(f"Both resolve to {entity.canonical_name}")
"""

from entity_resolver.models import (
    CanonicalEntity,
    EntityCluster,
    EntityResolution,
    EntitySuggestion,
    MatchType,
    RegisteredEntity,
)
from entity_resolver.resolver import EntityResolver
from entity_resolver.normalize import normalize_entity_name, tokenize_name
from entity_resolver.seeds import DEFAULT_SEED, load_seed

__all__ = [
    # Models
    "CanonicalEntity",
    "EntityCluster",
    "EntityResolution",
    "EntitySuggestion",
    "MatchType",
    "RegisteredEntity",
    # Resolver
    "EntityResolver",
    # Normalization
    "normalize_entity_name",
    "tokenize_name",
    # Seeds
    "DEFAULT_SEED",
    "load_seed",
]
