"""Entity Resolver Algorithm.

This module implements the registry that maps raw payer/customer names to
canonical business entities. Resolution rules, first match wins:
1. Exact (case-sensitive) match against a canonical name
2. Exact match against a registered variant
3. Normalized match (lowercase, no punctuation, no corporate suffix)
4. No match: the raw name becomes a new singleton canonical entity

Resolution is total: every string resolves to some entity.

The registry is shared, append-only state. Lookups read it without locking;
insertions run under a lock and re-check before inserting, so two threads
seeing the same unknown name at once create exactly one entity.
"""

import threading
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from core.observability import get_logger, get_metrics
from entity_resolver.models import (
    CanonicalEntity,
    EntityResolution,
    EntitySuggestion,
    MatchType,
    RegisteredEntity,
)
from entity_resolver.normalize import (
    normalize_entity_name,
    tokenize_name,
    calculate_token_similarity,
)


logger = get_logger(__name__)


class EntityResolver:
    """Resolves raw names to canonical entities.

    Example:
        resolver = EntityResolver(seed={"Acme Corp": ["Acme Corporation"]})

        resolver.resolve("Acme Corporation").canonical_name  # "Acme Corp"
        resolver.resolve("ACME CORP").canonical_name         # "Acme Corp"
        resolver.resolve("Acme Ltd").canonical_name          # "Acme Ltd" (new)
    """

    def __init__(self, seed: Optional[Mapping[str, Iterable[str]]] = None):
        """Initialize the registry.

        Args:
            seed: Canonical name -> known variants. Seeded entities are
                registered in mapping order.

        Raises:
            ValueError: If the seed registers one variant under two names
        """
        self._lock = threading.Lock()
        self._entities: Dict[str, CanonicalEntity] = {}
        self._variants: Dict[str, str] = {}
        self._variants_by_canonical: Dict[str, List[str]] = {}
        self._normalized: Dict[str, str] = {}
        self._next_id = 1

        for canonical, variants in (seed or {}).items():
            self._register_canonical(canonical, seeded=True)
            for variant in variants:
                self._register_variant(canonical, variant)

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(self, raw_name: str) -> CanonicalEntity:
        """Resolve a raw name to its canonical entity (never fails)."""
        return self.resolve_with_details(raw_name).entity

    def resolve_with_details(self, raw_name: str) -> EntityResolution:
        """Resolve a raw name and report which rule matched.

        Args:
            raw_name: Payer or customer name as written

        Returns:
            EntityResolution with the entity, match type and reasons
        """
        normalized = normalize_entity_name(raw_name)

        found = self._lookup(raw_name, normalized)
        created = False
        if found is None:
            with self._lock:
                found = self._lookup(raw_name, normalized)
                if found is None:
                    entity = self._register_canonical(raw_name, seeded=False)
                    found = (entity, MatchType.NEW_SINGLETON, raw_name)
                    created = True

        entity, match_type, matched_name = found
        get_metrics().record_resolution(match_type.value, created=created)
        if created:
            logger.debug(
                f"Registered new entity '{raw_name}'",
                extra_fields={"entity_id": entity.entity_id, "normalized_name": normalized},
            )

        return EntityResolution(
            raw_name=raw_name,
            normalized_name=normalized,
            entity=entity,
            match_type=match_type,
            matched_name=matched_name,
            reasons=self._reasons(raw_name, normalized, match_type, matched_name),
        )

    def same_entity(self, name1: str, name2: str) -> bool:
        """Check whether two raw names resolve to the same canonical entity."""
        return self.resolve(name1) == self.resolve(name2)

    def _lookup(
        self,
        raw_name: str,
        normalized: str,
    ) -> Optional[Tuple[CanonicalEntity, MatchType, str]]:
        """Apply rules 1-3 against the current registry without inserting."""
        entity = self._entities.get(raw_name)
        if entity is not None:
            return entity, MatchType.EXACT_CANONICAL, raw_name

        canonical = self._variants.get(raw_name)
        if canonical is not None:
            return self._entities[canonical], MatchType.EXACT_VARIANT, raw_name

        if normalized:
            canonical = self._normalized.get(normalized)
            if canonical is not None:
                return self._entities[canonical], MatchType.NORMALIZED, canonical

        return None

    @staticmethod
    def _reasons(
        raw_name: str,
        normalized: str,
        match_type: MatchType,
        matched_name: str,
    ) -> List[str]:
        if match_type == MatchType.EXACT_CANONICAL:
            return [f"'{raw_name}' is a canonical name"]
        if match_type == MatchType.EXACT_VARIANT:
            return [f"'{raw_name}' is a registered variant"]
        if match_type == MatchType.NORMALIZED:
            return [f"Normalized form '{normalized}' matches '{matched_name}'"]
        return [f"No known name matches '{raw_name}'; registered as a new entity"]

    # =========================================================================
    # Registration
    # =========================================================================

    def register_canonical(self, name: str) -> CanonicalEntity:
        """Register a canonical name (no-op if it already is one).

        Raises:
            ValueError: If the name already resolves to another entity
        """
        with self._lock:
            self._check_unclaimed(name, name)
            return self._register_canonical(name, seeded=False)

    def register_variant(self, canonical_name: str, variant: str) -> CanonicalEntity:
        """Register a variant spelling under a canonical name.

        The canonical name is registered first if needed. Registering the
        same pair twice is a no-op. Neither name may already resolve to a
        different entity, by any match type, so registration never moves a
        name from one entity to another.

        Raises:
            ValueError: If either name already denotes a different entity
        """
        with self._lock:
            self._check_unclaimed(canonical_name, canonical_name)
            self._check_unclaimed(variant, canonical_name)
            if canonical_name not in self._entities:
                self._register_canonical(canonical_name, seeded=False)
            self._register_variant(canonical_name, variant)
            return self._entities[canonical_name]

    def _check_unclaimed(self, name: str, canonical_name: str) -> None:
        """Raise if ``name`` resolves to an entity other than ``canonical_name``."""
        found = self._lookup(name, normalize_entity_name(name))
        if found is None:
            return
        entity, _, _ = found
        if entity.canonical_name != canonical_name:
            raise ValueError(f"'{name}' already resolves to '{entity.canonical_name}'")

    def _register_canonical(self, name: str, seeded: bool) -> CanonicalEntity:
        """Insert a canonical name. Caller holds the lock (or is __init__)."""
        existing = self._entities.get(name)
        if existing is not None:
            return existing

        owner = self._variants.get(name)
        if owner is not None:
            raise ValueError(f"'{name}' is already a variant of '{owner}'")

        entity = CanonicalEntity(
            entity_id=f"ENT-{self._next_id:05d}",
            canonical_name=name,
            seeded=seeded,
        )
        self._next_id += 1

        # Publish the entity before any index that points at it
        self._entities[name] = entity
        self._variants_by_canonical[name] = []
        normalized = normalize_entity_name(name)
        if normalized:
            self._normalized.setdefault(normalized, name)

        return entity

    def _register_variant(self, canonical_name: str, variant: str) -> None:
        """Insert a variant. Caller holds the lock (or is __init__)."""
        if variant == canonical_name:
            return

        if variant in self._entities:
            raise ValueError(f"'{variant}' is already a canonical name")

        owner = self._variants.get(variant)
        if owner is not None:
            if owner != canonical_name:
                raise ValueError(f"'{variant}' is already a variant of '{owner}'")
            return

        self._variants[variant] = canonical_name
        self._variants_by_canonical[canonical_name].append(variant)
        normalized = normalize_entity_name(variant)
        if normalized:
            self._normalized.setdefault(normalized, canonical_name)

    # =========================================================================
    # Inspection
    # =========================================================================

    def entities(self) -> List[RegisteredEntity]:
        """Snapshot of the registry in registration order."""
        with self._lock:
            return [
                RegisteredEntity(
                    entity=entity,
                    variants=list(self._variants_by_canonical.get(name, [])),
                )
                for name, entity in self._entities.items()
            ]

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, name: str) -> bool:
        return name in self._entities or name in self._variants

    def suggest(
        self,
        raw_name: str,
        limit: int = 3,
        threshold: float = 0.5,
    ) -> List[EntitySuggestion]:
        """Suggest entities that look like a raw name without resolving to it.

        Suggestions never change resolution; a confirmed suggestion becomes a
        mapping through ``register_variant``. The registry is not modified.

        Args:
            raw_name: Name to find look-alikes for
            limit: Max suggestions to return
            threshold: Min token similarity (0.0-1.0)

        Returns:
            Suggestions sorted by score, best first
        """
        normalized = normalize_entity_name(raw_name)
        tokens = tokenize_name(normalized)
        found = self._lookup(raw_name, normalized)
        resolved_to = found[0] if found else None

        with self._lock:
            entities = list(self._entities.values())

        suggestions = []
        for entity in entities:
            if entity == resolved_to:
                continue
            entity_tokens = tokenize_name(normalize_entity_name(entity.canonical_name))
            similarity = calculate_token_similarity(tokens, entity_tokens)
            if similarity < threshold:
                continue
            suggestions.append(EntitySuggestion(
                entity=entity,
                score=Decimal(str(round(similarity * 100, 1))),
                matched_tokens=[t for t in tokens if t in entity_tokens],
            ))

        suggestions.sort(key=lambda s: (-s.score, s.entity.entity_id))
        return suggestions[:limit]

    def explain_resolution(self, resolution: EntityResolution) -> str:
        """Generate a human-readable explanation of a resolution."""
        lines = ["=" * 60, "Entity Resolution Explanation", "=" * 60]

        lines.append(f"Raw name: '{resolution.raw_name}'")
        lines.append(f"Normalized: '{resolution.normalized_name}'")
        lines.append("")
        lines.append(f"Resolved to: {resolution.entity.canonical_name} ({resolution.entity.entity_id})")
        lines.append(f"  Match type: {resolution.match_type.value}")
        lines.append(f"  Matched name: '{resolution.matched_name}'")

        lines.append("")
        lines.append("Reasons:")
        for reason in resolution.reasons:
            lines.append(f"  • {reason}")

        lines.append("=" * 60)

        return "\n".join(lines)
