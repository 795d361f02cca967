"""Shared engine and registry for the API.

One entity registry lives for the life of the process. It is rebuilt from
the configured seed on restart; nothing is persisted.
"""

import os
from functools import lru_cache

from fastapi import Depends

from entity_resolver import DEFAULT_SEED, EntityResolver, load_seed
from reconciliation import (
    ReconciliationEngine,
    ReconciliationPolicy,
    load_environment,
    load_policy,
)


@lru_cache
def get_policy() -> ReconciliationPolicy:
    """Policy from RECON_* variables (environment or .env)."""
    return load_policy()


@lru_cache
def get_resolver() -> EntityResolver:
    """Process-wide entity registry seeded from RECON_ENTITY_SEED_PATH."""
    load_environment()
    seed_path = os.getenv("RECON_ENTITY_SEED_PATH")
    seed = load_seed(seed_path) if seed_path else DEFAULT_SEED
    return EntityResolver(seed=seed)


def get_engine(
    resolver: EntityResolver = Depends(get_resolver),
    policy: ReconciliationPolicy = Depends(get_policy),
) -> ReconciliationEngine:
    """Engine bound to the shared registry."""
    return ReconciliationEngine(resolver, policy)
