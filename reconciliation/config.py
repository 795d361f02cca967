"""Reconciliation policy configuration.

Thresholds used by the detector and the classifier. Defaults reproduce the
documented behaviour; every value can be overridden from ``RECON_*``
environment variables (optionally loaded from a ``.env`` file).
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator


ENV_PREFIX = "RECON_"


class ReconciliationPolicy(BaseModel):
    """Configuration for issue detection and confidence scoring.

    Scores are integers in [0, 100]. The base scores must keep the status
    bands apart so that scoring stays monotonic:
    reconciled_base > partial_base and partial_base - jitter_bound >= unreconciled_base.
    """
    model_config = ConfigDict(frozen=True)

    # Detection
    amount_epsilon: Decimal = Field(
        default=Decimal("0.01"), ge=0,
        description="Max payment/invoice difference treated as equal",
    )
    duplicate_window_days: int = Field(
        default=10, ge=0,
        description="How far back a prior payment counts as a duplicate",
    )
    unknown_reference_sentinels: List[str] = Field(
        default_factory=lambda: ["UNKNOWN"],
        description="Reference notes meaning 'no invoice' (case-insensitive)",
    )

    # Scoring
    reconciled_base: int = Field(default=90, ge=0, le=100)
    partial_base: int = Field(default=70, ge=0, le=100)
    unreconciled_base: int = Field(default=50, ge=0, le=100)
    jitter_bound: int = Field(default=10, ge=0, le=100, description="Max score adjustment magnitude")
    issue_step_penalty: int = Field(default=3, ge=0, description="Penalty per issue beyond the first")

    # Late payer-name demotion
    demotion_factor: Decimal = Field(default=Decimal("0.8"), gt=0, le=1)
    demotion_floor: int = Field(default=60, ge=0, le=100)

    # Execution
    max_workers: int = Field(default=1, ge=1, description="Threads used per batch")

    @model_validator(mode="after")
    def _check_bands(self) -> "ReconciliationPolicy":
        if self.reconciled_base <= self.partial_base:
            raise ValueError("reconciled_base must be greater than partial_base")
        if self.partial_base - self.jitter_bound < self.unreconciled_base:
            raise ValueError("partial_base - jitter_bound must not fall below unreconciled_base")
        return self

    def is_unknown_reference(self, reference_note: str) -> bool:
        """Check whether a reference note identifies no invoice."""
        note = (reference_note or "").strip()
        if not note:
            return True
        return note.upper() in {s.strip().upper() for s in self.unknown_reference_sentinels}


DEFAULT_POLICY = ReconciliationPolicy()


def load_environment(env_file: Optional[Union[str, Path]] = None) -> None:
    """Load ``.env`` values into the process environment.

    Without a path, the nearest ``.env`` at or above the working directory is
    used, if there is one. Variables already set are not overridden.
    """
    if env_file is None:
        env_file = find_dotenv(usecwd=True)
        if not env_file:
            return
    load_dotenv(env_file)


def load_policy(env_file: Optional[Union[str, Path]] = None) -> ReconciliationPolicy:
    """Build a policy from defaults overridden by ``RECON_*`` variables.

    Args:
        env_file: .env file to load first (default: nearest ``.env`` from the
            working directory; existing variables win)

    Returns:
        ReconciliationPolicy

    Raises:
        pydantic.ValidationError: If an override is not a valid value
    """
    load_environment(env_file)

    overrides = {}
    for name, field in ReconciliationPolicy.model_fields.items():
        value = os.getenv(ENV_PREFIX + name.upper())
        if value is None:
            continue
        if name == "unknown_reference_sentinels":
            overrides[name] = [s.strip() for s in value.split(",") if s.strip()]
        else:
            overrides[name] = value.strip()

    return ReconciliationPolicy(**overrides)
