"""
Policy Configuration Test

Validates ReconciliationPolicy defaults, band validation and the
RECON_* environment / .env overrides.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove RECON_* overrides leaking in from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith("RECON_"):
            monkeypatch.delenv(key)


class TestPolicy:

    def test_defaults(self):
        from reconciliation.config import DEFAULT_POLICY

        assert DEFAULT_POLICY.amount_epsilon == Decimal("0.01")
        assert DEFAULT_POLICY.duplicate_window_days == 10
        assert DEFAULT_POLICY.reconciled_base == 90
        assert DEFAULT_POLICY.partial_base == 70
        assert DEFAULT_POLICY.unreconciled_base == 50
        assert DEFAULT_POLICY.demotion_factor == Decimal("0.8")
        assert DEFAULT_POLICY.demotion_floor == 60

    def test_overlapping_bands_rejected(self):
        from reconciliation.config import ReconciliationPolicy

        with pytest.raises(ValidationError):
            ReconciliationPolicy(partial_base=55)

    def test_partial_above_reconciled_rejected(self):
        from reconciliation.config import ReconciliationPolicy

        with pytest.raises(ValidationError):
            ReconciliationPolicy(reconciled_base=70, partial_base=80)

    def test_policy_is_immutable(self):
        from reconciliation.config import DEFAULT_POLICY

        with pytest.raises(ValidationError):
            DEFAULT_POLICY.duplicate_window_days = 3

    @pytest.mark.parametrize("note, expected", [
        ("", True),
        ("  ", True),
        ("UNKNOWN", True),
        ("unknown", True),
        ("INV-1", False),
    ])
    def test_unknown_reference(self, note, expected):
        from reconciliation.config import DEFAULT_POLICY
        assert DEFAULT_POLICY.is_unknown_reference(note) is expected


class TestLoadPolicy:

    def test_no_overrides(self):
        from reconciliation.config import DEFAULT_POLICY, load_policy
        assert load_policy() == DEFAULT_POLICY

    def test_environment_overrides(self, monkeypatch):
        from reconciliation.config import load_policy

        monkeypatch.setenv("RECON_DUPLICATE_WINDOW_DAYS", "5")
        monkeypatch.setenv("RECON_AMOUNT_EPSILON", "0.05")
        monkeypatch.setenv("RECON_UNKNOWN_REFERENCE_SENTINELS", "UNKNOWN, N/A ,")

        policy = load_policy()

        assert policy.duplicate_window_days == 5
        assert policy.amount_epsilon == Decimal("0.05")
        assert policy.unknown_reference_sentinels == ["UNKNOWN", "N/A"]

    def test_env_file(self, tmp_path):
        import os

        from reconciliation.config import load_policy

        env_file = tmp_path / ".env"
        env_file.write_text("RECON_MAX_WORKERS=4\n")

        try:
            assert load_policy(env_file).max_workers == 4
        finally:
            os.environ.pop("RECON_MAX_WORKERS", None)

    def test_invalid_override(self, monkeypatch):
        from reconciliation.config import load_policy

        monkeypatch.setenv("RECON_DEMOTION_FLOOR", "lots")
        with pytest.raises(ValidationError):
            load_policy()
