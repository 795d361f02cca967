"""Status and confidence classification.

The status is a pure function of the issue list:
- Reconciled: no issues
- Unreconciled: a duplicate payment or a missing invoice
- Partially Reconciled: anything else

The confidence score starts from a base per status (90 / 70 / 50) and is
adjusted by a deterministic jitter of at most ``jitter_bound`` points
derived from secondary signals: each issue beyond the first, and the
relative size of any amount mismatch. Every secondary signal is a
discrepancy, so the adjustment only ever lowers the score. Adding an issue
therefore never raises the score, and the policy keeps the status bands
from overlapping.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Sequence, Tuple

from reconciliation.config import DEFAULT_POLICY, ReconciliationPolicy
from reconciliation.models import (
    AmountMismatchIssue,
    Issue,
    IssueKind,
    PayerNameMismatchIssue,
    ReconciliationResult,
    ReconciliationStatus,
    status_for_issues,
)


def classify_status(issues: Sequence[Issue]) -> ReconciliationStatus:
    """Derive the reconciliation status from an issue list."""
    return status_for_issues(issues)


def base_score(status: ReconciliationStatus, policy: ReconciliationPolicy = DEFAULT_POLICY) -> int:
    if status == ReconciliationStatus.RECONCILED:
        return policy.reconciled_base
    if status == ReconciliationStatus.PARTIALLY_RECONCILED:
        return policy.partial_base
    return policy.unreconciled_base


def _mismatch_penalty(issue: AmountMismatchIssue, policy: ReconciliationPolicy) -> int:
    """Scale the relative size of a mismatch to [0, jitter_bound]."""
    larger = max(issue.invoice_amount, issue.payment_amount)
    if larger == 0:
        return 0
    ratio = abs(issue.difference) / larger
    return int((ratio * policy.jitter_bound).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def score_adjustment(issues: Sequence[Issue], policy: ReconciliationPolicy = DEFAULT_POLICY) -> int:
    """Jitter from secondary signals, in [-jitter_bound, 0]."""
    if not issues:
        return 0

    penalty = policy.issue_step_penalty * (len(issues) - 1)
    for issue in issues:
        if isinstance(issue, AmountMismatchIssue):
            penalty += _mismatch_penalty(issue, policy)

    return -min(policy.jitter_bound, penalty)


def score_confidence(issues: Sequence[Issue], policy: ReconciliationPolicy = DEFAULT_POLICY) -> int:
    """Compute the 0-100 confidence score for an issue list."""
    score = base_score(classify_status(issues), policy) + score_adjustment(issues, policy)
    return max(0, min(100, score))


def classify(
    issues: Sequence[Issue],
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> Tuple[ReconciliationStatus, int]:
    """Return (status, confidence score) for an issue list."""
    return classify_status(issues), score_confidence(issues, policy)


def demote_for_name_mismatch(
    result: ReconciliationResult,
    issue: PayerNameMismatchIssue,
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> ReconciliationResult:
    """Apply a late-discovered payer-name mismatch to a classified result.

    A Reconciled result becomes Partially Reconciled and its score drops to
    ``max(demotion_floor, floor(score * demotion_factor))``, always strictly
    below the old score. Any other result gets the issue appended and keeps
    the lower of its old score and a fresh score. A result that already
    carries a payer-name mismatch is returned unchanged, so applying the
    rule twice equals applying it once.
    """
    if result.has_issue(IssueKind.PAYER_NAME_MISMATCH):
        return result

    issues = tuple(result.issues) + (issue,)
    old_score = result.confidence_score

    if result.status == ReconciliationStatus.RECONCILED:
        scaled = int((Decimal(old_score) * policy.demotion_factor).to_integral_value(rounding=ROUND_FLOOR))
        # The floor never lifts a score; the demoted score is strictly lower
        score = min(max(policy.demotion_floor, scaled), old_score - 1)
    else:
        score = min(old_score, score_confidence(issues, policy))

    return ReconciliationResult(
        payment=result.payment,
        matched_invoice=result.matched_invoice,
        ledger_entry=result.ledger_entry,
        issues=issues,
        status=classify_status(issues),
        confidence_score=max(0, score),
    )
