"""Deterministic sample batch for dashboards and demos.

Builds raw payments, invoices and ledger entries shaped like real
remittance data: payer names written as variants of the billing name,
under- and over-payments, blank or UNKNOWN references, missing ledger
postings and repeated payments. Nothing is pre-classified; the engine
derives every issue from the records.
"""

import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from core.models import Invoice, InvoiceStatus, LedgerEntry, Payment, PaymentMethod


CUSTOMERS = [
    "Acme Corp", "Beta Inc", "Gamma LLC", "Delta Co", "Epsilon Partners",
    "Acme Corp West", "Acme Holdings", "Beta Subsidiaries", "Beta International Inc",
    "Gamma Group Holdings", "Delta Corp", "Delta Logistics Services",
]

# How payers commonly misspell a billing name
PAYER_SPELLINGS = {
    "Acme Corp": ["Acme Corporation", "ACME CORP", "Acme Co.", "Acme Ltd"],
    "Beta Inc": ["Beta Incorporated", "Beta Inc.", "Beta Intl"],
    "Gamma LLC": ["Gamma Limited", "Gamma L.L.C.", "The Gamma Group", "Gamma Grp"],
    "Delta Co": ["Delta Company", "Delta Corporation"],
    "Epsilon Partners": ["Epsilon & Partners"],
}

PAYMENT_METHODS = list(PaymentMethod)


@dataclass
class SampleBatch:
    """Raw records for one sample run."""
    payments: List[Payment] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)
    ledger_entries: List[LedgerEntry] = field(default_factory=list)


def generate_sample_batch(
    seed: int = 42,
    days: int = 30,
    start: Optional[date] = None,
) -> SampleBatch:
    """Generate a reproducible batch of raw records.

    Args:
        seed: Random seed; equal seeds give equal batches
        days: Number of days covered
        start: First payment date (defaults to 2024-01-01)

    Returns:
        SampleBatch
    """
    if days < 1:
        raise ValueError("days must be at least 1")

    rng = random.Random(seed)
    start = start or date(2024, 1, 1)
    batch = SampleBatch()

    payment_counter = 1000
    invoice_counter = 2000
    ledger_counter = 3000

    for day_index in range(days):
        day = start + timedelta(days=day_index)
        # Later days carry more volume and fewer problems
        per_day = 3 + rng.randint(0, 4) + (day_index * 4) // days
        quality = 0.5 + (day_index / days) * 0.4

        for _ in range(per_day):
            payment_id = f"PAY-{payment_counter}"
            invoice_id = f"INV-{invoice_counter}"
            ledger_id = f"LED-{ledger_counter}"
            payment_counter += 1
            invoice_counter += 1
            ledger_counter += 1

            customer = rng.choice(CUSTOMERS)
            troubled = rng.random() > quality

            invoice_amount = Decimal(rng.randint(50000, 500000)) / 100
            payment_amount = invoice_amount
            if troubled and rng.random() > 0.6:
                factor = rng.uniform(0.4, 0.95) if rng.random() > 0.5 else rng.uniform(1.05, 1.25)
                payment_amount = (invoice_amount * Decimal(str(round(factor, 4)))).quantize(Decimal("0.01"))

            payer_name = customer
            if customer in PAYER_SPELLINGS and rng.random() > 0.7:
                payer_name = rng.choice(PAYER_SPELLINGS[customer])

            reference_note = invoice_id
            if rng.random() < 0.15:
                reference_note = "" if rng.random() > 0.5 else "UNKNOWN"

            payment = Payment(
                payment_id=payment_id,
                payer_name=payer_name,
                amount=payment_amount,
                payment_date=day,
                method=rng.choice(PAYMENT_METHODS),
                reference_note=reference_note,
            )
            batch.payments.append(payment)

            batch.invoices.append(Invoice(
                invoice_id=invoice_id,
                customer_name=customer,
                amount_due=invoice_amount,
                due_date=day + timedelta(days=30),
                status=InvoiceStatus.PAID if rng.random() > 0.8 else InvoiceStatus.OPEN,
            ))

            if not troubled or rng.random() > 0.3:
                batch.ledger_entries.append(LedgerEntry(
                    ledger_entry_id=ledger_id,
                    invoice_id=invoice_id,
                    payment_id=payment_id,
                    amount=payment_amount,
                    entry_date=day,
                ))

            # Occasionally the same remittance is sent twice a few days later
            if troubled and rng.random() > 0.85 and day_index + 3 < days:
                repeat_id = f"PAY-{payment_counter}"
                payment_counter += 1
                batch.payments.append(payment.model_copy(update={
                    "payment_id": repeat_id,
                    "payment_date": day + timedelta(days=rng.randint(1, 3)),
                }))

    return batch
