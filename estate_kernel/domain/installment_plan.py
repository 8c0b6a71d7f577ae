"""
Installment plan math (``estate_kernel.domain.installment_plan``).

Pure functions of contract terms:

* ``compute_contract_totals`` -- VAT-inclusive annual and whole-term totals,
  fixed once at contract creation.
* ``generate_installment_plan`` -- equal division of the total into N
  installments, due on successive periods from the start date.

The per-installment amount is ``total / count`` at the model's Decimal
precision.  The last installment is NOT adjusted to absorb the rounding
remainder; the sum may differ from the total by at most ``count`` units of
the stored precision.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_EVEN, Decimal

from estate_kernel.domain.statuses import InstallmentFrequency

# Matches the Numeric(38, 9) column scale.
AMOUNT_QUANTUM = Decimal("0.000000001")

PERIOD_MONTHS: dict[InstallmentFrequency, int] = {
    InstallmentFrequency.MONTHLY: 1,
    InstallmentFrequency.QUARTERLY: 3,
    InstallmentFrequency.SEMI_ANNUAL: 6,
    InstallmentFrequency.ANNUAL: 12,
}


@dataclass(frozen=True)
class InstallmentSpec:
    """One scheduled payment obligation, before it is persisted."""

    sequence_number: int
    amount_due: Decimal
    due_date: date


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def compute_contract_totals(
    annual_amount: Decimal,
    vat_rate: Decimal,
    duration_years: int,
) -> tuple[Decimal, Decimal]:
    """Return ``(total_annual_amount, total_contract_amount)``.

    ``total_annual_amount = annual * (1 + vat / 100)`` and
    ``total_contract_amount = total_annual_amount * duration``.
    """
    annual = Decimal(annual_amount)
    vat = Decimal(vat_rate)
    total_annual = annual * (Decimal(1) + vat / Decimal(100))
    total = total_annual * Decimal(duration_years)
    return (
        total_annual.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN),
        total.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN),
    )


def generate_installment_plan(
    total_contract_amount: Decimal | None,
    installment_count: int | None,
    frequency: InstallmentFrequency | None,
    start_date: date,
) -> list[InstallmentSpec]:
    """Split a contract total into equal installments.

    Returns an empty list, without raising, when the total is not positive
    or the count is unset or not positive.  ``frequency`` defaults to
    monthly.  Due dates are computed from ``start_date`` for each
    installment so that day clamping in short months never accumulates.
    """
    if total_contract_amount is None or Decimal(total_contract_amount) <= 0:
        return []
    if installment_count is None or installment_count <= 0:
        return []

    months = PERIOD_MONTHS[frequency or InstallmentFrequency.MONTHLY]
    amount = (Decimal(total_contract_amount) / Decimal(installment_count)).quantize(
        AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN
    )

    return [
        InstallmentSpec(
            sequence_number=i,
            amount_due=amount,
            due_date=add_months(start_date, i * months),
        )
        for i in range(1, installment_count + 1)
    ]
