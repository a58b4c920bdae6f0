"""Financial derivation shared by the deposit, confirmation, payment and invoice steps.

Every step that shows or charges money derives it from ``compute_job_financials``
so the subtotal, deposit and balance can never disagree between screens.
"""

import logging

from config import settings
from schemas.jobs import JobFinancials, LineItem

logger = logging.getLogger(__name__)


def _amount(value) -> float:
    """Coerce a stored amount (float, numeric string or None) to a float."""
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric amount {value!r}")
        return 0.0


def _money(value: float) -> float:
    return round(value, 2)


def line_total(price, quantity) -> float:
    """Price times quantity; a missing quantity counts as one."""
    return _money(_amount(price) * (int(quantity) if quantity else 1))


def recommended_deposit(subtotal: float) -> float:
    return _money(subtotal * settings.DEPOSIT_PERCENTAGE)


def cash_change(cash_received: float, balance_due: float) -> float:
    """Change owed to the customer; zero unless overpaid."""
    if cash_received > balance_due:
        return _money(cash_received - balance_due)
    return 0.0


def build_line_items(measurements, selected_products) -> list[LineItem]:
    """Measurement-attached products first, then selected products."""
    items: list[LineItem] = []

    for m in measurements or []:
        name = m.get("product_name")
        if not name:
            continue
        price = _amount(m.get("product_price"))
        window = m.get("window_id") or "window"
        items.append(LineItem(
            description=f"{name} ({window})",
            quantity=1,
            unit_price=_money(price),
            total=_money(price),
            source="measurement",
        ))

    for p in selected_products or []:
        quantity = int(p.get("quantity") or 1)
        price = _amount(p.get("price"))
        items.append(LineItem(
            description=p.get("product_name") or "Product",
            quantity=quantity,
            unit_price=_money(price),
            total=line_total(price, quantity),
            source="product",
        ))

    return items


def compute_job_financials(job) -> JobFinancials:
    """
    Derive subtotal, deposit and balance for a job.

    The subtotal is the sum of the line items when that sum is positive,
    otherwise the job's quotation. The balance is never negative.
    """
    items = build_line_items(job.measurements, job.selected_products)
    computed = _money(sum(i.total for i in items))
    subtotal = computed if computed > 0 else _money(_amount(job.quotation))
    deposit = _money(_amount(job.deposit))

    balance = _money(subtotal - deposit)
    if balance < 0:
        logger.warning(f"Job {job.id}: deposit ${deposit:.2f} exceeds subtotal ${subtotal:.2f}")
        balance = 0.0

    return JobFinancials(
        line_items=items,
        computed_subtotal=computed,
        subtotal=subtotal,
        deposit=deposit,
        balance=balance,
        recommended_deposit=recommended_deposit(subtotal),
    )
