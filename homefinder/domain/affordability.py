# homefinder/domain/affordability.py
"""
Mortgage affordability.

`monthly_payment` and `max_price` are intentionally not exact inverses:
the forward direction estimates tax as 1.1% of price per year plus $1200/yr
insurance, while the reverse direction subtracts a flat $500/month for tax and
insurance. Round-tripping a value through both will drift.
"""
from __future__ import annotations

PROPERTY_TAX_RATE = 0.011
ANNUAL_INSURANCE = 1200.0
FLAT_TAX_AND_INSURANCE = 500.0

DEFAULT_INTEREST_RATE = 0.065
DEFAULT_TERM_YEARS = 30


def _amortization_factor(interest_rate: float, term_years: int) -> float:
    """Monthly payment per unit of principal."""
    n = term_years * 12
    if n <= 0:
        raise ValueError("term_years must be positive")
    r = interest_rate / 12
    if r == 0:
        return 1.0 / n
    growth = (1 + r) ** n
    return (r * growth) / (growth - 1)


def monthly_payment(
    price: float,
    down_payment_percent: float,
    interest_rate: float = DEFAULT_INTEREST_RATE,
    term_years: int = DEFAULT_TERM_YEARS,
) -> float:
    loan = price * (1 - down_payment_percent / 100)
    principal_and_interest = loan * _amortization_factor(interest_rate, term_years)
    tax = price * PROPERTY_TAX_RATE / 12
    insurance = ANNUAL_INSURANCE / 12
    return principal_and_interest + tax + insurance


def max_price(
    max_monthly_payment: float,
    down_payment_percent: float,
    interest_rate: float = DEFAULT_INTEREST_RATE,
    term_years: int = DEFAULT_TERM_YEARS,
) -> float:
    if not 0 <= down_payment_percent < 100:
        raise ValueError("down_payment_percent must be in [0, 100)")

    available = max(0.0, max_monthly_payment - FLAT_TAX_AND_INSURANCE)
    if available == 0:
        return 0.0

    loan = available / _amortization_factor(interest_rate, term_years)
    return loan / (1 - down_payment_percent / 100)
