"""
Dashboard Aggregation Engine

Derives everything the dashboard shows from the raw ledger:
1. Net worth (sum of account balances)
2. This month's income, expenses, and savings rate
3. A rolling income/expense trend, one point per calendar month
4. Expenses ranked by category

DESIGN DECISION: These are pure functions.
- The reference time is a parameter, never read from the system clock
- Inputs are only read, never mutated
- No I/O, no caching; recomputing on every change is cheap at
  personal-ledger sizes

Money is summed as Decimal. Balances in different currencies are added
as raw numbers; there is no conversion.

A transaction whose date can't be parsed belongs to no month. It is
skipped by every monthly figure instead of raising.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Mapping, Optional, Sequence, Union

from finvue.models.catalog import (
    CATEGORY_INDEX,
    FALLBACK_CATEGORY_COLOR,
    FALLBACK_CATEGORY_NAME,
    build_category_index,
)
from finvue.models.finance import (
    BankAccount,
    Category,
    CategorySlice,
    DashboardData,
    DashboardStats,
    Transaction,
    TransactionType,
    TrendPoint,
)


DEFAULT_TREND_MONTHS = 6

ZERO = Decimal("0")

MonthKey = tuple[int, int]
CategoryCatalog = Union[Mapping[str, Category], Sequence[Category]]


# =============================================================================
# DATE HELPERS
# =============================================================================

def transaction_month(value: object) -> Optional[MonthKey]:
    """
    Return the (year, month) of a transaction date string.

    Accepts YYYY-MM-DD, and full ISO datetimes as well. Anything else,
    including None and non-strings, gives None.
    """
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        parsed = date.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(text).date()
        except ValueError:
            return None

    return parsed.year, parsed.month


def shift_month(year: int, month: int, offset: int) -> MonthKey:
    """
    Move a calendar month by `offset` months (negative goes back).

    shift_month(2024, 1, -5) == (2023, 8)
    """
    index = year * 12 + (month - 1) + offset
    shifted_year, month_index = divmod(index, 12)
    return shifted_year, month_index + 1


def _month_of(now: Union[date, datetime]) -> MonthKey:
    return now.year, now.month


def _monthly_totals(
    transactions: Sequence[Transaction],
) -> dict[MonthKey, tuple[Decimal, Decimal]]:
    """Income and expense totals per (year, month), in one pass."""
    totals: dict[MonthKey, tuple[Decimal, Decimal]] = {}

    for tx in transactions:
        key = transaction_month(tx.date)
        if key is None:
            continue

        income, expense = totals.get(key, (ZERO, ZERO))
        if tx.type == TransactionType.INCOME:
            income += tx.amount
        elif tx.type == TransactionType.EXPENSE:
            expense += tx.amount
        totals[key] = (income, expense)

    return totals


# =============================================================================
# OPERATIONS
# =============================================================================

def compute_summary(
    accounts: Sequence[BankAccount],
    transactions: Sequence[Transaction],
    now: Union[date, datetime],
) -> DashboardStats:
    """
    Headline numbers for the month containing `now`.

    savings_rate is (income - expenses) / income * 100 when there is
    income this month, and exactly 0 otherwise, however much was spent.
    """
    total_balance = sum((account.balance for account in accounts), ZERO)

    income, expenses = _monthly_totals(transactions).get(_month_of(now), (ZERO, ZERO))

    if income > 0:
        savings_rate = float((income - expenses) / income * 100)
    else:
        savings_rate = 0.0

    return DashboardStats(
        total_balance=total_balance,
        monthly_income=income,
        monthly_expenses=expenses,
        savings_rate=savings_rate,
    )


def compute_trend(
    transactions: Sequence[Transaction],
    now: Union[date, datetime],
    months: int = DEFAULT_TREND_MONTHS,
) -> list[TrendPoint]:
    """
    Income/expense per calendar month, oldest first.

    Always returns exactly `months` points ending at the month of `now`
    (inclusive). Months without transactions are zero. Each point covers
    its own month only; nothing carries over between points.
    """
    if months < 1:
        raise ValueError(f"months must be at least 1, got {months}")

    totals = _monthly_totals(transactions)
    year, month = _month_of(now)

    trend = []
    for offset in range(months - 1, -1, -1):
        key = shift_month(year, month, -offset)
        income, expense = totals.get(key, (ZERO, ZERO))
        trend.append(TrendPoint(
            year=key[0],
            month=key[1],
            label=str(key[1]),
            income=income,
            expense=expense,
        ))

    return trend


def compute_category_breakdown(
    transactions: Sequence[Transaction],
    categories: CategoryCatalog = CATEGORY_INDEX,
) -> list[CategorySlice]:
    """
    Total expenses per category, largest first.

    Income is ignored. Category ids missing from the catalog are kept and
    labelled with the fallback name and color. Equal totals are ordered
    by category id. Values are raw sums, not percentages.

    `categories` is normally the prebuilt id -> Category mapping; a plain
    sequence of categories is indexed on the fly.
    """
    if isinstance(categories, Mapping):
        index = categories
    else:
        index = build_category_index(categories)

    totals: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.type != TransactionType.EXPENSE:
            continue
        totals[tx.category_id] = totals.get(tx.category_id, ZERO) + tx.amount

    slices = []
    for category_id, value in totals.items():
        category = index.get(category_id)
        slices.append(CategorySlice(
            category_id=category_id,
            name=category.name if category else FALLBACK_CATEGORY_NAME,
            value=value,
            color=category.color if category else FALLBACK_CATEGORY_COLOR,
        ))

    slices.sort(key=lambda s: (-s.value, s.category_id))
    return slices


def compute_dashboard(
    accounts: Sequence[BankAccount],
    transactions: Sequence[Transaction],
    now: Union[date, datetime],
    categories: CategoryCatalog = CATEGORY_INDEX,
    months: int = DEFAULT_TREND_MONTHS,
) -> DashboardData:
    """Stats, trend and breakdown in one bundle, all against the same `now`."""
    if isinstance(now, datetime):
        generated_at = now
    else:
        generated_at = datetime.combine(now, time())

    return DashboardData(
        generated_at=generated_at,
        stats=compute_summary(accounts, transactions, now),
        trend=compute_trend(transactions, now, months),
        breakdown=compute_category_breakdown(transactions, categories),
    )
