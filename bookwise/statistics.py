"""Income/expense totals, per-category breakdown and time series.

All three are derived from one read of the store so they always agree with
each other, even while other requests are writing.
"""
import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .errors import InvalidRange, ValidationFailed
from .interfaces import TransactionRow
from .models import INCOME, EXPENSE

MAX_RANGE_DAYS = 730  # 2 years
GROUP_BY_DAY = "day"
GROUP_BY_MONTH = "month"
GROUP_BY_CHOICES = (GROUP_BY_DAY, GROUP_BY_MONTH)

ZERO = Decimal("0.00")
TYPE_ORDER = {INCOME: 0, EXPENSE: 1}


def validate_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date:
        if end_date < start_date:
            raise InvalidRange("End date cannot be earlier than start date")
        if (end_date - start_date).days > MAX_RANGE_DAYS:
            raise InvalidRange("Date range cannot exceed 2 years")


def summarize_rows(rows: Iterable[TransactionRow]) -> dict:
    summary = {
        INCOME: {"total": ZERO, "count": 0},
        EXPENSE: {"total": ZERO, "count": 0},
    }
    for row in rows:
        bucket = summary[row.category_type]
        bucket["total"] += row.amount
        bucket["count"] += 1

    summary["balance"] = summary[INCOME]["total"] - summary[EXPENSE]["total"]
    return summary


def breakdown_rows(rows: Iterable[TransactionRow]) -> List[dict]:
    by_category = OrderedDict()
    for row in rows:
        entry = by_category.get(row.category_id)
        if entry is None:
            entry = by_category[row.category_id] = {
                "category": {
                    "id": row.category_id,
                    "name": row.category_name,
                    "type": row.category_type,
                    "color": row.category_color,
                },
                "total": ZERO,
                "count": 0,
            }
        entry["total"] += row.amount
        entry["count"] += 1

    # stable: equal totals keep the order they were first seen in
    return sorted(by_category.values(), key=lambda e: e["total"], reverse=True)


def time_series_rows(rows: Iterable[TransactionRow], group_by: str = GROUP_BY_MONTH) -> List[dict]:
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationFailed("groupBy must be 'day' or 'month'")

    totals = {}
    for row in rows:
        if group_by == GROUP_BY_DAY:
            period = row.transaction_date
        else:
            period = (row.transaction_date.year, row.transaction_date.month)
        key = (period, row.category_type)
        totals[key] = totals.get(key, ZERO) + row.amount

    keys = sorted(totals, key=lambda k: TYPE_ORDER.get(k[1], len(TYPE_ORDER)))
    keys.sort(key=lambda k: k[0], reverse=True)

    series = []
    for period, category_type in keys:
        if group_by == GROUP_BY_DAY:
            entry = {"date": period}
        else:
            entry = {"year": period[0], "month": period[1]}
        entry["type"] = category_type
        entry["total"] = totals[(period, category_type)]
        series.append(entry)
    return series


class StatisticsAggregator:
    def __init__(self, store, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def _snapshot(self, user_id: int, start_date=None, end_date=None) -> List[TransactionRow]:
        validate_range(start_date, end_date)
        return self.store.fetch_transactions(user_id, start_date=start_date, end_date=end_date)

    def summarize(self, user_id: int, start_date=None, end_date=None) -> dict:
        return summarize_rows(self._snapshot(user_id, start_date, end_date))

    def category_breakdown(self, user_id: int, start_date=None, end_date=None) -> List[dict]:
        return breakdown_rows(self._snapshot(user_id, start_date, end_date))

    def time_series(
        self, user_id: int, start_date=None, end_date=None, group_by: str = GROUP_BY_MONTH
    ) -> List[dict]:
        if group_by not in GROUP_BY_CHOICES:
            raise ValidationFailed("groupBy must be 'day' or 'month'")
        return time_series_rows(self._snapshot(user_id, start_date, end_date), group_by)

    def get_statistics(
        self, user_id: int, start_date=None, end_date=None, group_by: str = GROUP_BY_MONTH
    ) -> dict:
        if group_by not in GROUP_BY_CHOICES:
            raise ValidationFailed("groupBy must be 'day' or 'month'")
        rows = self._snapshot(user_id, start_date, end_date)
        self.logger.debug(
            "Statistics for user %s over %s..%s from %d rows", user_id, start_date, end_date, len(rows)
        )
        return {
            "summary": summarize_rows(rows),
            "category_breakdown": breakdown_rows(rows),
            "time_series": time_series_rows(rows, group_by),
        }
