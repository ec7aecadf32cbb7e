from collections import defaultdict
from datetime import date
from typing import Dict, List, Sequence

from app.models.expense import Expense, ExpenseCategory


def month_key(day: date) -> str:
    """Return the YYYY-MM bucket for a calendar date."""
    return day.strftime("%Y-%m")


def add_months(day: date, months: int) -> date:
    """Shift a date by whole calendar months, pinned to the first of the month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def group_by_category(expenses: Sequence[Expense]) -> Dict[ExpenseCategory, List[Expense]]:
    groups: Dict[ExpenseCategory, List[Expense]] = defaultdict(list)
    for exp in expenses:
        groups[exp.category].append(exp)
    return dict(groups)


def group_by_month(expenses: Sequence[Expense]) -> Dict[str, List[Expense]]:
    groups: Dict[str, List[Expense]] = defaultdict(list)
    for exp in expenses:
        groups[month_key(exp.date)].append(exp)
    return dict(groups)


def expenses_for_month(expenses: Sequence[Expense], month: str) -> List[Expense]:
    return [exp for exp in expenses if month_key(exp.date) == month]


def total_amount(expenses: Sequence[Expense]) -> float:
    return sum(exp.amount for exp in expenses)


def months_span(expenses: Sequence[Expense]) -> int:
    """
    Number of calendar months covered by a date-sorted expense list,
    counting both ends. Zero only for an empty list.
    """
    if not expenses:
        return 0

    first, last = expenses[0].date, expenses[-1].date
    span = (last.year - first.year) * 12 + (last.month - first.month) + 1
    return max(1, span)
