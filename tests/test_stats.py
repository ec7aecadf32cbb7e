from datetime import date

import pytest

from app.models.expense import Expense, ExpenseCategory
from app.utils.aggregation import (
    add_months,
    expenses_for_month,
    group_by_category,
    group_by_month,
    month_key,
    months_span,
)
from app.utils.stats import mean, std_deviation, string_similarity

sample_expenses = [
    Expense(id="1", date=date(2023, 11, 28), amount=12.5, category="Food", description="Lunch"),
    Expense(id="2", date=date(2023, 12, 2), amount=40.0, category="Transportation", description="Fuel"),
    Expense(id="3", date=date(2023, 12, 20), amount=7.5, category="Food", description="Coffee"),
    Expense(id="4", date=date(2024, 2, 1), amount=80.0, category="Bills", description="Phone"),
]


def test_mean_and_std_deviation():
    assert mean([]) == 0.0
    assert mean([2, 4]) == 3.0
    assert std_deviation([]) == 0.0
    assert std_deviation([50.0]) == 0.0
    # Population, not sample, deviation
    assert std_deviation([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)


def test_string_similarity():
    assert string_similarity("", "") == 1.0
    assert string_similarity("Coffee", "coffee") == 1.0
    assert string_similarity("kitten", "sitting") == pytest.approx(4 / 7)
    assert string_similarity("abc", "") == 0.0


def test_month_helpers():
    assert month_key(date(2024, 3, 9)) == "2024-03"
    assert add_months(date(2024, 11, 30), 1) == date(2024, 12, 1)
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 1)
    assert add_months(date(2024, 1, 31), 0) == date(2024, 1, 1)


def test_group_by_category_keeps_order():
    groups = group_by_category(sample_expenses)
    assert [exp.id for exp in groups[ExpenseCategory.FOOD]] == ["1", "3"]
    assert list(groups) == [ExpenseCategory.FOOD, ExpenseCategory.TRANSPORTATION, ExpenseCategory.BILLS]


def test_group_by_month():
    groups = group_by_month(sample_expenses)
    assert sorted(groups) == ["2023-11", "2023-12", "2024-02"]
    assert [exp.id for exp in groups["2023-12"]] == ["2", "3"]
    assert [exp.id for exp in expenses_for_month(sample_expenses, "2024-02")] == ["4"]


def test_months_span():
    assert months_span([]) == 0
    assert months_span(sample_expenses[:1]) == 1
    assert months_span(sample_expenses) == 4
