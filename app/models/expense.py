import datetime as dt
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class ExpenseCategory(str, Enum):
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    OTHER = "Other"


# Fixed order used for every per-category map
EXPENSE_CATEGORIES: List[ExpenseCategory] = list(ExpenseCategory)


def empty_category_map() -> Dict[ExpenseCategory, float]:
    return {category: 0.0 for category in EXPENSE_CATEGORIES}


class Expense(BaseModel):
    id: str = Field(..., min_length=1)
    date: dt.date
    amount: float = Field(..., gt=0)
    category: ExpenseCategory
    description: str = ""
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = {"frozen": True}


class ExpenseCreate(BaseModel):
    date: dt.date
    amount: float = Field(..., gt=0)
    category: ExpenseCategory
    description: str = ""

    def to_expense(self) -> Expense:
        now = dt.datetime.now(dt.timezone.utc)
        return Expense(
            id=uuid4().hex,
            created_at=now,
            updated_at=now,
            **self.model_dump(),
        )


class ExpenseUpdate(BaseModel):
    date: Optional[dt.date] = None
    amount: Optional[float] = Field(default=None, gt=0)
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = None


class ExpenseFilters(BaseModel):
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    category: Optional[ExpenseCategory] = None
    search: Optional[str] = None

    def matches(self, expense: Expense) -> bool:
        if self.date_from and expense.date < self.date_from:
            return False
        if self.date_to and expense.date > self.date_to:
            return False
        if self.category and expense.category != self.category:
            return False
        if self.search:
            needle = self.search.lower()
            haystacks = (expense.description.lower(), expense.category.value.lower())
            if not any(needle in text for text in haystacks):
                return False
        return True


class CategoryShare(BaseModel):
    category: ExpenseCategory
    amount: float
    percentage: float


class ExpenseSummary(BaseModel):
    total_expenses: float
    monthly_total: float
    category_breakdown: Dict[ExpenseCategory, float]
    top_categories: List[CategoryShare]
