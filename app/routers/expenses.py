import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.db.storage import ExpenseRepository, StorageError, get_expense_repository
from app.models.expense import (
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilters,
    ExpenseSummary,
    ExpenseUpdate,
)
from app.utils.analyzer import summarize_expenses

router = APIRouter()
logger = logging.getLogger(__name__)


def storage_unavailable(error: StorageError) -> HTTPException:
    logger.error(f"Refusing to modify unreadable expense storage: {error}")
    return HTTPException(status_code=503, detail="Expense storage is unreadable")


@router.post("/", response_model=Expense, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: ExpenseCreate,
    repository: ExpenseRepository = Depends(get_expense_repository),
):
    try:
        created = repository.add_expense(expense)
    except StorageError as e:
        raise storage_unavailable(e) from e
    logger.info(f"Created expense {created.id} ({created.category.value}, {created.amount})")
    return created


@router.get("/", response_model=List[Expense])
def list_expenses(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    category: Optional[ExpenseCategory] = None,
    search: Optional[str] = None,
    repository: ExpenseRepository = Depends(get_expense_repository),
):
    filters = ExpenseFilters(date_from=date_from, date_to=date_to, category=category, search=search)
    return repository.list_expenses(filters)


@router.get("/summary", response_model=ExpenseSummary)
def expense_summary(
    today: Optional[date] = None,
    repository: ExpenseRepository = Depends(get_expense_repository),
):
    """
    Totals for the dashboard cards. `today` picks the month used for
    the monthly total (defaults to the server date).
    """
    return summarize_expenses(repository.list_expenses(), reference_date=today)


@router.get("/{expense_id}", response_model=Expense)
def get_expense(
    expense_id: str,
    repository: ExpenseRepository = Depends(get_expense_repository),
):
    expense = repository.get_expense(expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


@router.put("/{expense_id}", response_model=Expense)
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    repository: ExpenseRepository = Depends(get_expense_repository),
):
    mutable_fields = expense_update.model_dump(exclude_unset=True, exclude_none=True)
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    try:
        updated = repository.update_expense(expense_id, expense_update)
    except StorageError as e:
        raise storage_unavailable(e) from e
    if not updated:
        raise HTTPException(status_code=404, detail="Expense not found")

    return updated


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: str,
    repository: ExpenseRepository = Depends(get_expense_repository),
):
    try:
        deleted = repository.delete_expense(expense_id)
    except StorageError as e:
        raise storage_unavailable(e) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Expense not found")
    return None
