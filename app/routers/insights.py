"""
Insights Router
Runs the financial analyzer over the stored expense history
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.db.storage import ExpenseRepository, get_expense_repository
from app.models.insights import FinancialInsight
from app.utils.analyzer import FinancialAnalyzer

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=FinancialInsight)
def get_insights(
    today: Optional[date] = None,
    repository: ExpenseRepository = Depends(get_expense_repository),
) -> FinancialInsight:
    """
    Patterns, trends, alerts, recommendations, duplicates, projections and
    the health score for every stored expense. `today` (YYYY-MM-DD) fixes
    the current month; it defaults to the server date.
    """
    try:
        expenses = repository.list_expenses()
        logger.info(f"Generating insights for {len(expenses)} expenses")
        return FinancialAnalyzer(expenses, reference_date=today).analyze()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error generating insights: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
