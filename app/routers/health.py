"""
Health Check Router
Reports service status and whether the expense store is readable
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.db.storage import ExpenseRepository, get_expense_repository

router = APIRouter()


@router.get("/health")
def health_check(repository: ExpenseRepository = Depends(get_expense_repository)):
    readable = repository.is_readable()
    return {
        "status": "healthy" if readable else "degraded",
        "service": settings.PROJECT_NAME,
        "storage": "json" if settings.STORAGE_PATH else "memory",
        "storage_readable": readable,
        "expenses": len(repository.list_expenses()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
