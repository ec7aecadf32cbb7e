import datetime as dt
from typing import Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.expense import ExpenseCategory

TrendDirection = Literal["increasing", "decreasing", "stable"]
AlertType = Literal["danger", "warning", "info", "success"]
Severity = Literal["high", "medium", "low"]
RecommendationType = Literal["budget", "savings", "pattern", "optimization"]

AlertCategory = Union[ExpenseCategory, Literal["general"]]


class InsightModel(BaseModel):
    """Base for analysis results; serialized with camelCase keys for the UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ExpensePattern(InsightModel):
    category: ExpenseCategory
    average_amount: float
    frequency: float = Field(description="Expenses per month over the observed span")
    trend: TrendDirection
    # Population standard deviation of the amounts, kept under the name "variance"
    variance: float
    last_occurrence: dt.date


class SpendingTrend(InsightModel):
    month: str
    total: float
    category_breakdown: Dict[ExpenseCategory, float]
    growth_rate: float = Field(description="Percent change from the previous month")


class FinancialAlert(InsightModel):
    id: str
    type: AlertType
    category: AlertCategory
    title: str
    message: str
    severity: Severity
    actionable: bool
    created_at: dt.datetime


class Recommendation(InsightModel):
    id: str
    type: RecommendationType
    category: AlertCategory
    title: str
    description: str
    potential_savings: float
    confidence: float = Field(ge=0, le=100)
    priority: Severity
    action_steps: List[str] = []


class DuplicateExpense(InsightModel):
    original: str
    duplicates: List[str]
    confidence: float = Field(ge=0, le=100)
    reason: str


class MonthlyProjection(InsightModel):
    month: str
    projected_total: float
    category_projections: Dict[ExpenseCategory, float]
    confidence: float
    based_on_months: int


class FinancialInsight(InsightModel):
    total_insights: int
    health_score: int = Field(ge=0, le=100)
    patterns: List[ExpensePattern] = []
    trends: List[SpendingTrend] = []
    alerts: List[FinancialAlert] = []
    recommendations: List[Recommendation] = []
    duplicates: List[DuplicateExpense] = []
    projections: List[MonthlyProjection] = []
