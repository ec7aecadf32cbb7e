from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set, Union

from app.models.expense import (
    EXPENSE_CATEGORIES,
    CategoryShare,
    Expense,
    ExpenseSummary,
    empty_category_map,
)
from app.models.insights import (
    DuplicateExpense,
    ExpensePattern,
    FinancialAlert,
    FinancialInsight,
    MonthlyProjection,
    Recommendation,
    SpendingTrend,
    TrendDirection,
)
from app.utils.aggregation import (
    add_months,
    expenses_for_month,
    group_by_category,
    group_by_month,
    month_key,
    months_span,
    total_amount,
)
from app.utils.stats import mean, std_deviation, string_similarity

logger = logging.getLogger(__name__)

ExpenseLike = Union[Expense, Mapping[str, Any]]

# Pattern analysis
TREND_MIN_EXPENSES = 6
TREND_WINDOW = 3
TREND_CHANGE_THRESHOLD = 0.15

# Alerts
HIGH_SPENDING_RATIO = 1.3
CATEGORY_SPIKE_RATIO = 1.5
VOLATILITY_RATIO = 0.5

# Recommendations
BUDGET_MIN_AVERAGE = 500
BUDGET_SAVINGS_RATE = 0.15
BUDGET_TARGET_RATE = 0.85
CONSISTENCY_RATIO = 0.6
CONSISTENCY_SAVINGS_RATE = 0.3
SAVINGS_MIN_AVERAGE = 300
SAVINGS_RATE = 0.2

# Duplicates
DUPLICATE_AMOUNT_TOLERANCE = 0.01
DUPLICATE_SIMILARITY = 0.8
DUPLICATE_WINDOW_DAYS = 7
DUPLICATE_CONFIDENCE = 85

# Projections
PROJECTION_MIN_MONTHS = 3
PROJECTION_HORIZON = 3

# Health score
HEALTH_SEVERE_RATIO = 1.5
HEALTH_ELEVATED_RATIO = 1.2
HEALTH_VARIANCE_RATIO = 0.5


class FinancialAnalyzer:
    """
    Batch analysis over one user's expense history.

    The engine validates and sorts its input once, then every facet
    (patterns, trends, alerts, recommendations, duplicates, projections and
    the health score) is derived from that same chronological snapshot.
    ``reference_date`` stands in for "today"; it decides the current month
    used by alerts and the health score, and where projections start.
    """

    def __init__(
        self,
        expenses: Iterable[ExpenseLike],
        reference_date: Optional[date] = None,
    ) -> None:
        validated = [
            exp if isinstance(exp, Expense) else Expense.model_validate(exp)
            for exp in expenses
        ]
        self._expenses: List[Expense] = sorted(validated, key=lambda exp: exp.date)
        self._today = reference_date or date.today()
        self._current_month = month_key(self._today)

    @property
    def expenses(self) -> List[Expense]:
        return list(self._expenses)

    @property
    def current_month(self) -> str:
        return self._current_month

    def analyze(self) -> FinancialInsight:
        patterns = self.spending_patterns()
        trends = self.spending_trends()
        alerts = self.generate_alerts(patterns)
        recommendations = self.generate_recommendations(patterns)
        duplicates = self.detect_duplicates()
        projections = self.generate_projections(trends)
        health_score = self.health_score(patterns)

        logger.info(
            f"Analyzed {len(self._expenses)} expenses across {len(trends)} months: "
            f"health={health_score}, alerts={len(alerts)}, recommendations={len(recommendations)}"
        )

        return FinancialInsight(
            total_insights=len(alerts) + len(recommendations),
            health_score=health_score,
            patterns=patterns,
            trends=trends,
            alerts=alerts,
            recommendations=recommendations,
            duplicates=duplicates,
            projections=projections,
        )

    # Patterns and trends

    def spending_patterns(self) -> List[ExpensePattern]:
        """Per-category statistics, largest average spend first."""
        span = months_span(self._expenses)
        patterns = []
        for category, items in group_by_category(self._expenses).items():
            amounts = [exp.amount for exp in items]
            average = mean(amounts)
            patterns.append(
                ExpensePattern(
                    category=category,
                    average_amount=average,
                    frequency=len(items) / span if span > 0 else 0.0,
                    trend=self.category_trend(items),
                    variance=std_deviation(amounts),
                    last_occurrence=items[-1].date,
                )
            )

        patterns.sort(key=lambda pattern: pattern.average_amount, reverse=True)
        logger.debug(f"Built {len(patterns)} category patterns")
        return patterns

    @staticmethod
    def category_trend(expenses: Sequence[Expense]) -> TrendDirection:
        """
        Compare the mean of the last three expenses with the three before.
        Fewer than six expenses is always "stable".
        """
        if len(expenses) < TREND_MIN_EXPENSES:
            return "stable"

        recent = mean([exp.amount for exp in expenses[-TREND_WINDOW:]])
        older = mean([exp.amount for exp in expenses[-2 * TREND_WINDOW:-TREND_WINDOW]])
        if older == 0:
            return "stable"

        change = (recent - older) / older
        if change > TREND_CHANGE_THRESHOLD:
            return "increasing"
        if change < -TREND_CHANGE_THRESHOLD:
            return "decreasing"
        return "stable"

    def spending_trends(self) -> List[SpendingTrend]:
        monthly = group_by_month(self._expenses)
        trends: List[SpendingTrend] = []
        previous_total: Optional[float] = None

        for month in sorted(monthly):
            items = monthly[month]
            total = total_amount(items)
            breakdown = empty_category_map()
            for exp in items:
                breakdown[exp.category] += exp.amount

            growth_rate = 0.0
            if previous_total:
                growth_rate = (total - previous_total) / previous_total * 100

            trends.append(
                SpendingTrend(
                    month=month,
                    total=total,
                    category_breakdown=breakdown,
                    growth_rate=growth_rate,
                )
            )
            previous_total = total

        return trends

    def monthly_average(self) -> float:
        month_totals = [total_amount(items) for items in group_by_month(self._expenses).values()]
        return mean(month_totals)

    def current_month_expenses(self) -> List[Expense]:
        return expenses_for_month(self._expenses, self._current_month)

    # Alerts and recommendations

    def generate_alerts(
        self, patterns: Optional[List[ExpensePattern]] = None
    ) -> List[FinancialAlert]:
        if patterns is None:
            patterns = self.spending_patterns()

        created_at = datetime.now(timezone.utc)
        current = self.current_month_expenses()
        current_total = total_amount(current)
        alerts: List[FinancialAlert] = []

        if current_total > self.monthly_average() * HIGH_SPENDING_RATIO:
            alerts.append(
                FinancialAlert(
                    id=f"high-spending-{self._current_month}",
                    type="warning",
                    category="general",
                    title="Elevated Spending Alert",
                    message=(
                        "This month's spending is 30% higher than your average. "
                        "Consider reviewing your expenses."
                    ),
                    severity="high",
                    actionable=True,
                    created_at=created_at,
                )
            )

        for pattern in patterns:
            category_total = total_amount([exp for exp in current if exp.category == pattern.category])
            if category_total > pattern.average_amount * CATEGORY_SPIKE_RATIO:
                name = pattern.category.value
                alerts.append(
                    FinancialAlert(
                        id=f"category-spike-{name}",
                        type="warning",
                        category=pattern.category,
                        title=f"{name} Spending Spike",
                        message=f"Your {name.lower()} spending is significantly higher this month.",
                        severity="medium",
                        actionable=True,
                        created_at=created_at,
                    )
                )

        for pattern in patterns:
            if pattern.trend == "increasing" and pattern.variance > pattern.average_amount * VOLATILITY_RATIO:
                name = pattern.category.value
                alerts.append(
                    FinancialAlert(
                        id=f"volatility-{name}",
                        type="info",
                        category=pattern.category,
                        title="Inconsistent Spending Pattern",
                        message=(
                            f"Your {name.lower()} expenses vary significantly. "
                            "Consider setting a budget."
                        ),
                        severity="low",
                        actionable=True,
                        created_at=created_at,
                    )
                )

        logger.debug(f"Generated {len(alerts)} alerts for {self._current_month}")
        return alerts

    def generate_recommendations(
        self, patterns: Optional[List[ExpensePattern]] = None
    ) -> List[Recommendation]:
        if patterns is None:
            patterns = self.spending_patterns()

        recommendations: List[Recommendation] = []

        for pattern in patterns:
            if pattern.average_amount > BUDGET_MIN_AVERAGE and pattern.trend == "increasing":
                name = pattern.category.value
                target = pattern.average_amount * BUDGET_TARGET_RATE
                recommendations.append(
                    Recommendation(
                        id=f"budget-{name}",
                        type="budget",
                        category=pattern.category,
                        title=f"Optimize {name} Spending",
                        description=(
                            f"You're spending above average in {name.lower()}. "
                            "Consider setting a monthly budget."
                        ),
                        potential_savings=pattern.average_amount * BUDGET_SAVINGS_RATE,
                        confidence=75,
                        priority="medium",
                        action_steps=[
                            f"Set a monthly {name.lower()} budget of ${target:.0f}",
                            "Track expenses more closely in this category",
                            "Look for cheaper alternatives",
                        ],
                    )
                )

        for pattern in patterns:
            if pattern.variance > pattern.average_amount * CONSISTENCY_RATIO:
                name = pattern.category.value
                recommendations.append(
                    Recommendation(
                        id=f"consistency-{name}",
                        type="pattern",
                        category=pattern.category,
                        title="Stabilize Spending Pattern",
                        description=(
                            f"Your {name.lower()} expenses are inconsistent. "
                            "Regular budgeting could help."
                        ),
                        potential_savings=pattern.variance * CONSISTENCY_SAVINGS_RATE,
                        confidence=60,
                        priority="low",
                        action_steps=[
                            "Set a consistent monthly budget",
                            "Plan expenses in advance",
                            "Review spending weekly",
                        ],
                    )
                )

        # Only the top category is considered for the savings opportunity
        if patterns and patterns[0].average_amount > SAVINGS_MIN_AVERAGE:
            highest = patterns[0]
            recommendations.append(
                Recommendation(
                    id="savings-opportunity",
                    type="savings",
                    category=highest.category,
                    title="Major Savings Opportunity",
                    description=(
                        f"{highest.category.value} is your highest expense category. "
                        "Small reductions could lead to significant savings."
                    ),
                    potential_savings=highest.average_amount * SAVINGS_RATE,
                    confidence=80,
                    priority="high",
                    action_steps=[
                        "Analyze each expense in this category",
                        "Look for subscription services to cancel",
                        "Find more cost-effective alternatives",
                        "Set spending alerts",
                    ],
                )
            )

        recommendations.sort(key=lambda rec: rec.confidence, reverse=True)
        return recommendations

    # Duplicates and projections

    def detect_duplicates(self) -> List[DuplicateExpense]:
        """
        Greedy forward scan. The earliest unconsumed expense of a cluster is
        the original, and every id lands in at most one group.
        """
        groups: List[DuplicateExpense] = []
        consumed: Set[str] = set()

        for index, expense in enumerate(self._expenses):
            if expense.id in consumed:
                continue

            matches = [
                other
                for other in self._expenses[index + 1:]
                if other.id not in consumed and self._looks_duplicate(expense, other)
            ]
            if not matches:
                continue

            groups.append(
                DuplicateExpense(
                    original=expense.id,
                    duplicates=[other.id for other in matches],
                    confidence=DUPLICATE_CONFIDENCE,
                    reason="Same amount, category, and similar timeframe",
                )
            )
            consumed.add(expense.id)
            consumed.update(other.id for other in matches)

        if groups:
            logger.debug(f"Found {len(groups)} potential duplicate groups")
        return groups

    @staticmethod
    def _looks_duplicate(expense: Expense, other: Expense) -> bool:
        if expense.category != other.category:
            return False
        if abs(expense.amount - other.amount) >= DUPLICATE_AMOUNT_TOLERANCE:
            return False
        if abs((other.date - expense.date).days) <= DUPLICATE_WINDOW_DAYS:
            return True
        return string_similarity(expense.description, other.description) > DUPLICATE_SIMILARITY

    def generate_projections(
        self, trends: Optional[List[SpendingTrend]] = None
    ) -> List[MonthlyProjection]:
        """Linear extrapolation of the last three months, for the next three months."""
        if trends is None:
            trends = self.spending_trends()
        if len(trends) < PROJECTION_MIN_MONTHS:
            return []

        recent = trends[-PROJECTION_MIN_MONTHS:]
        avg_growth = mean([trend.growth_rate for trend in recent])
        last_total = trends[-1].total

        projections = []
        for offset in range(1, PROJECTION_HORIZON + 1):
            factor = 1 + avg_growth * offset / 100
            category_projections = {
                category: mean([trend.category_breakdown[category] for trend in recent]) * factor
                for category in EXPENSE_CATEGORIES
            }
            projections.append(
                MonthlyProjection(
                    month=month_key(add_months(self._today, offset)),
                    projected_total=last_total * factor,
                    category_projections=category_projections,
                    confidence=max(50, 85 - offset * 10),
                    based_on_months=len(recent),
                )
            )
        return projections

    # Health score

    def health_score(self, patterns: Optional[List[ExpensePattern]] = None) -> int:
        if patterns is None:
            patterns = self.spending_patterns()

        score = 100
        current_total = total_amount(self.current_month_expenses())
        monthly_average = self.monthly_average()

        if current_total > monthly_average * HEALTH_SEVERE_RATIO:
            score -= 30
        elif current_total > monthly_average * HEALTH_ELEVATED_RATIO:
            score -= 15

        if patterns:
            avg_variance = mean([pattern.variance for pattern in patterns])
            avg_amount = mean([pattern.average_amount for pattern in patterns])
            if avg_variance > avg_amount * HEALTH_VARIANCE_RATIO:
                score -= 20

        score -= 5 * sum(1 for pattern in patterns if pattern.trend == "increasing")
        score += 5 * sum(1 for pattern in patterns if pattern.trend == "stable")

        return max(0, min(100, score))


def summarize_expenses(
    expenses: Iterable[Expense],
    reference_date: Optional[date] = None,
    top_n: int = 3,
) -> ExpenseSummary:
    """
    Dashboard totals: lifetime spend, spend in the reference month,
    per-category breakdown and the largest categories with their share.
    """
    expenses = list(expenses)
    current_month = month_key(reference_date or date.today())

    total = total_amount(expenses)
    breakdown = empty_category_map()
    for exp in expenses:
        breakdown[exp.category] += exp.amount

    ranked = sorted(breakdown.items(), key=lambda item: item[1], reverse=True)
    top_categories = [
        CategoryShare(
            category=category,
            amount=amount,
            percentage=amount / total * 100 if total > 0 else 0.0,
        )
        for category, amount in ranked[:top_n]
    ]

    return ExpenseSummary(
        total_expenses=total,
        monthly_total=total_amount(expenses_for_month(expenses, current_month)),
        category_breakdown=breakdown,
        top_categories=top_categories,
    )
