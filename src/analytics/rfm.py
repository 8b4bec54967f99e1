"""RFM scoring engine.

Pure computation over in-memory transactions; no database access. The
service layer (:mod:`analytics.services`) feeds it rows read from the sales
table and persists what it returns.

Pipeline:
- group transactions by customer (:func:`aggregate_transactions`)
- drop customers under the minimum order count (:func:`split_qualifying`)
- derive recency / frequency / monetary (:func:`derive_metrics`)
- quintile scoring against the population (:func:`score_population`)
- run-level statistics (:func:`summarize`)
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from operator import itemgetter
from typing import Any, Iterable

from analytics.segments import SegmentDefinition, classify, recommendations_for

QUINTILE_PERCENTILES = (20, 40, 60, 80)
MIN_SCORE = 1
MAX_SCORE = 5

CENTS = Decimal("0.01")


def _d(value, default: str = "0.00") -> Decimal:
    if value is None:
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value: Decimal) -> str:
    return str(_d(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def _round_tenths(numerator, denominator) -> float:
    """``round(numerator / denominator, 1)`` with halves rounded up."""
    scaled = (Decimal(numerator) * 10 / Decimal(denominator)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(scaled / 10)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

@dataclass
class CustomerAggregate:
    """Eligible transactions of one customer inside the analysis window."""

    customer_id: Any
    transactions: list[tuple[datetime, Decimal]] = field(default_factory=list)
    total: Decimal = Decimal("0.00")

    def add(self, order_date: datetime, amount) -> None:
        amount = _d(amount)
        self.transactions.append((order_date, amount))
        self.total += amount

    @property
    def frequency(self) -> int:
        return len(self.transactions)


def aggregate_transactions(rows: Iterable[tuple[Any, datetime, Any]]) -> list[CustomerAggregate]:
    """Group ``(customer_id, order_date, amount)`` rows by customer.

    Rows without a customer are ignored. Customers keep the order in which
    they first appear.
    """
    by_customer: dict[Any, CustomerAggregate] = {}
    for customer_id, order_date, amount in rows:
        if customer_id is None:
            continue
        aggregate = by_customer.get(customer_id)
        if aggregate is None:
            aggregate = by_customer[customer_id] = CustomerAggregate(customer_id=customer_id)
        aggregate.add(order_date, amount)
    return list(by_customer.values())


def split_qualifying(
    aggregates: Iterable[CustomerAggregate],
    min_transactions: int,
) -> tuple[list[CustomerAggregate], list[CustomerAggregate]]:
    """Return ``(kept, excluded)`` according to the minimum order count."""
    kept, excluded = [], []
    for aggregate in aggregates:
        if aggregate.frequency >= min_transactions:
            kept.append(aggregate)
        else:
            excluded.append(aggregate)
    return kept, excluded


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

@dataclass
class CustomerMetrics:
    customer_id: Any
    recency_days: int
    frequency_count: int
    monetary_total: Decimal
    monetary_average: Decimal
    first_purchase_date: datetime
    last_purchase_date: datetime


def derive_metrics(aggregate: CustomerAggregate, analysis_date: datetime) -> CustomerMetrics:
    """Compute raw recency/frequency/monetary values for one customer."""
    if not aggregate.transactions:
        raise ValueError(f"Aucune transaction pour le client {aggregate.customer_id}.")

    ordered = sorted(aggregate.transactions, key=itemgetter(0), reverse=True)
    last_purchase = ordered[0][0]
    first_purchase = ordered[-1][0]
    # Floor division on timedelta; a purchase after the analysis date counts as 0 days.
    recency_days = max(0, (analysis_date - last_purchase) // timedelta(days=1))
    frequency = len(ordered)

    return CustomerMetrics(
        customer_id=aggregate.customer_id,
        recency_days=int(recency_days),
        frequency_count=frequency,
        monetary_total=aggregate.total,
        monetary_average=(aggregate.total / frequency).quantize(CENTS, rounding=ROUND_HALF_UP),
        first_purchase_date=first_purchase,
        last_purchase_date=last_purchase,
    )


# ---------------------------------------------------------------------------
# Quintile scoring
# ---------------------------------------------------------------------------

def percentile(sorted_values: list, p: int):
    """Nearest-rank percentile on an ascending list (index clamped at 0)."""
    if not sorted_values:
        raise ValueError("Impossible de calculer un percentile sur une population vide.")
    n = len(sorted_values)
    # ceil(p / 100 * n) in integer arithmetic
    rank = -(-p * n // 100)
    return sorted_values[max(0, rank - 1)]


def quintile_bounds(values: Iterable) -> tuple:
    """Boundaries at the 20th/40th/60th/80th percentiles of ``values``."""
    ordered = sorted(values)
    return tuple(percentile(ordered, p) for p in QUINTILE_PERCENTILES)


def score_recency(recency_days, bounds) -> int:
    """Fewer days since the last purchase scores higher; ties keep the better band."""
    if recency_days > bounds[3]:
        return 1
    if recency_days > bounds[2]:
        return 2
    if recency_days > bounds[1]:
        return 3
    if recency_days > bounds[0]:
        return 4
    return 5


def score_ascending(value, bounds) -> int:
    """Frequency / monetary scoring: larger values score higher."""
    if value > bounds[3]:
        return 5
    if value > bounds[2]:
        return 4
    if value > bounds[1]:
        return 3
    if value > bounds[0]:
        return 2
    return 1


def churn_prediction(recency_score: int) -> dict:
    """Recency-only churn heuristic."""
    if recency_score <= 2:
        risk = "high"
    elif recency_score == 3:
        risk = "medium"
    else:
        risk = "low"
    return {
        "churn_risk": risk,
        "churn_probability": max(0, 100 - recency_score * 20),
    }


@dataclass
class ScoredCustomer:
    metrics: CustomerMetrics
    recency_score: int
    frequency_score: int
    monetary_score: int
    segment: SegmentDefinition
    churn_risk: str
    churn_probability: int
    recommendations: dict

    @property
    def customer_id(self):
        return self.metrics.customer_id

    @property
    def rfm_score(self) -> str:
        return f"{self.recency_score}{self.frequency_score}{self.monetary_score}"

    @property
    def rfm_total(self) -> int:
        return self.recency_score + self.frequency_score + self.monetary_score


def score_customer(metrics: CustomerMetrics, r_bounds, f_bounds, m_bounds) -> ScoredCustomer:
    recency_score = score_recency(metrics.recency_days, r_bounds)
    frequency_score = score_ascending(metrics.frequency_count, f_bounds)
    monetary_score = score_ascending(metrics.monetary_total, m_bounds)

    rfm_score = f"{recency_score}{frequency_score}{monetary_score}"
    segment = classify(rfm_score, recency_score + frequency_score + monetary_score)
    churn = churn_prediction(recency_score)

    return ScoredCustomer(
        metrics=metrics,
        recency_score=recency_score,
        frequency_score=frequency_score,
        monetary_score=monetary_score,
        segment=segment,
        churn_risk=churn["churn_risk"],
        churn_probability=churn["churn_probability"],
        recommendations=recommendations_for(segment.key),
    )


def score_population(population: list[CustomerMetrics]) -> list[ScoredCustomer]:
    """Score every customer against boundaries computed on the whole population."""
    if not population:
        return []
    r_bounds = quintile_bounds(c.recency_days for c in population)
    f_bounds = quintile_bounds(c.frequency_count for c in population)
    m_bounds = quintile_bounds(c.monetary_total for c in population)
    return [score_customer(c, r_bounds, f_bounds, m_bounds) for c in population]


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def empty_summary(customers_excluded: int = 0) -> dict:
    return {
        "total_customers": 0,
        "customers_analyzed": 0,
        "customers_excluded": customers_excluded,
        "segments": [],
        "score_distribution": [],
        "total_revenue": _money(Decimal("0")),
        "avg_order_value": _money(Decimal("0")),
        "avg_frequency": 0.0,
        "avg_recency_days": 0.0,
    }


def summarize(scored: list[ScoredCustomer], customers_excluded: int = 0) -> dict:
    """Run-level statistics written into the analysis run.

    ``avg_order_value`` is revenue over all orders of the population, which
    is not the mean of the per-customer ``monetary_average`` values.
    """
    if not scored:
        return empty_summary(customers_excluded)

    by_segment: dict[str, dict] = {}
    distribution: Counter = Counter()
    total_revenue = Decimal("0.00")
    total_orders = 0
    total_recency = 0

    for customer in scored:
        metrics = customer.metrics
        bucket = by_segment.setdefault(
            customer.segment.name,
            {"count": 0, "revenue": Decimal("0.00"), "rfm": 0},
        )
        bucket["count"] += 1
        bucket["revenue"] += metrics.monetary_total
        bucket["rfm"] += customer.rfm_total

        total_revenue += metrics.monetary_total
        total_orders += metrics.frequency_count
        total_recency += metrics.recency_days
        distribution[customer.rfm_score] += 1

    population = len(scored)
    segments = [
        {
            "segment": name,
            "count": data["count"],
            "percentage": _round_tenths(data["count"] * 100, population),
            "total_revenue": _money(data["revenue"]),
            "avg_rfm_score": _round_tenths(data["rfm"], data["count"]),
        }
        for name, data in by_segment.items()
    ]
    # Counter keeps first-seen order; sorted() is stable for equal counts.
    score_distribution = [
        {"rfm_score": score, "count": count}
        for score, count in sorted(distribution.items(), key=lambda item: item[1], reverse=True)
    ]
    avg_order_value = total_revenue / total_orders if total_orders > 0 else Decimal("0")

    return {
        "total_customers": population,
        "customers_analyzed": population,
        "customers_excluded": customers_excluded,
        "segments": segments,
        "score_distribution": score_distribution,
        "total_revenue": _money(total_revenue),
        "avg_order_value": _money(avg_order_value),
        "avg_frequency": total_orders / population,
        "avg_recency_days": total_recency / population,
    }
