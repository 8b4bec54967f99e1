"""RFM analysis service: run bookkeeping, batched I/O and the pipeline driver."""
from __future__ import annotations

import calendar
import logging
import time
from dataclasses import dataclass
from datetime import datetime

from django.conf import settings
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from analytics import rfm
from analytics.models import CustomerRFM, RFMAnalysisRun
from analytics.serializers import CustomerRFMSerializer, RFMAnalysisConfigSerializer
from stores.services import create_audit_log

logger = logging.getLogger("segmentation")

CUSTOM_PERIOD_START = datetime(2000, 1, 1)

UPSERT_FIELDS = [
    "customer_type",
    "last_run",
    "recency_days",
    "frequency_count",
    "monetary_total",
    "monetary_average",
    "recency_score",
    "frequency_score",
    "monetary_score",
    "rfm_score",
    "rfm_total",
    "segment",
    "segment_code",
    "segment_key",
    "analysis_period",
    "transactions",
    "churn_risk",
    "churn_probability",
    "recommendations",
    "calculated_at",
    "updated_at",
]


@dataclass(frozen=True)
class AnalysisConfig:
    """Effective configuration of one run, resolved once before it starts."""

    period_type: str
    start_date: datetime
    end_date: datetime
    min_transactions: int
    exclude_refunds: bool

    def check_period(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(
                "Periode d'analyse invalide: la date de debut "
                f"({self.start_date:%Y-%m-%d}) est posterieure a la date de fin ({self.end_date:%Y-%m-%d})."
            )


def _shift_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def default_start_date(period_type: str | None, now: datetime | None = None) -> datetime:
    """First day of the month one month / one quarter / one year back."""
    now = timezone.localtime(now or timezone.now())
    first_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period_type == RFMAnalysisRun.PeriodType.MONTHLY:
        return _shift_months(first_of_month, -1)
    if period_type == RFMAnalysisRun.PeriodType.QUARTERLY:
        return _shift_months(first_of_month, -3)
    if period_type == RFMAnalysisRun.PeriodType.YEARLY:
        return _shift_months(first_of_month, -12)
    return timezone.make_aware(CUSTOM_PERIOD_START)


def resolve_config(raw: dict | None = None, now: datetime | None = None) -> AnalysisConfig:
    """Validate a raw configuration and fill in the defaults.

    Raises ``rest_framework.exceptions.ValidationError`` on malformed fields.
    """
    serializer = RFMAnalysisConfigSerializer(data=dict(raw or {}))
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    now = now or timezone.now()
    period_type = data.get("period_type") or getattr(
        settings, "RFM_DEFAULT_PERIOD_TYPE", RFMAnalysisRun.PeriodType.YEARLY
    )
    min_transactions = data.get("min_transactions") or int(getattr(settings, "RFM_DEFAULT_MIN_TRANSACTIONS", 1))
    exclude_refunds = data.get("exclude_refunds")

    return AnalysisConfig(
        period_type=period_type,
        start_date=data.get("start_date") or default_start_date(period_type, now=now),
        end_date=data.get("end_date") or now,
        min_transactions=min_transactions,
        exclude_refunds=True if exclude_refunds is None else bool(exclude_refunds),
    )


def start_run(store, config: AnalysisConfig, actor=None) -> RFMAnalysisRun:
    return RFMAnalysisRun.objects.create(
        store=store,
        period_type=config.period_type,
        start_date=config.start_date,
        end_date=config.end_date,
        min_transactions=config.min_transactions,
        exclude_refunds=config.exclude_refunds,
        scoring_method=RFMAnalysisRun.SCORING_QUINTILE,
        status=RFMAnalysisRun.Status.RUNNING,
        started_at=timezone.now(),
        created_by=actor,
    )


def load_transactions(store, config: AnalysisConfig) -> list[tuple]:
    """Single read of the eligible ``(customer_id, order_date, total)`` rows.

    Walk-in sales booked on the enterprise's default customer count as
    anonymous.
    """
    from sales.models import Sale

    qs = Sale.objects.filter(
        store=store,
        status__in=Sale.COMPLETED_STATUSES,
        customer__isnull=False,
        customer__is_default=False,
        order_date__gte=config.start_date,
        order_date__lte=config.end_date,
    )
    if config.exclude_refunds:
        qs = qs.filter(total__gt=0)
    return list(qs.order_by("order_date").values_list("customer_id", "order_date", "total"))


def _build_record(store, run: RFMAnalysisRun, config: AnalysisConfig, scored: rfm.ScoredCustomer, calculated_at):
    metrics = scored.metrics
    return CustomerRFM(
        store=store,
        customer_id=metrics.customer_id,
        customer_type="customer",
        last_run=run,
        recency_days=metrics.recency_days,
        frequency_count=metrics.frequency_count,
        monetary_total=metrics.monetary_total,
        monetary_average=metrics.monetary_average,
        recency_score=scored.recency_score,
        frequency_score=scored.frequency_score,
        monetary_score=scored.monetary_score,
        rfm_score=scored.rfm_score,
        rfm_total=scored.rfm_total,
        segment=scored.segment.name,
        segment_code=scored.segment.code,
        segment_key=scored.segment.key,
        analysis_period={
            "start_date": config.start_date.isoformat(),
            "end_date": config.end_date.isoformat(),
            "period_type": config.period_type,
        },
        transactions={
            "first_purchase_date": metrics.first_purchase_date.isoformat(),
            "last_purchase_date": metrics.last_purchase_date.isoformat(),
            "total_orders": metrics.frequency_count,
            "total_revenue": str(metrics.monetary_total),
            "average_order_value": str(metrics.monetary_average),
        },
        churn_risk=scored.churn_risk,
        churn_probability=scored.churn_probability,
        recommendations=scored.recommendations,
        calculated_at=calculated_at,
    )


def upsert_customer_scores(store, run: RFMAnalysisRun, config: AnalysisConfig, scored: list) -> int:
    """Insert-or-overwrite one CustomerRFM per (store, customer) in one batched write."""
    if not scored:
        return 0
    calculated_at = timezone.now()
    records = [_build_record(store, run, config, customer, calculated_at) for customer in scored]
    batch_size = int(getattr(settings, "RFM_UPSERT_BATCH_SIZE", 500))
    with transaction.atomic():
        CustomerRFM.objects.bulk_create(
            records,
            batch_size=batch_size,
            update_conflicts=True,
            unique_fields=["store", "customer"],
            update_fields=UPSERT_FIELDS,
        )
    return len(records)


def _audit_run(run: RFMAnalysisRun, actor) -> None:
    create_audit_log(
        actor=actor,
        store=run.store,
        action="RFM_ANALYSIS_RUN",
        entity_type="RFMAnalysisRun",
        entity_id=str(run.pk),
        after={
            **run.config_snapshot,
            "status": run.status,
            "customers_analyzed": (run.summary or {}).get("customers_analyzed", 0),
            "error": run.error,
        },
    )


def _record_failure(run: RFMAnalysisRun, exc: Exception, actor) -> None:
    """Mark ``run`` failed and audit it without masking ``exc``.

    Bookkeeping errors are logged; the caller re-raises the pipeline error.
    """
    try:
        run.refresh_from_db(fields=["status", "completed_at", "summary", "error"])
        if not run.is_finished:
            run.mark_failed(str(exc) or exc.__class__.__name__)
        _audit_run(run, actor)
    except Exception:
        logger.exception("Could not record failure of RFM analysis %s", run.pk)


def execute_run(run: RFMAnalysisRun, config: AnalysisConfig) -> RFMAnalysisRun:
    """Steps 2-8 of the pipeline for an already created run."""
    store = run.store
    config.check_period()

    aggregates = rfm.aggregate_transactions(load_transactions(store, config))
    qualifying, excluded = rfm.split_qualifying(aggregates, config.min_transactions)

    if not qualifying:
        logger.info(
            "RFM analysis for store %s: no qualifying customers (%d below min_transactions=%d).",
            store,
            len(excluded),
            config.min_transactions,
        )
        run.mark_completed(rfm.empty_summary(customers_excluded=len(excluded)))
        return run

    population = [rfm.derive_metrics(aggregate, config.end_date) for aggregate in qualifying]
    scored = rfm.score_population(population)
    upsert_customer_scores(store, run, config, scored)
    run.mark_completed(rfm.summarize(scored, customers_excluded=len(excluded)))
    return run


def run_rfm_analysis(store, config: dict | AnalysisConfig | None = None, actor=None) -> RFMAnalysisRun:
    """Run a full RFM analysis for ``store`` and return the finished run.

    The run is created in ``running`` state, then marked ``completed`` with
    its summary, or ``failed`` with the error message before the exception
    is re-raised. Concurrent runs for the same store are not serialized here.
    """
    if not isinstance(config, AnalysisConfig):
        config = resolve_config(config)

    run = start_run(store, config, actor=actor)
    started = time.monotonic()
    logger.info(
        "RFM analysis %s started for store %s (%s -> %s, min_transactions=%d, exclude_refunds=%s)",
        run.pk,
        store,
        config.start_date,
        config.end_date,
        config.min_transactions,
        config.exclude_refunds,
    )

    try:
        execute_run(run, config)
    except Exception as exc:
        logger.exception("RFM analysis %s failed for store %s", run.pk, store)
        _record_failure(run, exc, actor)
        raise

    logger.info(
        "RFM analysis %s completed for store %s: %d customers in %.2fs",
        run.pk,
        store,
        run.summary["customers_analyzed"],
        time.monotonic() - started,
    )
    _audit_run(run, actor)
    return run


def segment_breakdown(store) -> dict[str, int]:
    """Current number of customers per segment key for ``store``."""
    rows = (
        CustomerRFM.objects.filter(store=store)
        .values("segment_key")
        .annotate(total=Count("id"))
        .order_by("segment_key")
    )
    return {row["segment_key"]: row["total"] for row in rows}


def segment_members(store, segment_key: str, limit: int = 100) -> list[dict]:
    """Serialized CustomerRFM rows of one segment, best customers first."""
    qs = (
        CustomerRFM.objects.filter(store=store, segment_key=segment_key)
        .select_related("customer")
        .order_by("-rfm_total", "-monetary_total")[:limit]
    )
    return CustomerRFMSerializer(qs, many=True).data
