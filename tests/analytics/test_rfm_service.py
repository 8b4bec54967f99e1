from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from analytics.models import CustomerRFM, RFMAnalysisRun
from analytics.services import (
    default_start_date,
    resolve_config,
    run_rfm_analysis,
    segment_breakdown,
    segment_members,
)
from sales.models import Sale
from stores.models import AuditLog


@pytest.fixture
def ladder(make_customer, make_sale):
    """Five customers, A best on every axis down to E."""
    customers = {}
    for label, orders, last_days_ago in (("A", 5, 1), ("B", 4, 10), ("C", 3, 20), ("D", 2, 30), ("E", 1, 40)):
        customer = make_customer(first_name=label)
        for i in range(orders):
            make_sale(customer, total="100.00", days_ago=last_days_ago + i)
        customers[label] = customer
    return customers


@pytest.mark.django_db
def test_empty_store_completes_with_empty_summary(store):
    run = run_rfm_analysis(store)

    run.refresh_from_db()
    assert run.status == RFMAnalysisRun.Status.COMPLETED
    assert run.completed_at is not None
    assert run.summary["total_customers"] == 0
    assert run.summary["segments"] == []
    assert run.summary["total_revenue"] == "0.00"
    assert not CustomerRFM.objects.filter(store=store).exists()


@pytest.mark.django_db
def test_run_persists_scores_and_summary(store, ladder):
    run = run_rfm_analysis(store)

    assert run.status == RFMAnalysisRun.Status.COMPLETED
    assert run.summary["customers_analyzed"] == 5
    assert run.summary["total_revenue"] == "1500.00"
    assert run.summary["avg_order_value"] == "100.00"
    assert CustomerRFM.objects.filter(store=store).count() == 5

    best = CustomerRFM.objects.get(store=store, customer=ladder["A"])
    assert best.rfm_score == "555"
    assert best.rfm_total == 15
    assert best.segment == "Champions"
    assert best.segment_code == "CHMP"
    assert best.segment_key == "champions"
    assert best.frequency_count == 5
    assert best.monetary_total == Decimal("500.00")
    assert best.monetary_average == Decimal("100.00")
    assert best.recency_days == 1
    assert best.churn_risk == CustomerRFM.ChurnRisk.LOW
    assert best.churn_probability == 0
    assert best.last_run_id == run.pk
    assert best.analysis_period["period_type"] == "yearly"
    assert best.transactions["total_orders"] == 5
    assert best.transactions["total_revenue"] == "500.00"
    assert best.recommendations["suggested_offer"] == "Early access to new products"

    worst = CustomerRFM.objects.get(store=store, customer=ladder["E"])
    assert worst.rfm_score == "111"
    assert worst.segment_key == "lost"
    assert worst.churn_risk == CustomerRFM.ChurnRisk.HIGH
    assert worst.churn_probability == 80


@pytest.mark.django_db
def test_only_eligible_transactions_are_counted(store, other_store, make_customer, make_sale):
    customer = make_customer()
    make_sale(customer, total="1000.00", days_ago=5, status=Sale.Status.DONE)
    make_sale(customer, total="500.00", days_ago=6, status=Sale.Status.CONFIRMED)
    make_sale(customer, total="700.00", days_ago=2, status=Sale.Status.DRAFT)
    make_sale(customer, total="800.00", days_ago=2, status=Sale.Status.CANCELLED)
    make_sale(customer, total="-200.00", days_ago=3)
    make_sale(customer, total="900.00", days_ago=800)
    make_sale(customer, total="300.00", days_ago=1, sale_store=other_store)
    make_sale(None, total="5000.00", days_ago=1)

    run = run_rfm_analysis(store)

    row = CustomerRFM.objects.get(store=store, customer=customer)
    assert row.frequency_count == 2
    assert row.monetary_total == Decimal("1500.00")
    assert row.recency_days == 5
    assert run.summary["customers_analyzed"] == 1
    assert not CustomerRFM.objects.filter(store=other_store).exists()


@pytest.mark.django_db
def test_walk_in_customer_sales_are_ignored(store, make_customer, make_sale):
    walk_in = make_customer(first_name="Client", last_name="Comptant", is_default=True)
    regular = make_customer()
    make_sale(walk_in, total="90000.00", days_ago=1)
    make_sale(regular, total="1000.00", days_ago=2)

    run = run_rfm_analysis(store)

    assert run.summary["customers_analyzed"] == 1
    assert walk_in.rfm_profile(store) is None
    assert regular.rfm_profile(store).rfm_score == "511"


@pytest.mark.django_db
def test_refunds_kept_when_not_excluded(store, make_customer, make_sale):
    customer = make_customer()
    make_sale(customer, total="1000.00", days_ago=5)
    make_sale(customer, total="-200.00", days_ago=3)

    run = run_rfm_analysis(store, config={"exclude_refunds": False})

    row = CustomerRFM.objects.get(store=store, customer=customer)
    assert run.exclude_refunds is False
    assert row.frequency_count == 2
    assert row.monetary_total == Decimal("800.00")
    assert row.recency_days == 3


@pytest.mark.django_db
def test_single_customer_scores_511(store, customer, make_sale):
    make_sale(customer, total="2500.00", days_ago=3)

    run_rfm_analysis(store)

    row = CustomerRFM.objects.get(store=store, customer=customer)
    assert row.rfm_score == "511"
    assert row.segment_key == "new_customers"


@pytest.mark.django_db
def test_customers_below_min_transactions_are_excluded(store, make_customer, make_sale):
    regular = make_customer()
    occasional = make_customer()
    make_sale(regular, days_ago=2)
    make_sale(regular, days_ago=4)
    make_sale(occasional, days_ago=3)

    run = run_rfm_analysis(store, config={"min_transactions": 2})

    assert run.summary["customers_analyzed"] == 1
    assert run.summary["customers_excluded"] == 1
    assert CustomerRFM.objects.filter(store=store, customer=regular).exists()
    assert not CustomerRFM.objects.filter(store=store, customer=occasional).exists()


@pytest.mark.django_db
def test_all_customers_below_min_transactions(store, customer, make_sale):
    make_sale(customer, days_ago=3)

    run = run_rfm_analysis(store, config={"min_transactions": 3})

    assert run.status == RFMAnalysisRun.Status.COMPLETED
    assert run.summary["total_customers"] == 0
    assert run.summary["customers_excluded"] == 1
    assert not CustomerRFM.objects.exists()


@pytest.mark.django_db
def test_rerun_overwrites_rows_in_place(store, ladder):
    end = timezone.now()
    config = {"start_date": end - timedelta(days=365), "end_date": end}
    volatile = {"calculated_at", "updated_at", "last_run"}
    fields = [f.attname for f in CustomerRFM._meta.concrete_fields if f.name not in volatile]

    first = run_rfm_analysis(store, config=config)
    rows_before = {row["id"]: row for row in CustomerRFM.objects.filter(store=store).values(*fields)}

    second = run_rfm_analysis(store, config=config)
    rows_after = {row["id"]: row for row in CustomerRFM.objects.filter(store=store).values(*fields)}

    assert first.pk != second.pk
    assert rows_after == rows_before
    assert set(CustomerRFM.objects.values_list("last_run_id", flat=True)) == {second.pk}
    assert RFMAnalysisRun.objects.filter(store=store).count() == 2
    assert second.summary == first.summary


@pytest.mark.django_db
def test_invalid_period_marks_run_failed_and_reraises(store, manager_user):
    now = timezone.now()

    with pytest.raises(ValueError):
        run_rfm_analysis(
            store,
            config={"start_date": now, "end_date": now - timedelta(days=30)},
            actor=manager_user,
        )

    run = RFMAnalysisRun.objects.get(store=store)
    assert run.status == RFMAnalysisRun.Status.FAILED
    assert run.completed_at is not None
    assert "Periode d'analyse invalide" in run.error
    assert run.summary is None

    audit = AuditLog.objects.get(store=store, action="RFM_ANALYSIS_RUN")
    assert audit.actor == manager_user
    assert audit.after_json["status"] == "failed"


@pytest.mark.django_db
def test_invalid_min_transactions_rejected_before_run(store):
    with pytest.raises(ValidationError):
        run_rfm_analysis(store, config={"min_transactions": -1})

    assert not RFMAnalysisRun.objects.exists()


@pytest.mark.django_db
def test_invalid_period_type_rejected(store):
    with pytest.raises(ValidationError):
        run_rfm_analysis(store, config={"period_type": "weekly"})


@pytest.mark.django_db
def test_finished_run_status_cannot_change(store):
    run = run_rfm_analysis(store)

    with pytest.raises(ValueError):
        run.mark_failed("boom")
    with pytest.raises(ValueError):
        run.mark_completed({})

    run.refresh_from_db()
    assert run.status == RFMAnalysisRun.Status.COMPLETED


@pytest.mark.django_db
def test_run_records_config_and_actor(store, manager_user):
    start = timezone.now() - timedelta(days=90)
    run = run_rfm_analysis(
        store,
        config={"period_type": "custom", "start_date": start, "min_transactions": 2},
        actor=manager_user,
    )

    assert run.period_type == RFMAnalysisRun.PeriodType.CUSTOM
    assert run.start_date == start
    assert run.min_transactions == 2
    assert run.scoring_method == "quintile"
    assert run.created_by == manager_user

    audit = AuditLog.objects.get(store=store, action="RFM_ANALYSIS_RUN")
    assert audit.entity_type == "RFMAnalysisRun"
    assert audit.entity_id == str(run.pk)
    assert audit.after_json["status"] == "completed"
    assert audit.after_json["min_transactions"] == 2


def test_default_start_dates():
    now = timezone.make_aware(datetime(2024, 5, 15, 10, 30))

    assert default_start_date("monthly", now=now).date() == datetime(2024, 4, 1).date()
    assert default_start_date("quarterly", now=now).date() == datetime(2024, 2, 1).date()
    assert default_start_date("yearly", now=now).date() == datetime(2023, 5, 1).date()
    assert default_start_date("custom", now=now).date() == datetime(2000, 1, 1).date()


def test_default_start_dates_cross_year_boundary():
    now = timezone.make_aware(datetime(2024, 1, 20, 9, 0))

    assert default_start_date("monthly", now=now).date() == datetime(2023, 12, 1).date()
    assert default_start_date("quarterly", now=now).date() == datetime(2023, 10, 1).date()


def test_resolve_config_defaults():
    now = timezone.make_aware(datetime(2024, 5, 15, 10, 30))

    config = resolve_config({}, now=now)

    assert config.period_type == "yearly"
    assert config.end_date == now
    assert config.start_date.date() == datetime(2023, 5, 1).date()
    assert config.min_transactions == 1
    assert config.exclude_refunds is True


@pytest.mark.django_db
def test_segment_breakdown_and_members(store, ladder):
    run_rfm_analysis(store)

    breakdown = segment_breakdown(store)
    assert sum(breakdown.values()) == 5
    assert breakdown["champions"] == 2
    assert breakdown["lost"] == 1

    members = segment_members(store, "champions")
    assert [member["rfm_score"] for member in members] == ["555", "444"]
    assert members[0]["customer_name"] == ladder["A"].full_name
    assert segment_members(store, "at_risk") == []


@pytest.mark.django_db
def test_zero_min_transactions_means_default(store):
    run = run_rfm_analysis(store, config={"min_transactions": 0})

    assert run.min_transactions == 1


@pytest.mark.django_db
def test_summary_write_failure_marks_run_failed(store, ladder, monkeypatch):
    original_save = RFMAnalysisRun.save

    def save_failing_on_summary(self, *args, **kwargs):
        if "summary" in (kwargs.get("update_fields") or []):
            raise RuntimeError("disque plein")
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(RFMAnalysisRun, "save", save_failing_on_summary)

    with pytest.raises(RuntimeError, match="disque plein"):
        run_rfm_analysis(store)

    run = RFMAnalysisRun.objects.get(store=store)
    assert run.status == RFMAnalysisRun.Status.FAILED
    assert run.error == "disque plein"
    assert run.summary is None
    assert AuditLog.objects.get(store=store, action="RFM_ANALYSIS_RUN").after_json["status"] == "failed"


@pytest.mark.django_db
def test_audit_failure_does_not_mask_pipeline_error(store, monkeypatch):
    def broken_audit(*args, **kwargs):
        raise RuntimeError("audit indisponible")

    monkeypatch.setattr("analytics.services.create_audit_log", broken_audit)
    now = timezone.now()

    with pytest.raises(ValueError, match="Periode d'analyse invalide"):
        run_rfm_analysis(store, config={"start_date": now, "end_date": now - timedelta(days=1)})

    assert RFMAnalysisRun.objects.get(store=store).status == RFMAnalysisRun.Status.FAILED
