from io import StringIO

import pytest
from django.core.management import call_command

from analytics.models import CustomerRFM, RFMAnalysisRun
from customers.models import Customer
from sales.models import Sale
from stores.models import Store


@pytest.mark.django_db
def test_seed_creates_demo_store_and_runs_pipeline():
    out = StringIO()

    call_command("seed_rfm_demo", "--customers", "25", "--run-pipeline", stdout=out)

    store = Store.objects.get(code="SEG-S01")
    assert Customer.objects.filter(enterprise=store.enterprise).count() == 25
    assert Sale.objects.filter(store=store, status__in=Sale.COMPLETED_STATUSES, total__gt=0).exists()
    assert Sale.objects.filter(store=store, customer=None).exists()

    run = RFMAnalysisRun.objects.get(store=store)
    assert run.status == RFMAnalysisRun.Status.COMPLETED
    assert run.summary["customers_analyzed"] == 25
    assert CustomerRFM.objects.filter(store=store).count() == 25
    assert "Demo RFM data generated" in out.getvalue()


@pytest.mark.django_db
def test_seed_is_deterministic_and_replace_cleans_previous_rows(store):
    call_command("seed_rfm_demo", "--store-code", store.code, "--customers", "10", stdout=StringIO())
    first_total = sum(Sale.objects.filter(store=store).values_list("total", flat=True))
    first_count = Sale.objects.filter(store=store).count()

    call_command("seed_rfm_demo", "--store-code", store.code, "--customers", "10", "--replace", stdout=StringIO())

    assert Sale.objects.filter(store=store).count() == first_count
    assert sum(Sale.objects.filter(store=store).values_list("total", flat=True)) == first_total
    assert Customer.objects.filter(enterprise=store.enterprise).count() == 10
