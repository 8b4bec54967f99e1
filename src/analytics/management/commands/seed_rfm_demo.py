"""Seed realistic demo customers and sales for RFM validation."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from analytics.models import CustomerRFM
from analytics.services import run_rfm_analysis
from customers.models import Customer
from sales.models import Sale
from stores.models import ANALYTICS_FEATURE_DEFAULTS, Enterprise, Store


@dataclass(frozen=True)
class PurchaseProfile:
    """How a demo customer buys: order count, basket size and how long ago."""

    name: str
    orders: tuple[int, int]
    basket: tuple[int, int]
    last_order_days: tuple[int, int]
    weight: int


PROFILES = (
    PurchaseProfile("champion", orders=(8, 15), basket=(40_000, 120_000), last_order_days=(0, 10), weight=2),
    PurchaseProfile("regular", orders=(4, 8), basket=(15_000, 50_000), last_order_days=(5, 45), weight=4),
    PurchaseProfile("occasional", orders=(1, 3), basket=(5_000, 25_000), last_order_days=(10, 120), weight=5),
    PurchaseProfile("dormant", orders=(3, 8), basket=(20_000, 80_000), last_order_days=(120, 250), weight=3),
    PurchaseProfile("lost", orders=(1, 2), basket=(2_000, 10_000), last_order_days=(250, 340), weight=2),
)


class Command(BaseCommand):
    help = (
        "Generate deterministic demo customers and sales to exercise the "
        "RFM segmentation (one store, several purchasing profiles)."
    )

    DEMO_PREFIX = "SEG"

    def add_arguments(self, parser):
        parser.add_argument("--store-code", default="", help="Store code to target. A demo store is created when omitted.")
        parser.add_argument("--customers", type=int, default=60, help="Number of demo customers (default: 60).")
        parser.add_argument("--days", type=int, default=365, help="History depth in days (default: 365).")
        parser.add_argument("--seed", type=int, default=20260216, help="Deterministic random seed (default: 20260216).")
        parser.add_argument("--replace", action="store_true", help="Delete previously generated demo data for the store first.")
        parser.add_argument("--run-pipeline", action="store_true", help="Run the RFM analysis at the end (recommended).")

    def handle(self, *args, **options):
        random.seed(options["seed"])
        store = self._resolve_store(options["store_code"])
        self._ensure_feature_flags(store)

        if options["replace"]:
            deleted = self._cleanup_demo_data(store)
            self.stdout.write(f"Removed {deleted} previous demo sales.")

        generated = self._generate(
            store,
            customer_count=max(1, options["customers"]),
            days=max(30, options["days"]),
        )

        self.stdout.write(self.style.SUCCESS(f"Demo RFM data generated for {store.name} ({store.code})."))
        self.stdout.write(
            f"- Customers: {generated['customers']}\n"
            f"- Completed sales: {generated['sales']}\n"
            f"- Ignored rows (draft/cancelled/refund/anonymous): {generated['noise']}"
        )
        for name, count in generated["profiles"].items():
            self.stdout.write(f"  {name:<12} {count:>4}")

        if options["run_pipeline"]:
            run = run_rfm_analysis(store, config={"period_type": "custom"})
            self.stdout.write(
                f"RFM analysis {run.pk}: {run.status}, "
                f"{run.summary['customers_analyzed']} customers scored."
            )
            for row in run.summary["segments"]:
                self.stdout.write(f"  {row['segment']:<20} {row['count']:>4} ({row['percentage']}%)")

    def _resolve_store(self, store_code: str) -> Store:
        if store_code:
            store = Store.objects.filter(code=store_code, is_active=True).first()
            if not store:
                raise CommandError(f"Store not found for code '{store_code}'.")
            return store

        enterprise, _created = Enterprise.objects.get_or_create(
            code=f"{self.DEMO_PREFIX}-ENT-01",
            defaults={
                "name": "Entreprise Demo",
                "legal_name": "Entreprise Demo SARL",
                "currency": "FCFA",
                "analytics_feature_flags": dict(ANALYTICS_FEATURE_DEFAULTS),
            },
        )
        store, _created = Store.objects.get_or_create(
            code=f"{self.DEMO_PREFIX}-S01",
            defaults={
                "enterprise": enterprise,
                "name": "Boutique Demo",
                "address": "Avenue Demo 1",
                "email": "store-demo@segmentation.local",
            },
        )
        return store

    def _ensure_feature_flags(self, store: Store) -> None:
        if store.is_analytics_feature_enabled("rfm_analysis"):
            return
        overrides = dict(store.analytics_feature_overrides or {})
        overrides.update({"enabled": True, "rfm_analysis": True})
        store.analytics_feature_overrides = overrides
        store.save(update_fields=["analytics_feature_overrides", "updated_at"])

    @transaction.atomic
    def _cleanup_demo_data(self, store: Store) -> int:
        demo_sales = Sale.objects.filter(store=store, reference__startswith=f"{self.DEMO_PREFIX}-")
        customer_ids = set(demo_sales.exclude(customer=None).values_list("customer_id", flat=True))
        deleted, _per_model = demo_sales.delete()
        CustomerRFM.objects.filter(store=store, customer_id__in=customer_ids).delete()
        Customer.objects.filter(pk__in=customer_ids, phone__startswith="+23769").delete()
        return deleted

    @transaction.atomic
    def _generate(self, store: Store, *, customer_count: int, days: int) -> dict:
        now = timezone.now()
        weights = [profile.weight for profile in PROFILES]
        sequence = Sale.objects.filter(store=store, reference__startswith=f"{self.DEMO_PREFIX}-").count()

        totals = {"customers": 0, "sales": 0, "noise": 0, "profiles": {p.name: 0 for p in PROFILES}}
        sales: list[Sale] = []

        def _sale(customer, status, total, order_date):
            nonlocal sequence
            sequence += 1
            sales.append(
                Sale(
                    store=store,
                    customer=customer,
                    reference=f"{self.DEMO_PREFIX}-{store.code}-{sequence:06d}",
                    status=status,
                    order_date=order_date,
                    total=total,
                )
            )

        for index in range(1, customer_count + 1):
            profile = random.choices(PROFILES, weights=weights)[0]
            customer = Customer.objects.create(
                enterprise=store.enterprise,
                first_name=f"Client{index:03d}",
                last_name=profile.name.capitalize(),
                phone=f"+23769{random.randint(0, 9_999_999):07d}",
            )
            totals["customers"] += 1
            totals["profiles"][profile.name] += 1

            last_order = min(days - 1, random.randint(*profile.last_order_days))
            for _ in range(random.randint(*profile.orders)):
                order_date = now - timedelta(
                    days=random.randint(last_order, max(last_order, days - 1)),
                    hours=random.randint(0, 10),
                )
                status = random.choice(Sale.COMPLETED_STATUSES)
                _sale(customer, status, self._amount(*profile.basket), order_date)
                totals["sales"] += 1

            # Rows the analysis must ignore.
            if random.random() < 0.2:
                _sale(customer, Sale.Status.DRAFT, self._amount(*profile.basket), now - timedelta(days=1))
                totals["noise"] += 1
            if random.random() < 0.1:
                _sale(customer, Sale.Status.CANCELLED, self._amount(*profile.basket), now - timedelta(days=2))
                totals["noise"] += 1
            if random.random() < 0.1:
                _sale(customer, Sale.Status.DONE, -self._amount(*profile.basket), now - timedelta(days=3))
                totals["noise"] += 1

        for _ in range(max(1, customer_count // 10)):
            _sale(None, Sale.Status.DONE, self._amount(1_000, 20_000), now - timedelta(days=random.randint(0, 30)))
            totals["noise"] += 1

        Sale.objects.bulk_create(sales, batch_size=500)
        return totals

    @staticmethod
    def _amount(low: int, high: int) -> Decimal:
        return Decimal(random.randint(low, high)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
