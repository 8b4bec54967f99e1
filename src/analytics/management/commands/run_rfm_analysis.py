"""Run an RFM segmentation for one store from the command line."""

from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError
from rest_framework.exceptions import ValidationError

from accounts.models import User
from analytics.models import RFMAnalysisRun
from analytics.serializers import RFMAnalysisRunSerializer
from analytics.services import run_rfm_analysis
from stores.services import get_active_stores


class Command(BaseCommand):
    help = "Compute RFM scores and segments for the customers of a store."

    def add_arguments(self, parser):
        parser.add_argument("--store-code", required=True, help="Code of the store to analyse.")
        parser.add_argument(
            "--period-type",
            choices=[choice for choice, _ in RFMAnalysisRun.PeriodType.choices],
            default=None,
            help="Analysis window preset (default: yearly).",
        )
        parser.add_argument("--start-date", default=None, help="ISO start of the window (overrides the preset).")
        parser.add_argument("--end-date", default=None, help="ISO end of the window (default: now).")
        parser.add_argument("--min-transactions", type=int, default=None, help="Minimum orders per customer (default: 1).")
        parser.add_argument(
            "--include-refunds",
            action="store_true",
            help="Keep orders with a non-positive total in the analysis.",
        )
        parser.add_argument("--actor-email", default="", help="User recorded as the run's creator (optional).")
        parser.add_argument("--json", action="store_true", help="Print the full run as JSON.")

    def handle(self, *args, **options):
        store = get_active_stores(store_code=options["store_code"]).first()
        if store is None:
            raise CommandError(f"No active store with code {options['store_code']!r}.")

        actor = None
        actor_email = (options.get("actor_email") or "").strip()
        if actor_email:
            actor = User.objects.filter(email__iexact=actor_email).first()
            if actor is None:
                raise CommandError(f"Unknown user {actor_email!r}.")
            if not actor.can_run_analytics:
                raise CommandError(f"User {actor_email!r} is not allowed to run analytics.")

        config = {
            "period_type": options["period_type"],
            "start_date": options["start_date"],
            "end_date": options["end_date"],
            "min_transactions": options["min_transactions"],
            "exclude_refunds": not options["include_refunds"],
        }

        try:
            run = run_rfm_analysis(store, config=config, actor=actor)
        except ValidationError as exc:
            raise CommandError(f"Invalid configuration: {exc.detail}") from exc
        except Exception as exc:
            raise CommandError(f"RFM analysis failed: {exc}") from exc

        if options["json"]:
            self.stdout.write(json.dumps(RFMAnalysisRunSerializer(run).data, indent=2, default=str))
            return

        summary = run.summary or {}
        self.stdout.write(
            self.style.SUCCESS(
                f"[{run.status.upper()}] {store.code}: "
                f"{summary.get('customers_analyzed', 0)} customers analysed, "
                f"{summary.get('customers_excluded', 0)} excluded, "
                f"revenue {summary.get('total_revenue', '0.00')}"
            )
        )
        for row in summary.get("segments", []):
            self.stdout.write(
                f"  {row['segment']:<20} {row['count']:>6} ({row['percentage']}%)  "
                f"revenue={row['total_revenue']}  avg_rfm={row['avg_rfm_score']}"
            )
