import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        ("stores", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RFMAnalysisRun",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "period_type",
                    models.CharField(
                        choices=[
                            ("monthly", "Mensuel"),
                            ("quarterly", "Trimestriel"),
                            ("yearly", "Annuel"),
                            ("custom", "Personnalise"),
                        ],
                        default="yearly",
                        max_length=20,
                        verbose_name="type de periode",
                    ),
                ),
                ("start_date", models.DateTimeField(verbose_name="debut de periode")),
                ("end_date", models.DateTimeField(verbose_name="fin de periode")),
                ("min_transactions", models.PositiveIntegerField(default=1, verbose_name="transactions minimum")),
                ("exclude_refunds", models.BooleanField(default=True, verbose_name="exclure les remboursements")),
                (
                    "scoring_method",
                    models.CharField(default="quintile", editable=False, max_length=20, verbose_name="methode de scoring"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("running", "En cours"), ("completed", "Terminee"), ("failed", "Echouee")],
                        db_index=True,
                        default="running",
                        max_length=20,
                        verbose_name="statut",
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="demarree le")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="terminee le")),
                ("summary", models.JSONField(blank=True, null=True, verbose_name="synthese")),
                ("error", models.TextField(blank=True, default="", verbose_name="erreur")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rfm_analysis_runs",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="lancee par",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rfm_analysis_runs",
                        to="stores.store",
                        verbose_name="boutique",
                    ),
                ),
            ],
            options={
                "verbose_name": "analyse RFM",
                "verbose_name_plural": "analyses RFM",
                "ordering": ["-started_at"],
                "indexes": [
                    models.Index(fields=["store", "status", "-started_at"], name="rfm_run_store_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerRFM",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("customer_type", models.CharField(default="customer", max_length=20, verbose_name="type de client")),
                ("recency_days", models.PositiveIntegerField(default=0, verbose_name="recence (jours)")),
                ("frequency_count", models.PositiveIntegerField(default=1, verbose_name="frequence")),
                (
                    "monetary_total",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=16, verbose_name="montant total"
                    ),
                ),
                (
                    "monetary_average",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=16, verbose_name="panier moyen"
                    ),
                ),
                ("recency_score", models.PositiveSmallIntegerField(default=1, verbose_name="score R")),
                ("frequency_score", models.PositiveSmallIntegerField(default=1, verbose_name="score F")),
                ("monetary_score", models.PositiveSmallIntegerField(default=1, verbose_name="score M")),
                ("rfm_score", models.CharField(db_index=True, max_length=3, verbose_name="score RFM")),
                ("rfm_total", models.PositiveSmallIntegerField(default=3, verbose_name="total RFM")),
                ("segment", models.CharField(max_length=50, verbose_name="segment")),
                ("segment_code", models.CharField(max_length=10, verbose_name="code segment")),
                ("segment_key", models.CharField(db_index=True, max_length=30, verbose_name="cle segment")),
                ("analysis_period", models.JSONField(blank=True, default=dict, verbose_name="periode analysee")),
                ("transactions", models.JSONField(blank=True, default=dict, verbose_name="resume transactions")),
                (
                    "churn_risk",
                    models.CharField(
                        choices=[("low", "Faible"), ("medium", "Moyen"), ("high", "Eleve")],
                        db_index=True,
                        max_length=10,
                        verbose_name="risque de churn",
                    ),
                ),
                (
                    "churn_probability",
                    models.PositiveSmallIntegerField(default=0, verbose_name="probabilite de churn (%)"),
                ),
                ("recommendations", models.JSONField(blank=True, default=dict, verbose_name="recommandations")),
                ("calculated_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="calcule le")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rfm_scores",
                        to="customers.customer",
                        verbose_name="client",
                    ),
                ),
                (
                    "last_run",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="customer_scores",
                        to="analytics.rfmanalysisrun",
                        verbose_name="derniere analyse",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customer_rfm",
                        to="stores.store",
                        verbose_name="boutique",
                    ),
                ),
            ],
            options={
                "verbose_name": "score RFM client",
                "verbose_name_plural": "scores RFM clients",
                "ordering": ["store_id", "-rfm_total", "-monetary_total"],
                "indexes": [
                    models.Index(fields=["store", "segment_key"], name="rfm_store_segment_idx"),
                    models.Index(fields=["store", "churn_risk"], name="rfm_store_churn_idx"),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name="customerrfm",
            constraint=models.UniqueConstraint(fields=("store", "customer"), name="uniq_customer_rfm_per_store"),
        ),
    ]
