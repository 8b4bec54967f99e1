"""Models for RFM customer segmentation."""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel


class RFMAnalysisRun(TimeStampedModel):
    """One execution of the RFM pipeline for a store."""

    class PeriodType(models.TextChoices):
        MONTHLY = "monthly", "Mensuel"
        QUARTERLY = "quarterly", "Trimestriel"
        YEARLY = "yearly", "Annuel"
        CUSTOM = "custom", "Personnalise"

    class Status(models.TextChoices):
        RUNNING = "running", "En cours"
        COMPLETED = "completed", "Terminee"
        FAILED = "failed", "Echouee"

    SCORING_QUINTILE = "quintile"

    store = models.ForeignKey(
        "stores.Store",
        on_delete=models.CASCADE,
        related_name="rfm_analysis_runs",
        verbose_name="boutique",
    )
    period_type = models.CharField(
        "type de periode",
        max_length=20,
        choices=PeriodType.choices,
        default=PeriodType.YEARLY,
    )
    start_date = models.DateTimeField("debut de periode")
    end_date = models.DateTimeField("fin de periode")
    min_transactions = models.PositiveIntegerField("transactions minimum", default=1)
    exclude_refunds = models.BooleanField("exclure les remboursements", default=True)
    scoring_method = models.CharField("methode de scoring", max_length=20, default=SCORING_QUINTILE, editable=False)
    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.RUNNING,
        db_index=True,
    )
    started_at = models.DateTimeField("demarree le", default=timezone.now)
    completed_at = models.DateTimeField("terminee le", null=True, blank=True)
    summary = models.JSONField("synthese", null=True, blank=True)
    error = models.TextField("erreur", blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="rfm_analysis_runs",
        verbose_name="lancee par",
    )

    class Meta:
        verbose_name = "analyse RFM"
        verbose_name_plural = "analyses RFM"
        ordering = ["-started_at"]
        indexes = [
            models.Index(fields=["store", "status", "-started_at"], name="rfm_run_store_status_idx"),
        ]

    def __str__(self):
        return f"RFM {self.store} {self.started_at:%Y-%m-%d %H:%M} ({self.status})"

    @property
    def config_snapshot(self) -> dict:
        return {
            "period_type": self.period_type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "min_transactions": self.min_transactions,
            "exclude_refunds": self.exclude_refunds,
        }

    @property
    def is_finished(self) -> bool:
        return self.status in (self.Status.COMPLETED, self.Status.FAILED)

    def _finish(self, status: str, **values) -> None:
        """Leave ``running`` for good; in-memory state is restored if the save fails."""
        if self.is_finished:
            raise ValueError(
                f"L'analyse RFM {self.pk} est deja terminee (statut: {self.status})."
            )
        values.update(status=status, completed_at=timezone.now())
        previous = {name: getattr(self, name) for name in values}
        for name, value in values.items():
            setattr(self, name, value)
        try:
            self.save(update_fields=[*values, "updated_at"])
        except Exception:
            for name, value in previous.items():
                setattr(self, name, value)
            raise

    def mark_completed(self, summary: dict) -> None:
        self._finish(self.Status.COMPLETED, summary=summary)

    def mark_failed(self, error: str) -> None:
        self._finish(self.Status.FAILED, error=error)


class CustomerRFM(TimeStampedModel):
    """Latest RFM scores of one customer in one store (overwritten every run)."""

    class ChurnRisk(models.TextChoices):
        LOW = "low", "Faible"
        MEDIUM = "medium", "Moyen"
        HIGH = "high", "Eleve"

    store = models.ForeignKey(
        "stores.Store",
        on_delete=models.CASCADE,
        related_name="customer_rfm",
        verbose_name="boutique",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.CASCADE,
        related_name="rfm_scores",
        verbose_name="client",
    )
    customer_type = models.CharField("type de client", max_length=20, default="customer")
    last_run = models.ForeignKey(
        RFMAnalysisRun,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="customer_scores",
        verbose_name="derniere analyse",
    )

    recency_days = models.PositiveIntegerField("recence (jours)", default=0)
    frequency_count = models.PositiveIntegerField("frequence", default=1)
    monetary_total = models.DecimalField("montant total", max_digits=16, decimal_places=2, default=Decimal("0.00"))
    monetary_average = models.DecimalField("panier moyen", max_digits=16, decimal_places=2, default=Decimal("0.00"))

    recency_score = models.PositiveSmallIntegerField("score R", default=1)
    frequency_score = models.PositiveSmallIntegerField("score F", default=1)
    monetary_score = models.PositiveSmallIntegerField("score M", default=1)
    rfm_score = models.CharField("score RFM", max_length=3, db_index=True)
    rfm_total = models.PositiveSmallIntegerField("total RFM", default=3)

    segment = models.CharField("segment", max_length=50)
    segment_code = models.CharField("code segment", max_length=10)
    segment_key = models.CharField("cle segment", max_length=30, db_index=True)

    analysis_period = models.JSONField("periode analysee", default=dict, blank=True)
    transactions = models.JSONField("resume transactions", default=dict, blank=True)

    churn_risk = models.CharField("risque de churn", max_length=10, choices=ChurnRisk.choices, db_index=True)
    churn_probability = models.PositiveSmallIntegerField("probabilite de churn (%)", default=0)
    recommendations = models.JSONField("recommandations", default=dict, blank=True)
    calculated_at = models.DateTimeField("calcule le", default=timezone.now)

    class Meta:
        verbose_name = "score RFM client"
        verbose_name_plural = "scores RFM clients"
        ordering = ["store_id", "-rfm_total", "-monetary_total"]
        constraints = [
            models.UniqueConstraint(fields=["store", "customer"], name="uniq_customer_rfm_per_store"),
        ]
        indexes = [
            models.Index(fields=["store", "segment_key"], name="rfm_store_segment_idx"),
            models.Index(fields=["store", "churn_risk"], name="rfm_store_churn_idx"),
        ]

    def __str__(self):
        return f"{self.store} {self.customer} {self.rfm_score} ({self.segment})"
