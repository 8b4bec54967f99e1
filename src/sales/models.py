"""Models for the sales app."""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.models import TimeStampedModel


# ---------------------------------------------------------------------------
# Sale
# ---------------------------------------------------------------------------

class Sale(TimeStampedModel):
    """A sales order. Credit notes are stored as sales with a negative total."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Brouillon"
        CONFIRMED = "CONFIRMED", "Confirmee"
        DONE = "DONE", "Terminee"
        CANCELLED = "CANCELLED", "Annulee"

    # Orders in these states count as completed revenue for analytics.
    COMPLETED_STATUSES = (Status.CONFIRMED, Status.DONE)

    store = models.ForeignKey(
        "stores.Store",
        on_delete=models.PROTECT,
        related_name="sales",
        verbose_name="boutique",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_as_seller",
        verbose_name="vendeur",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        verbose_name="client",
    )
    reference = models.CharField(
        "reference",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
    )
    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    order_date = models.DateTimeField("date de commande", default=timezone.now, db_index=True)
    total = models.DecimalField(
        "total",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "vente"
        verbose_name_plural = "ventes"
        ordering = ["-order_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["store", "reference"],
                condition=Q(reference__isnull=False),
                name="uniq_sale_reference_per_store",
            ),
        ]
        indexes = [
            models.Index(fields=["store", "status", "order_date"], name="sale_store_status_date_idx"),
        ]

    def __str__(self):
        label = self.reference or f"DRAFT-{str(self.pk)[:8]}"
        return f"Vente {label}"

