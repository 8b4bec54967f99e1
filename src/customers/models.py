"""Models for the customers app."""
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


class CustomerQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def identified(self):
        """Customers that stand for a real person (not the walk-in placeholder)."""
        return self.filter(is_default=False)


class Customer(TimeStampedModel):
    """A customer belonging to an enterprise, shared by all of its stores.

    Each enterprise may flag one ``is_default`` customer used for walk-in
    sales; RFM analysis treats its orders like anonymous ones.
    """

    enterprise = models.ForeignKey(
        "stores.Enterprise",
        on_delete=models.CASCADE,
        related_name="customers",
        verbose_name="entreprise",
    )
    first_name = models.CharField("prenom", max_length=100)
    last_name = models.CharField("nom", max_length=100)
    phone = models.CharField("telephone", max_length=20, db_index=True)
    email = models.EmailField("e-mail", blank=True, default="")
    is_default = models.BooleanField(
        "client par defaut",
        default=False,
        help_text="Client generique utilise quand aucun client n'est selectionne (ex: Client comptant).",
        db_index=True,
    )
    is_active = models.BooleanField("actif", default=True)

    objects = CustomerQuerySet.as_manager()

    class Meta:
        verbose_name = "client"
        verbose_name_plural = "clients"
        ordering = ["last_name", "first_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["enterprise"],
                condition=Q(is_default=True),
                name="uniq_default_customer_per_enterprise",
            )
        ]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name or self.phone

    def rfm_profile(self, store):
        """Latest RFM row of this customer in ``store``, or None if never scored."""
        return self.rfm_scores.filter(store=store).first()
