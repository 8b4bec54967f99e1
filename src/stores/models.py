"""Models for the stores app (tenants of the analytics layer)."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


ANALYTICS_FEATURE_KEYS = (
    "enabled",
    "rfm_analysis",
)

ANALYTICS_FEATURE_LABELS = {
    "enabled": "Module analytics global",
    "rfm_analysis": "Segmentation clients RFM",
}

ANALYTICS_FEATURE_DEFAULTS = {
    "enabled": True,
    "rfm_analysis": True,
}


def _normalize_analytics_flags(raw_flags):
    flags = dict(ANALYTICS_FEATURE_DEFAULTS)
    if isinstance(raw_flags, dict):
        for key in ANALYTICS_FEATURE_DEFAULTS:
            if key in raw_flags:
                flags[key] = bool(raw_flags[key])
    return flags


def _flag_enabled(flags: dict, key: str) -> bool:
    if key != "enabled":
        return bool(flags.get("enabled", True) and flags.get(key, True))
    return bool(flags.get(key, True))


# ---------------------------------------------------------------------------
# Enterprise
# ---------------------------------------------------------------------------

class Enterprise(TimeStampedModel):
    """Top-level business entity that owns stores and customers."""

    name = models.CharField("nom", max_length=255)
    code = models.CharField("code", max_length=50, unique=True)
    legal_name = models.CharField("raison sociale", max_length=255, blank=True, default="")
    currency = models.CharField("devise", max_length=10, default="FCFA")
    analytics_feature_flags = models.JSONField(
        "flags analytics",
        default=dict,
        blank=True,
        help_text="Activation des briques analytics au niveau entreprise.",
    )
    is_active = models.BooleanField("actif", default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Entreprise"
        verbose_name_plural = "Entreprises"

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def effective_analytics_feature_flags(self):
        return _normalize_analytics_flags(self.analytics_feature_flags)

    def is_analytics_feature_enabled(self, key: str) -> bool:
        return _flag_enabled(self.effective_analytics_feature_flags, key)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class Store(TimeStampedModel):
    """A point of sale; every analysis run and RFM row is scoped to one store."""

    enterprise = models.ForeignKey(
        Enterprise,
        on_delete=models.CASCADE,
        related_name="stores",
        verbose_name="entreprise",
    )
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, unique=True)
    address = models.TextField(blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    analytics_feature_overrides = models.JSONField(
        "surcharges flags analytics",
        default=dict,
        blank=True,
        help_text="Overrides boutique des flags analytics (true/false).",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Boutique"
        verbose_name_plural = "Boutiques"

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def effective_analytics_feature_flags(self):
        if self.enterprise_id:
            flags = dict(self.enterprise.effective_analytics_feature_flags)
        else:
            flags = dict(ANALYTICS_FEATURE_DEFAULTS)

        if isinstance(self.analytics_feature_overrides, dict):
            for key in ANALYTICS_FEATURE_DEFAULTS:
                if key in self.analytics_feature_overrides:
                    flags[key] = bool(self.analytics_feature_overrides[key])
        return flags

    def is_analytics_feature_enabled(self, key: str) -> bool:
        return _flag_enabled(self.effective_analytics_feature_flags, key)


class AuditLog(models.Model):
    """Immutable log of every significant action in the system."""

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    store = models.ForeignKey(
        Store,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    action = models.CharField(max_length=100)
    entity_type = models.CharField(max_length=100, db_index=True)
    entity_id = models.CharField(max_length=255)
    before_json = models.JSONField(null=True, blank=True)
    after_json = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Journal d'audit"
        verbose_name_plural = "Journaux d'audit"
        indexes = [
            models.Index(fields=["store", "created_at"], name="audit_store_created_idx"),
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at}] {self.action} on {self.entity_type} #{self.entity_id}"
