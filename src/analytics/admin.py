"""Admin configuration for RFM models."""
from django.contrib import admin

from analytics.models import CustomerRFM, RFMAnalysisRun


@admin.register(RFMAnalysisRun)
class RFMAnalysisRunAdmin(admin.ModelAdmin):
    list_display = ("store", "status", "period_type", "start_date", "end_date", "started_at", "completed_at", "created_by")
    list_filter = ("status", "period_type", "store")
    date_hierarchy = "started_at"
    list_select_related = ("store", "created_by")
    readonly_fields = (
        "store",
        "period_type",
        "start_date",
        "end_date",
        "min_transactions",
        "exclude_refunds",
        "scoring_method",
        "status",
        "started_at",
        "completed_at",
        "summary",
        "error",
        "created_by",
    )

    def has_add_permission(self, request):
        return False


@admin.register(CustomerRFM)
class CustomerRFMAdmin(admin.ModelAdmin):
    list_display = ("store", "customer", "rfm_score", "segment", "churn_risk", "monetary_total", "calculated_at")
    list_filter = ("segment_key", "churn_risk", "store")
    search_fields = ("customer__first_name", "customer__last_name", "customer__phone", "rfm_score")
    list_select_related = ("store", "customer")
    readonly_fields = (
        "store",
        "customer",
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
    )

    def has_add_permission(self, request):
        return False
