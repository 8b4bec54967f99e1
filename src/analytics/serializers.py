"""Serializers for RFM analysis input and output."""
from rest_framework import serializers

from analytics.models import CustomerRFM, RFMAnalysisRun


class RFMAnalysisConfigSerializer(serializers.Serializer):
    """Parses a raw run configuration (dict, CLI or task kwargs).

    Only field-level checks happen here; a ``min_transactions`` of 0 means
    "use the default". Defaults and the date-range check
    are applied by :func:`analytics.services.resolve_config` and the pipeline.
    """

    period_type = serializers.ChoiceField(
        choices=RFMAnalysisRun.PeriodType.choices,
        required=False,
        allow_null=True,
    )
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    end_date = serializers.DateTimeField(required=False, allow_null=True)
    min_transactions = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    exclude_refunds = serializers.BooleanField(required=False, allow_null=True, default=None)


class RFMAnalysisRunSerializer(serializers.ModelSerializer):
    store_code = serializers.CharField(source="store.code", read_only=True)

    class Meta:
        model = RFMAnalysisRun
        fields = [
            "id",
            "store",
            "store_code",
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
        ]
        read_only_fields = fields


class CustomerRFMSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.full_name", read_only=True)
    customer_phone = serializers.CharField(source="customer.phone", read_only=True)

    class Meta:
        model = CustomerRFM
        fields = [
            "id",
            "store",
            "customer",
            "customer_name",
            "customer_phone",
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
        ]
        read_only_fields = fields
