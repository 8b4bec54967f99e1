import pytest

from stores.models import AuditLog
from stores.services import create_audit_log, get_active_stores


@pytest.mark.django_db
def test_flags_default_to_enabled(store):
    assert store.effective_analytics_feature_flags == {"enabled": True, "rfm_analysis": True}
    assert store.is_analytics_feature_enabled("rfm_analysis") is True


@pytest.mark.django_db
def test_enterprise_flag_disables_store_feature(enterprise, store):
    enterprise.analytics_feature_flags = {"rfm_analysis": False}
    enterprise.save(update_fields=["analytics_feature_flags", "updated_at"])
    store.refresh_from_db()

    assert store.is_analytics_feature_enabled("rfm_analysis") is False


@pytest.mark.django_db
def test_store_override_wins_over_enterprise(enterprise, store):
    enterprise.analytics_feature_flags = {"rfm_analysis": False}
    enterprise.save(update_fields=["analytics_feature_flags", "updated_at"])
    store.analytics_feature_overrides = {"rfm_analysis": True}
    store.save(update_fields=["analytics_feature_overrides", "updated_at"])
    store.refresh_from_db()

    assert store.is_analytics_feature_enabled("rfm_analysis") is True


@pytest.mark.django_db
def test_global_switch_disables_every_feature(store):
    store.analytics_feature_overrides = {"enabled": False, "rfm_analysis": True}
    store.save(update_fields=["analytics_feature_overrides", "updated_at"])

    assert store.is_analytics_feature_enabled("enabled") is False
    assert store.is_analytics_feature_enabled("rfm_analysis") is False


@pytest.mark.django_db
def test_get_active_stores_filters(store, other_store):
    other_store.is_active = False
    other_store.save(update_fields=["is_active", "updated_at"])

    assert list(get_active_stores()) == [store]
    assert list(get_active_stores(store_code=store.code)) == [store]
    assert list(get_active_stores(store_code=other_store.code)) == []
    assert list(get_active_stores(store_id=store.pk)) == [store]


@pytest.mark.django_db
def test_create_audit_log(store, admin_user):
    entry = create_audit_log(
        actor=admin_user,
        store=store,
        action="RFM_ANALYSIS_RUN",
        entity_type="RFMAnalysisRun",
        entity_id=123,
        after={"status": "completed"},
    )

    assert AuditLog.objects.count() == 1
    assert entry.entity_id == "123"
    assert entry.after_json == {"status": "completed"}
    assert entry.before_json is None
