"""Celery tasks for on-demand RFM analysis."""
import logging

from celery import shared_task

from analytics.services import run_rfm_analysis

logger = logging.getLogger("segmentation")


def _iter_stores(store_id=None):
    from stores.services import get_active_stores

    return get_active_stores(store_id=store_id)


@shared_task(name="analytics.tasks.run_rfm_analysis_store")
def run_rfm_analysis_store(store_id=None, actor_id=None, **config):
    """Run the RFM pipeline for one store (or every active store).

    A failing store is logged and the loop moves on; its run is already
    recorded as failed.
    """
    from accounts.models import User

    actor = User.objects.filter(pk=actor_id).first() if actor_id else None
    completed = 0
    failed = 0
    skipped = 0

    for store in _iter_stores(store_id):
        if not store.is_analytics_feature_enabled("rfm_analysis"):
            logger.info("RFM analysis skipped for store %s: feature disabled.", store)
            skipped += 1
            continue
        try:
            run_rfm_analysis(store, config=config, actor=actor)
        except Exception:
            logger.error("RFM analysis task failed for store %s", store, exc_info=True)
            failed += 1
        else:
            completed += 1

    return f"rfm runs completed={completed} failed={failed} skipped={skipped}"
