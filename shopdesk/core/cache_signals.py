"""
Cache invalidation signals
Invalidate dashboard KPIs when the data behind them changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from contextlib import contextmanager
import logging
import threading

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Models whose rows feed the dashboards; each carries a shop_id
DASHBOARD_MODELS = {'Product', 'Sale', 'StockMovement', 'Repair', 'Client'}

_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation signals for bulk operations.
    Invalidate manually after the block.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate the owning shop's dashboard after the change commits"""
    if is_suspended() or sender.__name__ not in DASHBOARD_MODELS:
        return
    if not sender.__module__.startswith('shopdesk.'):
        return

    shop_id = getattr(instance, 'shop_id', None)
    transaction.on_commit(lambda: invalidate_dashboard_cache(shop_id))
