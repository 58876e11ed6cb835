"""
Cache invalidation signals
Automatically invalidate cached purchase figures when bills or payments change
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from django.core.cache import cache
from django.db import transaction
import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

VENDOR_SUMMARY_CACHE_KEY = 'vendor_summary:{vendor_id}'
PURCHASE_DASHBOARD_CACHE_KEY = 'purchase_dashboard'

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def vendor_summary_cache_key(vendor_id):
    return VENDOR_SUMMARY_CACHE_KEY.format(vendor_id=vendor_id)


# --- Manual Invalidation Helpers ---

def invalidate_vendor_summary_cache(vendor_id):
    """Drop the cached payment summary of one vendor"""
    if not vendor_id:
        return
    try:
        cache.delete(vendor_summary_cache_key(vendor_id))
        logger.debug(f"Invalidated vendor summary cache for vendor {vendor_id}")
    except Exception as e:
        logger.warning(f"Error invalidating vendor summary cache for vendor {vendor_id}: {e}")


def invalidate_purchase_dashboard_cache():
    """Drop the cached purchase dashboard figures"""
    try:
        cache.delete(PURCHASE_DASHBOARD_CACHE_KEY)
        logger.debug("Invalidated purchase dashboard cache")
    except Exception as e:
        logger.warning(f"Error invalidating purchase dashboard cache: {e}")


def invalidate_purchase_caches(vendor_id):
    invalidate_vendor_summary_cache(vendor_id)
    invalidate_purchase_dashboard_cache()


def _vendor_id_for(instance):
    vendor_id = getattr(instance, 'vendor_id', None)
    if vendor_id:
        return vendor_id
    # PaymentAllocation carries the vendor through its payment
    try:
        return instance.payment.vendor_id
    except Exception as e:
        logger.debug(f"Could not resolve vendor for {instance.__class__.__name__}: {e}")
        return None


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_purchase_cache(sender, instance, **kwargs):
    """Invalidate vendor summaries and dashboard when bills, payments or allocations change"""
    if is_suspended():
        return

    if sender.__name__ not in ['PurchaseBill', 'PurchasePayment', 'PaymentAllocation', 'Vendor']:
        return

    try:
        from erpdesk.purchasing.models import PurchaseBill, PurchasePayment, PaymentAllocation
        from erpdesk.parties.models import Vendor

        if isinstance(instance, Vendor):
            vendor_id = instance.pk
        elif isinstance(instance, (PurchaseBill, PurchasePayment, PaymentAllocation)):
            vendor_id = _vendor_id_for(instance)
        else:
            return

        invalidate_purchase_caches(vendor_id)
        # Also after commit, so a concurrent reader cannot re-populate stale figures
        transaction.on_commit(lambda: invalidate_purchase_caches(vendor_id))
    except Exception as e:
        logger.warning(f"Error in invalidate_purchase_cache signal: {e}")
