"""
Purchase bill arithmetic, payment allocation and vendor figures.

Every mutation here runs inside transaction.atomic(); bills receiving an
allocation are locked with select_for_update() first so two payments for the
same vendor cannot both consume one bill's outstanding balance.
"""
import csv
import io
import logging
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.core.files.base import ContentFile
from django.db import transaction
from django.db.models import Sum, Count
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from erpdesk.catalog.models import ExportJob
from erpdesk.core.cache_signals import vendor_summary_cache_key, PURCHASE_DASHBOARD_CACHE_KEY
from erpdesk.core.utils import money, to_decimal, generate_document_number
from erpdesk.parties.models import Vendor
from .models import (
    PurchaseBill, PurchaseBillItem, PurchasePayment, PaymentAllocation,
    VendorProductPrice, VendorProductPriceHistory,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
SUMMARY_CACHE_TIMEOUT = 300
DASHBOARD_CACHE_TIMEOUT = 300
REPORT_PERIODS = ('month', 'quarter', 'year')


class PurchasingError(ValidationError):
    """Business rule violation in bills, payments or vendor prices"""


# --- Bill arithmetic ---

def compute_item_amounts(quantity, purchase_price, gst_percent):
    """Return (subtotal, gst_amount, total) for one bill line"""
    subtotal = to_decimal(quantity) * to_decimal(purchase_price)
    gst_amount = money(subtotal * to_decimal(gst_percent) / Decimal('100'))
    return money(subtotal), gst_amount, money(subtotal) + gst_amount


def compute_bill_totals(items, discount):
    """
    items: iterable of dicts/objects with quantity, purchase_price, gst_percent

    Returns a dict with subtotal, total_gst, total_amount.
    """
    subtotal = ZERO
    total_gst = ZERO
    for item in items:
        if isinstance(item, dict):
            values = (item.get('quantity'), item.get('purchase_price'), item.get('gst_percent', 0))
        else:
            values = (item.quantity, item.purchase_price, item.gst_percent)
        line_subtotal, line_gst, _ = compute_item_amounts(*values)
        subtotal += line_subtotal
        total_gst += line_gst
    return {
        'subtotal': money(subtotal),
        'total_gst': money(total_gst),
        'total_amount': money(subtotal + total_gst - to_decimal(discount)),
    }


def bill_status(total_amount, paid_amount, outstanding_amount):
    if total_amount > 0 and outstanding_amount <= 0:
        return 'paid'
    if 0 < paid_amount < total_amount:
        return 'partial'
    return 'outstanding'


def refresh_bill_payments(bill):
    """Recompute paid/outstanding/status from allocations; totals are left alone"""
    bill.paid_amount = money(bill.get_allocated_amount())
    bill.outstanding_amount = money(bill.total_amount - bill.paid_amount)
    bill.status = bill_status(bill.total_amount, bill.paid_amount, bill.outstanding_amount)
    bill.save(update_fields=['paid_amount', 'outstanding_amount', 'status', 'updated_at'])
    return bill


def recalculate_bill(bill):
    """Recompute every line and the bill figures from the stored items and allocations"""
    with transaction.atomic():
        items = list(PurchaseBillItem.objects.filter(bill=bill).order_by('id'))
        for item in items:
            _, gst_amount, total = compute_item_amounts(item.quantity, item.purchase_price, item.gst_percent)
            if item.gst_amount != gst_amount or item.total != total:
                item.gst_amount = gst_amount
                item.total = total
                item.save(update_fields=['gst_amount', 'total'])

        totals = compute_bill_totals(items, bill.discount)
        bill.subtotal = totals['subtotal']
        bill.total_gst = totals['total_gst']
        bill.total_amount = totals['total_amount']
        bill.save(update_fields=['subtotal', 'total_gst', 'total_amount', 'updated_at'])
        return refresh_bill_payments(bill)


def next_bill_number(on_date=None):
    return generate_document_number(PurchaseBill, 'bill_number', 'bill_number_prefix', 'PB', on_date=on_date)


def create_bill_items(bill, items_data):
    """Create items from validated item dicts (product, item_name, quantity, purchase_price, gst_percent)"""
    created = []
    for item_data in items_data:
        product = item_data.get('product')
        gst_percent = item_data.get('gst_percent', Decimal('18.00'))
        _, gst_amount, total = compute_item_amounts(item_data['quantity'], item_data['purchase_price'], gst_percent)
        created.append(PurchaseBillItem.objects.create(
            bill=bill,
            product=product,
            item_name=item_data.get('item_name') or (product.title if product else ''),
            quantity=item_data['quantity'],
            purchase_price=item_data['purchase_price'],
            gst_percent=gst_percent,
            gst_amount=gst_amount,
            total=total,
        ))
    return created


def replace_bill_items(bill, items_data):
    with transaction.atomic():
        bill.items.all().delete()
        create_bill_items(bill, items_data)
        return recalculate_bill(bill)


# --- Allocation ---

def _locked_outstanding_bills(vendor_id):
    return (
        PurchaseBill.objects.select_for_update()
        .filter(vendor_id=vendor_id, outstanding_amount__gt=0)
        .order_by('bill_date', 'id')
    )


def allocate_to_bill(payment, bill, amount):
    """
    Apply up to `amount` of `payment` to `bill`, never more than the bill's
    outstanding balance. Returns the allocation or None when nothing applied.
    """
    with transaction.atomic():
        bill = PurchaseBill.objects.select_for_update().get(pk=bill.pk)
        share = min(money(amount), bill.outstanding_amount)
        if share <= 0:
            return None
        allocation = PaymentAllocation.objects.create(payment=payment, bill=bill, amount=share)
        refresh_bill_payments(bill)
        logger.info(f"Allocated {share} of payment {payment.id} to bill {bill.id}")
        return allocation


def allocate_fifo(payment):
    """Spread the payment's unallocated balance over the vendor's oldest outstanding bills"""
    allocations = []
    with transaction.atomic():
        remaining = money(payment.unallocated_amount)
        if remaining <= 0:
            return allocations
        for bill in _locked_outstanding_bills(payment.vendor_id):
            if remaining <= 0:
                break
            share = min(remaining, bill.outstanding_amount)
            allocations.append(PaymentAllocation.objects.create(payment=payment, bill=bill, amount=share))
            refresh_bill_payments(bill)
            remaining -= share
    if allocations:
        logger.info(f"Payment {payment.id} allocated FIFO to {len(allocations)} bill(s)")
    return allocations


def _validate_amount(amount):
    amount = money(amount)
    if amount <= 0:
        raise PurchasingError({'amount': ['Amount must be greater than 0']})
    return amount


def record_bill_payment(bill, amount, payment_date=None, mode='Cash', note='', user=None, attachment=None):
    """
    Pay a bill. The part above the bill's outstanding stays unallocated on the
    vendor and can be applied later with allocate_unallocated().
    """
    amount = _validate_amount(amount)
    with transaction.atomic():
        payment = PurchasePayment.objects.create(
            vendor_id=bill.vendor_id,
            bill=bill,
            amount=amount,
            payment_date=payment_date or timezone.localdate(),
            mode=mode or 'Cash',
            note=note or '',
            attachment=attachment,
            created_by=user if user and user.is_authenticated else None,
        )
        allocate_to_bill(payment, bill, amount)
    bill.refresh_from_db()
    return payment, bill


def record_vendor_payment(vendor, amount, payment_date=None, mode='Cash', note='', user=None, attachment=None):
    """Vendor-level payment, allocated FIFO (oldest bill_date, then id)"""
    amount = _validate_amount(amount)
    with transaction.atomic():
        payment = PurchasePayment.objects.create(
            vendor=vendor,
            amount=amount,
            payment_date=payment_date or timezone.localdate(),
            mode=mode or 'Cash',
            note=note or '',
            attachment=attachment,
            created_by=user if user and user.is_authenticated else None,
        )
        allocations = allocate_fifo(payment)
    return payment, allocations


def allocate_unallocated(vendor):
    """Apply every payment's leftover balance to outstanding bills; returns the allocations made"""
    allocations = []
    with transaction.atomic():
        payments = PurchasePayment.objects.select_for_update().filter(vendor=vendor).order_by('payment_date', 'id')
        for payment in payments:
            if payment.unallocated_amount <= 0:
                continue
            made = allocate_fifo(payment)
            if not made:
                break
            allocations.extend(made)
    return allocations


def delete_payment(payment):
    """Delete a payment and give its allocated amounts back to the bills"""
    with transaction.atomic():
        bill_ids = list(payment.allocations.values_list('bill_id', flat=True))
        payment.delete()
        for bill in PurchaseBill.objects.select_for_update().filter(pk__in=bill_ids):
            refresh_bill_payments(bill)
    logger.info(f"Deleted payment; released allocations on bills {bill_ids}")
    return bill_ids


# --- Vendor figures ---

def _build_vendor_summary(vendor):
    bills = PurchaseBill.objects.filter(vendor=vendor).aggregate(
        total_bill_amount=Sum('total_amount'),
        total_paid_amount=Sum('paid_amount'),
        total_outstanding=Sum('outstanding_amount'),
        total_bills=Count('id'),
    )
    total_payments = PurchasePayment.objects.filter(vendor=vendor).aggregate(total=Sum('amount'))['total'] or ZERO
    total_allocated = PaymentAllocation.objects.filter(payment__vendor=vendor).aggregate(total=Sum('amount'))['total'] or ZERO
    unallocated = money(total_payments - total_allocated)
    outstanding = money(bills['total_outstanding'] or ZERO)
    available = max(min(unallocated, outstanding), ZERO)

    return {
        'vendor_id': vendor.id,
        'vendor_name': vendor.name,
        'total_bill_amount': float(money(bills['total_bill_amount'] or ZERO)),
        'total_paid_amount': float(money(bills['total_paid_amount'] or ZERO)),
        'total_outstanding': float(outstanding),
        'total_bills': bills['total_bills'] or 0,
        'unallocated_payments': float(unallocated),
        'available_for_allocation': float(available),
    }


def vendor_payment_summary(vendor, use_cache=True):
    key = vendor_summary_cache_key(vendor.id)
    if use_cache:
        cached = cache.get(key)
        if cached is not None:
            return cached
    summary = _build_vendor_summary(vendor)
    cache.set(key, summary, SUMMARY_CACHE_TIMEOUT)
    return summary


def payment_summaries(vendor_ids):
    """Summaries for many vendors keyed by vendor id; unknown ids are skipped"""
    summaries = {}
    for vendor in Vendor.objects.filter(pk__in=vendor_ids):
        summaries[str(vendor.id)] = vendor_payment_summary(vendor)
    return summaries


# --- Dashboard and reports ---

def _bill_row(bill):
    return {
        'id': bill.id,
        'bill_number': bill.bill_number,
        'vendor_id': bill.vendor_id,
        'vendor_name': bill.vendor.name,
        'bill_date': bill.bill_date.isoformat(),
        'total_amount': float(bill.total_amount),
        'outstanding_amount': float(bill.outstanding_amount),
        'status': bill.status,
    }


def _top_vendors(bills, limit=5):
    rows = (
        bills.values('vendor_id', 'vendor__name')
        .annotate(bill_count=Count('id'), amount=Sum('total_amount'), outstanding=Sum('outstanding_amount'))
        .order_by('-amount')[:limit]
    )
    return [
        {
            'vendor_id': row['vendor_id'],
            'vendor_name': row['vendor__name'],
            'bill_count': row['bill_count'],
            'total_amount': float(row['amount'] or 0),
            'outstanding': float(row['outstanding'] or 0),
        }
        for row in rows
    ]


def purchase_dashboard(use_cache=True):
    if use_cache:
        cached = cache.get(PURCHASE_DASHBOARD_CACHE_KEY)
        if cached is not None:
            return cached

    bills = PurchaseBill.objects.all()
    totals = bills.aggregate(
        amount=Sum('total_amount'),
        paid=Sum('paid_amount'),
        outstanding=Sum('outstanding_amount'),
    )

    recent_bills = [_bill_row(bill) for bill in bills.select_related('vendor').order_by('-created_at', '-id')[:5]]

    activity = []
    for bill in bills.select_related('vendor').order_by('-created_at', '-id')[:10]:
        activity.append({
            'type': 'bill',
            'id': bill.id,
            'reference': bill.bill_number,
            'vendor_name': bill.vendor.name,
            'amount': float(bill.total_amount),
            'date': bill.bill_date.isoformat(),
            'created_at': bill.created_at.isoformat(),
        })
    for payment in PurchasePayment.objects.select_related('vendor').order_by('-created_at', '-id')[:10]:
        activity.append({
            'type': 'payment',
            'id': payment.id,
            'reference': payment.mode,
            'vendor_name': payment.vendor.name,
            'amount': float(payment.amount),
            'date': payment.payment_date.isoformat(),
            'created_at': payment.created_at.isoformat(),
        })
    activity.sort(key=lambda row: row['created_at'], reverse=True)

    data = {
        'totals': {
            'total_vendors': Vendor.objects.filter(is_active=True).count(),
            'total_bills': bills.count(),
            'total_amount': float(totals['amount'] or 0),
            'total_paid': float(totals['paid'] or 0),
            'total_outstanding': float(totals['outstanding'] or 0),
        },
        'recent_bills': recent_bills,
        'top_vendors': _top_vendors(bills),
        'recent_activity': activity[:10],
    }
    cache.set(PURCHASE_DASHBOARD_CACHE_KEY, data, DASHBOARD_CACHE_TIMEOUT)
    return data


def period_start(period, today=None):
    today = today or timezone.localdate()
    if period == 'month':
        return today.replace(day=1)
    if period == 'quarter':
        first_month = 3 * ((today.month - 1) // 3) + 1
        return date(today.year, first_month, 1)
    if period == 'year':
        return date(today.year, 1, 1)
    raise PurchasingError({'period': [f"Invalid period. Use one of: {', '.join(REPORT_PERIODS)}"]})


def purchase_report(period='month', today=None):
    today = today or timezone.localdate()
    start = period_start(period, today)
    bills = PurchaseBill.objects.filter(bill_date__gte=start, bill_date__lte=today)
    payments = PurchasePayment.objects.filter(payment_date__gte=start, payment_date__lte=today)

    totals = bills.aggregate(
        count=Count('id'),
        amount=Sum('total_amount'),
        gst=Sum('total_gst'),
        paid=Sum('paid_amount'),
        outstanding=Sum('outstanding_amount'),
    )

    monthly = (
        bills.annotate(month=TruncMonth('bill_date'))
        .values('month')
        .annotate(bills=Count('id'), amount=Sum('total_amount'))
        .order_by('month')
    )
    monthly_data = [
        {
            'month': row['month'].strftime('%Y-%m'),
            'bills': row['bills'],
            'amount': float(row['amount'] or 0),
        }
        for row in monthly
    ]

    methods = payments.values('mode').annotate(count=Count('id'), amount=Sum('amount')).order_by('-amount')
    payment_methods = [
        {'method': row['mode'], 'count': row['count'], 'amount': float(row['amount'] or 0)}
        for row in methods
    ]

    return {
        'period': period,
        'start_date': start.isoformat(),
        'end_date': today.isoformat(),
        'totals': {
            'total_bills': totals['count'] or 0,
            'total_amount': float(totals['amount'] or 0),
            'total_gst': float(totals['gst'] or 0),
            'total_paid': float(totals['paid'] or 0),
            'total_outstanding': float(totals['outstanding'] or 0),
            'total_payments': float(payments.aggregate(total=Sum('amount'))['total'] or 0),
        },
        'monthly_data': monthly_data,
        'top_vendors': _top_vendors(bills),
        'payment_methods': payment_methods,
    }


# --- Vendor product prices ---

def open_price_history(price, user=None, notes=''):
    return VendorProductPriceHistory.objects.create(
        price=price,
        purchase_price=price.purchase_price,
        effective_from=timezone.localdate(),
        changed_by=user if user and user.is_authenticated else None,
        notes=notes or '',
    )


def record_price_change(price, user=None, notes=''):
    """Close the current history row and open one for the new purchase price"""
    today = timezone.localdate()
    with transaction.atomic():
        price.history.filter(effective_to__isnull=True).update(effective_to=today)
        return open_price_history(price, user=user, notes=notes)


def enforce_single_preferred(price):
    """Only one preferred vendor per product"""
    if not price.is_preferred:
        return 0
    return (
        VendorProductPrice.objects.filter(product_id=price.product_id, is_preferred=True)
        .exclude(pk=price.pk)
        .update(is_preferred=False)
    )


VENDOR_PRICE_EXPORT_HEADER = [
    'Vendor', 'Product', 'SKU', 'Purchase Price', 'Minimum Order Quantity',
    'Lead Time (days)', 'Preferred', 'Active', 'Effective From',
]


def vendor_prices_csv(queryset):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(VENDOR_PRICE_EXPORT_HEADER)
    rows = 0
    for price in queryset.select_related('vendor', 'product'):
        writer.writerow([
            price.vendor.name,
            price.product.title,
            price.product.sku,
            f"{price.purchase_price:.2f}",
            price.minimum_order_quantity.normalize(),
            price.lead_time_days if price.lead_time_days is not None else '',
            'Yes' if price.is_preferred else 'No',
            'Yes' if price.is_active else 'No',
            price.effective_from.isoformat(),
        ])
        rows += 1
    return buffer.getvalue(), rows


def export_vendor_prices(queryset, user=None, parameters=None):
    """Write the CSV to an ExportJob; returns (job, content)"""
    job = ExportJob.objects.create(
        kind='vendor_prices',
        status='PROGRESS',
        created_by=user if user and user.is_authenticated else None,
        parameters=parameters or {},
    )
    content, rows = vendor_prices_csv(queryset)
    file_name = f"vendor_prices_{timezone.localdate().isoformat()}.csv"
    job.file.save(file_name, ContentFile(content.encode('utf-8')), save=False)
    job.file_name = file_name
    job.row_count = rows
    job.status = 'SUCCESS'
    job.completed_at = timezone.now()
    job.save()
    logger.info(f"Vendor price export {job.id}: {rows} rows")
    return job, content
