"""Quotation numbering, totals, list stats and WhatsApp delivery"""
import logging
from datetime import timedelta
from decimal import Decimal

import requests
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from erpdesk.core.utils import money, generate_document_number
from erpdesk.pricing.services import resolve_price
from .models import Quotation, QuotationItem

logger = logging.getLogger(__name__)


class WhatsAppNotConfigured(Exception):
    """No gateway URL in settings"""


class WhatsAppDeliveryError(Exception):
    """Gateway unreachable or refused the message"""


def next_quotation_number(on_date=None):
    return generate_document_number(Quotation, 'quotation_number', 'quotation_number_prefix', 'QT', on_date=on_date)


def create_items(quotation, items_data):
    """
    items_data: validated dicts with product, quantity and optional price.
    A missing price is the customer's resolved price for that quantity.
    """
    for item_data in items_data:
        product = item_data['product']
        quantity = item_data.get('quantity') or Decimal('1')
        price = item_data.get('price')
        if price is None:
            price = resolve_price(quotation.customer, product, quantity)['unit_price']
        QuotationItem.objects.create(
            quotation=quotation,
            product=product,
            item_name=item_data.get('item_name') or product.title,
            quantity=quantity,
            price=price,
            total=money(price * quantity),
        )


def refresh_total(quotation):
    total = sum((item.total for item in QuotationItem.objects.filter(quotation=quotation)), Decimal('0'))
    quotation.total_amount = money(total)
    quotation.save(update_fields=['total_amount', 'updated_at'])
    return quotation


def replace_items(quotation, items_data):
    with transaction.atomic():
        quotation.items.all().delete()
        create_items(quotation, items_data)
        return refresh_total(quotation)


def list_stats(rows, total_count, now=None):
    """
    today_count / recent_count are taken over the fetched rows only, the same
    numbers the dashboard shows next to the current page.
    """
    now = now or timezone.now()
    today = timezone.localdate(now)
    recent_cutoff = now - timedelta(hours=24)
    today_count = 0
    recent_count = 0
    for quotation in rows:
        if timezone.localdate(quotation.created_at) == today:
            today_count += 1
        if quotation.created_at >= recent_cutoff:
            recent_count += 1
    return {
        'total_count': total_count,
        'today_count': today_count,
        'recent_count': recent_count,
    }


def whatsapp_message(quotation):
    lines = [f"Quotation {quotation.quotation_number}"]
    if quotation.customer:
        lines.append(f"Dear {quotation.customer.name},")
    parts = [
        getattr(quotation.vehicle_maker, 'name', None),
        getattr(quotation.vehicle_model, 'name', None),
        getattr(quotation.vehicle_variant, 'name', None),
        quotation.vehicle_year,
    ]
    vehicle = ' '.join(str(part) for part in parts if part)
    if vehicle:
        lines.append(f"Vehicle: {vehicle}")
    for item in quotation.items.all():
        lines.append(f"- {item.item_name} x {item.quantity.normalize()} @ {item.price} = {item.total}")
    lines.append(f"Total: {quotation.total_amount}")
    return '\n'.join(lines)


def send_whatsapp(quotation, number):
    """
    Post the quotation to the WhatsApp gateway. Returns the gateway message id
    (or None). A draft quotation becomes `sent`.
    """
    url = getattr(settings, 'WHATSAPP_API_URL', '')
    if not url:
        raise WhatsAppNotConfigured("WhatsApp gateway is not configured")

    headers = {'Content-Type': 'application/json'}
    token = getattr(settings, 'WHATSAPP_API_TOKEN', '')
    if token:
        headers['Authorization'] = f'Bearer {token}'

    payload = {
        'to': number,
        'message': whatsapp_message(quotation),
        'reference': quotation.quotation_number,
    }
    try:
        response = requests.post(
            url,
            json=payload,
            headers=headers,
            timeout=getattr(settings, 'WHATSAPP_API_TIMEOUT', 10)
        )
    except requests.exceptions.RequestException as e:
        logger.warning(f"WhatsApp gateway unreachable for {quotation.quotation_number}: {str(e)}")
        raise WhatsAppDeliveryError("Could not reach the WhatsApp gateway") from e

    if response.status_code >= 400:
        logger.warning(f"WhatsApp gateway returned {response.status_code} for {quotation.quotation_number}")
        raise WhatsAppDeliveryError(f"WhatsApp gateway returned {response.status_code}")

    message_id = None
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict):
        message_id = body.get('message_id') or body.get('id')

    quotation.sent_at = timezone.now()
    update_fields = ['sent_at', 'updated_at']
    if quotation.status == 'draft':
        quotation.status = 'sent'
        update_fields.append('status')
    quotation.save(update_fields=update_fields)
    logger.info(f"Quotation {quotation.quotation_number} sent to {number} via WhatsApp")
    return message_id
