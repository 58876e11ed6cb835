"""Shared helpers: audit logging, money rounding, document numbers and pagination"""
import json
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from .exceptions import error_response_body
from .models import AuditLog, Setting

User = get_user_model()
logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def to_decimal(value, default=Decimal('0')):
    """Coerce request values (str/int/float/None) into Decimal"""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value):
    """Round a money value half-up to 2 places"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, payment_add, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., vendor name, bill number)
        object_reference: Reference identifier (e.g., bill number, quotation number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def generate_document_number(model, field, setting_key, default_prefix, on_date=None):
    """
    Build the next `<PREFIX>-<YYYYMMDD>-<NNNN>` number for `model.field`.

    The prefix comes from the Setting table so admins can change it at runtime.
    """
    prefix = Setting.get_value(setting_key, default_prefix)
    day = (on_date or timezone.localdate()).strftime('%Y%m%d')
    stem = f"{prefix}-{day}-"

    existing = model.objects.filter(**{f'{field}__startswith': stem}).values_list(field, flat=True)
    max_seq = 0
    for number in existing:
        tail = number[len(stem):]
        if tail.isdigit():
            max_seq = max(max_seq, int(tail))

    candidate = f"{stem}{str(max_seq + 1).zfill(4)}"
    while model.objects.filter(**{field: candidate}).exists():
        max_seq += 1
        candidate = f"{stem}{str(max_seq + 1).zfill(4)}"
    return candidate


def parse_positive_int(value, default, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    if maximum is not None:
        number = min(number, maximum)
    return number


def detail_response(request, instance, serializer_class, context=None):
    """GET/PUT/PATCH/DELETE handling shared by the simple master-data endpoints"""
    context = context or {'request': request}
    if request.method == 'GET':
        return Response(serializer_class(instance, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(instance, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        instance.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def paginated_response(request, queryset, serializer_class, default_page_size=20, context=None):
    """Page a queryset with Django's Paginator and wrap it the way list views return it"""
    page = parse_positive_int(request.query_params.get('page'), 1)
    page_size = parse_positive_int(
        request.query_params.get('page_size') or request.query_params.get('limit'),
        default_page_size,
        maximum=200,
    )

    paginator = Paginator(queryset, page_size)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    response = Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'current_page': page_obj.number,
        'page_size': page_size,
        'total_pages': paginator.num_pages,
    })
    response['Cache-Control'] = 'private, max-age=10, must-revalidate'
    return response


def split_nested_list(request, key='items'):
    """
    Separate a nested list (e.g. `items`) from the remaining request fields.

    Returns (data, rows); rows is None when the key was not sent. Multipart
    forms carry the list as a JSON string.
    """
    data = {name: value for name, value in request.data.items() if name != key}
    if key not in request.data:
        return data, None
    rows = request.data.get(key)
    if isinstance(rows, str):
        try:
            rows = json.loads(rows) if rows.strip() else []
        except ValueError:
            raise ValidationError({key: [f'{key.capitalize()} must be a JSON list']})
    if not isinstance(rows, list):
        raise ValidationError({key: [f'{key.capitalize()} must be a list']})
    return data, rows
