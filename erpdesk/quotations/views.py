import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erpdesk.core.exceptions import error_response_body
from erpdesk.core.utils import create_audit_log, parse_positive_int, split_nested_list
from .models import Quotation
from .serializers import QuotationSerializer, SendWhatsAppSerializer
from . import services

logger = logging.getLogger(__name__)


def _quotation_queryset():
    return Quotation.objects.select_related(
        'customer', 'vehicle_maker', 'vehicle_model', 'vehicle_variant', 'created_by'
    ).prefetch_related('items__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def quotation_list_create(request):
    """limit/offset list with page stats, or create a quotation"""
    if request.method == 'GET':
        queryset = _quotation_queryset()
        status_filter = request.query_params.get('status')
        customer_id = request.query_params.get('customer')
        search = (request.query_params.get('search') or '').strip()
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)
        if search:
            queryset = queryset.filter(
                Q(quotation_number__icontains=search) |
                Q(customer__name__icontains=search) |
                Q(customer__phone__icontains=search)
            )

        limit = parse_positive_int(request.query_params.get('limit'), 20, maximum=200)
        try:
            offset = max(int(request.query_params.get('offset', 0)), 0)
        except (TypeError, ValueError):
            offset = 0

        count = queryset.count()
        rows = list(queryset[offset:offset + limit])
        return Response({
            'error': False,
            'count': count,
            'data': QuotationSerializer(rows, many=True).data,
            'stats': services.list_stats(rows, count),
        })
    else:  # POST
        data, items_data = split_nested_list(request, 'items')
        serializer = QuotationSerializer(data=data, context={'items_data': items_data, 'request': request})
        if serializer.is_valid():
            quotation = serializer.save(created_by=request.user)
            create_audit_log(
                request=request,
                action='create',
                model_name='Quotation',
                object_id=str(quotation.id),
                object_name=quotation.customer.name if quotation.customer else None,
                object_reference=quotation.quotation_number,
                changes={'total_amount': str(quotation.total_amount)}
            )
            return Response(QuotationSerializer(quotation).data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def quotation_detail(request, pk):
    quotation = get_object_or_404(_quotation_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(QuotationSerializer(quotation).data)
    elif request.method in ('PUT', 'PATCH'):
        data, items_data = split_nested_list(request, 'items')
        serializer = QuotationSerializer(
            quotation,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            quotation = serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Quotation',
                object_id=str(quotation.id),
                object_reference=quotation.quotation_number,
                changes={'status': quotation.status, 'total_amount': str(quotation.total_amount)}
            )
            return Response(QuotationSerializer(quotation).data)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        number = quotation.quotation_number
        quotation.delete()
        create_audit_log(request=request, action='delete', model_name='Quotation', object_id=str(pk), object_reference=number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def quotation_send_whatsapp(request):
    """Send a quotation (by number, body or ?quotation_no=) to the customer's WhatsApp"""
    payload = request.data if request.data else request.query_params
    serializer = SendWhatsAppSerializer(data={'quotation_no': payload.get('quotation_no', '')})
    if not serializer.is_valid():
        return Response(
            {'error': True, 'data': {'message': 'quotation_no is required'}},
            status=status.HTTP_400_BAD_REQUEST
        )

    quotation = get_object_or_404(_quotation_queryset(), quotation_number=serializer.validated_data['quotation_no'])
    number = quotation.customer.messaging_number if quotation.customer else ''
    if not number:
        return Response(
            {'error': True, 'data': {'message': 'Customer has no phone or WhatsApp number'}},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        message_id = services.send_whatsapp(quotation, number)
    except services.WhatsAppNotConfigured as e:
        return Response({'error': True, 'data': {'message': str(e)}}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    except services.WhatsAppDeliveryError as e:
        return Response({'error': True, 'data': {'message': str(e)}}, status=status.HTTP_502_BAD_GATEWAY)

    create_audit_log(
        request=request,
        action='quotation_send',
        model_name='Quotation',
        object_id=str(quotation.id),
        object_name=quotation.customer.name,
        object_reference=quotation.quotation_number,
        changes={'to': number, 'message_id': message_id}
    )
    data = {'message': f'Quotation {quotation.quotation_number} sent to {number}'}
    if message_id:
        data['message_id'] = message_id
    return Response({'error': False, 'data': data})
