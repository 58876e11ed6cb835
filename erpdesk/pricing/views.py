import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erpdesk.core.exceptions import error_response_body
from erpdesk.core.utils import create_audit_log, paginated_response
from .filters import CustomerProductPriceFilter
from .models import CustomerProductPrice, CustomerProductPriceHistory
from .serializers import (
    CustomerProductPriceSerializer, CustomerProductPriceHistorySerializer, PriceResolveSerializer,
)
from .services import resolve_price

logger = logging.getLogger(__name__)


def _price_changes(price):
    return {
        'selling_price': str(price.selling_price) if price.selling_price is not None else None,
        'discount_percentage': str(price.discount_percentage) if price.discount_percentage is not None else None,
        'tiers': price.price_tiers.count(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_price_list_create(request):
    """List customer prices or create one with its tiers"""
    if request.method == 'GET':
        queryset = CustomerProductPrice.objects.select_related('customer', 'product').prefetch_related('price_tiers')
        filterset = CustomerProductPriceFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs, CustomerProductPriceSerializer, default_page_size=20)
    else:  # POST
        serializer = CustomerProductPriceSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            price = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='CustomerProductPrice',
                object_id=str(price.id),
                object_name=price.product.title,
                object_reference=price.customer.name,
                changes=_price_changes(price)
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_price_detail(request, pk):
    price = get_object_or_404(
        CustomerProductPrice.objects.select_related('customer', 'product').prefetch_related('price_tiers'),
        pk=pk
    )

    if request.method == 'GET':
        return Response(CustomerProductPriceSerializer(price).data)
    elif request.method in ('PUT', 'PATCH'):
        before = _price_changes(price)
        serializer = CustomerProductPriceSerializer(
            price, data=request.data, partial=request.method == 'PATCH', context={'request': request}
        )
        if serializer.is_valid():
            price = serializer.save()
            create_audit_log(
                request=request,
                action='price_change',
                model_name='CustomerProductPrice',
                object_id=str(price.id),
                object_name=price.product.title,
                object_reference=price.customer.name,
                changes={'old': before, 'new': _price_changes(price)}
            )
            return Response(serializer.data)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(
            request=request,
            action='delete',
            model_name='CustomerProductPrice',
            object_id=str(price.id),
            object_name=price.product.title,
            object_reference=price.customer.name,
        )
        price.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_price_history(request):
    queryset = CustomerProductPriceHistory.objects.select_related('customer', 'product', 'changed_by')
    customer_id = request.query_params.get('customer')
    product_id = request.query_params.get('product')
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)
    if product_id:
        queryset = queryset.filter(product_id=product_id)
    return paginated_response(request, queryset, CustomerProductPriceHistorySerializer, default_page_size=50)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_price_resolve(request):
    """Effective unit price for ?product=&customer=&quantity="""
    serializer = PriceResolveSerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    result = resolve_price(data.get('customer'), data['product'], data['quantity'])
    return Response({
        'product_id': data['product'].id,
        'customer_id': data['customer'].id if data.get('customer') else None,
        'unit_price': str(result['unit_price']),
        'source': result['source'],
        'tier_id': result['tier_id'],
        'quantity': str(result['quantity']),
        'line_total': str(result['line_total']),
    })
