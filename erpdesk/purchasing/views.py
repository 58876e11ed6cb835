import logging

from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erpdesk.core.exceptions import error_response_body
from erpdesk.core.utils import create_audit_log, paginated_response, parse_positive_int, split_nested_list
from erpdesk.parties.models import Vendor
from . import services
from .filters import PurchaseBillFilter, PurchasePaymentFilter, VendorProductPriceFilter
from .models import PurchaseBill, PurchasePayment, VendorProductPrice
from .serializers import (
    PurchaseBillSerializer, PurchaseBillListSerializer, PurchasePaymentSerializer,
    PaymentRequestSerializer, PaymentSummariesRequestSerializer,
    VendorProductPriceSerializer, VendorProductPriceHistorySerializer,
)

logger = logging.getLogger(__name__)


def _bill_queryset():
    return PurchaseBill.objects.select_related('vendor', 'created_by').annotate(items_count=Count('items'))


# Bill views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def bill_list_create(request):
    """List purchase bills or create a bill with its items"""
    if request.method == 'GET':
        filterset = PurchaseBillFilter(request.query_params, queryset=_bill_queryset())
        queryset = filterset.qs.order_by('-bill_date', '-id')
        return paginated_response(request, queryset, PurchaseBillListSerializer, default_page_size=20)
    else:  # POST
        data, items_data = split_nested_list(request, 'items')
        serializer = PurchaseBillSerializer(data=data, context={'items_data': items_data, 'request': request})
        if serializer.is_valid():
            bill = serializer.save(created_by=request.user)
            create_audit_log(
                request=request,
                action='bill_create',
                model_name='PurchaseBill',
                object_id=str(bill.id),
                object_name=bill.vendor.name,
                object_reference=bill.bill_number,
                changes={'total_amount': str(bill.total_amount), 'items': bill.items.count()}
            )
            logger.info(f"Bill {bill.bill_number} created for vendor {bill.vendor_id} by {request.user}")
            return Response(PurchaseBillSerializer(bill).data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def bill_detail(request, pk):
    """Retrieve, update or delete a purchase bill"""
    bill = get_object_or_404(
        PurchaseBill.objects.select_related('vendor', 'created_by').prefetch_related('items__product', 'allocations__payment'),
        pk=pk
    )

    if request.method == 'GET':
        return Response(PurchaseBillSerializer(bill).data)
    elif request.method in ('PUT', 'PATCH'):
        data, items_data = split_nested_list(request, 'items')
        serializer = PurchaseBillSerializer(
            bill,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            old_total = bill.total_amount
            bill = serializer.save()
            create_audit_log(
                request=request,
                action='bill_update',
                model_name='PurchaseBill',
                object_id=str(bill.id),
                object_name=bill.vendor.name,
                object_reference=bill.bill_number,
                changes={
                    'total_amount': {'old': str(old_total), 'new': str(bill.total_amount)},
                    'items_replaced': items_data is not None,
                }
            )
            return Response(PurchaseBillSerializer(bill).data)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        bill_number = bill.bill_number
        released = [str(amount) for amount in bill.allocations.values_list('amount', flat=True)]
        bill.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='PurchaseBill',
            object_id=str(pk),
            object_reference=bill_number,
            changes={'released_allocations': released}
        )
        logger.info(f"Bill {bill_number} deleted by {request.user}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bill_recent(request):
    limit = parse_positive_int(request.query_params.get('limit'), 5, maximum=50)
    bills = _bill_queryset().order_by('-created_at', '-id')[:limit]
    return Response(PurchaseBillListSerializer(bills, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bill_search(request):
    """Bills whose number or vendor name contains `q`"""
    query = (request.query_params.get('q') or '').strip()
    if not query:
        return Response([])
    bills = _bill_queryset().filter(
        Q(bill_number__icontains=query) | Q(vendor__name__icontains=query)
    ).order_by('-bill_date', '-id')[:20]
    return Response(PurchaseBillListSerializer(bills, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bill_recalculate(request, pk):
    bill = get_object_or_404(PurchaseBill, pk=pk)
    before = {'total_amount': str(bill.total_amount), 'outstanding_amount': str(bill.outstanding_amount), 'status': bill.status}
    bill = services.recalculate_bill(bill)
    create_audit_log(
        request=request,
        action='bill_recalculate',
        model_name='PurchaseBill',
        object_id=str(bill.id),
        object_reference=bill.bill_number,
        changes={
            'before': before,
            'after': {'total_amount': str(bill.total_amount), 'outstanding_amount': str(bill.outstanding_amount), 'status': bill.status},
        }
    )
    return Response(PurchaseBillSerializer(bill).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bill_add_payment(request, pk):
    """Pay a bill; anything above its outstanding stays unallocated on the vendor"""
    bill = get_object_or_404(PurchaseBill.objects.select_related('vendor'), pk=pk)
    serializer = PaymentRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    payment, bill = services.record_bill_payment(
        bill,
        data['amount'],
        payment_date=data.get('payment_date'),
        mode=data.get('mode'),
        note=data.get('note', ''),
        user=request.user,
        attachment=data.get('attachment'),
    )
    create_audit_log(
        request=request,
        action='payment_add',
        model_name='PurchasePayment',
        object_id=str(payment.id),
        object_name=bill.vendor.name,
        object_reference=bill.bill_number,
        changes={'amount': str(payment.amount), 'mode': payment.mode, 'allocated': str(payment.allocated_amount)}
    )
    return Response({
        'payment': PurchasePaymentSerializer(payment).data,
        'bill': PurchaseBillSerializer(bill).data,
        'allocated_amount': str(payment.allocated_amount),
        'unallocated_amount': str(payment.unallocated_amount),
    }, status=status.HTTP_201_CREATED)


# Payment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def payment_list_create(request):
    if request.method == 'GET':
        queryset = PurchasePayment.objects.select_related('vendor', 'bill', 'created_by').prefetch_related('allocations__bill')
        filterset = PurchasePaymentFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-payment_date', '-id')
        return paginated_response(request, queryset, PurchasePaymentSerializer, default_page_size=20)
    else:  # POST
        serializer = PurchasePaymentSerializer(data=request.data)
        if serializer.is_valid():
            payment = serializer.save(created_by=request.user)
            create_audit_log(
                request=request,
                action='payment_add',
                model_name='PurchasePayment',
                object_id=str(payment.id),
                object_name=payment.vendor.name,
                object_reference=payment.bill.bill_number if payment.bill else None,
                changes={'amount': str(payment.amount), 'mode': payment.mode, 'allocated': str(payment.allocated_amount)}
            )
            return Response(PurchasePaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def payment_detail(request, pk):
    payment = get_object_or_404(PurchasePayment.objects.select_related('vendor', 'bill'), pk=pk)
    if request.method == 'GET':
        return Response(PurchasePaymentSerializer(payment).data)

    vendor_name = payment.vendor.name
    amount = str(payment.amount)
    bill_ids = services.delete_payment(payment)
    create_audit_log(
        request=request,
        action='payment_delete',
        model_name='PurchasePayment',
        object_id=str(pk),
        object_name=vendor_name,
        changes={'amount': amount, 'released_bills': bill_ids}
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


# Vendor payment views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_payment_summary(request, pk):
    vendor = get_object_or_404(Vendor, pk=pk)
    return Response(services.vendor_payment_summary(vendor))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vendor_payment_summaries(request):
    """Summaries for several vendors at once, keyed by vendor id"""
    serializer = PaymentSummariesRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    return Response(services.payment_summaries(serializer.validated_data['vendor_ids']))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_bills(request, pk):
    vendor = get_object_or_404(Vendor, pk=pk)
    queryset = _bill_queryset().filter(vendor=vendor)
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    return paginated_response(request, queryset.order_by('-bill_date', '-id'), PurchaseBillListSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_payments(request, pk):
    vendor = get_object_or_404(Vendor, pk=pk)
    queryset = PurchasePayment.objects.filter(vendor=vendor).select_related('vendor', 'bill').prefetch_related('allocations__bill')
    return paginated_response(request, queryset.order_by('-payment_date', '-id'), PurchasePaymentSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_outstanding_bills(request, pk):
    """Unpaid bills, oldest first (the order payments are allocated in)"""
    vendor = get_object_or_404(Vendor, pk=pk)
    bills = _bill_queryset().filter(vendor=vendor, outstanding_amount__gt=0).order_by('bill_date', 'id')
    return Response(PurchaseBillListSerializer(bills, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vendor_add_payment(request, pk):
    """Vendor-level payment allocated FIFO to outstanding bills"""
    vendor = get_object_or_404(Vendor, pk=pk)
    serializer = PaymentRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    payment, allocations = services.record_vendor_payment(
        vendor,
        data['amount'],
        payment_date=data.get('payment_date'),
        mode=data.get('mode'),
        note=data.get('note', ''),
        user=request.user,
        attachment=data.get('attachment'),
    )
    create_audit_log(
        request=request,
        action='payment_add',
        model_name='PurchasePayment',
        object_id=str(payment.id),
        object_name=vendor.name,
        changes={
            'amount': str(payment.amount),
            'mode': payment.mode,
            'allocations': [{'bill': a.bill_id, 'amount': str(a.amount)} for a in allocations],
        }
    )
    return Response({
        'payment': PurchasePaymentSerializer(payment).data,
        'allocations_count': len(allocations),
        'summary': services.vendor_payment_summary(vendor),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vendor_allocate(request, pk):
    """Apply unallocated payment balances to outstanding bills"""
    vendor = get_object_or_404(Vendor, pk=pk)
    allocations = services.allocate_unallocated(vendor)
    allocated = sum((a.amount for a in allocations), services.ZERO)
    if allocations:
        create_audit_log(
            request=request,
            action='payment_allocate',
            model_name='Vendor',
            object_id=str(vendor.id),
            object_name=vendor.name,
            changes={'allocated': str(allocated), 'bills': sorted({a.bill_id for a in allocations})}
        )
    return Response({
        'allocations_count': len(allocations),
        'allocated_amount': str(allocated),
        'summary': services.vendor_payment_summary(vendor),
    })


# Vendor product price views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_price_list_create(request):
    if request.method == 'GET':
        queryset = VendorProductPrice.objects.select_related('vendor', 'product')
        filterset = VendorProductPriceFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs, VendorProductPriceSerializer, default_page_size=50)
    else:  # POST
        serializer = VendorProductPriceSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            price = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='VendorProductPrice',
                object_id=str(price.id),
                object_name=price.product.title,
                object_reference=price.vendor.name,
                changes={'purchase_price': str(price.purchase_price)}
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_price_detail(request, pk):
    price = get_object_or_404(VendorProductPrice.objects.select_related('vendor', 'product'), pk=pk)

    if request.method == 'GET':
        return Response(VendorProductPriceSerializer(price).data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = price.purchase_price
        serializer = VendorProductPriceSerializer(
            price, data=request.data, partial=request.method == 'PATCH', context={'request': request}
        )
        if serializer.is_valid():
            price = serializer.save()
            if price.purchase_price != old_price:
                create_audit_log(
                    request=request,
                    action='price_change',
                    model_name='VendorProductPrice',
                    object_id=str(price.id),
                    object_name=price.product.title,
                    object_reference=price.vendor.name,
                    changes={'purchase_price': {'old': str(old_price), 'new': str(price.purchase_price)}}
                )
            return Response(serializer.data)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(
            request=request,
            action='delete',
            model_name='VendorProductPrice',
            object_id=str(price.id),
            object_name=price.product.title,
            object_reference=price.vendor.name,
        )
        price.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_price_history(request, pk):
    price = get_object_or_404(VendorProductPrice, pk=pk)
    history = price.history.select_related('changed_by')
    return Response(VendorProductPriceHistorySerializer(history, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vendor_price_export(request):
    """CSV of vendor prices (same filters as the list), recorded in export history"""
    filters = request.data if request.data else request.query_params
    queryset = VendorProductPriceFilter(filters, queryset=VendorProductPrice.objects.all()).qs
    job, content = services.export_vendor_prices(
        queryset,
        user=request.user,
        parameters={key: str(value) for key, value in filters.items()},
    )
    create_audit_log(
        request=request,
        action='export',
        model_name='ExportJob',
        object_id=str(job.id),
        object_name=job.file_name,
        changes={'rows': job.row_count, 'kind': job.kind}
    )
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{job.file_name}"'
    response['X-Export-Job-Id'] = str(job.id)
    return response


# Dashboard and reports
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_dashboard(request):
    return Response(services.purchase_dashboard())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_reports(request):
    """Totals, monthly figures, top vendors and payment methods for month/quarter/year"""
    period = request.query_params.get('period', 'month')
    return Response(services.purchase_report(period))
