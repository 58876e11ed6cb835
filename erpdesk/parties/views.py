import logging

from django.db.models import Q, ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erpdesk.core.exceptions import error_response_body
from erpdesk.core.utils import create_audit_log, detail_response
from .models import Vendor, VendorContact, VendorAddress, VendorBankDetail, CustomerGroup, Customer
from .serializers import (
    VendorSerializer, VendorListSerializer, VendorContactSerializer, VendorAddressSerializer,
    VendorBankDetailSerializer, CustomerGroupSerializer, CustomerSerializer,
)

logger = logging.getLogger(__name__)


# Vendor views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_list_create(request):
    """List all vendors or create a new vendor"""
    if request.method == 'GET':
        queryset = Vendor.objects.all().order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(gst_number__icontains=search)
            )
        is_active = request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            queryset = queryset.filter(is_active=is_active == 'true')
        priority = request.query_params.get('priority')
        if priority:
            queryset = queryset.filter(priority=priority)

        serializer_class = VendorSerializer if request.query_params.get('expand') == 'true' else VendorListSerializer
        return Response(serializer_class(queryset, many=True).data)
    else:
        serializer = VendorSerializer(data=request.data)
        if serializer.is_valid():
            vendor = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Vendor',
                object_id=str(vendor.id),
                object_name=vendor.name,
                changes={'email': vendor.email, 'gst_number': vendor.gst_number}
            )
            logger.info(f"Vendor {vendor.name} created by {request.user}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_detail(request, pk):
    """Retrieve, update or delete a vendor"""
    vendor = get_object_or_404(Vendor.objects.prefetch_related('contacts', 'addresses', 'bank_details'), pk=pk)

    if request.method == 'DELETE':
        try:
            vendor.delete()
        except ProtectedError:
            return Response(
                {'error': True, 'message': 'Vendor has purchase bills or payments; deactivate it instead'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(request=request, action='delete', model_name='Vendor', object_id=str(pk), object_name=vendor.name)
        return Response(status=status.HTTP_204_NO_CONTENT)
    return detail_response(request, vendor, VendorSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_contact_list_create(request):
    if request.method == 'GET':
        queryset = VendorContact.objects.all()
        vendor_id = request.query_params.get('vendor')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        return Response(VendorContactSerializer(queryset, many=True).data)
    serializer = VendorContactSerializer(data=request.data)
    if serializer.is_valid():
        if 'vendor' not in serializer.validated_data:
            return Response({'error': True, 'message': 'vendor is required', 'vendor': ['This field is required.']},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_contact_detail(request, pk):
    return detail_response(request, get_object_or_404(VendorContact, pk=pk), VendorContactSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_address_list_create(request):
    if request.method == 'GET':
        queryset = VendorAddress.objects.all()
        vendor_id = request.query_params.get('vendor')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        return Response(VendorAddressSerializer(queryset, many=True).data)
    serializer = VendorAddressSerializer(data=request.data)
    if serializer.is_valid():
        if 'vendor' not in serializer.validated_data:
            return Response({'error': True, 'message': 'vendor is required', 'vendor': ['This field is required.']},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_address_detail(request, pk):
    return detail_response(request, get_object_or_404(VendorAddress, pk=pk), VendorAddressSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_bank_detail_list_create(request):
    if request.method == 'GET':
        queryset = VendorBankDetail.objects.all()
        vendor_id = request.query_params.get('vendor')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        return Response(VendorBankDetailSerializer(queryset, many=True).data)
    serializer = VendorBankDetailSerializer(data=request.data)
    if serializer.is_valid():
        if 'vendor' not in serializer.validated_data:
            return Response({'error': True, 'message': 'vendor is required', 'vendor': ['This field is required.']},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_bank_detail_detail(request, pk):
    return detail_response(request, get_object_or_404(VendorBankDetail, pk=pk), VendorBankDetailSerializer)


# CustomerGroup views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_group_list_create(request):
    """List all customer groups or create a new group"""
    if request.method == 'GET':
        queryset = CustomerGroup.objects.all()
        is_active = request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            queryset = queryset.filter(is_active=is_active == 'true')
        return Response(CustomerGroupSerializer(queryset, many=True).data)
    else:
        serializer = CustomerGroupSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_group_detail(request, pk):
    """Retrieve, update or delete a customer group"""
    return detail_response(request, get_object_or_404(CustomerGroup, pk=pk), CustomerGroupSerializer)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.select_related('customer_group').order_by('-created_at')
        search = request.query_params.get('search', None)
        customer_group = request.query_params.get('customer_group', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        if customer_group:
            queryset = queryset.filter(customer_group_id=customer_group)
        return Response(CustomerSerializer(queryset, many=True).data)
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    return detail_response(request, get_object_or_404(Customer, pk=pk), CustomerSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_search_by_phone(request):
    """Exact lookup of a customer by phone number"""
    phone = (request.query_params.get('phone') or '').strip()
    if not phone:
        return Response({'error': True, 'message': 'phone is required'}, status=status.HTTP_400_BAD_REQUEST)
    customer = Customer.objects.filter(Q(phone=phone) | Q(whatsapp_number=phone)).first()
    if customer is None:
        return Response({'error': True, 'message': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(CustomerSerializer(customer).data)
