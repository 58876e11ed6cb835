import logging

from django.core.files.base import ContentFile
from django.db.models import Count, Q, F
from django.http import HttpResponse, FileResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erpdesk.core.exceptions import error_response_body
from erpdesk.core.utils import create_audit_log, detail_response, paginated_response, parse_positive_int
from .filters import ProductFilter, CompatibilityGroupFilter
from .label_export import AVAILABLE_FIELDS, TEMPLATES, CUSTOM_TEMPLATE, LabelExportWizard, LabelExportError
from .models import (
    Category, Brand, Tag, Product, CarMaker, CarModel, CarVariant, CompatibilityGroup, ExportJob,
)
from .serializers import (
    CategorySerializer, BrandSerializer, TagSerializer, ProductSerializer, ProductListSerializer,
    CarMakerSerializer, CarModelSerializer, CarVariantSerializer, CompatibilityGroupSerializer,
    ExportJobSerializer, LabelExportRequestSerializer,
)

logger = logging.getLogger(__name__)


def _create(request, serializer_class, context=None):
    serializer = serializer_class(data=request.data, context=context or {'request': request})
    if serializer.is_valid():
        instance = serializer.save()
        return instance, Response(serializer.data, status=status.HTTP_201_CREATED)
    return None, Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        queryset = Category.objects.select_related('parent')
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        parent = request.query_params.get('parent')
        if parent == 'root':
            queryset = queryset.filter(parent__isnull=True)
        elif parent:
            queryset = queryset.filter(parent_id=parent)
        return Response(CategorySerializer(queryset, many=True).data)
    return _create(request, CategorySerializer)[1]


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    return detail_response(request, get_object_or_404(Category, pk=pk), CategorySerializer)


# Brand views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def brand_list_create(request):
    """List all brands or create a new brand"""
    if request.method == 'GET':
        queryset = Brand.objects.all()
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        return Response(BrandSerializer(queryset, many=True, context={'request': request}).data)
    return _create(request, BrandSerializer)[1]


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def brand_detail(request, pk):
    """Retrieve, update or delete a brand"""
    return detail_response(request, get_object_or_404(Brand, pk=pk), BrandSerializer)


# Tag views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def tag_list_create(request):
    if request.method == 'GET':
        return Response(TagSerializer(Tag.objects.all(), many=True).data)
    return _create(request, TagSerializer)[1]


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def tag_detail(request, pk):
    return detail_response(request, get_object_or_404(Tag, pk=pk), TagSerializer)


# Product views
def product_summary():
    """Catalog-wide counters shown above the product list"""
    totals = Product.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(is_active=True)),
        inactive=Count('id', filter=Q(is_active=False)),
        low_stock=Count('id', filter=Q(stock__lte=F('low_stock_threshold'))),
    )
    return {key: value or 0 for key, value in totals.items()}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.select_related('category', 'brand', 'compatibility_group')

        filterset = ProductFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs
        if 'ordering' not in request.query_params:
            queryset = queryset.order_by('-updated_at', '-created_at')

        response = paginated_response(request, queryset, ProductListSerializer, default_page_size=20)
        response.data['summary'] = product_summary()
        return response
    else:  # POST
        serializer = ProductSerializer(
            data=request.data,
            context={'request': request, 'additional_images': request.FILES.getlist('additional_images')}
        )
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=str(product.id),
                object_name=product.title,
                object_reference=product.sku,
                changes={'price': str(product.price), 'compatibility_mode': product.compatibility_mode}
            )
            logger.info(f"Product {product.sku} created by {request.user}")
            return Response(ProductSerializer(product, context={'request': request}).data, status=status.HTTP_201_CREATED)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(
        Product.objects.select_related('category', 'brand', 'compatibility_group').prefetch_related('tags', 'compatible_variants', 'additional_images'),
        pk=pk
    )

    if request.method == 'GET':
        return Response(ProductSerializer(product, context={'request': request}).data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = product.price
        serializer = ProductSerializer(
            product,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'request': request, 'additional_images': request.FILES.getlist('additional_images')}
        )
        if serializer.is_valid():
            product = serializer.save()
            if product.price != old_price:
                create_audit_log(
                    request=request,
                    action='price_change',
                    model_name='Product',
                    object_id=str(product.id),
                    object_name=product.title,
                    object_reference=product.sku,
                    changes={'old_price': str(old_price), 'new_price': str(product.price)}
                )
            return Response(ProductSerializer(product, context={'request': request}).data)
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=str(product.id),
            object_name=product.title,
            object_reference=product.sku,
        )
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_compatible(request):
    """Products that fit a vehicle variant"""
    variant_id = request.query_params.get('variant')
    if not variant_id:
        return Response({'error': True, 'message': 'variant is required'}, status=status.HTTP_400_BAD_REQUEST)
    variant = get_object_or_404(CarVariant, pk=variant_id)
    queryset = Product.objects.filter(is_active=True).select_related('category', 'brand').compatible_with(variant)
    return paginated_response(request, queryset.order_by('title'), ProductListSerializer, default_page_size=50)


# Vehicle views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def car_maker_list_create(request):
    if request.method == 'GET':
        queryset = CarMaker.objects.all()
        if request.query_params.get('is_active') in ('true', 'false'):
            queryset = queryset.filter(is_active=request.query_params['is_active'] == 'true')
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        return Response(CarMakerSerializer(queryset, many=True, context={'request': request}).data)
    return _create(request, CarMakerSerializer)[1]


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def car_maker_detail(request, pk):
    return detail_response(request, get_object_or_404(CarMaker, pk=pk), CarMakerSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def car_model_list_create(request):
    if request.method == 'GET':
        queryset = CarModel.objects.select_related('car_maker')
        maker_id = request.query_params.get('maker_id') or request.query_params.get('car_maker')
        if maker_id:
            queryset = queryset.filter(car_maker_id=maker_id)
        return Response(CarModelSerializer(queryset, many=True, context={'request': request}).data)
    return _create(request, CarModelSerializer)[1]


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def car_model_detail(request, pk):
    return detail_response(request, get_object_or_404(CarModel, pk=pk), CarModelSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def car_variant_list_create(request):
    if request.method == 'GET':
        queryset = CarVariant.objects.select_related('model', 'car_maker')
        model_id = request.query_params.get('model_id')
        maker_id = request.query_params.get('car_maker_id')
        fuel = request.query_params.get('fuel_engine')
        year = request.query_params.get('year')
        if model_id:
            queryset = queryset.filter(model_id=model_id)
        if maker_id:
            queryset = queryset.filter(car_maker_id=maker_id)
        if fuel:
            queryset = queryset.filter(fuel_engine=fuel)
        if year and year.isdigit():
            year = int(year)
            queryset = queryset.filter(
                Q(year_start__isnull=True) | Q(year_start__lte=year),
                Q(year_end__isnull=True) | Q(year_end__gte=year),
            )
        return Response(CarVariantSerializer(queryset, many=True).data)
    return _create(request, CarVariantSerializer)[1]


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def car_variant_detail(request, pk):
    return detail_response(request, get_object_or_404(CarVariant, pk=pk), CarVariantSerializer)


# Compatibility group views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def compatibility_group_list_create(request):
    """List all compatibility groups or create a new group"""
    if request.method == 'GET':
        queryset = CompatibilityGroup.objects.select_related('car_maker').prefetch_related('variants', 'variants__model', 'variants__car_maker')
        queryset = CompatibilityGroupFilter(request.query_params, queryset=queryset).qs
        return paginated_response(request, queryset.order_by('name'), CompatibilityGroupSerializer, default_page_size=50)

    group, response = _create(request, CompatibilityGroupSerializer)
    if group is not None:
        create_audit_log(
            request=request,
            action='create',
            model_name='CompatibilityGroup',
            object_id=str(group.id),
            object_name=group.name,
            changes={'variants': list(group.variants.values_list('id', flat=True))}
        )
    return response


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def compatibility_group_detail(request, pk):
    """Retrieve, update or delete a compatibility group"""
    group = get_object_or_404(CompatibilityGroup, pk=pk)
    if request.method == 'DELETE' and group.products.exists():
        return Response(
            {'error': True, 'message': 'Group is mapped to products; unmap them before deleting'},
            status=status.HTTP_400_BAD_REQUEST
        )
    return detail_response(request, group, CompatibilityGroupSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def compatibility_group_products(request, pk):
    """Products mapped to a compatibility group"""
    group = get_object_or_404(CompatibilityGroup, pk=pk)
    queryset = group.products.select_related('category', 'brand').order_by('title')
    return paginated_response(request, queryset, ProductListSerializer, default_page_size=50)


# Label export views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def label_fields(request):
    """Columns and templates offered by the label export wizard"""
    return Response({
        'fields': [{'id': field_id, 'label': label} for field_id, label in AVAILABLE_FIELDS.items()],
        'templates': [
            {'id': template_id, 'name': template['name'], 'fields': template['fields']}
            for template_id, template in TEMPLATES.items()
        ],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def label_export(request):
    """Build the label CSV from the wizard payload and record it in export history"""
    serializer = LabelExportRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(error_response_body(serializer.errors), status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    wizard = LabelExportWizard()
    for item in data['items']:
        wizard.add_product(item['product'], item.get('quantity', 1))
    if data['template'] == CUSTOM_TEMPLATE or data.get('fields'):
        wizard.set_fields(data.get('fields') or [])
    else:
        wizard.select_template(data['template'])
    wizard.go_to(2)
    wizard.go_to(3)

    job = ExportJob.objects.create(
        kind='labels',
        status='PROGRESS',
        created_by=request.user,
        parameters={
            'template': wizard.template_id,
            'fields': wizard.fields,
            'items': [{'product': item.product.pk, 'quantity': item.quantity} for item in wizard.items],
        },
    )
    try:
        content = wizard.to_csv()
    except LabelExportError as e:
        job.status = 'FAILURE'
        job.error = str(e)
        job.completed_at = timezone.now()
        job.save(update_fields=['status', 'error', 'completed_at'])
        return Response({'error': True, 'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    file_name = wizard.file_name()
    job.file.save(file_name, ContentFile(content.encode('utf-8')), save=False)
    job.file_name = file_name
    job.row_count = len(wizard.items)
    job.status = 'SUCCESS'
    job.completed_at = timezone.now()
    job.save()

    create_audit_log(
        request=request,
        action='export',
        model_name='ExportJob',
        object_id=str(job.id),
        object_name=file_name,
        changes={'rows': job.row_count, 'template': wizard.template_id}
    )

    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{file_name}"'
    response['X-Export-Job-Id'] = str(job.id)
    return response


# Export history views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_history_list(request):
    """Past exports, newest first (limit/offset paging)"""
    queryset = ExportJob.objects.select_related('created_by')
    status_filter = request.query_params.get('status')
    format_filter = request.query_params.get('format')
    kind_filter = request.query_params.get('kind')
    if status_filter:
        queryset = queryset.filter(status=status_filter.upper())
    if format_filter:
        queryset = queryset.filter(format=format_filter.lower())
    if kind_filter:
        queryset = queryset.filter(kind=kind_filter)

    limit = parse_positive_int(request.query_params.get('limit'), 20, maximum=100)
    try:
        offset = max(0, int(request.query_params.get('offset', 0)))
    except (TypeError, ValueError):
        offset = 0

    total = queryset.count()
    page = queryset.order_by('-created_at')[offset:offset + limit]
    return Response({
        'results': ExportJobSerializer(page, many=True).data,
        'count': total,
        'limit': limit,
        'offset': offset,
    })


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def export_history_detail(request, pk):
    job = get_object_or_404(ExportJob, pk=pk)
    if request.method == 'GET':
        return Response(ExportJobSerializer(job).data)
    if job.file:
        job.file.delete(save=False)
    job.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_history_download(request, pk):
    job = get_object_or_404(ExportJob, pk=pk)
    if job.status != 'SUCCESS' or not job.file:
        return Response({'error': True, 'message': 'Export file is not available'}, status=status.HTTP_404_NOT_FOUND)
    if job.is_expired:
        return Response({'error': True, 'message': 'Export file has expired'}, status=status.HTTP_410_GONE)
    return FileResponse(job.file.open('rb'), as_attachment=True, filename=job.file_name or None, content_type='text/csv')
