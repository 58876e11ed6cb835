from django.db import transaction
from django.utils import timezone
from rest_framework import serializers
from erpdesk.catalog.models import Product, CarMaker, CarModel, CarVariant
from erpdesk.parties.models import Customer
from .models import Quotation, QuotationItem
from . import services


class QuotationItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)
    product_title = serializers.CharField(source='product.title', read_only=True, default=None)
    product_sku = serializers.CharField(source='product.sku', read_only=True, default=None)

    class Meta:
        model = QuotationItem
        fields = ['id', 'product_id', 'product_title', 'product_sku', 'item_name', 'quantity', 'price', 'total']


class QuotationItemWriteSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(source='product', queryset=Product.objects.all())
    item_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, default=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Price cannot be negative")
        return value


class QuotationSerializer(serializers.ModelSerializer):
    """Quotation with items; items arrive via context['items_data'] like purchase bills"""
    customer_id = serializers.PrimaryKeyRelatedField(
        source='customer', queryset=Customer.objects.select_related('customer_group'), required=False, allow_null=True
    )
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    customer_phone = serializers.CharField(source='customer.messaging_number', read_only=True, default=None)
    vehicle_maker_id = serializers.PrimaryKeyRelatedField(
        source='vehicle_maker', queryset=CarMaker.objects.all(), required=False, allow_null=True
    )
    vehicle_maker_name = serializers.CharField(source='vehicle_maker.name', read_only=True, default=None)
    vehicle_model_id = serializers.PrimaryKeyRelatedField(
        source='vehicle_model', queryset=CarModel.objects.all(), required=False, allow_null=True
    )
    vehicle_model_name = serializers.CharField(source='vehicle_model.name', read_only=True, default=None)
    vehicle_variant_id = serializers.PrimaryKeyRelatedField(
        source='vehicle_variant', queryset=CarVariant.objects.all(), required=False, allow_null=True
    )
    vehicle_variant_name = serializers.CharField(source='vehicle_variant.name', read_only=True, default=None)
    items = QuotationItemSerializer(many=True, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Quotation
        fields = [
            'id', 'quotation_number', 'customer_id', 'customer_name', 'customer_phone',
            'vehicle_maker_id', 'vehicle_maker_name', 'vehicle_model_id', 'vehicle_model_name',
            'vehicle_variant_id', 'vehicle_variant_name', 'vehicle_year', 'status', 'notes',
            'total_amount', 'items', 'created_by_username', 'sent_at', 'created_at', 'updated_at'
        ]
        read_only_fields = ['quotation_number', 'total_amount', 'sent_at', 'created_at', 'updated_at']

    def validate_vehicle_year(self, value):
        if value is not None and not 1950 <= value <= timezone.localdate().year + 1:
            raise serializers.ValidationError("Enter a valid vehicle year")
        return value

    def validate(self, attrs):
        maker = attrs.get('vehicle_maker', getattr(self.instance, 'vehicle_maker', None))
        model = attrs.get('vehicle_model', getattr(self.instance, 'vehicle_model', None))
        variant = attrs.get('vehicle_variant', getattr(self.instance, 'vehicle_variant', None))
        if model and maker and model.car_maker_id != maker.id:
            raise serializers.ValidationError({'vehicle_model_id': ['Model does not belong to the selected maker']})
        if variant and model and variant.model_id != model.id:
            raise serializers.ValidationError({'vehicle_variant_id': ['Variant does not belong to the selected model']})

        items_data = self.context.get('items_data')
        if items_data is None and self.instance is None:
            raise serializers.ValidationError({'items': ['At least one item is required']})
        if items_data is not None:
            if not items_data:
                raise serializers.ValidationError({'items': ['At least one item is required']})
            item_serializer = QuotationItemWriteSerializer(data=items_data, many=True)
            if not item_serializer.is_valid():
                raise serializers.ValidationError({'items': item_serializer.errors})
            self._items = item_serializer.validated_data
        else:
            self._items = None
        return attrs

    def create(self, validated_data):
        with transaction.atomic():
            quotation = Quotation.objects.create(quotation_number=services.next_quotation_number(), **validated_data)
            services.create_items(quotation, self._items)
            return services.refresh_total(quotation)

    def update(self, instance, validated_data):
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if self._items is not None:
                services.replace_items(instance, self._items)
        instance._prefetched_objects_cache = {}
        return instance


class SendWhatsAppSerializer(serializers.Serializer):
    quotation_no = serializers.CharField(error_messages={'required': 'quotation_no is required', 'blank': 'quotation_no is required'})
