from django.db import transaction
from rest_framework import serializers
from erpdesk.catalog.models import Product
from erpdesk.parties.models import Customer
from .models import CustomerProductPrice, CustomerProductPriceTier, CustomerProductPriceHistory
from .services import record_price_history


def _check_percentage(value, label):
    if value is not None and (value < 0 or value > 100):
        raise serializers.ValidationError(f"{label} must be between 0 and 100")
    return value


class CustomerProductPriceTierSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomerProductPriceTier
        fields = [
            'id', 'min_quantity', 'max_quantity', 'tier_price', 'tier_discount_percentage',
            'priority', 'is_active'
        ]

    def validate_min_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Minimum quantity must be greater than 0")
        return value

    def validate_tier_discount_percentage(self, value):
        return _check_percentage(value, 'Tier discount')

    def validate_tier_price(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Tier price must be greater than 0")
        return value

    def validate(self, attrs):
        if attrs.get('tier_price') is None and attrs.get('tier_discount_percentage') is None:
            raise serializers.ValidationError("Enter a tier price or a tier discount percentage")
        max_quantity = attrs.get('max_quantity')
        if max_quantity is not None and max_quantity < attrs.get('min_quantity', 0):
            raise serializers.ValidationError({'max_quantity': ['Maximum quantity cannot be less than minimum quantity']})
        return attrs


class CustomerProductPriceSerializer(serializers.ModelSerializer):
    """Customer price with its quantity tiers; a `price_tiers` list that is sent replaces the stored tiers"""
    customer_id = serializers.PrimaryKeyRelatedField(source='customer', queryset=Customer.objects.all())
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(source='product', queryset=Product.objects.all())
    product_title = serializers.CharField(source='product.title', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_price = serializers.DecimalField(source='product.price', max_digits=12, decimal_places=2, read_only=True)
    price_tiers = CustomerProductPriceTierSerializer(many=True, required=False)

    class Meta:
        model = CustomerProductPrice
        fields = [
            'id', 'customer_id', 'customer_name', 'product_id', 'product_title', 'product_sku',
            'product_price', 'selling_price', 'discount_percentage', 'is_active', 'notes',
            'price_tiers', 'created_at', 'updated_at'
        ]
        validators = []

    def validate_discount_percentage(self, value):
        return _check_percentage(value, 'Discount')

    def validate_selling_price(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Selling price must be greater than 0")
        return value

    def validate(self, attrs):
        selling_price = attrs.get('selling_price', getattr(self.instance, 'selling_price', None))
        discount = attrs.get('discount_percentage', getattr(self.instance, 'discount_percentage', None))
        if selling_price is None and discount is None:
            raise serializers.ValidationError("Enter a selling price or a discount percentage")

        customer = attrs.get('customer', getattr(self.instance, 'customer', None))
        product = attrs.get('product', getattr(self.instance, 'product', None))
        if customer and product:
            duplicates = CustomerProductPrice.objects.filter(customer=customer, product=product)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError("This customer already has a price for this product")
        return attrs

    def _user(self):
        request = self.context.get('request')
        return getattr(request, 'user', None)

    @staticmethod
    def _create_tiers(price, tiers):
        for tier in tiers:
            CustomerProductPriceTier.objects.create(price=price, **tier)

    def create(self, validated_data):
        tiers = validated_data.pop('price_tiers', [])
        user = self._user()
        with transaction.atomic():
            price = CustomerProductPrice.objects.create(
                created_by=user if user and user.is_authenticated else None,
                **validated_data
            )
            self._create_tiers(price, tiers)
            record_price_history(price, user=user, notes='Created')
        return price

    def update(self, instance, validated_data):
        tiers = validated_data.pop('price_tiers', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if tiers is not None:
                instance.price_tiers.all().delete()
                self._create_tiers(instance, tiers)
            record_price_history(instance, user=self._user(), notes='Updated')
        instance._prefetched_objects_cache = {}
        return instance


class CustomerProductPriceHistorySerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    product_title = serializers.CharField(source='product.title', read_only=True)
    changed_by_username = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = CustomerProductPriceHistory
        fields = [
            'id', 'customer', 'customer_name', 'product', 'product_title', 'selling_price',
            'discount_percentage', 'changed_by_username', 'notes', 'created_at'
        ]


class PriceResolveSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.select_related('customer_group'), required=False, allow_null=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, default=1)

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value
