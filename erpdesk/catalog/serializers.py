from django.conf import settings
from rest_framework import serializers

from .label_export import AVAILABLE_FIELDS, TEMPLATES, CUSTOM_TEMPLATE
from .models import (
    Category, Brand, Tag, Product, ProductImage,
    CarMaker, CarModel, CarVariant, CompatibilityGroup, ExportJob,
)

COMPATIBILITY_ERROR = "Select either general product, compatibility group, or specific variants"


def validate_image_size(image):
    limit = getattr(settings, 'MAX_UPLOAD_IMAGE_SIZE', 5 * 1024 * 1024)
    if image and image.size > limit:
        raise serializers.ValidationError(f"Image must be {limit // (1024 * 1024)}MB or smaller")
    return image


class CategorySerializer(serializers.ModelSerializer):
    parent_name = serializers.CharField(source='parent.name', read_only=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'parent', 'parent_name', 'description', 'is_active', 'product_count', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        return obj.products.count()

    def validate_parent(self, value):
        if value and self.instance and value.pk == self.instance.pk:
            raise serializers.ValidationError("A category cannot be its own parent")
        return value


class BrandSerializer(serializers.ModelSerializer):
    class Meta:
        model = Brand
        fields = ['id', 'name', 'description', 'logo', 'is_active', 'created_at', 'updated_at']


class TagSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ['id', 'name', 'ref_name', 'description', 'is_active', 'created_at']
        read_only_fields = ['created_at']
        extra_kwargs = {'ref_name': {'required': False}}


class CarMakerSerializer(serializers.ModelSerializer):
    model_count = serializers.SerializerMethodField()

    class Meta:
        model = CarMaker
        fields = ['id', 'name', 'slug', 'image', 'is_active', 'model_count', 'created_at', 'updated_at']
        extra_kwargs = {'slug': {'required': False}}

    def get_model_count(self, obj):
        return obj.models.count()


class CarModelSerializer(serializers.ModelSerializer):
    car_maker_name = serializers.CharField(source='car_maker.name', read_only=True)

    class Meta:
        model = CarModel
        fields = ['id', 'name', 'slug', 'image', 'car_maker', 'car_maker_name', 'created_at']
        extra_kwargs = {'slug': {'required': False}}


class CarVariantSerializer(serializers.ModelSerializer):
    model_name = serializers.CharField(source='model.name', read_only=True)
    car_maker_name = serializers.CharField(source='car_maker.name', read_only=True)
    display_name = serializers.CharField(source='__str__', read_only=True)

    class Meta:
        model = CarVariant
        fields = [
            'id', 'name', 'display_name', 'model', 'model_name', 'car_maker', 'car_maker_name',
            'year_start', 'year_end', 'engine_liters', 'engine_type', 'engine_power',
            'fuel_engine', 'body_type', 'vehicle_type', 'is_active', 'created_at', 'updated_at'
        ]
        extra_kwargs = {'car_maker': {'required': False}}

    def validate(self, attrs):
        year_start = attrs.get('year_start', getattr(self.instance, 'year_start', None))
        year_end = attrs.get('year_end', getattr(self.instance, 'year_end', None))
        if year_start and year_end and year_start > year_end:
            raise serializers.ValidationError({'year_end': "End year must be on or after start year"})
        model = attrs.get('model', getattr(self.instance, 'model', None))
        if model is not None:
            # The maker always follows the model
            attrs['car_maker'] = model.car_maker
        return attrs


class CompatibilityGroupSerializer(serializers.ModelSerializer):
    car_maker_name = serializers.CharField(source='car_maker.name', read_only=True)
    variants = CarVariantSerializer(many=True, read_only=True)
    variants_ids = serializers.PrimaryKeyRelatedField(
        source='variants', queryset=CarVariant.objects.all(), many=True, write_only=True, required=False
    )
    is_mapped = serializers.BooleanField(read_only=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = CompatibilityGroup
        fields = [
            'id', 'name', 'description', 'car_maker', 'car_maker_name', 'variants', 'variants_ids',
            'year_start', 'year_end', 'fuel_engine', 'is_mapped', 'product_count', 'created_at', 'updated_at'
        ]

    def get_product_count(self, obj):
        return obj.products.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Group name is required")
        return value

    def validate(self, attrs):
        year_start = attrs.get('year_start', getattr(self.instance, 'year_start', None))
        year_end = attrs.get('year_end', getattr(self.instance, 'year_end', None))
        if year_start and year_end and year_start > year_end:
            raise serializers.ValidationError({'year_end': "End year must be on or after start year"})

        car_maker = attrs.get('car_maker', getattr(self.instance, 'car_maker', None))
        variants = attrs.get('variants')
        if car_maker and variants:
            foreign = [v.pk for v in variants if v.car_maker_id != car_maker.pk]
            if foreign:
                raise serializers.ValidationError({
                    'variants_ids': f"Variants {foreign} do not belong to {car_maker.name}"
                })
        return attrs

    def create(self, validated_data):
        variants = validated_data.pop('variants', [])
        group = CompatibilityGroup.objects.create(**validated_data)
        group.variants.set(variants)
        return group

    def update(self, instance, validated_data):
        variants = validated_data.pop('variants', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if variants is not None:
            instance.variants.set(variants)
        return instance


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ['id', 'image', 'sort_order']


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    brand_name = serializers.CharField(source='brand.name', read_only=True)
    tags = serializers.PrimaryKeyRelatedField(queryset=Tag.objects.all(), many=True, required=False)
    compatible_variants = serializers.PrimaryKeyRelatedField(queryset=CarVariant.objects.all(), many=True, required=False)
    compatibility_group_name = serializers.CharField(source='compatibility_group.name', read_only=True)
    compatibility_mode = serializers.CharField(read_only=True)
    additional_images = ProductImageSerializer(many=True, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    image = serializers.ImageField(required=False, allow_null=True, validators=[validate_image_size])

    class Meta:
        model = Product
        fields = [
            'id', 'title', 'sku', 'description', 'category', 'category_name', 'brand', 'brand_name', 'tags',
            'hsn_code', 'barcode', 'price', 'purchase_price', 'discounted_price', 'discount_percentage',
            'taxes', 'stock', 'low_stock_threshold', 'is_low_stock', 'is_active', 'is_available',
            'bulk_order_available', 'is_cod', 'lead_time', 'rating', 'image', 'additional_images',
            'is_general_product', 'compatibility_group', 'compatibility_group_name', 'compatible_variants',
            'compatibility_mode', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'sku': {'required': False, 'allow_null': True, 'allow_blank': True}}

    def validate_sku(self, value):
        return value or None

    def validate_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Price cannot be negative")
        return value

    def validate_discount_percentage(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError("Discount must be between 0 and 100")
        return value

    def validate_taxes(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError("Tax must be between 0 and 100")
        return value

    def validate(self, attrs):
        instance = self.instance
        price = attrs.get('price', getattr(instance, 'price', None))
        discounted_price = attrs.get('discounted_price', getattr(instance, 'discounted_price', None))
        if price is not None and discounted_price is not None and discounted_price > price:
            raise serializers.ValidationError({'discounted_price': "Discounted price cannot exceed MRP"})

        is_general = attrs.get('is_general_product', getattr(instance, 'is_general_product', False))
        group = attrs['compatibility_group'] if 'compatibility_group' in attrs else getattr(instance, 'compatibility_group', None)
        if 'compatible_variants' in attrs:
            variants = list(attrs['compatible_variants'])
        elif instance is not None:
            variants = list(instance.compatible_variants.all())
        else:
            variants = []

        # A partial update that names only one mode switches to it
        if 'compatibility_group' in attrs and attrs['compatibility_group'] and 'compatible_variants' not in attrs:
            variants = []
            attrs['compatible_variants'] = []
        elif attrs.get('compatible_variants') and 'compatibility_group' not in attrs:
            group = None
            attrs['compatibility_group'] = None

        if is_general:
            # General products carry no vehicle mapping
            attrs['compatibility_group'] = None
            attrs['compatible_variants'] = []
        elif (group is None) == (not variants):
            # Neither or both
            raise serializers.ValidationError(COMPATIBILITY_ERROR)

        for upload in self.context.get('additional_images') or []:
            try:
                validate_image_size(upload)
            except serializers.ValidationError as e:
                raise serializers.ValidationError({'additional_images': e.detail})
        return attrs

    def _save_additional_images(self, product):
        for index, upload in enumerate(self.context.get('additional_images') or []):
            ProductImage.objects.create(product=product, image=upload, sort_order=product.additional_images.count() + index)

    def create(self, validated_data):
        tags = validated_data.pop('tags', [])
        variants = validated_data.pop('compatible_variants', [])
        product = Product.objects.create(**validated_data)
        product.tags.set(tags)
        product.compatible_variants.set(variants)
        self._save_additional_images(product)
        return product

    def update(self, instance, validated_data):
        tags = validated_data.pop('tags', None)
        variants = validated_data.pop('compatible_variants', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if tags is not None:
            instance.tags.set(tags)
        if variants is not None:
            instance.compatible_variants.set(variants)
        self._save_additional_images(instance)
        return instance


class ProductListSerializer(serializers.ModelSerializer):
    """Lighter payload for list pages and pickers"""
    category_name = serializers.CharField(source='category.name', read_only=True)
    brand_name = serializers.CharField(source='brand.name', read_only=True)
    compatibility_mode = serializers.CharField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'title', 'sku', 'barcode', 'hsn_code', 'category', 'category_name', 'brand', 'brand_name',
            'price', 'discounted_price', 'purchase_price', 'taxes', 'stock', 'is_low_stock', 'is_active',
            'image', 'is_general_product', 'compatibility_group', 'compatibility_mode', 'updated_at'
        ]


class ExportJobSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    is_expired = serializers.BooleanField(read_only=True)
    download_url = serializers.SerializerMethodField()

    class Meta:
        model = ExportJob
        fields = [
            'id', 'kind', 'format', 'status', 'file_name', 'row_count', 'parameters', 'error',
            'created_by', 'created_by_username', 'created_at', 'completed_at', 'is_expired', 'download_url'
        ]
        read_only_fields = fields

    def get_download_url(self, obj):
        if obj.status != 'SUCCESS' or not obj.file or obj.is_expired:
            return None
        return f"/api/v1/export-history/{obj.pk}/download/"


class LabelExportItemSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.select_related('brand', 'compatibility_group'))
    quantity = serializers.IntegerField(required=False, default=1)


class LabelExportRequestSerializer(serializers.Serializer):
    items = LabelExportItemSerializer(many=True)
    template = serializers.ChoiceField(choices=list(TEMPLATES.keys()) + [CUSTOM_TEMPLATE], default='product_label')
    fields = serializers.ListField(child=serializers.ChoiceField(choices=list(AVAILABLE_FIELDS.keys())), required=False)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Add at least one product to export")
        return value

    def validate(self, attrs):
        if attrs['template'] == CUSTOM_TEMPLATE and not attrs.get('fields'):
            raise serializers.ValidationError({'fields': "Select at least one field for a custom template"})
        return attrs
