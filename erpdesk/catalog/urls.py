from django.urls import path
from . import views

urlpatterns = [
    # Category endpoints
    path('categories/', views.category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', views.category_detail, name='category-detail'),

    # Brand endpoints
    path('brands/', views.brand_list_create, name='brand-list-create'),
    path('brands/<int:pk>/', views.brand_detail, name='brand-detail'),

    # Tag endpoints
    path('tags/', views.tag_list_create, name='tag-list-create'),
    path('tags/<int:pk>/', views.tag_detail, name='tag-detail'),

    # Product endpoints
    path('products/', views.product_list_create, name='product-list-create'),
    path('products/compatible/', views.product_compatible, name='product-compatible'),
    path('products/<int:pk>/', views.product_detail, name='product-detail'),

    # Vehicle endpoints
    path('car-makers/', views.car_maker_list_create, name='car-maker-list-create'),
    path('car-makers/<int:pk>/', views.car_maker_detail, name='car-maker-detail'),
    path('car-models/', views.car_model_list_create, name='car-model-list-create'),
    path('car-models/<int:pk>/', views.car_model_detail, name='car-model-detail'),
    path('car-variants/', views.car_variant_list_create, name='car-variant-list-create'),
    path('car-variants/<int:pk>/', views.car_variant_detail, name='car-variant-detail'),

    # Compatibility group endpoints
    path('compatibility-groups/', views.compatibility_group_list_create, name='compatibility-group-list-create'),
    path('compatibility-groups/<int:pk>/', views.compatibility_group_detail, name='compatibility-group-detail'),
    path('compatibility-groups/<int:pk>/products/', views.compatibility_group_products, name='compatibility-group-products'),

    # Label export endpoints
    path('labels/fields/', views.label_fields, name='label-fields'),
    path('labels/export/', views.label_export, name='label-export'),

    # Export history endpoints
    path('export-history/', views.export_history_list, name='export-history-list'),
    path('export-history/<int:pk>/', views.export_history_detail, name='export-history-detail'),
    path('export-history/<int:pk>/download/', views.export_history_download, name='export-history-download'),
]
