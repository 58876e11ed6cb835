from django.urls import path
from . import views

urlpatterns = [
    # Vendor endpoints
    path('vendors/', views.vendor_list_create, name='vendor-list-create'),
    path('vendors/<int:pk>/', views.vendor_detail, name='vendor-detail'),
    path('vendor-contacts/', views.vendor_contact_list_create, name='vendor-contact-list-create'),
    path('vendor-contacts/<int:pk>/', views.vendor_contact_detail, name='vendor-contact-detail'),
    path('vendor-addresses/', views.vendor_address_list_create, name='vendor-address-list-create'),
    path('vendor-addresses/<int:pk>/', views.vendor_address_detail, name='vendor-address-detail'),
    path('vendor-bank-details/', views.vendor_bank_detail_list_create, name='vendor-bank-detail-list-create'),
    path('vendor-bank-details/<int:pk>/', views.vendor_bank_detail_detail, name='vendor-bank-detail-detail'),

    # CustomerGroup endpoints
    path('customer-groups/', views.customer_group_list_create, name='customer-group-list-create'),
    path('customer-groups/<int:pk>/', views.customer_group_detail, name='customer-group-detail'),

    # Customer endpoints
    path('customers/', views.customer_list_create, name='customer-list-create'),
    path('customers/search_by_phone/', views.customer_search_by_phone, name='customer-search-by-phone'),
    path('customers/<int:pk>/', views.customer_detail, name='customer-detail'),
]
