from django.urls import path
from . import views

urlpatterns = [
    # Purchase bill endpoints
    path('bills/', views.bill_list_create, name='bill-list-create'),
    path('bills/recent/', views.bill_recent, name='bill-recent'),
    path('bills/search/', views.bill_search, name='bill-search'),
    path('bills/<int:pk>/', views.bill_detail, name='bill-detail'),
    path('bills/<int:pk>/recalculate/', views.bill_recalculate, name='bill-recalculate'),
    path('bills/<int:pk>/add_payment/', views.bill_add_payment, name='bill-add-payment'),

    # Payment endpoints
    path('payments/', views.payment_list_create, name='payment-list-create'),
    path('payments/<int:pk>/', views.payment_detail, name='payment-detail'),

    # Vendor payment endpoints
    path('vendors/payment-summaries/', views.vendor_payment_summaries, name='vendor-payment-summaries'),
    path('vendors/<int:pk>/payment-summary/', views.vendor_payment_summary, name='vendor-payment-summary'),
    path('vendors/<int:pk>/bills/', views.vendor_bills, name='vendor-bills'),
    path('vendors/<int:pk>/payments/', views.vendor_payments, name='vendor-payments'),
    path('vendors/<int:pk>/outstanding-bills/', views.vendor_outstanding_bills, name='vendor-outstanding-bills'),
    path('vendors/<int:pk>/add_payment/', views.vendor_add_payment, name='vendor-add-payment'),
    path('vendors/<int:pk>/allocate/', views.vendor_allocate, name='vendor-allocate'),

    # Vendor product price endpoints
    path('vendor-product-prices/', views.vendor_price_list_create, name='vendor-price-list-create'),
    path('vendor-product-prices/export/', views.vendor_price_export, name='vendor-price-export'),
    path('vendor-product-prices/<int:pk>/', views.vendor_price_detail, name='vendor-price-detail'),
    path('vendor-product-prices/<int:pk>/history/', views.vendor_price_history, name='vendor-price-history'),

    # Dashboard and reports
    path('purchase/dashboard/', views.purchase_dashboard, name='purchase-dashboard'),
    path('purchase/reports/', views.purchase_reports, name='purchase-reports'),
]
