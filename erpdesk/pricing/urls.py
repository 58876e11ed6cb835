from django.urls import path
from . import views

urlpatterns = [
    path('customer-prices/', views.customer_price_list_create, name='customer-price-list-create'),
    path('customer-prices/history/', views.customer_price_history, name='customer-price-history'),
    path('customer-prices/resolve/', views.customer_price_resolve, name='customer-price-resolve'),
    path('customer-prices/<int:pk>/', views.customer_price_detail, name='customer-price-detail'),
]
