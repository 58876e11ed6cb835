from django.urls import path
from . import views

urlpatterns = [
    path('quotations/', views.quotation_list_create, name='quotation-list-create'),
    path('quotations/send_whatsapp/', views.quotation_send_whatsapp, name='quotation-send-whatsapp'),
    path('quotations/<int:pk>/', views.quotation_detail, name='quotation-detail'),
]
