from django.urls import path
from .views import (
    stock_reason_list_create, stock_reason_detail,
    stock_movement_list_create, stock_movement_detail,
)

urlpatterns = [
    # StockReason endpoints
    path('stock-reasons/', stock_reason_list_create, name='stock-reason-list-create'),
    path('stock-reasons/<int:pk>/', stock_reason_detail, name='stock-reason-detail'),

    # StockMovement endpoints
    path('stock-movements/', stock_movement_list_create, name='stock-movement-list-create'),
    path('stock-movements/<int:pk>/', stock_movement_detail, name='stock-movement-detail'),
]
