from django.urls import path
from .views import shop_list_create, shop_detail, shop_subscribe

urlpatterns = [
    # Shop endpoints
    path('shops/', shop_list_create, name='shop-list-create'),
    path('shops/<int:pk>/', shop_detail, name='shop-detail'),
    path('shops/<int:pk>/subscribe/', shop_subscribe, name='shop-subscribe'),
]
