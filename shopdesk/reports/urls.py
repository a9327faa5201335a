from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='dashboard'),
    path('reports/analytics/', views.platform_analytics, name='platform-analytics'),
    path('reports/repairs/', views.repairs_dashboard, name='repairs-dashboard'),
    path('reports/sales-summary/', views.sales_summary, name='sales-summary'),
    path('reports/wholesaler/', views.wholesaler_dashboard, name='wholesaler-dashboard'),
]
