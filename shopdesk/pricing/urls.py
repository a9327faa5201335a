from django.urls import path
from .views import pricing_plan_list_create, pricing_plan_detail

urlpatterns = [
    # PricingPlan endpoints
    path('pricing-plans/', pricing_plan_list_create, name='pricing-plan-list-create'),
    path('pricing-plans/<int:pk>/', pricing_plan_detail, name='pricing-plan-detail'),
]
