from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from shopdesk.core.context import ShopContext
from shopdesk.core.permissions import IsSuperAdmin
from shopdesk.core.tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from shopdesk.core.utils import create_activity_log
from .models import PricingPlan
from .serializers import PricingPlanSerializer

PRICING_PLAN_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('price'),
    Column('max_staff', label='Staff'),
    Column('max_products', label='Products'),
    Column('is_active', label='Active', filter_type=FILTER_SELECT, options=['True', 'False']),
])


# PricingPlan views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def pricing_plan_list_create(request):
    """List plans (active ones only for shop users) or create a plan"""
    if request.method == 'GET':
        plans = PricingPlan.objects.all()
        if not request.user.is_super_admin:
            plans = plans.filter(is_active=True)
        return table_response(request, PRICING_PLAN_TABLE, plans, PricingPlanSerializer)

    if not IsSuperAdmin().has_permission(request, None):
        return Response({'error': 'Only the super admin can manage pricing plans'}, status=status.HTTP_403_FORBIDDEN)
    serializer = PricingPlanSerializer(data=request.data)
    if serializer.is_valid():
        plan = serializer.save()
        create_activity_log(ctx=ShopContext.from_request(request), action='create', model_name='PricingPlan',
                            object_id=plan.id, object_name=plan.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsSuperAdmin])
def pricing_plan_detail(request, pk):
    """Retrieve, update or delete a pricing plan"""
    plan = get_object_or_404(PricingPlan, pk=pk)

    if request.method == 'GET':
        return Response(PricingPlanSerializer(plan).data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = plan.price
        serializer = PricingPlanSerializer(plan, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            plan = serializer.save()
            if plan.price != old_price:
                create_activity_log(
                    ctx=ShopContext.from_request(request), action='price_change', model_name='PricingPlan',
                    object_id=plan.id, object_name=plan.name,
                    changes={'price': {'old': str(old_price), 'new': str(plan.price)}},
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if plan.shops.exists():
            return Response(
                {'error': 'Plan in use', 'message': 'The plan is assigned to shops; deactivate it instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        plan.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
