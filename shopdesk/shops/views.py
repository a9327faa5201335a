import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.db import transaction
from django.shortcuts import get_object_or_404
from shopdesk.core.context import ShopContext
from shopdesk.core.models import User
from shopdesk.core.permissions import IsShopAdmin, IsShopMember, IsSuperAdmin
from shopdesk.core.tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from shopdesk.core.utils import create_activity_log, get_client_ip, notify, notify_shop_admins
from shopdesk.pricing.models import PricingPlan
from .models import Shop
from .serializers import ShopSerializer, ShopOwnerSerializer, SubscribeSerializer

logger = logging.getLogger(__name__)

SHOP_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('owner.username', label='Owner', filter_type=FILTER_TEXT),
    Column('shop_type', label='Type', filter_type=FILTER_SELECT, options=[choice for choice, _ in Shop.SHOP_TYPE_CHOICES]),
    Column('subscription_tier', label='Tier', filter_type=FILTER_SELECT, options=[choice for choice, _ in Shop.TIER_CHOICES]),
    Column('subscription_status', label='Status', filter_type=FILTER_SELECT,
           options=[choice for choice, _ in Shop.STATUS_CHOICES]),
    Column('created_at', label='Created'),
])


def _tier_for_plan(plan, default):
    """Plans are named after their tier, e.g. 'Gold (Growth)'"""
    words = plan.name.lower().split()
    tiers = {choice for choice, _ in Shop.TIER_CHOICES}
    return words[0] if words and words[0] in tiers else default


# Shop views
@api_view(['GET', 'POST'])
@permission_classes([IsShopMember])
def shop_list_create(request):
    """List shops (all of them for the super admin) or create one"""
    if request.method == 'GET':
        shops = Shop.objects.select_related('owner', 'pricing_plan').all()
        if not request.user.is_super_admin:
            shops = shops.filter(pk=request.user.shop_id)
        return table_response(request, SHOP_TABLE, shops, ShopSerializer)

    if not IsSuperAdmin().has_permission(request, None):
        return Response({'error': 'Only the super admin can create shops'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ShopSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        shop = serializer.save()
        owner = shop.owner
        if owner.shop_id is None and not owner.is_super_admin:
            owner.shop = shop
            owner.role = User.ROLE_ADMIN
            owner.save(update_fields=['shop', 'role', 'updated_at'])

    ctx = ShopContext(request.user, shop=shop, ip_address=get_client_ip(request))
    create_activity_log(ctx=ctx, action='create', model_name='Shop', object_id=shop.id, object_name=shop.name,
                        description=f'Created shop {shop.name} for {shop.owner.username}')
    notify([shop.owner], 'Shop created', f'Your shop "{shop.name}" is ready.', 'info')
    logger.info(f"Shop {shop.pk} created for owner {shop.owner_id}")
    return Response(ShopSerializer(shop).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsShopMember])
def shop_detail(request, pk):
    """Retrieve, update or deactivate a shop"""
    shops = Shop.objects.select_related('owner', 'pricing_plan')
    if not request.user.is_super_admin:
        shops = shops.filter(pk=request.user.shop_id)
    shop = get_object_or_404(shops, pk=pk)
    ctx = ShopContext(request.user, shop=shop, ip_address=get_client_ip(request))

    if request.method == 'GET':
        return Response(ShopSerializer(shop).data)
    elif request.method in ('PUT', 'PATCH'):
        if not IsShopAdmin().has_permission(request, None):
            return Response({'error': 'Only shop admins can edit the shop'}, status=status.HTTP_403_FORBIDDEN)
        serializer_class = ShopSerializer if ctx.is_super_admin else ShopOwnerSerializer
        serializer = serializer_class(shop, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_activity_log(ctx=ctx, action='update', model_name='Shop', object_id=shop.id, object_name=shop.name,
                            changes={key: str(value) for key, value in serializer.validated_data.items()})
        return Response(serializer.data)
    else:  # DELETE
        if not ctx.is_super_admin:
            return Response({'error': 'Only the super admin can close shops'}, status=status.HTTP_403_FORBIDDEN)
        # Shops own sales history, so they are closed rather than deleted
        shop.is_active = False
        shop.subscription_status = 'cancelled'
        shop.save(update_fields=['is_active', 'subscription_status', 'updated_at'])
        create_activity_log(ctx=ctx, action='delete', model_name='Shop', object_id=shop.id, object_name=shop.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsShopAdmin])
def shop_subscribe(request, pk):
    """Move a shop to another pricing plan"""
    shops = Shop.objects.all()
    if not request.user.is_super_admin:
        shops = shops.filter(pk=request.user.shop_id)
    shop = get_object_or_404(shops, pk=pk)

    serializer = SubscribeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    plan = PricingPlan.objects.filter(pk=serializer.validated_data['pricing_plan'], is_active=True).first()
    if plan is None:
        return Response({'error': 'Pricing plan not found', 'message': 'Choose an active pricing plan.'},
                        status=status.HTTP_400_BAD_REQUEST)
    if shop.pricing_plan_id == plan.pk and shop.is_subscription_active:
        return Response({'error': 'Already subscribed', 'message': f'{shop.name} is already on the {plan.name} plan.'},
                        status=status.HTTP_400_BAD_REQUEST)

    active_staff = shop.staff.filter(is_active=True).count()
    if active_staff > plan.max_staff:
        return Response(
            {'error': 'Staff limit exceeded',
             'message': f'The {plan.name} plan allows {plan.max_staff} staff member(s); the shop has {active_staff}.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    old_plan = shop.pricing_plan.name if shop.pricing_plan else None
    old_tier = shop.subscription_tier
    shop.pricing_plan = plan
    shop.subscription_tier = serializer.validated_data.get('subscription_tier') or _tier_for_plan(plan, shop.subscription_tier)
    shop.subscription_status = 'active'
    shop.save(update_fields=['pricing_plan', 'subscription_tier', 'subscription_status', 'updated_at'])

    ctx = ShopContext(request.user, shop=shop, ip_address=get_client_ip(request))
    create_activity_log(
        ctx=ctx, action='subscription_change', model_name='Shop', object_id=shop.id, object_name=shop.name,
        description=f'Subscription changed to {plan.name}',
        changes={'pricing_plan': {'old': old_plan, 'new': plan.name},
                 'subscription_tier': {'old': old_tier, 'new': shop.subscription_tier}},
    )
    notify_shop_admins(shop, 'Subscription updated', f'{shop.name} is now on the {plan.name} plan.', 'subscription')
    return Response(ShopSerializer(shop).data)
