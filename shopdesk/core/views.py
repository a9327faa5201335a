from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from .context import ShopContext
from .models import User, ActivityLog, Notification, FeatureFlag
from .permissions import IsShopAdmin, IsSuperAdmin
from .serializers import (
    UserSerializer, UserCreateSerializer, ActivityLogSerializer,
    NotificationSerializer, FeatureFlagSerializer
)
from .tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from .utils import create_activity_log

USER_TABLE = Table([
    Column('username', filter_type=FILTER_TEXT),
    Column('email', filter_type=FILTER_TEXT),
    Column('role', filter_type=FILTER_SELECT, options=[choice for choice, _ in User.ROLE_CHOICES]),
    Column('shop.name', label='Shop', filter_type=FILTER_TEXT),
    Column('is_active', label='Active'),
])

ACTIVITY_LOG_TABLE = Table([
    Column('description', filter_type=FILTER_TEXT),
    Column('action', filter_type=FILTER_SELECT, options=[choice for choice, _ in ActivityLog.ACTION_CHOICES]),
    Column('model_name', label='Object type', filter_type=FILTER_SELECT),
    Column('user.username', label='User', filter_type=FILTER_TEXT),
    Column('created_at', label='Time'),
])

NOTIFICATION_TABLE = Table([
    Column('title', filter_type=FILTER_TEXT),
    Column('notification_type', label='Type', filter_type=FILTER_SELECT,
           options=[choice for choice, _ in Notification.TYPE_CHOICES]),
    Column('is_read', label='Read', filter_type=FILTER_SELECT, options=['True', 'False']),
])

FEATURE_FLAG_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('is_enabled', label='Enabled', filter_type=FILTER_SELECT, options=['True', 'False']),
])

# Roles a shop admin may hand out to its own staff
SHOP_STAFF_ROLES = (User.ROLE_ADMIN, User.ROLE_SALES_PERSON, User.ROLE_REPAIR_MAN)


class ShopDeskTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        token['shop_id'] = user.shop_id
        return token


class ShopDeskTokenObtainPairView(TokenObtainPairView):
    serializer_class = ShopDeskTokenObtainPairSerializer


class ShopDeskTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that rejects tokens of deleted users"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class ShopDeskTokenRefreshView(TokenRefreshView):
    serializer_class = ShopDeskTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with the feature flags enabled for their shop"""
    data = UserSerializer(request.user).data
    shop = request.user.shop
    data['features'] = [flag.name for flag in FeatureFlag.objects.filter(is_enabled=True) if flag.is_enabled_for(shop)]
    return Response(data)


# User (staff / admins) views
@api_view(['GET', 'POST'])
@permission_classes([IsShopAdmin])
def user_list_create(request):
    """List staff of the current shop (all users for the super admin) or create one"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        users = ctx.scope(User.objects.select_related('shop').all())
        return table_response(request, USER_TABLE, users, UserSerializer)

    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    role = serializer.validated_data.get('role', User.ROLE_SALES_PERSON)
    if not ctx.is_super_admin:
        if role not in SHOP_STAFF_ROLES:
            return Response(
                {'error': 'Invalid role', 'message': f'Shop admins can only create: {", ".join(SHOP_STAFF_ROLES)}'},
                status=status.HTTP_400_BAD_REQUEST
            )
        if ctx.shop is None:
            return Response({'error': 'No shop assigned to your account'}, status=status.HTTP_400_BAD_REQUEST)
        plan = ctx.shop.pricing_plan
        if plan is not None and User.objects.filter(shop=ctx.shop, is_active=True).count() >= plan.max_staff:
            return Response(
                {'error': 'Staff limit reached', 'message': f'The {plan.name} plan allows {plan.max_staff} staff member(s).'},
                status=status.HTTP_400_BAD_REQUEST
            )
        user = serializer.save(shop=ctx.shop)
    else:
        user = serializer.save()

    create_activity_log(
        ctx=ctx, action='create', model_name='User', object_id=user.id,
        object_name=user.username, description=f'Created {user.get_role_display()} account {user.username}',
        shop=user.shop,
    )
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsShopAdmin])
def user_detail(request, pk):
    """Retrieve, update or deactivate a user"""
    ctx = ShopContext.from_request(request)
    user = get_object_or_404(ctx.scope(User.objects.all()), pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        save_kwargs = {}
        if not ctx.is_super_admin:
            role = serializer.validated_data.get('role', user.role)
            if role not in SHOP_STAFF_ROLES:
                return Response({'error': 'Invalid role'}, status=status.HTTP_400_BAD_REQUEST)
            save_kwargs['shop'] = ctx.shop
        serializer.save(**save_kwargs)
        create_activity_log(ctx=ctx, action='update', model_name='User', object_id=user.id,
                            object_name=user.username, changes={key: str(value) for key, value in request.data.items()},
                            shop=user.shop)
        return Response(serializer.data)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot deactivate your own account'}, status=status.HTTP_400_BAD_REQUEST)
        # Staff are deactivated, not deleted, so their sales keep an author
        user.is_active = False
        user.save(update_fields=['is_active', 'updated_at'])
        create_activity_log(ctx=ctx, action='delete', model_name='User', object_id=user.id,
                            object_name=user.username, shop=user.shop)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ActivityLog views
@api_view(['GET'])
@permission_classes([IsShopAdmin])
def activity_log_list(request):
    """List activity of the current shop"""
    ctx = ShopContext.from_request(request)
    logs = ctx.scope(ActivityLog.objects.select_related('user').all())
    return table_response(request, ACTIVITY_LOG_TABLE, logs, ActivityLogSerializer)


@api_view(['GET'])
@permission_classes([IsShopAdmin])
def activity_log_detail(request, pk):
    ctx = ShopContext.from_request(request)
    log = get_object_or_404(ctx.scope(ActivityLog.objects.all()), pk=pk)
    return Response(ActivityLogSerializer(log).data)


# Notification views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """List the current user's notifications with the unread count"""
    notifications = Notification.objects.filter(user=request.user)
    response = table_response(request, NOTIFICATION_TABLE, notifications, NotificationSerializer)
    response.data['unread_count'] = notifications.filter(is_read=False).count()
    return response


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_detail(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if request.method == 'GET':
        return Response(NotificationSerializer(notification).data)
    notification.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    return Response({'updated': updated, 'unread_count': 0})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_clear(request):
    deleted, _ = Notification.objects.filter(user=request.user).delete()
    return Response({'deleted': deleted, 'unread_count': 0})


# FeatureFlag views
@api_view(['GET', 'POST'])
@permission_classes([IsSuperAdmin])
def feature_flag_list_create(request):
    if request.method == 'GET':
        return table_response(request, FEATURE_FLAG_TABLE, FeatureFlag.objects.all(), FeatureFlagSerializer)
    serializer = FeatureFlagSerializer(data=request.data)
    if serializer.is_valid():
        flag = serializer.save()
        create_activity_log(ctx=ShopContext.from_request(request), action='create', model_name='FeatureFlag',
                            object_id=flag.id, object_name=flag.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsSuperAdmin])
def feature_flag_detail(request, pk):
    flag = get_object_or_404(FeatureFlag, pk=pk)

    if request.method == 'GET':
        return Response(FeatureFlagSerializer(flag).data)
    elif request.method in ('PUT', 'PATCH'):
        was_enabled = flag.is_enabled
        serializer = FeatureFlagSerializer(flag, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            flag = serializer.save()
            if flag.is_enabled != was_enabled:
                create_activity_log(
                    ctx=ShopContext.from_request(request), action='feature_flag_toggle', model_name='FeatureFlag',
                    object_id=flag.id, object_name=flag.name,
                    changes={'is_enabled': {'old': was_enabled, 'new': flag.is_enabled}},
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        flag.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
