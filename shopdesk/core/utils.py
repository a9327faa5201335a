"""Utility functions for activity logging and notifications"""
import logging

from .models import ActivityLog, Notification, User

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_activity_log(ctx=None, action=None, model_name=None, object_id=None,
                        changes=None, object_name=None, description='', shop=None):
    """
    Create an activity log entry

    Args:
        ctx: ShopContext of the acting user (user, shop and IP come from it)
        action: Action type (create, update, stock_add, sale_complete, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        object_name: Human-readable name of the object
        description: Sentence shown in the activity log screen
        shop: Optional shop override (defaults to ctx.shop)
    """
    if not action or not model_name or object_id is None:
        logger.warning(f"Activity log skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
        return None

    user = getattr(ctx, 'user', None)
    try:
        return ActivityLog.objects.create(
            user=user if user is not None and user.is_authenticated else None,
            shop=shop if shop is not None else getattr(ctx, 'shop', None),
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            description=description or '',
            changes=changes or {},
            ip_address=getattr(ctx, 'ip_address', None),
        )
    except Exception:
        # Logging must never break the operation being logged
        logger.error(f"Failed to create activity log for {model_name}#{object_id}", exc_info=True)
        return None


def notify(users, title, message='', notification_type='info'):
    """Create one notification per user; returns the created notifications"""
    notifications = [
        Notification(user=user, title=title, message=message, notification_type=notification_type)
        for user in users
    ]
    if not notifications:
        return []
    return Notification.objects.bulk_create(notifications)


def notify_shop_admins(shop, title, message='', notification_type='info'):
    """Notify the owner and every active admin of a shop"""
    if shop is None:
        return []
    admins = {shop.owner_id: shop.owner} if shop.owner_id else {}
    for admin in User.objects.filter(shop=shop, role=User.ROLE_ADMIN, is_active=True):
        admins[admin.pk] = admin
    logger.debug(f"Notifying {len(admins)} admin(s) of shop {shop.pk}: {title}")
    return notify(admins.values(), title, message, notification_type)
