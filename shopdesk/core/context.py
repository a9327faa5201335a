"""
Request-scoped acting context.

A ``ShopContext`` is built once per request from the authenticated user and
passed explicitly to services, so no code reads "the current user" or "the
current shop" from module state.
"""
from decimal import Decimal

from django.conf import settings

from .models import User


class ShopContext:
    """Who is acting, in which role, on behalf of which shop"""

    __slots__ = ('user', 'shop', 'role', 'ip_address')

    def __init__(self, user, shop=None, ip_address=None):
        self.user = user
        self.shop = shop
        self.role = getattr(user, 'role', None)
        self.ip_address = ip_address

    def __repr__(self):
        return f"ShopContext(user={getattr(self.user, 'username', None)!r}, shop={getattr(self.shop, 'pk', None)!r}, role={self.role!r})"

    @classmethod
    def from_request(cls, request):
        """
        Resolve the context for a request.

        Shop staff always act for their own shop. A super admin acts
        platform-wide unless a ``shop`` query parameter or body field selects
        one shop to act for.
        """
        from shopdesk.core.utils import get_client_ip
        from shopdesk.shops.models import Shop

        user = request.user
        ip_address = get_client_ip(request)
        if getattr(user, 'is_super_admin', False):
            shop_id = request.query_params.get('shop') if hasattr(request, 'query_params') else None
            if not shop_id and hasattr(request, 'data') and hasattr(request.data, 'get'):
                shop_id = request.data.get('shop')
            shop = Shop.objects.filter(pk=shop_id).first() if shop_id else None
            return cls(user, shop=shop, ip_address=ip_address)
        return cls(user, shop=getattr(user, 'shop', None), ip_address=ip_address)

    @property
    def is_super_admin(self):
        return getattr(self.user, 'is_super_admin', False)

    @property
    def is_shop_admin(self):
        return self.is_super_admin or self.role == User.ROLE_ADMIN

    def has_role(self, *roles):
        return self.is_super_admin or self.role in roles

    @property
    def tax_rate(self):
        if self.shop is not None and self.shop.tax_rate is not None:
            return Decimal(self.shop.tax_rate)
        return settings.SHOPDESK_DEFAULT_TAX_RATE

    def scope(self, queryset, field='shop'):
        """Restrict a queryset to the rows this context may see"""
        if self.shop is not None:
            return queryset.filter(**{field: self.shop})
        if self.is_super_admin:
            return queryset
        return queryset.none()
