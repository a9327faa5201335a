from rest_framework.permissions import BasePermission

from .models import User


class RolePermission(BasePermission):
    """Allow authenticated users whose role is listed in ``allowed_roles``.

    Super admins pass every role check.
    """
    allowed_roles = ()
    message = 'Your role does not have access to this resource.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_super_admin:
            return True
        return user.role in self.allowed_roles


class IsSuperAdmin(RolePermission):
    allowed_roles = ()


class IsShopAdmin(RolePermission):
    allowed_roles = (User.ROLE_ADMIN,)


class IsSalesStaff(RolePermission):
    allowed_roles = (User.ROLE_ADMIN, User.ROLE_SALES_PERSON)


class IsRepairDesk(RolePermission):
    """Staff who book devices in and work on repairs"""
    allowed_roles = (User.ROLE_ADMIN, User.ROLE_SALES_PERSON, User.ROLE_REPAIR_MAN)


class IsShopMember(RolePermission):
    allowed_roles = (User.ROLE_ADMIN, User.ROLE_SALES_PERSON, User.ROLE_REPAIR_MAN, User.ROLE_WHOLESALER)


class ReadOnlyOrShopAdmin(RolePermission):
    """Any shop member may read; only admins may write"""
    allowed_roles = (User.ROLE_ADMIN,)

    def has_permission(self, request, view):
        if request.method in ('GET', 'HEAD', 'OPTIONS'):
            return IsShopMember().has_permission(request, view)
        return super().has_permission(request, view)


class IsWholesaler(RolePermission):
    allowed_roles = (User.ROLE_WHOLESALER,)
