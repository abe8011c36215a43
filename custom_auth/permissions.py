from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Admin panel users: role=admin or Django staff."""
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin_role)


class IsVendorRole(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_vendor_role)


class IsVendorOrAdminRole(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_vendor_role or user.is_admin_role))


class IsCustomerRole(BasePermission):
    """End customers only; vendors and admins get 403 on purchase flows."""
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.role == user.Role.USER)


class IsOwnerOrAdmin(BasePermission):
    def has_object_permission(self, request, view, obj):
        if request.user and request.user.is_admin_role:
            return True
        return getattr(obj, 'user_id', None) == getattr(request.user, 'id', None)
