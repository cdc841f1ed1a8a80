from rest_framework.permissions import BasePermission

from apps.accounts.models import UserRole


ROLE_CAPABILITIES = {
    UserRole.ADMIN: {
        "customers.view",
        "customers.manage",
        "orders.view",
        "orders.manage",
        "invoices.view",
        "invoices.manage",
        "timetracking.view",
        "timetracking.manage",
        "settings.view",
        "settings.manage",
        "stats.view",
        "logs.view",
        "logs.manage",
    },
    UserRole.USER: {
        "customers.view",
        "customers.manage",
        "orders.view",
        "orders.manage",
        "invoices.view",
        "invoices.manage",
        "timetracking.view",
        "timetracking.manage",
        "settings.view",
    },
}


def resolve_role(user):
    if getattr(user, "is_superuser", False):
        return UserRole.ADMIN
    group_names = set(user.groups.values_list("name", flat=True))
    for role in (UserRole.ADMIN, UserRole.USER):
        if role in group_names:
            return role
    return getattr(user, "role", UserRole.USER)


def is_admin(user):
    return bool(user and user.is_authenticated and resolve_role(user) == UserRole.ADMIN)


class RolePermission(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability_map = getattr(view, "capability_map", {})
        action = getattr(view, "action", None) or request.method.lower()
        required = capability_map.get(action) or capability_map.get(request.method.lower()) or set()
        if not required:
            return True

        user_caps = ROLE_CAPABILITIES.get(resolve_role(request.user), set())
        return all(cap in user_caps for cap in required)


class IsOwnerOrAdmin(BasePermission):
    """
    Object access for the record's owner, its assignee (when the view names an
    ``assignee_field``) or an admin.
    """

    message = "Sie haben keine Berechtigung für diese Ressource."

    def has_object_permission(self, request, view, obj):
        if is_admin(request.user):
            return True
        owner_field = getattr(view, "owner_field", "created_by")
        if getattr(obj, f"{owner_field}_id", None) == request.user.id:
            return True
        assignee_field = getattr(view, "assignee_field", None)
        if assignee_field and view.action in getattr(view, "assignee_actions", ()):
            return getattr(obj, f"{assignee_field}_id", None) == request.user.id
        return False
