from rest_framework import permissions

from .core.constants import GROUP_INVENTORY, GROUP_MANAGERS, GROUP_SALES


def _in_groups(user, *names) -> bool:
    return user.groups.filter(name__in=names).exists()


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Permite acceso completo a administradores, solo lectura a otros usuarios autenticados.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return request.user.is_authenticated
        return request.user.is_authenticated and request.user.is_staff


class IsSalesUserOrAdmin(permissions.BasePermission):
    """
    Lectura para usuarios autenticados; registrar ventas solo para el grupo
    Sales, Managers o administradores.
    """

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.is_staff or _in_groups(request.user, GROUP_SALES, GROUP_MANAGERS)


class IsInventoryUserOrAdmin(permissions.BasePermission):
    """
    Lectura para usuarios autenticados; cambios de catalogo, estantes,
    traslados y pedidos solo para el grupo Inventory, Managers o administradores.
    """

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.is_staff or _in_groups(request.user, GROUP_INVENTORY, GROUP_MANAGERS)
