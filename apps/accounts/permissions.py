"""
Permission classes backed by clinic staff permissions.

Each class checks one permission type through ``has_clinic_permission``,
so role defaults and per-user overrides apply uniformly across apps.

Usage:
    class StaffViewSet(viewsets.ModelViewSet):
        permission_classes = [IsAuthenticated, CanManageUsers]
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

from .services import has_clinic_permission


class ClinicPermission(BasePermission):
    """Base class: grant access when the user holds ``required_permission``."""

    required_permission = None
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        return has_clinic_permission(request.user, self.required_permission)


class CanManageUsers(ClinicPermission):
    required_permission = 'manage_users'
    message = 'Only administrators can manage staff.'


class CanManageClinic(ClinicPermission):
    required_permission = 'view_clinic_management'
    message = 'You do not have access to clinic management.'


class CanManageClinicOrReadOnly(CanManageClinic):
    """Any authenticated staff may read; writes require clinic management."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)


class CanAdjustStock(ClinicPermission):
    required_permission = 'adjust_stock'
    message = 'Only administrators and doctors can adjust stock levels.'


class CanManageProcurement(ClinicPermission):
    required_permission = 'manage_procurement'
    message = 'You do not have permission to manage procurement.'


class CanApprovePurchaseOrders(ClinicPermission):
    required_permission = 'approve_purchase_orders'
    message = 'You do not have permission to approve purchase orders.'


class CanViewReports(BasePermission):
    """Reports are open to sales-report viewers and procurement managers."""

    message = 'You do not have permission to view reports.'

    def has_permission(self, request, view):
        return (
            has_clinic_permission(request.user, 'view_sales_report') or
            has_clinic_permission(request.user, 'manage_procurement')
        )
