"""
Permission classes for the billing API.
"""

from rest_framework import permissions


class IsStaffForDelete(permissions.BasePermission):
    """
    Any authenticated user may read and write; only staff may delete.
    """

    message = "Only administrators can delete invoices."

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method == "DELETE":
            return request.user.is_staff
        return True
