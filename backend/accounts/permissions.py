from rest_framework import permissions


class IsQuoteApprover(permissions.BasePermission):
    """
    Only manager or finance users may approve or reject a quotation.
    """
    message = 'Only manager or finance users can decide approvals.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'can_approve_quotes', False))


class CanManageExchangeRates(permissions.BasePermission):
    """
    Reads are open to any authenticated user; publishing new rates is finance-only.
    """
    message = 'Only finance users can publish exchange rates.'

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return getattr(user, 'role', None) == 'finance'
