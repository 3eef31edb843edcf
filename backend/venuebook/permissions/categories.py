# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    ORDERS = "ORDERS"
    PAYMENTS = "PAYMENTS"
    PRICING = "PRICING"
    REPORTS = "REPORTS"
    SYSTEM = "SYSTEM"
