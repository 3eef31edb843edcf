# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "VIEW_ORDERS",
        "View Orders",
        "View orders, players and order summaries",
        PermissionCategory.ORDERS,
    ),
    (
        "EDIT_ORDERS",
        "Edit Orders",
        "Create and delete orders, manage players, enable multi-payment",
        PermissionCategory.ORDERS,
    ),
]


# -- PAYMENTS --

PAYMENT_PERMISSIONS = [
    (
        "MANAGE_ORDER_PAYMENTS",
        "Manage Order Payments",
        "Record, confirm, merge, split and delete payer payments",
        PermissionCategory.PAYMENTS,
    ),
    (
        "REFUND_PLAYERS",
        "Refund Players",
        "Mark players of an order as refunded",
        PermissionCategory.PAYMENTS,
    ),
]


# -- PRICING --

PRICING_PERMISSIONS = [
    (
        "VIEW_PRICING",
        "View Pricing",
        "View role pricing templates, calendar entries and price previews",
        PermissionCategory.PRICING,
    ),
    (
        "MANAGE_PRICING",
        "Manage Pricing",
        "Create, edit and deactivate role templates and calendar entries",
        PermissionCategory.PRICING,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View payment, payer, role usage and pricing calendar statistics",
        PermissionCategory.REPORTS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "SYSTEM_ADMIN",
        "System Administrator",
        "Full system access",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    ORDER_PERMISSIONS
    + PAYMENT_PERMISSIONS
    + PRICING_PERMISSIONS
    + REPORT_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
