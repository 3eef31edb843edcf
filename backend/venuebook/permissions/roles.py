# Overview: Default role-to-permission mappings seeded for every company.

# - admin: everything
# - manager: everything except SYSTEM_ADMIN
# - staff: takes bookings and records payments, read-only pricing

DEFAULT_ROLE_PERMISSIONS = {
    "admin": [
        "VIEW_ORDERS",
        "EDIT_ORDERS",
        "MANAGE_ORDER_PAYMENTS",
        "REFUND_PLAYERS",
        "VIEW_PRICING",
        "MANAGE_PRICING",
        "VIEW_REPORTS",
        "SYSTEM_ADMIN",
    ],
    "manager": [
        "VIEW_ORDERS",
        "EDIT_ORDERS",
        "MANAGE_ORDER_PAYMENTS",
        "REFUND_PLAYERS",
        "VIEW_PRICING",
        "MANAGE_PRICING",
        "VIEW_REPORTS",
    ],
    "staff": [
        "VIEW_ORDERS",
        "EDIT_ORDERS",
        "MANAGE_ORDER_PAYMENTS",
        "VIEW_PRICING",
    ],
}
