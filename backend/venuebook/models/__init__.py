from .tenancy import Company, Store
from .auth import User, UserStoreAccess, Role, UserRole, Permission, RolePermission, SessionToken
from .security import SecurityEvent
from .pricing import RolePricingTemplate, PricingCalendarEntry
from .orders import Order, OrderPlayer, OrderPayment, OrderPaymentEvent, order_payment_players

__all__ = [
    'Company', 'Store',
    'User', 'UserStoreAccess', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'SecurityEvent',
    'RolePricingTemplate', 'PricingCalendarEntry',
    'Order', 'OrderPlayer', 'OrderPayment', 'OrderPaymentEvent', 'order_payment_players',
]
