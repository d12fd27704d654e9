from .catalog import Product, ProductVariant, slugify
from .accounts import User, UserProfile, AdminUser, SessionToken, LoginAttempt, ADMIN_ROLES
from .cart import CartItem
from .orders import (
    Order,
    OrderItem,
    StockAdjustment,
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_PROCESSING,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
    ORDER_STATUSES,
    STATUS_FLOW,
    TERMINAL_STATUSES,
)

__all__ = [
    'Product', 'ProductVariant', 'slugify',
    'User', 'UserProfile', 'AdminUser', 'SessionToken', 'LoginAttempt', 'ADMIN_ROLES',
    'CartItem',
    'Order', 'OrderItem', 'StockAdjustment',
    'STATUS_PENDING', 'STATUS_CONFIRMED', 'STATUS_PROCESSING',
    'STATUS_SHIPPED', 'STATUS_DELIVERED', 'STATUS_CANCELLED',
    'ORDER_STATUSES', 'STATUS_FLOW', 'TERMINAL_STATUSES',
]
