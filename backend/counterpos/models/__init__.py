from .auth import Account, SessionToken, ROLE_ADMIN, ROLE_CASHIER, VALID_ROLES
from .catalog import Item
from .orders import Order, OrderLine

__all__ = [
    'Account', 'SessionToken', 'ROLE_ADMIN', 'ROLE_CASHIER', 'VALID_ROLES',
    'Item',
    'Order', 'OrderLine',
]
