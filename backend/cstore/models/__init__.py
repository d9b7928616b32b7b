from .inventory import Product, CartLine
from .promotions import PromotionalSale
from .customers import Customer, MembershipCard
from .checkout import CheckoutTransaction, SalesLogEntry

__all__ = [
    'Product', 'CartLine',
    'PromotionalSale',
    'Customer', 'MembershipCard',
    'CheckoutTransaction', 'SalesLogEntry',
]
