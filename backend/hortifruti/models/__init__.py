from .inventory import Product, StockMovement
from .customers import Customer, Address
from .sales import Sale, SaleItem
from .auth import User, RefreshToken

__all__ = [
    'Product', 'StockMovement',
    'Customer', 'Address',
    'Sale', 'SaleItem',
    'User', 'RefreshToken',
]
