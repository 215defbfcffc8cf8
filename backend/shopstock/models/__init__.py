from .reference import Material, Location
from .inventory import InventoryBalance, MaterialTotal, InventoryTransaction, InvoicePhoto
from .auth import User, SessionToken

__all__ = [
    'Material', 'Location',
    'InventoryBalance', 'MaterialTotal', 'InventoryTransaction', 'InvoicePhoto',
    'User', 'SessionToken',
]
