from .auth import User
from .security import SecurityEvent
from .clients import Client, Appointment
from .catalog import Product
from .orders import Order, Payment, Invoice

__all__ = [
    'User', 'SecurityEvent',
    'Client', 'Appointment',
    'Product',
    'Order', 'Payment', 'Invoice',
]
