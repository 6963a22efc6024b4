# order data package
from .model import EMPTY_ORDER, NormalizedOrder, ValidatedItem, empty_order
from .handler import OrderDetailsHandler
