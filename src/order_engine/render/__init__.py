# order panel rendering
from .currency import format_currency
from .panel import FRAME_COLUMNS, formatter_for, order_frame, render_order_details
