# runtime: event dispatch and panel settings
from .bus import EventBus, Subscription
from .config import PanelConfig
