# ingestion contracts package
from .event import (
    CALL_ENDED,
    ORDER_DETAILS_UPDATED,
    EventName,
    OrderEvent,
    is_known_event,
    normalize_event,
)
from .normalize import Normalizer
from .source import AsyncSource, Raw, Source
from .worker import IngestWorker
