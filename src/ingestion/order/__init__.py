# order payload ingestion package
from .normalize import (
    FailureKind,
    NormalizeOutcome,
    OrderPayloadNormalizer,
    is_candidate_item,
    normalize,
    normalize_with_outcome,
    order_total,
)
from .source import OrderEventFileSource, OrderEventMemorySource, OrderEventSourceError, OrderEventStreamSource
from .worker import OrderEventWorker
