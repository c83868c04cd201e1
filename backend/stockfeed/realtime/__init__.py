"""Real-time price distribution subsystem for stockfeed.

Public API:
    PriceState          - Bounded random-walk price table
    PriceTick, Snapshot - Immutable per-tick price values
    Session             - Server-side state for one connection
    SubscriptionRegistry - Per-session ticker subscriptions
    SessionProtocol     - Inbound control-message state machine
    SessionRegistry     - Active sessions keyed by id
    ConnectionLifecycle - Session open/close bookkeeping
    BroadcastScheduler  - Fixed-interval advance-and-broadcast task
    create_stream_router - FastAPI router factory for the WebSocket endpoint
"""

from .broadcaster import BroadcastScheduler
from .connections import ConnectionLifecycle, SessionRegistry
from .exceptions import DecodeError, StreamError, UnsupportedTicker
from .models import PriceTick, Snapshot
from .prices import PriceState
from .protocol import SessionProtocol
from .session import Session, SessionState, SubscriptionRegistry
from .stream import create_stream_router

__all__ = [
    "BroadcastScheduler",
    "ConnectionLifecycle",
    "DecodeError",
    "PriceState",
    "PriceTick",
    "Session",
    "SessionProtocol",
    "SessionRegistry",
    "SessionState",
    "Snapshot",
    "StreamError",
    "SubscriptionRegistry",
    "UnsupportedTicker",
    "create_stream_router",
]
