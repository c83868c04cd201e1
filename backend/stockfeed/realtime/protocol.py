"""Inbound control-message protocol for one WebSocket session.

Frames are JSON objects with a ``type`` field:

    login          {"type": "login", "email": "a@b.c"}   -> login_ack
    get_supported  {"type": "get_supported"}             -> supported
    subscribe      {"type": "subscribe", "ticker": "X"}  -> subscribed | error
    unsubscribe    {"type": "unsubscribe", "ticker": "X"} -> unsubscribed

Extra fields are ignored. Anything else gets an ``error`` response and the
connection stays open: protocol errors never terminate a session.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from . import models
from .exceptions import INVALID_JSON, UNKNOWN_MESSAGE_TYPE, DecodeError, StreamError
from .session import Session

logger = logging.getLogger(__name__)


class LoginMessage(BaseModel):
    type: Literal["login"]
    email: str | None = None


class GetSupportedMessage(BaseModel):
    type: Literal["get_supported"]


class SubscribeMessage(BaseModel):
    type: Literal["subscribe"]
    ticker: str


class UnsubscribeMessage(BaseModel):
    type: Literal["unsubscribe"]
    ticker: str


InboundMessage = Annotated[
    Union[LoginMessage, GetSupportedMessage, SubscribeMessage, UnsubscribeMessage],
    Field(discriminator="type"),
]

_inbound = TypeAdapter(InboundMessage)


def decode(raw: str | bytes) -> BaseModel:
    """Parse one inbound frame into a typed message.

    Raises DecodeError carrying the client-facing error text.
    """
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError, UnicodeDecodeError and oversized ints.
        raise DecodeError(INVALID_JSON, str(e)) from e

    try:
        return _inbound.validate_python(payload)
    except ValidationError as e:
        raise DecodeError(UNKNOWN_MESSAGE_TYPE, f"{e.error_count()} validation error(s)") from e


class SessionProtocol:
    """State machine that interprets control messages for one session.

    CONNECTED and IDENTIFIED accept every message kind; identity is metadata,
    not a gate. After the session closes, ``handle`` does nothing.
    """

    def __init__(self, session: Session, supported: tuple[str, ...]) -> None:
        self.session = session
        self._supported = supported
        self._handlers = {
            LoginMessage: self._on_login,
            GetSupportedMessage: self._on_get_supported,
            SubscribeMessage: self._on_subscribe,
            UnsubscribeMessage: self._on_unsubscribe,
        }

    async def handle(self, raw: str | bytes) -> dict | None:
        """Process one inbound frame and send the response.

        Returns the response that was produced, or None if the session is
        already closed.
        """
        if self.session.closed:
            return None

        response = self.respond(raw)
        await self.session.send(response)
        return response

    def respond(self, raw: str | bytes) -> dict:
        """Apply one inbound frame to session state and build the response."""
        try:
            message = decode(raw)
            return self._handlers[type(message)](message)
        except StreamError as e:
            logger.warning("Session %d: invalid message: %s", self.session.id, e)
            return models.error(e.client_message)

    # --- Transitions ---

    def _on_login(self, message: LoginMessage) -> dict:
        self.session.identify(message.email)
        logger.info("Session %d identified as %r", self.session.id, message.email)
        return models.login_ack(message.email)

    def _on_get_supported(self, message: GetSupportedMessage) -> dict:
        return models.supported(self._supported)

    def _on_subscribe(self, message: SubscribeMessage) -> dict:
        self.session.subscriptions.subscribe(message.ticker)
        logger.debug("Session %d subscribed to %s", self.session.id, message.ticker)
        return models.subscribed(message.ticker)

    def _on_unsubscribe(self, message: UnsubscribeMessage) -> dict:
        self.session.subscriptions.unsubscribe(message.ticker)
        logger.debug("Session %d unsubscribed from %s", self.session.id, message.ticker)
        return models.unsubscribed(message.ticker)
