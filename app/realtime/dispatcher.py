"""
Event dispatcher

Routes each inbound envelope to the handler registered for its event name.
Every event is an independent unit of work; failures are reported to the
originating connection only.
"""
import json
from typing import Any, Awaitable, Callable, Dict, List, Union

from pydantic import ValidationError as PydanticValidationError

from app.core.errors import AppError
from app.core.logging import get_logger
from app.realtime.connection import Connection
from app.realtime.hub import RealtimeHub
from app.schemas.chat import InboundEvent

logger = get_logger(__name__)

EventHandler = Callable[[Connection, Any], Awaitable[None]]


class EventDispatcher:
    def __init__(self, hub: RealtimeHub):
        self.hub = hub
        self._handlers: Dict[str, EventHandler] = {}

    def register(self, event: str, handler: EventHandler) -> None:
        if event in self._handlers:
            raise ValueError(f"Handler for '{event}' already registered")
        self._handlers[event] = handler

    def on(self, event: str) -> Callable[[EventHandler], EventHandler]:
        def decorator(handler: EventHandler) -> EventHandler:
            self.register(event, handler)
            return handler
        return decorator

    @property
    def events(self) -> List[str]:
        return sorted(self._handlers)

    async def dispatch(self, connection: Connection, raw: Union[str, dict]) -> None:
        try:
            envelope = InboundEvent.model_validate(json.loads(raw) if isinstance(raw, str) else raw)
        except (json.JSONDecodeError, PydanticValidationError):
            await self.hub.emit_error(connection, None, "Invalid JSON envelope")
            return

        handler = self._handlers.get(envelope.event)
        if handler is None:
            await self.hub.emit_error(connection, envelope.event, f"Unknown event '{envelope.event}'")
            return

        try:
            await handler(connection, envelope.data)
        except AppError as e:
            logger.info(f"{envelope.event} from user {connection.user_id} rejected: {e.message}")
            await self.hub.emit_error(connection, envelope.event, e.message)
        except PydanticValidationError as e:
            logger.info(f"{envelope.event} from user {connection.user_id} has invalid payload: {e}")
            await self.hub.emit_error(connection, envelope.event, f"Invalid payload for {envelope.event}")
        except Exception as e:
            logger.exception(f"Error processing {envelope.event} from user {connection.user_id}: {e}")
            await self.hub.emit_error(connection, envelope.event, "Internal error")
