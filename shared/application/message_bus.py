"""
Message Bus

Routes commands (and read-only queries, which travel the same way) to
exactly one handler, and domain events to every subscriber.

Event subscriptions follow the class hierarchy: a handler subscribed to a
base event class also receives its subclasses.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Type
import logging

from shared.domain.base import DomainEvent
from shared.domain.exceptions import DomainError

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Any]
EventHandler = Callable[[DomainEvent], None]


class MessageBus:

    def __init__(self):
        self._command_handlers: Dict[Type, CommandHandler] = {}
        self._subscribers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    # ===== Registration =====

    def register_command_handler(self, command_type: Type, handler: CommandHandler):
        """Bind ``command_type`` to its handler; a second binding is an error"""
        if command_type in self._command_handlers:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._command_handlers[command_type] = handler
        logger.debug(f"Registered command handler for {command_type.__name__}")

    def register_handlers(self, handlers: Mapping[Type, CommandHandler]):
        for command_type, handler in handlers.items():
            self.register_command_handler(command_type, handler)

    def has_command_handler(self, command_type: Type) -> bool:
        return command_type in self._command_handlers

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {event_type.__name__}")

    def subscribers_for(self, event_type: Type[DomainEvent]) -> List[EventHandler]:
        handlers: List[EventHandler] = []
        for klass in event_type.__mro__:
            handlers.extend(self._subscribers.get(klass, ()))
        return handlers

    # ===== Dispatch =====

    def handle_command(self, command: Any) -> Any:
        """
        Run the handler bound to the command's type and return its result

        Domain errors are logged at warning level with their kind and
        re-raised unchanged. A command nobody handles raises ValueError.
        """
        name = type(command).__name__
        handler = self._command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"No handler registered for {name}")

        logger.info(f"Handling {name}")
        try:
            return handler(command)
        except DomainError as e:
            logger.warning(f"{name} refused ({e.kind}): {e}")
            raise
        except Exception as e:
            logger.error(f"{name} failed: {e}", exc_info=True)
            raise

    def publish_events(self, events: Iterable[DomainEvent]) -> int:
        """
        Deliver each event to all of its subscribers

        A failing subscriber is logged and skipped. Returns the number of
        failed deliveries.
        """
        failures = 0
        for event in events:
            name = type(event).__name__
            handlers = self.subscribers_for(type(event))
            if not handlers:
                logger.debug(f"{name} has no subscribers")
                continue

            logger.info(f"Publishing {name} ({event.event_id}) to {len(handlers)} subscriber(s)")
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    failures += 1
                    logger.error(
                        f"Subscriber {getattr(handler, '__name__', handler)} failed on {name}: {e}",
                        exc_info=True,
                    )
        return failures


message_bus = MessageBus()
