from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = ['LEDGER_CHANGED', 'IMPORT_FAILED', 'Event', 'EventBus', 'Handler']


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], object]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> list:
        handlers = list(self._subscribers.get(name, []))
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in handlers]


LEDGER_CHANGED = "LEDGER_CHANGED"
IMPORT_FAILED = "IMPORT_FAILED"
