from typing import Any, Dict, Iterator, List
from pydantic import BaseModel
from .types import Event

class EventLog:
    """
    Append-only, ordered event channel.
    The runtime appends; trace and fuzz consumers poll with a cursor.
    """
    def __init__(self):
        self._events: List[Event] = []

    def append(self, tx_index: int, type_tag: str, payload: BaseModel) -> Event:
        """
        Records a payload as the next event. Never fails.
        """
        event = Event(
            sequence=len(self._events),
            tx_index=tx_index,
            type_tag=type_tag,
            data=payload.model_dump(mode="json"),
        )
        self._events.append(event)
        return event

    def since(self, cursor: int) -> List[Event]:
        """
        Events with sequence >= cursor. Pass len(log) back as the next cursor.
        """
        return self._events[max(cursor, 0):]

    def of_type(self, type_tag: str) -> List[Event]:
        return [e for e in self._events if e.type_tag == type_tag]

    def violations(self) -> List[Event]:
        return [e for e in self._events if e.is_violation()]

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def write_jsonl(self, filepath: str):
        """
        Writes newline-delimited JSON, one event per line.
        """
        with open(filepath, "w") as f:
            for event in self._events:
                f.write(event.model_dump_json() + "\n")

    @staticmethod
    def replay(filepath: str) -> Iterator[Event]:
        """
        Generator to replay events from a JSONL file.
        """
        with open(filepath, "r") as f:
            for line in f:
                if line.strip():
                    yield Event.model_validate_json(line)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Return a copy of all events as plain dicts."""
        return [e.model_dump(mode="json") for e in self._events]
