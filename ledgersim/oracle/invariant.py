import copy
from abc import ABC, abstractmethod
from typing import Any
from .context_store import ContextStore, namespaced_key
from .log import LogEmitter
from ..core.types import LedgerObject

class Invariant(ABC):
    """
    A pre/post check pair around a contract call.

    pre_check stashes a snapshot of the subject in the context store;
    post_check compares it against the subject after the call and emits a
    crash when the property is broken. Both halves key by (name, subject id).
    """
    name: str = "invariant"

    @abstractmethod
    def snapshot(self, subject: LedgerObject) -> Any:
        """
        The value to carry across the call. Must be storable by the backend.
        """
        pass

    @abstractmethod
    def holds(self, before: Any, after: Any, subject: LedgerObject) -> bool:
        pass

    def describe(self, before: Any, after: Any, subject: LedgerObject) -> str:
        return f"{self.name} violated for {subject.id}: before={before} after={after}"

    def key_for(self, subject: LedgerObject) -> str:
        return namespaced_key(self.name, subject.id)

    def pre_check(self, store: ContextStore, subject: LedgerObject):
        # Copied: callers mutate the subject in place between the two halves
        store.borrow_mut_state(store.handle)[self.key_for(subject)] = copy.deepcopy(self.snapshot(subject))

    def post_check(self, store: ContextStore, emitter: LogEmitter, subject: LedgerObject) -> bool:
        """
        Returns whether the invariant held. Raises KeyError if pre_check never ran.
        """
        entries = store.borrow_state(store.handle)
        key = self.key_for(subject)
        if key not in entries:
            raise KeyError(f"no snapshot stashed under {key!r}; pre_check did not run")
        before = entries[key]
        after = self.snapshot(subject)
        if self.holds(before, after, subject):
            return True
        emitter.crash_keyed("reason", self.describe(before, after, subject))
        return False
