"""Queue of intents collected for a plan."""

import logging

from fsagent.core.errors import IntentValidationError
from fsagent.models.intent import Intent

logger = logging.getLogger(__name__)


class PlanQueue:
    """Ordered list of intents awaiting preview and execution.

    Only filesystem intents can be queued; undo, help and explain act on the
    session itself and are rejected.
    """

    def __init__(self) -> None:
        self._items: list[Intent] = []

    def add(self, intent: Intent) -> int:
        """Append an intent.

        Returns:
            1-based position of the new entry.

        Raises:
            IntentValidationError: If the intent cannot be part of a plan.
        """
        if not intent.plannable:
            raise IntentValidationError(f"'{intent.type}' cannot be added to a plan")
        self._items.append(intent)
        logger.debug("Queued %s at position %d", intent.describe(), len(self._items))
        return len(self._items)

    def items(self) -> list[Intent]:
        return list(self._items)

    @property
    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def get(self, index: int) -> Intent:
        """Return the intent at a 1-based position.

        Raises:
            IndexError: If the position is out of range.
        """
        if not 1 <= index <= len(self._items):
            msg = f"No plan entry {index} (plan has {len(self._items)})"
            raise IndexError(msg)
        return self._items[index - 1]

    def remove(self, index: int) -> Intent:
        """Remove and return the intent at a 1-based position."""
        intent = self.get(index)
        del self._items[index - 1]
        return intent

    def drop_first(self, count: int) -> None:
        """Forget the first ``count`` entries (those already executed)."""
        del self._items[:count]

    def clear(self) -> int:
        """Empty the queue; returns how many entries were dropped."""
        count = len(self._items)
        self._items.clear()
        return count

