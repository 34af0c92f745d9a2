import json
import logging
from typing import Dict, Iterable, Tuple

from familybank.client.storage import KeyValueStore


logger = logging.getLogger(__name__)

STORAGE_KEY = "notification-unread"
DEFAULT_TOPICS: Tuple[str, ...] = ("expenses", "chat")

UnreadCounters = Dict[str, int]


def default_counters(topics: Iterable[str] = DEFAULT_TOPICS) -> UnreadCounters:
    return {topic: 0 for topic in topics}


def _valid_count(value) -> bool:
    # bool is an int subclass; a stored true/false is not a count
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class CounterStore:
    """Unread counters persisted as one JSON record in a key-value store."""

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY, topics: Iterable[str] = DEFAULT_TOPICS) -> None:
        self._store = store
        self.key = key
        self.topics = tuple(topics)

    def load(self) -> UnreadCounters:
        """Return the persisted counters over the all-zero default.

        Missing or malformed records yield the default; entries that are not
        non-negative integers are skipped. Never raises.

        A topic absent from the record counts as 0, so a saved mapping that
        omits a default topic comes back with it added at 0. Every topic's
        count survives the round trip unchanged.
        """
        counters = default_counters(self.topics)
        try:
            raw = self._store.get(self.key)
        except OSError:
            logger.warning("Could not read unread counters", exc_info=True)
            return counters
        if raw is None:
            return counters
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Discarding malformed unread counters record")
            return counters
        if not isinstance(parsed, dict):
            return counters
        for topic, value in parsed.items():
            if _valid_count(value):
                counters[str(topic)] = value
        return counters

    def save(self, counters: UnreadCounters) -> None:
        try:
            self._store.set(self.key, json.dumps(counters, sort_keys=True))
        except OSError:
            logger.warning("Could not persist unread counters", exc_info=True)
