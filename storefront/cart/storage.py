import json
import logging

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder

from .state import CartLine

logger = logging.getLogger(__name__)


def default_cart_key():
    return settings.STOREFRONT['CART_SESSION_KEY']


class LocalCartStore:
    """
    Guest cart persisted in a single named slot of a per-browser store.

    The slot is normally `request.session`, but any mutable mapping works.
    The value is always read and written whole: one JSON array of lines.
    """

    def __init__(self, slot, key=None):
        self.slot = slot
        self.key = key or default_cart_key()

    def load(self):
        """Return the stored lines; anything unreadable counts as an empty cart."""
        raw = self.slot.get(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [CartLine.from_dict(entry) for entry in data]
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            logger.warning(f"Discarding unreadable guest cart in slot {self.key!r}: {e}")
            return []

    def save(self, lines):
        self.slot[self.key] = json.dumps(
            [line.to_dict() for line in lines], cls=DjangoJSONEncoder)
        self._mark_modified()

    def clear(self):
        if self.key in self.slot:
            del self.slot[self.key]
            self._mark_modified()

    def _mark_modified(self):
        # Plain dicts have no 'modified' flag; sessions need it to be saved.
        if hasattr(self.slot, 'modified'):
            self.slot.modified = True
