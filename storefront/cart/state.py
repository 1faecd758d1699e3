"""
In-memory cart state.

CartLine is the value type shared by the session store, the remote backend
and the mutator. CartState holds the current lines, derives the totals on
every read and notifies subscribers whenever the line set is replaced.
"""
from dataclasses import asdict, dataclass, replace
from decimal import Decimal, InvalidOperation
from uuid import uuid4


class LineNotFound(KeyError):
    """Raised when a mutation targets a line id the cart does not hold."""


def placeholder_id():
    """Locally unique id for a line that has no remote row yet."""
    return f"guest-{uuid4().hex}"


@dataclass(frozen=True)
class CartLine:
    id: str
    product_id: int
    name: str
    price: Decimal
    quantity: int
    size: str = None
    color: str = None
    image: str = ''

    @property
    def key(self):
        """Line identity: the same product in another size or colour is another line."""
        return (self.product_id, self.size or None, self.color or None)

    @property
    def subtotal(self):
        return self.price * self.quantity

    def with_quantity(self, quantity):
        return replace(self, quantity=quantity)

    def with_id(self, line_id):
        return replace(self, id=line_id)

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        """
        Build a line from its serialized form.
        Raises ValueError/KeyError/TypeError on malformed input.
        """
        quantity = int(data['quantity'])
        if quantity < 1:
            raise ValueError(f"Invalid quantity {quantity!r}")
        try:
            price = Decimal(str(data['price']))
        except InvalidOperation:
            raise ValueError(f"Invalid price {data['price']!r}") from None
        if not price.is_finite() or price < 0:
            raise ValueError(f"Invalid price {price!r}")
        return cls(
            id=str(data['id']),
            product_id=int(data['product_id']),
            name=str(data.get('name') or ''),
            price=price,
            quantity=quantity,
            size=data.get('size') or None,
            color=data.get('color') or None,
            image=data.get('image') or '',
        )


class OptimisticChange:
    """
    Snapshot, apply, commit-or-revert.

    Used as a context manager around a remote call: the snapshot is taken on
    creation, `apply` makes the new lines visible immediately, and an
    exception leaving the block restores the snapshot verbatim.
    """

    def __init__(self, state):
        self.state = state
        self.snapshot = state.lines
        self.applied = False
        self.committed = False

    def apply(self, lines):
        self.applied = True
        self.state.replace(lines)

    def commit(self):
        self.committed = True

    def revert(self):
        if self.applied:
            self.state.replace(self.snapshot)
        self.applied = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.revert()
            return False
        self.commit()
        return False


class CartState:
    """Current cart lines plus subscriber notification."""

    def __init__(self, lines=()):
        self._lines = tuple(lines)
        self._subscribers = []

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(self._lines)

    @property
    def lines(self):
        return self._lines

    @property
    def total_items(self):
        return sum(line.quantity for line in self._lines)

    @property
    def total_amount(self):
        return sum((line.subtotal for line in self._lines), Decimal('0'))

    def find(self, line_id):
        return next((line for line in self._lines if line.id == line_id), None)

    def find_by_key(self, key):
        return next((line for line in self._lines if line.key == key), None)

    def get(self, line_id):
        line = self.find(line_id)
        if line is None:
            raise LineNotFound(line_id)
        return line

    def subscribe(self, callback):
        """
        Register `callback(lines)` for every replacement of the line set.
        Returns a callable that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def replace(self, lines):
        self._lines = tuple(lines)
        for callback in list(self._subscribers):
            callback(self._lines)

    def change(self):
        return OptimisticChange(self)
