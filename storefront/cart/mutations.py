import logging

from django.contrib import messages

from .backends import CartBackendError
from .state import placeholder_id

logger = logging.getLogger(__name__)


class CartMutator:
    """
    Add, update, remove and clear cart lines.

    For a guest (`owner` is None) every change is local and immediate.
    For a signed-in user, quantity changes, removals and clears are shown
    optimistically and reverted if the remote call fails; new lines are only
    shown once the remote insert has returned their id.
    Each operation returns True when applied, False when the remote side
    rejected it.
    """

    def __init__(self, state, backend, owner=None, notify=None):
        self.state = state
        self.backend = backend
        self.owner = owner
        self.notify = notify

    @property
    def is_authenticated(self):
        return self.owner is not None

    async def add_line(self, line):
        existing = self.state.find_by_key(line.key)
        if existing is not None:
            return await self.set_quantity(existing.id, existing.quantity + line.quantity)

        if self.is_authenticated:
            try:
                line_id = await self.backend.insert(self.owner, line)
            except CartBackendError:
                logger.exception(f"Could not add product {line.product_id} to cart of user {self.owner}")
                self._notify(messages.ERROR, "Could not add item to cart.")
                return False
        else:
            line_id = placeholder_id()

        self.state.replace(self.state.lines + (line.with_id(line_id),))
        self._notify(messages.SUCCESS, f"{line.name} has been added to your cart.")
        return True

    async def set_quantity(self, line_id, quantity):
        if quantity <= 0:
            return await self.remove_line(line_id)

        self.state.get(line_id)
        lines = tuple(
            line.with_quantity(quantity) if line.id == line_id else line
            for line in self.state.lines
        )
        return await self._write_through(
            lines,
            lambda: self.backend.update(line_id, quantity),
            f"Could not update cart line {line_id}",
            "Could not update item quantity.",
        )

    async def remove_line(self, line_id):
        self.state.get(line_id)
        lines = tuple(line for line in self.state.lines if line.id != line_id)
        return await self._write_through(
            lines,
            lambda: self.backend.delete(line_id),
            f"Could not remove cart line {line_id}",
            "Could not remove item from cart.",
        )

    async def clear(self):
        return await self._write_through(
            (),
            lambda: self.backend.delete_for_owner(self.owner),
            f"Could not clear cart of user {self.owner}",
            "Could not clear your cart.",
        )

    async def _write_through(self, lines, remote_call, log_message, user_message):
        try:
            with self.state.change() as change:
                change.apply(lines)
                if self.is_authenticated:
                    await remote_call()
        except CartBackendError:
            logger.exception(log_message)
            self._notify(messages.ERROR, user_message)
            return False
        return True

    def _notify(self, level, message):
        if self.notify is not None:
            self.notify(level, message)
