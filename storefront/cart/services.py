import logging

from django.contrib import messages

from .backends import CartBackendError, ModelCartBackend
from .mutations import CartMutator
from .state import CartState
from .storage import LocalCartStore
from .sync import CartReconciler

logger = logging.getLogger(__name__)


def messages_notifier(request):
    """Route cart notices to the Django messages framework."""
    def notify(level, message):
        messages.add_message(request, level, message, fail_silently=True)
    return notify


class ShoppingCart:
    """
    The cart owned by one browser session.

    Holds the CartState and wires it to the session store, the remote
    backend, the mutator and the reconciler. Views get one from
    `for_request` and subscribe to it if they need change notifications.

    While anonymous, every change is written back to the session store.
    Once signed in, changes go to the remote backend only.
    """

    def __init__(self, store, backend, owner=None, notify=None):
        self.store = store
        self.backend = backend
        self.notify = notify
        self.state = CartState()
        self.mutator = CartMutator(self.state, backend, notify=notify)
        self.reconciler = CartReconciler(self.state, store, backend)
        self._stop_persisting = None
        if owner is None:
            self._enter_local_mode()
        else:
            self.mutator.owner = owner

    @classmethod
    def for_request(cls, request, backend=None, guest=False):
        """
        Build the cart for `request`. With `guest=True` the cart starts from
        the session even if the request is already authenticated, which is
        what the sign-in merge needs.
        """
        user = getattr(request, 'user', None)
        owner = None
        if not guest and user is not None and user.is_authenticated:
            owner = user.pk
        return cls(
            LocalCartStore(request.session),
            backend or ModelCartBackend(),
            owner=owner,
            notify=messages_notifier(request),
        )

    @property
    def owner(self):
        return self.mutator.owner

    @property
    def is_authenticated(self):
        return self.mutator.is_authenticated

    @property
    def lines(self):
        return self.state.lines

    @property
    def total_items(self):
        return self.state.total_items

    @property
    def total_amount(self):
        return self.state.total_amount

    @property
    def is_empty(self):
        return not self.state.lines

    def subscribe(self, callback):
        return self.state.subscribe(callback)

    async def load(self):
        """Fetch the signed-in user's lines. Guest lines are already loaded."""
        if not self.is_authenticated:
            return True
        try:
            self.state.replace(await self.backend.fetch(self.owner))
        except CartBackendError:
            logger.exception(f"Could not load cart of user {self.owner}")
            self._notify(messages.ERROR, "Could not load your cart.")
            return False
        return True

    async def sign_in(self, owner):
        """Switch to remote mode and merge the guest cart into `owner`'s cart."""
        self._leave_local_mode()
        self.mutator.owner = owner
        return await self.reconciler.reconcile(owner)

    def sign_out(self):
        """Back to a guest cart. Remote lines are not copied into the session."""
        self.mutator.owner = None
        self.state.replace(())
        self._enter_local_mode()

    async def add_line(self, line):
        return await self.mutator.add_line(line)

    async def set_quantity(self, line_id, quantity):
        return await self.mutator.set_quantity(line_id, quantity)

    async def remove_line(self, line_id):
        return await self.mutator.remove_line(line_id)

    async def clear(self):
        return await self.mutator.clear()

    def _enter_local_mode(self):
        self.state.replace(self.store.load())
        if self._stop_persisting is None:
            self._stop_persisting = self.state.subscribe(self.store.save)

    def _leave_local_mode(self):
        if self._stop_persisting is not None:
            self._stop_persisting()
            self._stop_persisting = None

    def _notify(self, level, message):
        if self.notify is not None:
            self.notify(level, message)
