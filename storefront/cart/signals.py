import logging

from asgiref.sync import async_to_sync
from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .services import ShoppingCart

logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def merge_guest_cart(sender, request, user, **kwargs):
    """
    Fold the session's guest cart into the user's cart on sign-in.
    A failed merge is logged by the reconciler and never blocks the login.
    """
    if request is None or not hasattr(request, 'session'):
        return
    cart = ShoppingCart.for_request(request, guest=True)
    merged = async_to_sync(cart.sign_in)(user.pk)
    logger.debug(
        f"Guest cart merge for user {user.pk}: "
        f"{'ok' if merged else 'failed'}, {len(cart.lines)} line(s)")
