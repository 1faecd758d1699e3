from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .services import Wishlist


@receiver(user_logged_in)
def merge_guest_wishlist(sender, request, user, **kwargs):
    if request is None or not hasattr(request, 'session'):
        return
    Wishlist(request.session).merge_into_account(user)
