import logging

from django.conf import settings
from products.models import Product

from .models import WishlistItem

logger = logging.getLogger(__name__)


class Wishlist:
    """
    Saved products for one visitor.

    Guests keep a list of product ids in a session slot; signed-in users
    keep WishlistItem rows. At sign-in the guest list is folded into the
    account (union, nothing is removed) and the slot is cleared.
    """

    def __init__(self, session, user=None, key=None):
        self.session = session
        self.user = user if user is not None and user.is_authenticated else None
        self.key = key or settings.STOREFRONT['WISHLIST_SESSION_KEY']

    @classmethod
    def for_request(cls, request):
        return cls(request.session, getattr(request, 'user', None))

    def product_ids(self):
        if self.user is not None:
            return list(
                WishlistItem.objects.filter(user=self.user)
                .values_list('product_id', flat=True)
            )
        return self._local_ids()

    def products(self):
        """Active products on the wishlist, most recently saved first."""
        ids = self.product_ids()
        position = {pk: index for index, pk in enumerate(ids)}
        products = Product.objects.with_media().filter(pk__in=ids, is_active=True)
        return sorted(products, key=lambda product: position[product.pk])

    def contains(self, product_id):
        return product_id in self.product_ids()

    def add(self, product):
        """Save `product`; returns False if it was already saved."""
        if self.user is not None:
            _, created = WishlistItem.objects.get_or_create(user=self.user, product=product)
            return created
        ids = self._local_ids()
        if product.pk in ids:
            return False
        self._save_local([product.pk] + ids)
        return True

    def remove(self, product_id):
        """Returns False if the product was not on the wishlist."""
        if self.user is not None:
            deleted, _ = WishlistItem.objects.filter(
                user=self.user, product_id=product_id).delete()
            return bool(deleted)
        ids = self._local_ids()
        if product_id not in ids:
            return False
        self._save_local([pk for pk in ids if pk != product_id])
        return True

    def merge_into_account(self, user):
        """Add the guest's saved products to `user`'s wishlist. Returns how many were added."""
        local_ids = self._local_ids()
        self.session.pop(self.key, None)
        self.session.modified = True
        if not local_ids:
            return 0

        saved = set(
            WishlistItem.objects.filter(user=user).values_list('product_id', flat=True))
        # Products deleted or hidden since they were saved are dropped.
        available = Product.objects.filter(
            pk__in=[pk for pk in local_ids if pk not in saved], is_active=True)
        created = WishlistItem.objects.bulk_create(
            [WishlistItem(user=user, product=product) for product in available],
            ignore_conflicts=True,
        )
        self.user = user
        logger.info(f"Merged {len(created)} guest wishlist item(s) into user {user.pk}")
        return len(created)

    def _local_ids(self):
        raw = self.session.get(self.key) or []
        try:
            return [int(pk) for pk in raw]
        except (TypeError, ValueError):
            logger.warning(f"Discarding unreadable guest wishlist in slot {self.key!r}")
            return []

    def _save_local(self, ids):
        self.session[self.key] = ids
        self.session.modified = True
