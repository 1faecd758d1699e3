from django.db import models
from django.conf import settings
from products.models import Product


class WishlistItem(models.Model):
    """
    A product a signed-in user saved for later.
    Guests keep their wishlist in the session instead.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='wishlist_items'
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='wishlisted_by'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        unique_together = [['user', 'product']]

    def __str__(self):
        return f"{self.product.name} ({self.user.email})"
