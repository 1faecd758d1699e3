from django.db import models
from django.conf import settings
from products.models import Product
from uuid import uuid4

from .state import CartLine


class CartItem(models.Model):
    """
    One line of a signed-in user's cart.

    Guest carts never reach this table; they live in the session until the
    user signs in and the cart is reconciled.
    Name, price and image are not stored here, they are joined from the
    product whenever the cart is fetched.
    """
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cart_items'
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='cart_items'
    )
    quantity = models.PositiveIntegerField(default=1)
    # Blank means "no selection"
    size = models.CharField(max_length=20, blank=True, default='')
    color = models.CharField(max_length=40, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'product', 'size', 'color'],
                name='unique_cart_line_per_variant'
            )
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product.name}"

    @property
    def total_price(self):
        """Quantity * the product's current effective price."""
        return self.quantity * self.product.current_price

    def as_line(self):
        """Convert the row (with its product loaded) into a CartLine."""
        product = self.product
        image = product.main_image
        return CartLine(
            id=str(self.id),
            product_id=product.pk,
            name=product.name,
            price=product.current_price,
            quantity=self.quantity,
            size=self.size or None,
            color=self.color or None,
            image=image.image.url if image else '',
        )
