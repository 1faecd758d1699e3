from django.db import models
from django.conf import settings
from phonenumber_field.modelfields import PhoneNumberField
from products.models import Product
from decimal import Decimal
import uuid


class Order(models.Model):
    """
    Order represents a complete purchase, placed from the cart at checkout.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        CONFIRMED = 'confirmed', 'Confirmed'
        PROCESSING = 'processing', 'Processing'
        SHIPPED = 'shipped', 'Shipped'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentMethod(models.TextChoices):
        ONLINE = 'online', 'Online payment'
        COD = 'cod', 'Cash on Delivery'
        UPI = 'upi', 'UPI'

    class ShippingMethod(models.TextChoices):
        PREMIUM = 'premium', 'Premium'
        SIMPLE = 'simple', 'Simple'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )

    # Shipping information
    shipping_name = models.CharField(max_length=225)
    shipping_email = models.EmailField()
    shipping_phone = PhoneNumberField()
    shipping_address = models.TextField()
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_pincode = models.CharField(max_length=10)
    shipping_method = models.CharField(
        max_length=20,
        choices=ShippingMethod.choices,
        default=ShippingMethod.PREMIUM
    )

    # Payment
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices
    )
    payment_id = models.CharField(
        max_length=225, blank=True, null=True,
        help_text="Gateway payment id, or the manual UPI reference"
    )

    # Order Status
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING
    )

    # Pricing
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    shipping_cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2)

    # Notes
    customer_notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Order {self.id} - {self.status}"

    def next_statuses(self):
        """Statuses staff may move this order to from its current one."""
        return STATUS_FLOW.get(self.status, ())

    def can_move_to(self, status):
        return status in self.next_statuses()


# Back-office workflow: one step forward at a time, cancel until delivered.
# Online and UPI orders start out paid and join the flow at confirmation.
STATUS_FLOW = {
    Order.Status.PENDING: (Order.Status.CONFIRMED, Order.Status.CANCELLED),
    Order.Status.PAID: (Order.Status.CONFIRMED, Order.Status.CANCELLED),
    Order.Status.CONFIRMED: (Order.Status.PROCESSING, Order.Status.CANCELLED),
    Order.Status.PROCESSING: (Order.Status.SHIPPED, Order.Status.CANCELLED),
    Order.Status.SHIPPED: (Order.Status.DELIVERED, Order.Status.CANCELLED),
}


class OrderItem(models.Model):
    """
    Individual items in an order.
    Name, variant and price are copied from the cart line so later catalog
    edits do not change past orders.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True
    )
    product_name = models.CharField(max_length=225)
    size = models.CharField(max_length=20, blank=True)
    color = models.CharField(max_length=40, blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField()

    def __str__(self):
        return f"{self.quantity}x {self.product_name}"

    @property
    def total_price(self):
        return self.unit_price * self.quantity
