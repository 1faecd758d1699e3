from rest_framework import serializers
from phonenumber_field.serializerfields import PhoneNumberField
from products.models import Product
from .models import Order, OrderItem
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class OrderItemSerializer(serializers.ModelSerializer):
    total_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id',
            'product',
            'product_name',
            'size',
            'color',
            'unit_price',
            'quantity',
            'total_price'
        ]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(
        source='get_status_display', read_only=True)
    payment_method_display = serializers.CharField(
        source='get_payment_method_display', read_only=True)
    shipping_phone = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'user',
            'status',
            'status_display',
            'shipping_name',
            'shipping_email',
            'shipping_phone',
            'shipping_address',
            'shipping_city',
            'shipping_state',
            'shipping_pincode',
            'shipping_method',
            'payment_method',
            'payment_method_display',
            'payment_id',
            'subtotal',
            'shipping_cost',
            'total',
            'customer_notes',
            'items',
            'created_at',
            'updated_at',
            'paid_at'
        ]


class OrderStatusSerializer(serializers.Serializer):
    """Staff status change; only the next step of the workflow, or a cancel, is accepted."""
    status = serializers.ChoiceField(choices=Order.Status.choices)
    admin_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_status(self, value):
        order = self.instance
        if not order.can_move_to(value):
            allowed = ', '.join(order.next_statuses()) or 'none'
            raise serializers.ValidationError(
                f"Cannot move an order from {order.status} to {value}. Allowed: {allowed}")
        return value

    def update(self, instance, validated_data):
        previous = instance.status
        instance.status = validated_data['status']
        fields = ['status', 'updated_at']
        if 'admin_notes' in validated_data:
            instance.admin_notes = validated_data['admin_notes']
            fields.append('admin_notes')
        instance.save(update_fields=fields)
        logger.info(f"Order {instance.id} moved from {previous} to {instance.status}")
        return instance


def shipping_cost_for(method):
    return settings.STOREFRONT['SHIPPING_RATES'][method]


def quantities_by_product(lines):
    wanted = {}
    for line in lines:
        wanted[line.product_id] = wanted.get(line.product_id, 0) + line.quantity
    return wanted


def check_stock(products, wanted):
    for product_id, quantity in wanted.items():
        product = products.get(product_id)
        if product is None or not product.is_active:
            raise serializers.ValidationError(
                {"cart": "Some items in your cart are no longer available."})
        if quantity > product.stock_quantity:
            raise serializers.ValidationError(
                {"cart": f"Not enough stock for {product.name}. Available: {product.stock_quantity}"})


class CheckoutSerializer(serializers.Serializer):
    """
    Turn the visitor's cart into an order.

    Expects a loaded ShoppingCart in the context under 'cart'.
    """
    shipping_name = serializers.CharField(min_length=2, max_length=225)
    shipping_email = serializers.EmailField()
    shipping_phone = PhoneNumberField()
    shipping_address = serializers.CharField(min_length=10)
    shipping_city = serializers.CharField(min_length=2, max_length=100)
    shipping_state = serializers.CharField(min_length=2, max_length=100)
    shipping_pincode = serializers.RegexField(r'^\d{6}$', max_length=6)
    shipping_method = serializers.ChoiceField(
        choices=Order.ShippingMethod.choices, default=Order.ShippingMethod.PREMIUM)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices)
    payment_id = serializers.CharField(
        max_length=225, required=False, allow_blank=True)
    customer_notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        cart = self.context['cart']
        if cart.is_empty:
            raise serializers.ValidationError({"cart": "Cart is empty"})

        wanted = quantities_by_product(cart.lines)
        check_stock(Product.objects.in_bulk(list(wanted)), wanted)

        subtotal = cart.total_amount
        shipping_cost = shipping_cost_for(data['shipping_method'])
        total = subtotal + shipping_cost

        method = data['payment_method']
        if method == Order.PaymentMethod.COD:
            cod_minimum = settings.STOREFRONT['COD_MIN_ORDER']
            if total < cod_minimum:
                raise serializers.ValidationError(
                    {"payment_method": f"Cash on Delivery requires a minimum order of ₹{cod_minimum}"})
        elif method == Order.PaymentMethod.ONLINE and not data.get('payment_id'):
            raise serializers.ValidationError(
                {"payment_id": "A payment id from the payment gateway is required."})
        elif method == Order.PaymentMethod.UPI and not data.get('payment_id'):
            data['payment_id'] = f"UPI_MANUAL_{int(timezone.now().timestamp() * 1000)}"

        data['subtotal'] = subtotal
        data['shipping_cost'] = shipping_cost
        data['total'] = total
        return data

    @transaction.atomic
    def create(self, validated_data):
        request = self.context.get('request')
        cart = self.context['cart']
        # Re-checked under row locks: a concurrent checkout may have sold the stock.
        wanted = quantities_by_product(cart.lines)
        check_stock(
            Product.objects.select_for_update().order_by('pk').in_bulk(list(wanted)),
            wanted)
        paid = validated_data['payment_method'] != Order.PaymentMethod.COD

        order = Order.objects.create(
            user=request.user if request else None,
            status=Order.Status.PAID if paid else Order.Status.PENDING,
            paid_at=timezone.now() if paid else None,
            payment_id=validated_data.get('payment_id') or None,
            **{
                field: validated_data[field] for field in (
                    'shipping_name', 'shipping_email', 'shipping_phone',
                    'shipping_address', 'shipping_city', 'shipping_state',
                    'shipping_pincode', 'shipping_method', 'payment_method',
                    'customer_notes', 'subtotal', 'shipping_cost', 'total',
                )
            }
        )

        # Create order items & reduce stock
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product_id=line.product_id,
                product_name=line.name,
                size=line.size or '',
                color=line.color or '',
                unit_price=line.price,
                quantity=line.quantity,
            )
            for line in cart.lines
        ])
        for line in cart.lines:
            Product.objects.filter(pk=line.product_id).update(
                stock_quantity=F('stock_quantity') - line.quantity)

        logger.info(
            f"Order {order.id} placed by user {order.user_id}: "
            f"{order.payment_method} {order.total}")
        return order
