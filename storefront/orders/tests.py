"""
Orders App Tests

Checkout from the cart, order history and the admin statistics.
"""

from decimal import Decimal
from unittest.mock import patch

from django.conf import settings
from django.forms import modelform_factory
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from cart.models import CartItem
from products.models import Category, Product
from .admin import OrderAdminForm
from .models import Order, OrderItem
from .serializers import CheckoutSerializer


User = get_user_model()


class OrderTestData:

    def create_data(self):
        self.user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )
        self.category = Category.objects.create(name='Shirts', slug='shirts')
        self.shirt = Product.objects.create(
            category=self.category,
            name='Linen Shirt',
            price=Decimal('1499.00'),
            discount_price=Decimal('1199.00'),
            sizes=['S', 'M'],
            colors=['Olive'],
            sku='SHIRT-001',
            stock_quantity=10
        )
        self.socks = Product.objects.create(
            category=self.category,
            name='Cotton Socks',
            price=Decimal('99.00'),
            sku='SOCKS-001',
            stock_quantity=3
        )

    def create_order(self, user, total, status=Order.Status.PAID):
        return Order.objects.create(
            user=user,
            shipping_name='Asha Rao',
            shipping_email='asha@example.com',
            shipping_phone='+919876543210',
            shipping_address='12 MG Road, Indiranagar',
            shipping_city='Bengaluru',
            shipping_state='Karnataka',
            shipping_pincode='560038',
            payment_method=Order.PaymentMethod.ONLINE,
            status=status,
            subtotal=total,
            total=total,
        )


class CheckoutTests(OrderTestData, TestCase):

    def setUp(self):
        self.client = APIClient()
        self.create_data()
        self.client.force_login(self.user)
        self.url = reverse('orders:checkout')

    def fill_cart(self):
        CartItem.objects.create(
            user=self.user, product=self.shirt, size='M', color='Olive', quantity=2)
        CartItem.objects.create(user=self.user, product=self.socks, quantity=1)

    def checkout(self, **overrides):
        data = {
            'shipping_name': 'Asha Rao',
            'shipping_email': 'asha@example.com',
            'shipping_phone': '+919876543210',
            'shipping_address': '12 MG Road, Indiranagar',
            'shipping_city': 'Bengaluru',
            'shipping_state': 'Karnataka',
            'shipping_pincode': '560038',
            'shipping_method': 'simple',
            'payment_method': 'cod',
        }
        data.update(overrides)
        return self.client.post(self.url, data, format='json')

    def test_checkout_requires_login(self):
        self.client.logout()
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_empty_cart_is_rejected(self):
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cart', response.data)

    def test_cash_on_delivery_order(self):
        self.fill_cart()

        response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIsNone(order.paid_at)
        self.assertEqual(order.subtotal, Decimal('2497.00'))
        self.assertEqual(order.shipping_cost, Decimal('199.00'))
        self.assertEqual(order.total, Decimal('2696.00'))

        item = order.items.get(product=self.shirt)
        self.assertEqual(
            (item.product_name, item.size, item.color, item.unit_price, item.quantity),
            ('Linen Shirt', 'M', 'Olive', Decimal('1199.00'), 2))

        self.shirt.refresh_from_db()
        self.socks.refresh_from_db()
        self.assertEqual(self.shirt.stock_quantity, 8)
        self.assertEqual(self.socks.stock_quantity, 2)
        self.assertFalse(CartItem.objects.filter(user=self.user).exists())

    def test_premium_shipping(self):
        self.fill_cart()
        response = self.checkout(shipping_method='premium')
        self.assertEqual(Decimal(response.data['shipping_cost']), Decimal('299.00'))

    def test_cash_on_delivery_minimum(self):
        self.fill_cart()
        rules = {**settings.STOREFRONT, 'COD_MIN_ORDER': Decimal('5000')}

        with self.settings(STOREFRONT=rules):
            response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_method', response.data)
        self.assertTrue(CartItem.objects.filter(user=self.user).exists())

    def test_online_payment_requires_payment_id(self):
        self.fill_cart()

        response = self.checkout(payment_method='online')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_id', response.data)

        response = self.checkout(payment_method='online', payment_id='pay_123')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Order.Status.PAID)
        self.assertIsNotNone(response.data['paid_at'])

    def test_upi_without_reference_gets_manual_one(self):
        self.fill_cart()

        response = self.checkout(payment_method='upi')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['payment_id'].startswith('UPI_MANUAL_'))
        self.assertEqual(response.data['status'], Order.Status.PAID)

    def test_not_enough_stock(self):
        CartItem.objects.create(user=self.user, product=self.socks, quantity=5)

        response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_stock_sold_out_while_checking_out(self):
        self.fill_cart()
        validate = CheckoutSerializer.validate

        def validate_then_sell_out(serializer, data):
            data = validate(serializer, data)
            # Another shopper buys the last pairs before this order is written.
            Product.objects.filter(pk=self.socks.pk).update(stock_quantity=0)
            return data

        with patch.object(CheckoutSerializer, 'validate', validate_then_sell_out):
            response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cart', response.data)
        self.assertFalse(Order.objects.exists())
        self.shirt.refresh_from_db()
        self.assertEqual(self.shirt.stock_quantity, 10)
        self.assertEqual(CartItem.objects.filter(user=self.user).count(), 2)

    def test_invalid_pincode(self):
        self.fill_cart()
        response = self.checkout(shipping_pincode='56A')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('shipping_pincode', response.data)


class OrderHistoryTests(OrderTestData, TestCase):

    def setUp(self):
        self.client = APIClient()
        self.create_data()
        self.other = User.objects.create_user(
            username='other', email='other@example.com', password='testpass123')
        self.mine = self.create_order(self.user, Decimal('1000.00'))
        self.cancelled = self.create_order(
            self.user, Decimal('500.00'), status=Order.Status.CANCELLED)
        self.theirs = self.create_order(self.other, Decimal('800.00'))
        OrderItem.objects.create(
            order=self.mine, product=self.shirt, product_name='Linen Shirt',
            unit_price=Decimal('500.00'), quantity=2)
        self.client.force_authenticate(user=self.user)

    def test_lists_only_own_orders(self):
        response = self.client.get(reverse('orders:order-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            {order['id'] for order in response.data},
            {str(self.mine.pk), str(self.cancelled.pk)})

    def test_filter_by_status(self):
        response = self.client.get(reverse('orders:order-list'), {'status': 'cancelled'})
        self.assertEqual([order['id'] for order in response.data], [str(self.cancelled.pk)])

    def test_retrieve_includes_items(self):
        response = self.client.get(reverse('orders:order-detail', args=[self.mine.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['product_name'], 'Linen Shirt')
        self.assertEqual(Decimal(response.data['items'][0]['total_price']), Decimal('1000.00'))

    def test_cannot_see_other_users_order(self):
        response = self.client.get(reverse('orders:order-detail', args=[self.theirs.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AdminStatsTests(OrderTestData, TestCase):

    def setUp(self):
        self.client = APIClient()
        self.create_data()
        self.admin = User.objects.create_superuser(
            username='admin', email='admin@example.com', password='password123')
        self.create_order(self.user, Decimal('1000.00'))
        self.create_order(self.user, Decimal('250.50'), status=Order.Status.DELIVERED)
        self.create_order(self.user, Decimal('400.00'), status=Order.Status.CANCELLED)
        self.url = reverse('orders:admin-stats')

    def test_regular_user_is_forbidden(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stats(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_revenue']), Decimal('1250.50'))
        self.assertEqual(response.data['total_orders'], 3)
        self.assertEqual(response.data['total_products'], 2)
        self.assertEqual(response.data['total_users'], 2)


class OrderStatusWorkflowTests(OrderTestData, TestCase):

    def setUp(self):
        self.client = APIClient()
        self.create_data()
        self.admin = User.objects.create_superuser(
            username='admin', email='admin@example.com', password='password123')
        self.order = self.create_order(self.user, Decimal('1000.00'), status=Order.Status.PENDING)
        self.client.force_authenticate(user=self.admin)

    def move(self, order, new_status, **data):
        return self.client.post(
            reverse('orders:admin-order-set-status', args=[order.pk]),
            {'status': new_status, **data}, format='json')

    def test_next_statuses(self):
        self.assertEqual(
            self.order.next_statuses(), (Order.Status.CONFIRMED, Order.Status.CANCELLED))
        self.order.status = Order.Status.DELIVERED
        self.assertEqual(self.order.next_statuses(), ())

    def test_order_walks_through_fulfilment(self):
        for step in ('confirmed', 'processing', 'shipped', 'delivered'):
            response = self.move(self.order, step)
            self.assertEqual(response.status_code, status.HTTP_200_OK, step)
            self.assertEqual(response.data['status'], step)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.DELIVERED)

    def test_paid_order_can_be_confirmed(self):
        paid = self.create_order(self.user, Decimal('500.00'))
        response = self.move(paid, 'confirmed', admin_notes='Packed by Ravi')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        paid.refresh_from_db()
        self.assertEqual(paid.admin_notes, 'Packed by Ravi')

    def test_steps_cannot_be_skipped(self):
        response = self.move(self.order, 'shipped')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.PENDING)

    def test_delivered_order_is_final(self):
        delivered = self.create_order(
            self.user, Decimal('500.00'), status=Order.Status.DELIVERED)

        for target in ('pending', 'cancelled'):
            response = self.move(delivered, target)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, target)

    def test_cancel_before_delivery(self):
        shipped = self.create_order(self.user, Decimal('500.00'), status=Order.Status.SHIPPED)
        response = self.move(shipped, 'cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_customers_cannot_change_status(self):
        self.client.force_authenticate(user=self.user)
        response = self.move(self.order, 'confirmed')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_list_shows_every_order(self):
        other = User.objects.create_user(
            username='other', email='other@example.com', password='testpass123')
        self.create_order(other, Decimal('800.00'))

        response = self.client.get(reverse('orders:admin-order-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_admin_changelist_form_follows_workflow(self):
        StatusForm = modelform_factory(Order, form=OrderAdminForm, fields=['status'])

        def form_for(new_status):
            # A valid form writes the status onto its instance, so each gets a fresh copy.
            return StatusForm({'status': new_status}, instance=Order.objects.get(pk=self.order.pk))

        self.assertTrue(form_for('confirmed').is_valid())
        self.assertTrue(form_for('pending').is_valid())

        form = form_for('delivered')
        self.assertFalse(form.is_valid())
        self.assertIn('status', form.errors)
