from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.sessions.backends.db import SessionStore
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from products.models import Product

from .models import WishlistItem
from .services import Wishlist

User = get_user_model()


class WishlistTestData:

    def create_products(self):
        self.shirt = Product.objects.create(
            name='Linen Shirt', price=Decimal('1499.00'), sku='SHIRT-001', stock_quantity=5)
        self.kurta = Product.objects.create(
            name='Kurta', price=Decimal('1599.00'), sku='KURTA-001', stock_quantity=5)
        self.dress = Product.objects.create(
            name='Midi Dress', price=Decimal('2199.00'), sku='DRESS-001', stock_quantity=5)
        self.user = User.objects.create_user(
            username='shopper', email='shopper@example.com', password='testpass123')


class WishlistServiceTests(WishlistTestData, TestCase):

    def setUp(self):
        self.create_products()
        self.session = SessionStore()

    def test_guest_add_is_idempotent(self):
        wishlist = Wishlist(self.session)
        self.assertTrue(wishlist.add(self.shirt))
        self.assertFalse(wishlist.add(self.shirt))
        self.assertEqual(wishlist.product_ids(), [self.shirt.pk])

    def test_guest_products_newest_first(self):
        wishlist = Wishlist(self.session)
        wishlist.add(self.shirt)
        wishlist.add(self.kurta)
        self.assertEqual(wishlist.products(), [self.kurta, self.shirt])

    def test_remove(self):
        wishlist = Wishlist(self.session)
        wishlist.add(self.shirt)
        self.assertTrue(wishlist.remove(self.shirt.pk))
        self.assertFalse(wishlist.remove(self.shirt.pk))
        self.assertFalse(wishlist.contains(self.shirt.pk))

    def test_unreadable_slot_is_empty(self):
        self.session['test-wishlist'] = ['not-an-id']
        wishlist = Wishlist(self.session, key='test-wishlist')
        with self.assertLogs('wishlist.services', level='WARNING'):
            self.assertEqual(wishlist.product_ids(), [])

    def test_merge_is_a_union(self):
        WishlistItem.objects.create(user=self.user, product=self.shirt)
        guest = Wishlist(self.session)
        guest.add(self.shirt)
        guest.add(self.kurta)

        added = guest.merge_into_account(self.user)

        self.assertEqual(added, 1)
        self.assertEqual(
            set(Wishlist(self.session, self.user).product_ids()),
            {self.shirt.pk, self.kurta.pk})
        self.assertNotIn('storefront-wishlist', self.session)

    def test_merge_skips_inactive_products(self):
        guest = Wishlist(self.session)
        guest.add(self.dress)
        self.dress.is_active = False
        self.dress.save()

        self.assertEqual(guest.merge_into_account(self.user), 0)
        self.assertFalse(WishlistItem.objects.exists())


class WishlistAPITests(WishlistTestData, TestCase):

    def setUp(self):
        self.client = APIClient()
        self.create_products()
        self.url = reverse('wishlist:wishlist')

    def item_url(self, product):
        return reverse('wishlist:wishlist-item', args=[product.pk])

    def test_guest_add_and_list(self):
        response = self.client.post(self.url, {'product_id': self.shirt.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['added'])

        response = self.client.post(self.url, {'product_id': self.shirt.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['added'])

        response = self.client.get(self.url)
        self.assertEqual([p['name'] for p in response.data], ['Linen Shirt'])

    def test_add_unknown_product(self):
        response = self.client.post(self.url, {'product_id': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_check_and_remove(self):
        self.client.post(self.url, {'product_id': self.kurta.pk}, format='json')

        response = self.client.get(self.item_url(self.kurta))
        self.assertTrue(response.data['in_wishlist'])

        response = self.client.delete(self.item_url(self.kurta))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.delete(self.item_url(self.kurta))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_signed_in_wishlist_is_stored_on_account(self):
        self.client.force_login(self.user)

        self.client.post(self.url, {'product_id': self.dress.pk}, format='json')

        self.assertTrue(WishlistItem.objects.filter(user=self.user, product=self.dress).exists())

    def test_guest_wishlist_merges_on_login(self):
        WishlistItem.objects.create(user=self.user, product=self.shirt)
        self.client.post(self.url, {'product_id': self.shirt.pk}, format='json')
        self.client.post(self.url, {'product_id': self.kurta.pk}, format='json')

        self.client.force_login(self.user)
        response = self.client.get(self.url)

        self.assertEqual(
            sorted(p['name'] for p in response.data), ['Kurta', 'Linen Shirt'])
        self.assertEqual(WishlistItem.objects.filter(user=self.user).count(), 2)
