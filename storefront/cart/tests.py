from decimal import Decimal
from itertools import count
from unittest.mock import AsyncMock, patch

from asgiref.sync import async_to_sync
from django.conf import settings
from django.contrib import messages
from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from products.models import Category, Product

from .backends import CartBackendError, ModelCartBackend, RemoteCartBackend
from .models import CartItem
from .mutations import CartMutator
from .services import ShoppingCart
from .state import CartLine, CartState, LineNotFound
from .storage import LocalCartStore
from .sync import CartReconciler

User = get_user_model()

CART_KEY = 'test-cart'


def make_line(product_id, quantity=1, line_id='', price='100.00', size=None, color=None):
    return CartLine(
        id=line_id,
        product_id=product_id,
        name=f"Product {product_id}",
        price=Decimal(price),
        quantity=quantity,
        size=size,
        color=color,
    )


class InMemoryCartBackend(RemoteCartBackend):
    """Remote cart kept in a dict; tests swap single methods for failing mocks."""

    def __init__(self, lines=()):
        self.rows = {line.id: line for line in lines}
        self._ids = count(1)

    async def fetch(self, owner):
        return list(self.rows.values())

    async def insert(self, owner, line):
        line_id = f"row-{next(self._ids)}"
        self.rows[line_id] = line.with_id(line_id)
        return line_id

    async def update(self, line_id, quantity):
        self.rows[line_id] = self.rows[line_id].with_quantity(quantity)

    async def delete(self, line_id):
        del self.rows[line_id]

    async def delete_for_owner(self, owner):
        self.rows.clear()


class CartStateTests(SimpleTestCase):

    def test_totals_follow_lines(self):
        state = CartState([
            make_line(1, quantity=2, line_id='a', price='250.00'),
            make_line(2, quantity=1, line_id='b', price='99.50'),
        ])
        self.assertEqual(state.total_items, 3)
        self.assertEqual(state.total_amount, Decimal('599.50'))

        state.replace([make_line(1, quantity=4, line_id='a', price='250.00')])
        self.assertEqual(state.total_items, 4)
        self.assertEqual(state.total_amount, Decimal('1000.00'))

    def test_empty_cart_totals(self):
        state = CartState()
        self.assertEqual(state.total_items, 0)
        self.assertEqual(state.total_amount, Decimal('0'))

    def test_line_key_ignores_blank_variants(self):
        self.assertEqual(make_line(1, size='').key, make_line(1, size=None).key)
        self.assertNotEqual(make_line(1, size='M').key, make_line(1, size='L').key)

    def test_subscribers_are_notified_until_unsubscribed(self):
        state = CartState()
        seen = []
        unsubscribe = state.subscribe(seen.append)

        state.replace([make_line(1, line_id='a')])
        unsubscribe()
        state.replace([])

        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0][0].id, 'a')

    def test_get_unknown_line_raises(self):
        with self.assertRaises(LineNotFound):
            CartState().get('missing')

    def test_change_reverts_on_error(self):
        before = (make_line(1, line_id='a'),)
        state = CartState(before)

        with self.assertRaises(RuntimeError):
            with state.change() as change:
                change.apply(())
                self.assertEqual(state.lines, ())
                raise RuntimeError("remote down")

        self.assertEqual(state.lines, before)

    def test_change_keeps_lines_on_success(self):
        state = CartState([make_line(1, line_id='a')])
        with state.change() as change:
            change.apply(())
        self.assertTrue(change.committed)
        self.assertEqual(state.lines, ())


class LocalCartStoreTests(SimpleTestCase):

    def test_save_and_load(self):
        slot = {}
        store = LocalCartStore(slot, key=CART_KEY)
        lines = [
            make_line(1, quantity=2, line_id='guest-a', size='M', color='Olive'),
            make_line(2, quantity=1, line_id='guest-b', price='1499.00'),
        ]
        store.save(lines)

        self.assertIsInstance(slot[CART_KEY], str)
        self.assertEqual(LocalCartStore(slot, key=CART_KEY).load(), lines)

    def test_missing_slot_is_empty_cart(self):
        self.assertEqual(LocalCartStore({}, key=CART_KEY).load(), [])

    def test_malformed_json_is_empty_cart(self):
        store = LocalCartStore({CART_KEY: '{not json'}, key=CART_KEY)
        with self.assertLogs('cart.storage', level='WARNING'):
            self.assertEqual(store.load(), [])

    def test_non_list_is_empty_cart(self):
        store = LocalCartStore({CART_KEY: '{"id": "a"}'}, key=CART_KEY)
        with self.assertLogs('cart.storage', level='WARNING'):
            self.assertEqual(store.load(), [])

    def test_bad_entry_is_empty_cart(self):
        raw = '[{"id": "a", "product_id": 1, "price": "10.00", "quantity": 0}]'
        store = LocalCartStore({CART_KEY: raw}, key=CART_KEY)
        with self.assertLogs('cart.storage', level='WARNING'):
            self.assertEqual(store.load(), [])

    def test_unparseable_price_is_empty_cart(self):
        raw = '[{"id": "g", "product_id": 1, "price": "abc", "quantity": 1}]'
        store = LocalCartStore({CART_KEY: raw}, key=CART_KEY)
        with self.assertLogs('cart.storage', level='WARNING'):
            self.assertEqual(store.load(), [])

    def test_non_finite_price_is_empty_cart(self):
        for price in ('NaN', 'Infinity', '-5.00'):
            raw = f'[{{"id": "g", "product_id": 1, "price": "{price}", "quantity": 1}}]'
            store = LocalCartStore({CART_KEY: raw}, key=CART_KEY)
            with self.subTest(price=price), self.assertLogs('cart.storage', level='WARNING'):
                self.assertEqual(store.load(), [])

    def test_clear(self):
        slot = {}
        store = LocalCartStore(slot, key=CART_KEY)
        store.save([make_line(1, line_id='guest-a')])
        store.clear()
        self.assertNotIn(CART_KEY, slot)


class CartMutatorTests(SimpleTestCase):

    def setUp(self):
        self.notices = []
        self.state = CartState()
        self.backend = InMemoryCartBackend()

    def notify(self, level, message):
        self.notices.append((level, message))

    def guest_mutator(self):
        return CartMutator(self.state, self.backend, notify=self.notify)

    def user_mutator(self):
        return CartMutator(self.state, self.backend, owner=7, notify=self.notify)

    async def test_repeated_add_sums_quantity(self):
        mutator = self.guest_mutator()
        await mutator.add_line(make_line(1, quantity=2, size='M'))
        await mutator.add_line(make_line(1, quantity=3, size='M'))

        self.assertEqual(len(self.state.lines), 1)
        self.assertEqual(self.state.lines[0].quantity, 5)

    async def test_other_size_is_another_line(self):
        mutator = self.guest_mutator()
        await mutator.add_line(make_line(1, size='M'))
        await mutator.add_line(make_line(1, size='L'))
        self.assertEqual(len(self.state.lines), 2)

    async def test_guest_add_gets_placeholder_id_and_notice(self):
        applied = await self.guest_mutator().add_line(make_line(1))

        self.assertTrue(applied)
        self.assertTrue(self.state.lines[0].id.startswith('guest-'))
        self.assertEqual(self.notices, [(messages.SUCCESS, "Product 1 has been added to your cart.")])

    async def test_user_add_uses_remote_id(self):
        applied = await self.user_mutator().add_line(make_line(1))

        self.assertTrue(applied)
        self.assertEqual(self.state.lines[0].id, 'row-1')
        self.assertIn('row-1', self.backend.rows)

    async def test_failed_add_changes_nothing(self):
        self.backend.insert = AsyncMock(side_effect=CartBackendError("timeout"))
        seen = []
        self.state.subscribe(seen.append)

        with self.assertLogs('cart.mutations', level='ERROR'):
            applied = await self.user_mutator().add_line(make_line(1))

        self.assertFalse(applied)
        self.assertEqual(self.state.lines, ())
        self.assertEqual(seen, [])
        self.assertEqual(self.notices, [(messages.ERROR, "Could not add item to cart.")])

    async def test_set_quantity_zero_removes_line(self):
        mutator = self.guest_mutator()
        await mutator.add_line(make_line(1))
        await mutator.add_line(make_line(2))
        first, second = self.state.lines

        await mutator.set_quantity(first.id, 0)
        self.assertEqual(self.state.lines, (second,))

        await mutator.remove_line(second.id)
        self.assertEqual(self.state.lines, ())

    async def test_set_quantity_unknown_line(self):
        with self.assertRaises(LineNotFound):
            await self.guest_mutator().set_quantity('missing', 2)

    async def test_remove_unknown_line(self):
        with self.assertRaises(LineNotFound):
            await self.guest_mutator().remove_line('missing')

    async def test_failed_set_quantity_restores_lines(self):
        self.backend.rows = {'row-1': make_line(1, quantity=2, line_id='row-1')}
        self.state.replace(await self.backend.fetch(7))
        before = self.state.lines
        self.backend.update = AsyncMock(side_effect=CartBackendError("timeout"))
        seen = []
        self.state.subscribe(lambda lines: seen.append(lines[0].quantity))

        with self.assertLogs('cart.mutations', level='ERROR'):
            applied = await self.user_mutator().set_quantity('row-1', 5)

        self.assertFalse(applied)
        self.assertEqual(self.state.lines, before)
        # The optimistic value was visible before the rollback.
        self.assertEqual(seen, [5, 2])
        self.assertEqual(self.notices, [(messages.ERROR, "Could not update item quantity.")])

    async def test_failed_clear_restores_all_lines(self):
        self.state.replace([
            make_line(1, quantity=1, line_id='row-1'),
            make_line(2, quantity=4, line_id='row-2'),
            make_line(3, quantity=2, line_id='row-3'),
        ])
        before = self.state.lines
        self.backend.delete_for_owner = AsyncMock(side_effect=CartBackendError("timeout"))

        with self.assertLogs('cart.mutations', level='ERROR'):
            applied = await self.user_mutator().clear()

        self.assertFalse(applied)
        self.assertEqual(self.state.lines, before)
        self.assertEqual([line.id for line in self.state.lines], ['row-1', 'row-2', 'row-3'])

    async def test_failed_remove_restores_line(self):
        self.state.replace([make_line(1, line_id='row-1')])
        self.backend.delete = AsyncMock(side_effect=CartBackendError("timeout"))

        with self.assertLogs('cart.mutations', level='ERROR'):
            applied = await self.user_mutator().remove_line('row-1')

        self.assertFalse(applied)
        self.assertEqual(len(self.state.lines), 1)
        self.assertEqual(self.notices, [(messages.ERROR, "Could not remove item from cart.")])

    async def test_guest_changes_never_call_backend(self):
        self.backend.update = AsyncMock()
        self.backend.delete_for_owner = AsyncMock()
        mutator = self.guest_mutator()
        await mutator.add_line(make_line(1))
        await mutator.set_quantity(self.state.lines[0].id, 3)
        await mutator.clear()

        self.backend.update.assert_not_called()
        self.backend.delete_for_owner.assert_not_called()
        self.assertEqual(self.state.lines, ())


class CartReconcilerTests(SimpleTestCase):

    def setUp(self):
        self.slot = {}
        self.store = LocalCartStore(self.slot, key=CART_KEY)
        self.state = CartState()

    async def test_remote_line_wins_and_new_lines_are_uploaded(self):
        self.store.save([
            make_line(1, quantity=2, line_id='guest-a'),
            make_line(2, quantity=1, line_id='guest-b'),
        ])
        backend = InMemoryCartBackend([make_line(1, quantity=5, line_id='row-a')])

        merged = await CartReconciler(self.state, self.store, backend).reconcile(7)

        self.assertTrue(merged)
        a, b = self.state.lines
        self.assertEqual((a.product_id, a.quantity, a.id), (1, 5, 'row-a'))
        self.assertEqual((b.product_id, b.quantity), (2, 1))
        self.assertFalse(b.id.startswith('guest-'))
        self.assertEqual(len(backend.rows), 2)
        self.assertNotIn(CART_KEY, self.slot)

    async def test_second_run_uploads_nothing(self):
        self.store.save([make_line(2, line_id='guest-b')])
        backend = InMemoryCartBackend()
        reconciler = CartReconciler(self.state, self.store, backend)

        await reconciler.reconcile(7)
        await reconciler.reconcile(7)

        self.assertEqual(len(backend.rows), 1)

    async def test_empty_guest_cart_just_loads_remote(self):
        backend = InMemoryCartBackend([make_line(1, line_id='row-a')])
        backend.insert = AsyncMock()

        self.assertTrue(await CartReconciler(self.state, self.store, backend).reconcile(7))

        backend.insert.assert_not_called()
        self.assertEqual([line.id for line in self.state.lines], ['row-a'])

    async def test_failure_keeps_last_known_state(self):
        self.state.replace([make_line(9, line_id='guest-z')])
        before = self.state.lines
        self.store.save([make_line(2, line_id='guest-b')])
        backend = InMemoryCartBackend()
        backend.fetch = AsyncMock(side_effect=CartBackendError("timeout"))

        with self.assertLogs('cart.sync', level='ERROR'):
            merged = await CartReconciler(self.state, self.store, backend).reconcile(7)

        self.assertFalse(merged)
        self.assertEqual(self.state.lines, before)

    async def test_insert_failure_keeps_last_known_state(self):
        self.state.replace([make_line(9, line_id='guest-z')])
        before = self.state.lines
        self.store.save([make_line(2, line_id='guest-b')])
        backend = InMemoryCartBackend([make_line(1, line_id='row-a')])
        backend.insert = AsyncMock(side_effect=CartBackendError("constraint"))

        with self.assertLogs('cart.sync', level='ERROR'):
            merged = await CartReconciler(self.state, self.store, backend).reconcile(7)

        self.assertFalse(merged)
        backend.insert.assert_awaited_once()
        self.assertEqual(self.state.lines, before)
        self.assertNotIn(CART_KEY, self.slot)

    def test_missing_remotely_dedupes_local_lines(self):
        local = [
            make_line(1, line_id='guest-a', size='M'),
            make_line(1, line_id='guest-b', size='M'),
            make_line(1, line_id='guest-c', size='L'),
        ]
        remote = [make_line(1, line_id='row-a', size='L')]

        uploads = CartReconciler.missing_remotely(local, remote)

        self.assertEqual([line.id for line in uploads], ['guest-a'])


class ShoppingCartTests(SimpleTestCase):

    def setUp(self):
        self.slot = {}

    def guest_cart(self, backend=None):
        return ShoppingCart(LocalCartStore(self.slot, key=CART_KEY), backend or InMemoryCartBackend())

    async def test_guest_cart_survives_reload(self):
        cart = self.guest_cart()
        await cart.add_line(make_line(1, quantity=1, size='S'))
        await cart.add_line(make_line(2, quantity=2))

        reloaded = self.guest_cart()

        self.assertEqual(reloaded.lines, cart.lines)
        self.assertEqual(len(reloaded.lines), 2)
        self.assertEqual(reloaded.total_items, 3)

    async def test_signed_in_changes_skip_the_session(self):
        cart = self.guest_cart()
        await cart.add_line(make_line(1))

        self.assertTrue(await cart.sign_in(7))
        await cart.add_line(make_line(2))

        self.assertTrue(cart.is_authenticated)
        self.assertEqual(len(cart.lines), 2)
        self.assertNotIn(CART_KEY, self.slot)

    async def test_sign_out_returns_to_guest_cart(self):
        cart = self.guest_cart()
        await cart.sign_in(7)
        await cart.add_line(make_line(1))

        cart.sign_out()
        self.assertTrue(cart.is_empty)
        await cart.add_line(make_line(2))

        self.assertFalse(cart.is_authenticated)
        self.assertEqual(len(LocalCartStore(self.slot, key=CART_KEY).load()), 1)

    async def test_failed_load_reports_error(self):
        backend = InMemoryCartBackend()
        backend.fetch = AsyncMock(side_effect=CartBackendError("timeout"))
        notices = []
        cart = ShoppingCart(
            LocalCartStore(self.slot, key=CART_KEY), backend, owner=7,
            notify=lambda level, message: notices.append(message))

        with self.assertLogs('cart.services', level='ERROR'):
            self.assertFalse(await cart.load())
        self.assertEqual(notices, ["Could not load your cart."])


class CatalogMixin:

    def create_catalog(self):
        self.category = Category.objects.create(name='Shirts', slug='shirts')
        self.shirt = Product.objects.create(
            category=self.category,
            name='Linen Shirt',
            price=Decimal('1499.00'),
            discount_price=Decimal('1199.00'),
            sku='SHIRT-001',
            sizes=['S', 'M', 'L'],
            colors=['White', 'Olive'],
            stock_quantity=10,
        )
        self.chinos = Product.objects.create(
            category=self.category,
            name='Chinos',
            price=Decimal('1799.00'),
            sku='CHINO-001',
            sizes=['32', '34'],
            stock_quantity=5,
        )


class ModelCartBackendTests(CatalogMixin, TestCase):

    def setUp(self):
        self.create_catalog()
        self.user = User.objects.create_user(
            username='shopper', email='shopper@example.com', password='testpass123')
        self.backend = ModelCartBackend()

    def test_insert_then_fetch(self):
        line = make_line(self.shirt.pk, quantity=2, size='M', color='Olive')
        line_id = async_to_sync(self.backend.insert)(self.user.pk, line)

        fetched = async_to_sync(self.backend.fetch)(self.user.pk)

        self.assertEqual(len(fetched), 1)
        self.assertEqual(fetched[0].id, line_id)
        self.assertEqual(fetched[0].name, 'Linen Shirt')
        self.assertEqual(fetched[0].price, Decimal('1199.00'))
        self.assertEqual(fetched[0].key, (self.shirt.pk, 'M', 'Olive'))

    def test_duplicate_variant_is_rejected(self):
        line = make_line(self.shirt.pk, size='M')
        async_to_sync(self.backend.insert)(self.user.pk, line)

        with self.assertRaises(CartBackendError):
            async_to_sync(self.backend.insert)(self.user.pk, line)

    def test_update_and_delete(self):
        item = CartItem.objects.create(user=self.user, product=self.chinos, quantity=1)

        async_to_sync(self.backend.update)(str(item.pk), 4)
        item.refresh_from_db()
        self.assertEqual(item.quantity, 4)

        async_to_sync(self.backend.delete)(str(item.pk))
        self.assertFalse(CartItem.objects.filter(pk=item.pk).exists())

    def test_unknown_line_is_an_error(self):
        with self.assertRaises(CartBackendError):
            async_to_sync(self.backend.update)('guest-123', 2)
        with self.assertRaises(CartBackendError):
            async_to_sync(self.backend.delete)('7b0e8a3c-1111-4e8e-9c1e-000000000000')

    def test_delete_for_owner_only_touches_owner(self):
        other = User.objects.create_user(
            username='other', email='other@example.com', password='testpass123')
        CartItem.objects.create(user=self.user, product=self.shirt)
        CartItem.objects.create(user=other, product=self.shirt)

        async_to_sync(self.backend.delete_for_owner)(self.user.pk)

        self.assertFalse(CartItem.objects.filter(user=self.user).exists())
        self.assertTrue(CartItem.objects.filter(user=other).exists())


class CartAPITests(CatalogMixin, TestCase):

    def setUp(self):
        self.client = APIClient()
        self.create_catalog()
        self.user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )
        self.cart_url = reverse('cart:cart')
        self.lines_url = reverse('cart:cart-lines')

    def line_url(self, line_id):
        return reverse('cart:cart-line-detail', args=[line_id])

    def add(self, product, **data):
        return self.client.post(
            self.lines_url, {'product_id': product.pk, **data}, format='json')

    def test_guest_add_and_get(self):
        response = self.add(self.shirt, quantity=2, size='M', color='Olive')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_items'], 2)
        self.assertEqual(response.data['notices'][0]['level'], 'success')

        response = self.client.get(self.cart_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        line = response.data['lines'][0]
        self.assertEqual(line['name'], 'Linen Shirt')
        self.assertEqual(line['size'], 'M')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('2398.00'))
        self.assertFalse(response.data['is_authenticated'])
        self.assertFalse(CartItem.objects.exists())

    def test_corrupt_guest_cart_reads_as_empty(self):
        session = self.client.session
        session[settings.STOREFRONT['CART_SESSION_KEY']] = (
            '[{"id": "g", "product_id": 1, "price": "abc", "quantity": 1}]')
        session.save()

        response = self.client.get(self.cart_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['lines'], [])
        self.assertEqual(response.data['total_items'], 0)

    def test_guest_add_same_variant_twice(self):
        self.add(self.shirt, quantity=1, size='M')
        response = self.add(self.shirt, quantity=2, size='M')

        self.assertEqual(len(response.data['lines']), 1)
        self.assertEqual(response.data['lines'][0]['quantity'], 3)

    def test_add_rejects_unknown_size(self):
        response = self.add(self.shirt, size='XXL')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('size', response.data)

    def test_add_rejects_inactive_and_out_of_stock(self):
        self.chinos.is_active = False
        self.chinos.save()
        self.assertEqual(self.add(self.chinos).status_code, status.HTTP_400_BAD_REQUEST)

        self.shirt.stock_quantity = 0
        self.shirt.save()
        self.assertEqual(self.add(self.shirt).status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_rejects_zero_quantity(self):
        response = self.add(self.shirt, quantity=0)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_zero_removes_line(self):
        line_id = self.add(self.shirt).data['lines'][0]['id']

        response = self.client.patch(self.line_url(line_id), {'quantity': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['lines'], [])

    def test_unknown_line_is_404(self):
        response = self.client.patch(self.line_url('missing'), {'quantity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.delete(self.line_url('missing'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_guest_clear(self):
        self.add(self.shirt)
        self.add(self.chinos)

        response = self.client.delete(self.cart_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_items'], 0)

    def test_signed_in_add_is_stored_on_account(self):
        self.client.force_login(self.user)

        response = self.add(self.chinos, quantity=2, size='32')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item = CartItem.objects.get(user=self.user)
        self.assertEqual(response.data['lines'][0]['id'], str(item.pk))
        self.assertEqual(item.quantity, 2)
        self.assertTrue(response.data['is_authenticated'])

    def test_guest_cart_merges_on_login(self):
        self.add(self.shirt, quantity=2, size='M')
        self.add(self.chinos, quantity=1)
        CartItem.objects.create(user=self.user, product=self.shirt, size='M', quantity=5)

        self.client.force_login(self.user)
        response = self.client.get(self.cart_url)

        quantities = {line['product_id']: line['quantity'] for line in response.data['lines']}
        self.assertEqual(quantities, {self.shirt.pk: 5, self.chinos.pk: 1})
        self.assertEqual(CartItem.objects.filter(user=self.user).count(), 2)
        self.assertNotIn('storefront-cart', self.client.session)

    def test_failed_update_answers_503_with_old_cart(self):
        item = CartItem.objects.create(user=self.user, product=self.shirt, size='S', quantity=1)
        self.client.force_login(self.user)

        with patch.object(ModelCartBackend, 'update',
                          AsyncMock(side_effect=CartBackendError("timeout"))):
            with self.assertLogs('cart.mutations', level='ERROR'):
                response = self.client.patch(
                    self.line_url(str(item.pk)), {'quantity': 3}, format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['lines'][0]['quantity'], 1)
        self.assertEqual(
            response.data['notices'],
            [{'level': 'error', 'message': "Could not update item quantity."}]
        )
        item.refresh_from_db()
        self.assertEqual(item.quantity, 1)

    def test_failed_add_answers_503(self):
        self.client.force_login(self.user)

        with patch.object(ModelCartBackend, 'insert',
                          AsyncMock(side_effect=CartBackendError("timeout"))):
            with self.assertLogs('cart.mutations', level='ERROR'):
                response = self.add(self.shirt)

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['lines'], [])
        self.assertFalse(CartItem.objects.exists())
