import shutil
import tempfile
from decimal import Decimal
from io import StringIO

from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from .models import Category, Product, ProductImage

User = get_user_model()

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ProductAPITests(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        """
        Users, a two level category tree and a few garments to filter.
        """
        self.client = APIClient()

        self.admin_user = User.objects.create_superuser(
            username='admin',
            email='admin@example.com',
            password='password123'
        )
        self.regular_user = User.objects.create_user(
            username='user',
            email='user@example.com',
            password='password123'
        )

        self.men = Category.objects.create(name="Men", slug="men")
        self.shirts = Category.objects.create(
            name="Shirts", slug="men-shirts", parent=self.men)
        self.women = Category.objects.create(name="Women", slug="women")

        self.shirt = Product.objects.create(
            category=self.shirts,
            name="Linen Shirt",
            description="Breathable summer shirt",
            price=Decimal('1499.00'),
            discount_price=Decimal('1199.00'),
            sizes=['S', 'M', 'L'],
            colors=['White', 'Olive'],
            tags=['linen', 'summer'],
            sku="SHIRT-LINEN",
            stock_quantity=20,
        )
        self.kurta = Product.objects.create(
            category=self.women,
            name="Block Print Kurta",
            description="Hand printed cotton",
            price=Decimal('1599.00'),
            sizes=['XS', 'S'],
            colors=['Indigo'],
            tags=['cotton'],
            sku="KURTA-BLOCK",
            stock_quantity=0,
        )

        # A one pixel GIF
        image_content = b'\x47\x49\x46\x38\x39\x61\x01\x00\x01\x00\x80\x00\x00\x05\x04\x04\x00\x00\x00\x2c\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02\x44\x01\x00\x3b'
        ProductImage.objects.create(
            product=self.shirt,
            image=SimpleUploadedFile("shirt.gif", image_content, content_type="image/gif"),
            is_featured=True
        )

        self.list_url = reverse('products:product-list')
        self.detail_url = reverse(
            'products:product-detail', kwargs={'slug': self.shirt.slug})

    def names(self, response):
        return sorted(product['name'] for product in response.data)

    # --- PUBLIC ACCESS ---

    def test_public_can_list_products(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        shirt = next(p for p in response.data if p['slug'] == self.shirt.slug)
        self.assertEqual(shirt['category_name'], 'Shirts')
        self.assertEqual(shirt['sizes'], ['S', 'M', 'L'])
        self.assertTrue(shirt['main_image'].startswith('http'))

    def test_slug_is_generated(self):
        self.assertEqual(self.shirt.slug, 'linen-shirt')

    def test_current_price_prefers_discount(self):
        self.assertEqual(self.shirt.current_price, Decimal('1199.00'))
        self.assertEqual(self.kurta.current_price, Decimal('1599.00'))

    def test_inactive_products_are_hidden_from_public(self):
        self.kurta.is_active = False
        self.kurta.save()

        response = self.client.get(self.list_url)
        self.assertEqual(self.names(response), ['Linen Shirt'])

        self.client.force_authenticate(user=self.admin_user)
        response = self.client.get(self.list_url)
        self.assertEqual(len(response.data), 2)

    def test_detail_includes_variants_and_images(self):
        response = self.client.get(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['colors'], ['White', 'Olive'])
        self.assertEqual(len(response.data['images']), 1)

    def test_public_cannot_create_product(self):
        data = {'name': 'Hacker Product', 'price': '10.00', 'sku': 'HACK-1'}
        response = self.client.post(self.list_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    # --- ADMIN ACCESS ---

    def test_admin_can_create_product(self):
        self.client.force_authenticate(user=self.admin_user)

        data = {
            'category': self.shirts.id,
            'name': 'Oxford Shirt',
            'description': 'Cotton oxford',
            'price': '1299.00',
            'sizes': ['M', 'L'],
            'colors': ['Blue'],
            'sku': 'SHIRT-OXF',
            'stock_quantity': 15,
        }

        response = self.client.post(self.list_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(sku='SHIRT-OXF')
        self.assertEqual(product.slug, 'oxford-shirt')
        self.assertEqual(product.sizes, ['M', 'L'])

    def test_discount_must_be_below_price(self):
        self.client.force_authenticate(user=self.admin_user)

        data = {'name': 'Odd', 'price': '100.00', 'discount_price': '150.00', 'sku': 'ODD-1'}
        response = self.client.post(self.list_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_price', response.data)

    def test_admin_can_update_product(self):
        self.client.force_authenticate(user=self.admin_user)

        response = self.client.patch(self.detail_url, {'stock_quantity': 40}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.shirt.refresh_from_db()
        self.assertEqual(self.shirt.stock_quantity, 40)

    def test_admin_can_delete_product(self):
        self.client.force_authenticate(user=self.admin_user)

        response = self.client.delete(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=self.shirt.pk).exists())

    # --- REGULAR USER RESTRICTIONS ---

    def test_regular_user_cannot_create_product(self):
        self.client.force_authenticate(user=self.regular_user)

        data = {'name': 'User Product', 'price': '10.00', 'sku': 'USER-1'}
        response = self.client.post(self.list_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_regular_user_cannot_update_product(self):
        self.client.force_authenticate(user=self.regular_user)

        response = self.client.patch(self.detail_url, {'price': '0.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    # --- FILTERING ---

    def test_search(self):
        response = self.client.get(self.list_url, {'search': 'linen'})
        self.assertEqual(self.names(response), ['Linen Shirt'])

    def test_category_filter_includes_subcategories(self):
        response = self.client.get(self.list_url, {'category': 'men'})
        self.assertEqual(self.names(response), ['Linen Shirt'])

        response = self.client.get(self.list_url, {'category': 'men,women'})
        self.assertEqual(len(response.data), 2)

    def test_price_range(self):
        response = self.client.get(self.list_url, {'min_price': 1500})
        self.assertEqual(self.names(response), ['Block Print Kurta'])

        response = self.client.get(self.list_url, {'max_price': 1500})
        self.assertEqual(self.names(response), ['Linen Shirt'])

    def test_size_color_and_tag_filters(self):
        response = self.client.get(self.list_url, {'size': 'xs'})
        self.assertEqual(self.names(response), ['Block Print Kurta'])

        response = self.client.get(self.list_url, {'size': 'S'})
        self.assertEqual(len(response.data), 2)

        response = self.client.get(self.list_url, {'color': 'olive,red'})
        self.assertEqual(self.names(response), ['Linen Shirt'])

        response = self.client.get(self.list_url, {'tag': 'cotton'})
        self.assertEqual(self.names(response), ['Block Print Kurta'])

    def test_in_stock_filter(self):
        response = self.client.get(self.list_url, {'in_stock': 'true'})
        self.assertEqual(self.names(response), ['Linen Shirt'])

    def test_ordering_by_price(self):
        response = self.client.get(self.list_url, {'ordering': '-price'})
        self.assertEqual(
            [p['name'] for p in response.data], ['Block Print Kurta', 'Linen Shirt'])

    def test_featured_lists_in_stock_featured_products(self):
        Product.objects.filter(pk__in=[self.shirt.pk, self.kurta.pk]).update(is_featured=True)

        response = self.client.get(reverse('products:product-featured'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.names(response), ['Linen Shirt'])

    def test_category_products_include_subcategories(self):
        response = self.client.get(
            reverse('products:category-products', kwargs={'slug': 'men'}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.names(response), ['Linen Shirt'])

    def test_offers(self):
        self.assertTrue(self.shirt.offers(size='M', color='Olive'))
        self.assertTrue(self.shirt.offers())
        self.assertFalse(self.shirt.offers(size='XL'))
        self.assertFalse(self.shirt.offers(color='Indigo'))


class CategoryAPITests(TestCase):

    def test_list_active_categories(self):
        men = Category.objects.create(name="Men", slug="men")
        Category.objects.create(name="Shirts", slug="men-shirts", parent=men)
        Category.objects.create(name="Archive", slug="archive", is_active=False)

        response = APIClient().get(reverse('products:category-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            sorted(c['slug'] for c in response.data), ['men', 'men-shirts'])


class SeedCatalogTests(TestCase):

    def test_seed_is_idempotent(self):
        call_command('seed_catalog', verbosity=0, stdout=StringIO())
        products = Product.objects.count()
        call_command('seed_catalog', verbosity=0, stdout=StringIO())

        self.assertEqual(Product.objects.count(), products)
        self.assertTrue(products > 0)
        men = Category.objects.get(slug='men')
        self.assertIn('men-shirts', men.get_descendants().values_list('slug', flat=True))
        self.assertTrue(User.objects.filter(email='customer@test.com').exists())
