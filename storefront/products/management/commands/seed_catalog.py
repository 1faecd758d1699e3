from decimal import Decimal

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from products.models import Category, Product


User = get_user_model()

CATEGORIES = [
    # name, slug, parent slug, description
    ('Men', 'men', None, 'Menswear'),
    ('Shirts', 'men-shirts', 'men', 'Casual and formal shirts'),
    ('Trousers', 'men-trousers', 'men', 'Chinos, denims and joggers'),
    ('Women', 'women', None, 'Womenswear'),
    ('Kurtas', 'women-kurtas', 'women', 'Cotton and linen kurtas'),
    ('Dresses', 'women-dresses', 'women', 'Day and evening dresses'),
]

PRODUCTS = [
    {
        'name': 'Linen Relaxed Shirt',
        'sku': 'SHIRT-LINEN-01',
        'category': 'men-shirts',
        'description': 'Breathable linen shirt with a relaxed fit.',
        'price': Decimal('1499.00'),
        'discount_price': Decimal('1199.00'),
        'sizes': ['S', 'M', 'L', 'XL'],
        'colors': ['White', 'Olive', 'Sky Blue'],
        'tags': ['linen', 'summer'],
        'stock_quantity': 40,
        'is_featured': True,
    },
    {
        'name': 'Oxford Button-Down',
        'sku': 'SHIRT-OXF-02',
        'category': 'men-shirts',
        'description': 'Classic oxford cotton shirt.',
        'price': Decimal('1299.00'),
        'sizes': ['M', 'L', 'XL'],
        'colors': ['White', 'Blue'],
        'tags': ['cotton', 'office'],
        'stock_quantity': 25,
    },
    {
        'name': 'Slim Fit Chinos',
        'sku': 'TROUSER-CHINO-01',
        'category': 'men-trousers',
        'description': 'Stretch cotton chinos.',
        'price': Decimal('1799.00'),
        'sizes': ['30', '32', '34', '36'],
        'colors': ['Khaki', 'Navy', 'Black'],
        'tags': ['cotton'],
        'stock_quantity': 30,
    },
    {
        'name': 'Block Print Kurta',
        'sku': 'KURTA-BLOCK-01',
        'category': 'women-kurtas',
        'description': 'Hand block printed cotton kurta.',
        'price': Decimal('1599.00'),
        'discount_price': Decimal('1349.00'),
        'sizes': ['XS', 'S', 'M', 'L'],
        'colors': ['Indigo', 'Rust'],
        'tags': ['cotton', 'handmade', 'festive'],
        'stock_quantity': 20,
        'is_featured': True,
    },
    {
        'name': 'Tiered Midi Dress',
        'sku': 'DRESS-MIDI-01',
        'category': 'women-dresses',
        'description': 'Flowy tiered midi dress in viscose.',
        'price': Decimal('2199.00'),
        'sizes': ['S', 'M', 'L'],
        'colors': ['Black', 'Mustard'],
        'tags': ['summer'],
        'stock_quantity': 15,
    },
]


class Command(BaseCommand):
    help = 'Seed the database with a demo clothing catalog and customer.'

    def handle(self, *args, **options):
        self.stdout.write('Seeding catalog.........')

        customer, created = User.objects.get_or_create(
            email='customer@test.com',
            defaults={
                'username': 'customer',
                'is_staff': False
            }
        )
        if created:
            customer.set_password('customer123')
            customer.save()
            self.stdout.write(self.style.SUCCESS(
                'Customer created: customer@test.com / customer123'))
        else:
            self.stdout.write('Customer already exists')

        categories = {}
        for name, slug, parent, description in CATEGORIES:
            categories[slug], _ = Category.objects.get_or_create(
                slug=slug,
                defaults={
                    'name': name,
                    'parent': categories.get(parent),
                    'description': description,
                }
            )
        self.stdout.write(self.style.SUCCESS(f'Categories: {len(categories)}'))

        for data in PRODUCTS:
            defaults = dict(data, category=categories[data['category']])
            product, created = Product.objects.get_or_create(
                sku=data['sku'],
                defaults=defaults
            )
            if created:
                self.stdout.write(f'Product: {product.name}')

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS('Catalog seeded successfully!'))
        self.stdout.write(f'Products: {Product.objects.count()}')
