import os
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from cart.models import CartItem
from products.models import Product
from .models import CustomUser, UserProfile
from .serializers import CustomUserDetailsSerializer


class UserProfileSignalTests(TestCase):

    def test_profile_is_created_with_user(self):
        user = CustomUser.objects.create_user(
            username="mark",
            email="mark@example.com",
            password="pass12345",
            first_name="Mark",
            last_name="O",
        )
        self.assertEqual(user.profile.role, UserProfile.Role.CUSTOMER)
        self.assertEqual(user.profile.full_name, "Mark O")

    def test_superuser_profile_is_super_admin(self):
        admin = CustomUser.objects.create_superuser(
            username="root", email="root@example.com", password="pass12345")
        self.assertEqual(admin.profile.role, UserProfile.Role.SUPER_ADMIN)
        self.assertTrue(admin.profile.is_admin)

    def test_user_details_serializer(self):
        user = CustomUser.objects.create_user(
            username="asha", email="asha@example.com", password="pass12345")
        data = CustomUserDetailsSerializer(user).data
        self.assertEqual(data["email"], "asha@example.com")
        self.assertEqual(data["role"], "customer")


class ProfileViewTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = CustomUser.objects.create_user(
            username="asha", email="asha@example.com", password="pass12345")
        self.url = reverse("accounts:profile")

    def test_requires_login(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_get_profile(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["email"], "asha@example.com")

    def test_update_profile(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.patch(self.url, {
            "full_name": "Asha Rao",
            "role": "super_admin",
            "user": {"display_name": "asha_r"},
        }, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.profile.full_name, "Asha Rao")
        self.assertEqual(self.user.profile.role, UserProfile.Role.CUSTOMER)
        self.assertEqual(self.user.display_name, "asha_r")


class LoginMergeTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = CustomUser.objects.create_user(
            username="asha", email="asha@example.com", password="pass12345")
        self.product = Product.objects.create(
            name="Linen Shirt", price=Decimal("1499.00"), sku="SHIRT-001",
            sizes=["M"], stock_quantity=5)

    def test_login_endpoint_merges_guest_cart(self):
        self.client.post(
            reverse("cart:cart-lines"),
            {"product_id": self.product.pk, "quantity": 2, "size": "M"},
            format="json",
        )

        response = self.client.post(
            "/api/auth/login/",
            {"email": "asha@example.com", "password": "pass12345"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item = CartItem.objects.get(user=self.user)
        self.assertEqual((item.product_id, item.size, item.quantity), (self.product.pk, "M", 2))


class EnsureSuperuserCommandTests(TestCase):

    def test_creates_superuser_once(self):
        env = {
            "DJANGO_SUPERUSER_EMAIL": "boss@example.com",
            "DJANGO_SUPERUSER_USERNAME": "boss",
            "DJANGO_SUPERUSER_PASSWORD": "pass12345",
        }
        with patch.dict(os.environ, env):
            call_command("ensure_superuser", stdout=StringIO())
            call_command("ensure_superuser", stdout=StringIO())

        user = CustomUser.objects.get(email="boss@example.com")
        self.assertTrue(user.is_superuser)
        self.assertEqual(CustomUser.objects.filter(email="boss@example.com").count(), 1)

    def test_missing_password_creates_nothing(self):
        with patch.dict(os.environ, {"DJANGO_SUPERUSER_PASSWORD": ""}):
            call_command("ensure_superuser", stdout=StringIO(), stderr=StringIO())
        self.assertFalse(CustomUser.objects.filter(is_superuser=True).exists())
