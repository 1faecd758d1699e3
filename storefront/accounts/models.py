from django.db import models
from django.contrib.auth.models import AbstractUser
from phonenumber_field.modelfields import PhoneNumberField


class CustomUser(AbstractUser):
    email = models.EmailField(max_length=225, unique=True, null=False, blank=False)
    phone_number = PhoneNumberField(blank=True, null=True, unique=True)
    display_name = models.CharField(
        max_length=225,
        blank=True,
        null=True,
        help_text="The name shown on the storefront.",
    )
    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    def __str__(self):
        return str(self.display_name or self.get_full_name() or self.email)


class UserProfile(models.Model):
    class Role(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        ADMIN = "admin", "Admin"
        SUPER_ADMIN = "super_admin", "Super admin"

    user = models.OneToOneField(
        CustomUser, on_delete=models.CASCADE, related_name="profile"
    )
    full_name = models.CharField(max_length=225, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CUSTOMER)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.email}'s profile"

    @property
    def is_admin(self):
        return self.role in (self.Role.ADMIN, self.Role.SUPER_ADMIN)
