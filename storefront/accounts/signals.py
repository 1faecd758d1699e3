from django.db.models.signals import post_save
from django.dispatch import receiver
from .models import CustomUser, UserProfile


@receiver(post_save, sender=CustomUser)
def create_user_profile(sender, instance, created, **kwargs):
    if created:
        role = UserProfile.Role.SUPER_ADMIN if instance.is_superuser else UserProfile.Role.CUSTOMER
        UserProfile.objects.create(
            user=instance,
            full_name=instance.get_full_name(),
            role=role,
        )
