from rest_framework import serializers
from .models import CustomUser, UserProfile


class CustomUserDetailsSerializer(serializers.ModelSerializer):
    """
    User details returned by the auth endpoints.
    """

    full_name = serializers.CharField(source="profile.full_name", read_only=True)
    role = serializers.CharField(source="profile.role", read_only=True)

    class Meta:
        model = CustomUser
        fields = (
            "pk",
            "email",
            "username",
            "first_name",
            "last_name",
            "display_name",
            "phone_number",
            "full_name",
            "role",
            "is_staff",
        )
        read_only_fields = ("email", "is_staff")


class UserBasicSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = [
            "id",
            "username",
            "display_name",
            "email",
            "phone_number",
        ]
        read_only_fields = ["id", "username", "email"]


class UserProfileSerializer(serializers.ModelSerializer):
    user = UserBasicSerializer(required=False)

    class Meta:
        model = UserProfile
        fields = [
            "id",
            "user",
            "full_name",
            "role",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["role", "created_at", "updated_at"]

    def update(self, instance, validated_data):
        user_data = validated_data.pop("user", None) or {}
        changed = [f for f in ("display_name", "phone_number") if f in user_data]
        if changed:
            u = instance.user
            for field in changed:
                setattr(u, field, user_data[field])
            u.save(update_fields=changed)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance
