from rest_framework.generics import RetrieveUpdateAPIView
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, extend_schema_view

from .models import UserProfile
from .serializers import UserProfileSerializer


@extend_schema_view(
    get=extend_schema(summary="Get profile", tags=['accounts']),
    put=extend_schema(summary="Replace profile", tags=['accounts']),
    patch=extend_schema(
        summary="Update profile",
        description="Full name, display name and phone number can be changed. The role is read-only.",
        tags=['accounts']
    ),
)
class ProfileView(RetrieveUpdateAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = UserProfileSerializer

    def get_object(self):
        profile, created = UserProfile.objects.get_or_create(user=self.request.user)
        return profile
