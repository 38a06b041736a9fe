from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password

from .models import User, StaffRole
from .services import PERMISSION_TYPES, get_effective_permissions


# =============================================================================
# Input Serializers
# =============================================================================

class UserLoginSerializer(serializers.Serializer):
    """Serializer for staff login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class StaffFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for staff filtering.

    Query Parameters:
        role (str): Filter by staff role
        is_active (bool): Filter by active flag
        search (str): Match email or names
    """

    role = serializers.ChoiceField(choices=StaffRole.choices, required=False)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(max_length=100, required=False)


class StaffCreateSerializer(serializers.Serializer):
    """Input for creating a staff member."""

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    role = serializers.ChoiceField(choices=StaffRole.choices, required=False)
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)


class StaffUpdateSerializer(serializers.Serializer):
    """Input for updating a staff member (all fields optional)."""

    email = serializers.EmailField(required=False)
    password = serializers.CharField(
        write_only=True,
        required=False,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    role = serializers.ChoiceField(choices=StaffRole.choices, required=False)
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)


class StaffPermissionsInputSerializer(serializers.Serializer):
    """Permission overrides keyed by permission type."""

    permissions = serializers.DictField(child=serializers.BooleanField())

    def validate_permissions(self, value):
        unknown = [p for p in value if p not in PERMISSION_TYPES]
        if unknown:
            raise serializers.ValidationError(
                f"Unknown permission(s): {', '.join(sorted(unknown))}"
            )
        return value


# =============================================================================
# Output Serializers
# =============================================================================

class UserSerializer(serializers.ModelSerializer):
    """Staff profile with effective permissions."""

    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'display_name',
            'first_name',
            'last_name',
            'phone',
            'role',
            'is_active',
            'permissions',
            'created_at',
            'last_login',
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        return get_effective_permissions(obj)


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """Fields staff may change on their own profile."""

    class Meta:
        model = User
        fields = ['display_name', 'first_name', 'last_name', 'phone']


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name', 'role']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()
