import logging

from django.db.models import Q
from rest_framework import status, viewsets, serializers
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from drf_spectacular.utils import extend_schema

from .models import User
from .permissions import CanManageUsers
from .serializers import (
    UserLoginSerializer,
    UserSerializer,
    UserProfileUpdateSerializer,
    StaffFilterSerializer,
    StaffCreateSerializer,
    StaffUpdateSerializer,
    StaffPermissionsInputSerializer,
)
from .services import (
    authenticate_user,
    create_staff_member,
    update_staff_member,
    deactivate_staff_member,
    reactivate_staff_member,
    get_effective_permissions,
    set_staff_permissions,
    AccountsServiceError,
    InvalidCredentialsError,
    InactiveAccountError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


def _error_response(error):
    """Map an accounts service error to an error response."""
    if isinstance(error, InvalidCredentialsError):
        code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(error, InactiveAccountError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, UserNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning("Accounts request rejected: %s", error)
    return Response({'error': str(error)}, status=code)


# Response serializers for API documentation
class TokensResponseSerializer(serializers.Serializer):
    refresh = serializers.CharField()
    access = serializers.CharField()


class AuthResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    user = UserSerializer()
    tokens = TokensResponseSerializer()


class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class LogoutRequestSerializer(serializers.Serializer):
    refresh = serializers.CharField(help_text="Refresh token of the session")


@extend_schema(
    request=UserLoginSerializer,
    responses={
        200: AuthResponseSerializer,
        400: ErrorResponseSerializer,
        401: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Authenticate with email and password to receive JWT tokens.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Login with email and password."""
    serializer = UserLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        user = authenticate_user(**serializer.validated_data)
    except AccountsServiceError as e:
        return _error_response(e)

    refresh = RefreshToken.for_user(user)

    return Response({
        'message': 'Login successful',
        'user': UserSerializer(user).data,
        'tokens': {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        }
    })


@extend_schema(
    request=LogoutRequestSerializer,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Logout. The refresh token is validated before the session ends.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Logout and validate the refresh token."""
    refresh_token = request.data.get('refresh')
    if refresh_token:
        try:
            RefreshToken(refresh_token)
        except TokenError:
            return Response({'error': 'Invalid token'}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'message': 'Logout successful'})


@extend_schema(
    responses={200: UserSerializer},
    description="Get the current staff member's profile and permissions.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_user(request):
    """Get current authenticated user profile."""
    return Response(UserSerializer(request.user).data)


@extend_schema(
    request=UserProfileUpdateSerializer,
    responses={200: UserSerializer},
    description="Update the current staff member's own profile.",
    tags=['auth'],
)
@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def update_profile(request):
    """Update own profile fields."""
    serializer = UserProfileUpdateSerializer(request.user, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    serializer.save()
    return Response(UserSerializer(request.user).data)


class StaffViewSet(viewsets.ModelViewSet):
    """
    Staff management (administrators only).

    list: Staff members, filterable by role/is_active/search
    create: Add a staff member
    retrieve: Staff member detail
    partial_update: Change profile or role
    destroy: Deactivate (staff records are never hard deleted)
    permissions: GET/PUT permission overrides
    reactivate: Re-enable a deactivated member
    """

    queryset = User.objects.prefetch_related('staff_permissions')
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, CanManageUsers]
    http_method_names = ['get', 'post', 'put', 'patch', 'delete']

    def get_queryset(self):
        queryset = super().get_queryset()

        filter_serializer = StaffFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if params.get('role'):
            queryset = queryset.filter(role=params['role'])
        if params.get('is_active') is not None:
            queryset = queryset.filter(is_active=params['is_active'])
        if params.get('search'):
            term = params['search']
            queryset = queryset.filter(
                Q(email__icontains=term) |
                Q(first_name__icontains=term) |
                Q(last_name__icontains=term) |
                Q(display_name__icontains=term)
            )
        return queryset

    @extend_schema(request=StaffCreateSerializer, responses={201: UserSerializer})
    def create(self, request, *args, **kwargs):
        serializer = StaffCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            user = create_staff_member(**serializer.validated_data)
        except AccountsServiceError as e:
            return _error_response(e)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=StaffUpdateSerializer, responses={200: UserSerializer})
    def update(self, request, *args, **kwargs):
        staff = self.get_object()
        serializer = StaffUpdateSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        try:
            staff = update_staff_member(user=staff, **serializer.validated_data)
        except AccountsServiceError as e:
            return _error_response(e)
        return Response(UserSerializer(staff).data)

    def destroy(self, request, *args, **kwargs):
        staff = self.get_object()
        try:
            deactivate_staff_member(user=staff, performed_by=request.user)
        except AccountsServiceError as e:
            return _error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def reactivate(self, request, pk=None):
        """
        Reactivate a deactivated staff member.

        POST /api/auth/staff/{id}/reactivate/
        """
        staff = self.get_object()
        try:
            staff = reactivate_staff_member(user=staff)
        except AccountsServiceError as e:
            return _error_response(e)
        return Response(UserSerializer(staff).data)

    @extend_schema(request=StaffPermissionsInputSerializer)
    @action(detail=True, methods=['get', 'put'])
    def permissions(self, request, pk=None):
        """
        Get or replace a staff member's permission overrides.

        GET /api/auth/staff/{id}/permissions/
        PUT /api/auth/staff/{id}/permissions/
        Body: {"permissions": {"adjust_stock": true}}
        """
        staff = self.get_object()
        if request.method == 'GET':
            return Response({'permissions': get_effective_permissions(staff)})

        serializer = StaffPermissionsInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            effective = set_staff_permissions(
                user=staff,
                permissions=serializer.validated_data['permissions']
            )
        except AccountsServiceError as e:
            return _error_response(e)
        return Response({'permissions': effective})
