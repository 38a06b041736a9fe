import logging

from django.db.models import Q
from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.accounts.permissions import CanManageClinic, CanManageClinicOrReadOnly
from .models import Panel, PriceTier, MedicalService, DocumentTemplate
from .serializers import (
    SettingsCategoryUpdateSerializer,
    LogoUploadSerializer,
    PriceTierInputSerializer,
    PriceTierSerializer,
    PanelSerializer,
    ServicePricingInputSerializer,
    ServicePricingSerializer,
    ServiceFilterSerializer,
    MedicalServiceSerializer,
    DocumentTemplateSerializer,
    DocumentRenderSerializer,
    price_display_context,
)
from .services import (
    SETTING_DEFINITIONS,
    SMART_FIELDS,
    get_category_settings,
    update_multiple_settings,
    upload_clinic_logo,
    remove_clinic_logo,
    create_price_tier,
    update_price_tier,
    delete_price_tier,
    set_service_pricing,
    create_document_template,
    update_document_template,
    render_document_template,
    ClinicServiceError,
    PriceTierNotFoundError,
    TierInUseError,
)

logger = logging.getLogger(__name__)


def _error_response(error):
    """Map a clinic service error to an error response."""
    if isinstance(error, PriceTierNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, TierInUseError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning("Clinic request rejected: %s", error)
    return Response({'error': str(error)}, status=code)



# =============================================================================
# Settings
# =============================================================================

@extend_schema(
    description="All clinic settings grouped by category.",
    tags=['clinic'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def settings_overview(request):
    """Get every settings category."""
    return Response({
        category: get_category_settings(category)
        for category in SETTING_DEFINITIONS
    })


@extend_schema(
    request=SettingsCategoryUpdateSerializer,
    description="Read or update one settings category (basic_info, payment, notifications, staff).",
    tags=['clinic'],
)
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, CanManageClinicOrReadOnly])
def settings_category(request, category):
    """Get or update the settings of a category."""
    if category not in SETTING_DEFINITIONS:
        return Response(
            {'error': f'Unknown settings category {category}'},
            status=status.HTTP_404_NOT_FOUND
        )

    if request.method == 'GET':
        return Response(get_category_settings(category))

    serializer = SettingsCategoryUpdateSerializer(
        data=request.data,
        context={'category': category}
    )
    serializer.is_valid(raise_exception=True)

    try:
        values = update_multiple_settings(
            category=category,
            values=serializer.validated_data['values'],
            user=request.user
        )
    except ClinicServiceError as e:
        return _error_response(e)

    return Response(values)


@extend_schema(
    request=LogoUploadSerializer,
    description="Upload (POST) or remove (DELETE) the clinic logo.",
    tags=['clinic'],
)
@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageClinic])
@parser_classes([MultiPartParser, FormParser])
def clinic_logo(request):
    """Upload or remove the clinic logo."""
    if request.method == 'DELETE':
        remove_clinic_logo(user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = LogoUploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        path = upload_clinic_logo(file=serializer.validated_data['file'], user=request.user)
    except ClinicServiceError as e:
        return _error_response(e)

    return Response({'logo_path': path}, status=status.HTTP_201_CREATED)


# =============================================================================
# Price tiers and panels
# =============================================================================

class PanelViewSet(viewsets.ModelViewSet):
    """CRUD for third-party payer panels."""

    queryset = Panel.objects.all()
    serializer_class = PanelSerializer
    permission_classes = [IsAuthenticated, CanManageClinicOrReadOnly]


class PriceTierViewSet(viewsets.ModelViewSet):
    """
    ViewSet for price tiers.

    Writes go through the pricing service so verification rules and the
    in-use check on delete are applied.
    """

    queryset = PriceTier.objects.prefetch_related('panels')
    serializer_class = PriceTierSerializer
    permission_classes = [IsAuthenticated, CanManageClinicOrReadOnly]

    @extend_schema(request=PriceTierInputSerializer, responses={201: PriceTierSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PriceTierInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            tier = create_price_tier(**serializer.validated_data)
        except ClinicServiceError as e:
            return _error_response(e)
        return Response(PriceTierSerializer(tier).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=PriceTierInputSerializer, responses={200: PriceTierSerializer})
    def update(self, request, *args, **kwargs):
        tier = self.get_object()
        serializer = PriceTierInputSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        try:
            tier = update_price_tier(tier=tier, **serializer.validated_data)
        except ClinicServiceError as e:
            return _error_response(e)
        return Response(PriceTierSerializer(tier).data)

    def destroy(self, request, *args, **kwargs):
        tier = self.get_object()
        try:
            delete_price_tier(tier=tier)
        except ClinicServiceError as e:
            return _error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Medical services
# =============================================================================

class MedicalServiceViewSet(viewsets.ModelViewSet):
    """
    ViewSet for billable medical services.

    pricing: PUT per-tier prices
    """

    queryset = MedicalService.objects.prefetch_related('tier_prices__tier')
    serializer_class = MedicalServiceSerializer
    permission_classes = [IsAuthenticated, CanManageClinicOrReadOnly]

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if getattr(self, 'swagger_fake_view', False):
            return context
        context.update(price_display_context(self.request.query_params))
        return context

    def get_queryset(self):
        queryset = super().get_queryset()

        filter_serializer = ServiceFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if params.get('category'):
            queryset = queryset.filter(category__iexact=params['category'])
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('search'):
            queryset = queryset.filter(
                Q(name__icontains=params['search']) |
                Q(description__icontains=params['search'])
            )
        return queryset

    @extend_schema(request=ServicePricingInputSerializer, responses={200: ServicePricingSerializer(many=True)})
    @action(detail=True, methods=['put'])
    def pricing(self, request, pk=None):
        """
        Set per-tier prices.

        PUT /api/clinic/services/{id}/pricing/
        Body: {"prices": {"<tier-id>": "45.00"}}
        """
        service = self.get_object()
        serializer = ServicePricingInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            rows = set_service_pricing(service=service, prices=serializer.validated_data['prices'])
        except ClinicServiceError as e:
            return _error_response(e)
        return Response(ServicePricingSerializer(rows, many=True).data)


# =============================================================================
# Document templates
# =============================================================================

class DocumentTemplateViewSet(viewsets.ModelViewSet):
    """
    ViewSet for document templates.

    render: POST smart-field values, returns rendered content
    smart_fields: GET the supported smart fields
    """

    queryset = DocumentTemplate.objects.all()
    serializer_class = DocumentTemplateSerializer
    permission_classes = [IsAuthenticated, CanManageClinicOrReadOnly]

    def get_queryset(self):
        queryset = super().get_queryset()
        template_type = self.request.query_params.get('template_type')
        if template_type:
            queryset = queryset.filter(template_type=template_type)
        if self.request.query_params.get('active_only') in ('1', 'true', 'True'):
            queryset = queryset.filter(status='active')
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            template = create_document_template(
                created_by=request.user,
                **serializer.validated_data
            )
        except ClinicServiceError as e:
            return _error_response(e)
        return Response(self.get_serializer(template).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        template = self.get_object()
        serializer = self.get_serializer(
            template,
            data=request.data,
            partial=kwargs.get('partial', False)
        )
        serializer.is_valid(raise_exception=True)
        try:
            template = update_document_template(template=template, **serializer.validated_data)
        except ClinicServiceError as e:
            return _error_response(e)
        return Response(self.get_serializer(template).data)

    @extend_schema(request=DocumentRenderSerializer)
    @action(detail=True, methods=['post'], url_path='render', permission_classes=[IsAuthenticated])
    def render_document(self, request, pk=None):
        """
        Render the template with smart field values.

        POST /api/clinic/document-templates/{id}/render/
        Body: {"context": {"patient_name": "Ali", "mc_days": "2"}}
        """
        template = self.get_object()
        serializer = DocumentRenderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(render_document_template(template, serializer.validated_data['context']))

    @action(detail=False, methods=['get'], url_path='smart-fields', permission_classes=[IsAuthenticated])
    def smart_fields(self, request):
        """GET /api/clinic/document-templates/smart-fields/"""
        return Response({'fields': SMART_FIELDS})
