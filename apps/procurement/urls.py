from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'procurement'

router = DefaultRouter()
router.register(r'suppliers', views.SupplierViewSet, basename='supplier')
router.register(r'purchase-orders', views.PurchaseOrderViewSet, basename='purchase-order')
router.register(r'approval-workflows', views.ApprovalWorkflowViewSet, basename='approval-workflow')
router.register(r'quotation-requests', views.QuotationRequestViewSet, basename='quotation-request')
router.register(r'quotations', views.QuotationViewSet, basename='quotation')
router.register(r'communications', views.SupplierCommunicationViewSet, basename='communication')
router.register(r'templates', views.CommunicationTemplateViewSet, basename='template')
router.register(r'documents', views.DocumentViewSet, basename='document')

urlpatterns = [
    # GET /api/procurement/audit/
    path('audit/', views.audit_trail, name='audit-trail'),

    path('', include(router.urls)),
]
