from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'clinic'

router = DefaultRouter()
router.register(r'panels', views.PanelViewSet, basename='panel')
router.register(r'price-tiers', views.PriceTierViewSet, basename='price-tier')
router.register(r'services', views.MedicalServiceViewSet, basename='service')
router.register(r'document-templates', views.DocumentTemplateViewSet, basename='document-template')

urlpatterns = [
    # Settings
    # GET  /api/clinic/settings/
    # GET  /api/clinic/settings/{category}/
    # PUT  /api/clinic/settings/{category}/
    path('settings/', views.settings_overview, name='settings'),
    path('settings/<str:category>/', views.settings_category, name='settings-category'),
    path('logo/', views.clinic_logo, name='logo'),

    path('', include(router.urls)),
]
