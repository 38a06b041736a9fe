from django.urls import path
from . import views

app_name = 'analytics'

urlpatterns = [
    # Inventory reports (?export=csv|xlsx for a download)
    path('reports/<str:template>/', views.inventory_report, name='report'),

    # Dashboards
    path('procurement/', views.procurement_summary, name='procurement'),
    path('inventory-summary/', views.inventory_summary, name='inventory-summary'),
]
