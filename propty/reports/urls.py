from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard-kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('reports/sales/', views.sales_report, name='sales-report'),
    path('reports/allocations/', views.allocations_report, name='allocations-report'),
    path('reports/commissions/', views.commissions_report, name='commissions-report'),
    path('reports/clients/', views.clients_report, name='clients-report'),
    path('reports/projects/', views.projects_report, name='projects-report'),
    path('reports/<str:report_type>/export/', views.report_export, name='report-export'),
]
