from django.urls import path
from .views import (
    project_list_create, project_detail, projects_stats, project_stats,
    block_list_create, block_detail,
    unit_list_create, unit_detail, unit_bulk_update,
    project_sales,
    plot_list, plots_by_project, plot_detail, unit_timeline
)

urlpatterns = [
    # Project endpoints
    path('projects/', project_list_create, name='project-list-create'),
    path('projects/stats/', projects_stats, name='projects-stats'),
    path('projects/<int:pk>/', project_detail, name='project-detail'),
    path('projects/<int:pk>/stats/', project_stats, name='project-stats'),
    path('projects/<int:pk>/sales/', project_sales, name='project-sales'),

    # Block endpoints
    path('projects/<int:project_pk>/blocks/', block_list_create, name='block-list-create'),
    path('projects/<int:project_pk>/blocks/<int:pk>/', block_detail, name='block-detail'),

    # Unit endpoints
    path('projects/<int:project_pk>/units/', unit_list_create, name='unit-list-create'),
    path('projects/<int:project_pk>/units/bulk/', unit_bulk_update, name='unit-bulk-update'),
    path('projects/<int:project_pk>/units/<int:pk>/', unit_detail, name='unit-detail'),

    # Plot endpoints
    path('plots/', plot_list, name='plot-list'),
    path('plots/project/<int:project_pk>/', plots_by_project, name='plots-by-project'),
    path('plots/<int:pk>/', plot_detail, name='plot-detail'),
    path('units/<int:pk>/timeline/', unit_timeline, name='unit-timeline'),
]
