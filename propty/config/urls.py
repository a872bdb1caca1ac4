"""
URL configuration for the Propty backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Propty Management Admin Panel"
admin.site.site_title = "Propty Admin Portal"
admin.site.index_title = "Welcome to the Propty Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('propty.core.urls')),
    path('api/v1/', include('propty.clients.urls')),
    path('api/v1/', include('propty.projects.urls')),
    path('api/v1/', include('propty.marketers.urls')),
    path('api/v1/', include('propty.sales.urls')),
    path('api/v1/', include('propty.notices.urls')),
    path('api/v1/', include('propty.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
