from django.urls import path
from .views import notice_list_create, notice_detail, notice_preview, notice_send

urlpatterns = [
    path('notices/', notice_list_create, name='notice-list-create'),
    path('notices/<int:pk>/', notice_detail, name='notice-detail'),
    path('notices/<int:pk>/preview/', notice_preview, name='notice-preview'),
    path('notices/<int:pk>/send/', notice_send, name='notice-send'),
]
