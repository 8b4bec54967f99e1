"""URL configuration (admin only; the analytics layer exposes no HTTP API)."""
from django.conf import settings
from django.contrib import admin
from django.urls import path

urlpatterns = []

if getattr(settings, "ENABLE_DJANGO_ADMIN", False):
    urlpatterns.insert(0, path("admin/", admin.site.urls))
