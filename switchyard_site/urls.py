"""
URL configuration for the switchyard_site project.
"""

from django.contrib import admin
from django.urls import include, path

handler404 = "switchyard_site.error_views.handle_404"
handler500 = "switchyard_site.error_views.handle_500"

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("switchyard_site.api_urls")),
]
