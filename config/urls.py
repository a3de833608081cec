"""
URL configuration for the bookshop point of sale.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("apps.billing.urls")),
]
