"""Root URL configuration for Quantum5ocial."""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('social.urls')),
]
