"""
Root URL configuration
"""

from django.urls import path, include

urlpatterns = [
    path('', include('public.urls')),
    path('accounts/', include('accounts.urls')),
]
