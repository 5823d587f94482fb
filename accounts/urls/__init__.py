"""
Per-role URL modules package for accounts app.

This package exposes `urlpatterns` so `include('accounts.urls')` works
even though per-role modules live under `accounts/urls/`.
"""

from django.urls import path, include

urlpatterns = [
    path('reader/', include('accounts.urls.reader_urls')),
    path('librarian/', include('accounts.urls.librarian_urls')),
    path('administrator/', include('accounts.urls.administrator_urls')),
]

__all__ = [
    'urlpatterns',
]
