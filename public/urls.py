from django.urls import path
from . import views

urlpatterns = [
    path('login/', views.public_login, name='public_login'),
    path('logout/', views.public_logout, name='public_logout'),
    path('register/', views.public_register, name='public_register'),
    path('register/check/', views.public_register_check, name='public_register_check'),
]
