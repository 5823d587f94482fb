from django.urls import path
from accounts.views.administrator_views import *

urlpatterns = [
    # Accounts
    path('users/', administrator_users, name='administrator_users'),
    path('users/<int:user_id>/approve/', administrator_approve_user, name='administrator_approve_user'),
    path('users/<int:user_id>/reject/', administrator_reject_user, name='administrator_reject_user'),
    path('users/<int:user_id>/activate/', administrator_activate_user, name='administrator_activate_user'),
    path('users/<int:user_id>/disable/', administrator_disable_user, name='administrator_disable_user'),
    path('users/<int:user_id>/assign-role/', administrator_assign_role, name='administrator_assign_role'),

    # Fine levels
    path('fine-levels/crud/', fine_levels_crud, name='administrator_fine_levels_crud'),
]
