import logging

from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from accounts import services
from accounts.decorators import json_endpoint, request_data, success
from accounts.models import (
    CustomUser,
    STATUS_ACTIVE,
    STATUS_DISABLED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from library.exceptions import AccountNotActive
from library.serializers import user_to_dict

logger = logging.getLogger(__name__)

INACTIVE_MESSAGES = {
    STATUS_PENDING: 'Your account is awaiting approval by an administrator.',
    STATUS_DISABLED: 'Your account has been disabled. Contact the administrator.',
    STATUS_REJECTED: 'Your registration was rejected.',
}


@csrf_exempt
@json_endpoint(methods=('POST',))
def public_login(request):
    """
    Universal login for readers, librarians and administrators
    """
    data = request_data(request)
    username = (data.get('username') or '').strip()
    password = (data.get('password') or '').strip()

    if not username or not password:
        return JsonResponse({'success': False, 'message': 'Username and password are required.'}, status=400)

    user = authenticate(request, username=username, password=password)

    if user is None:
        logger.warning('Failed login for username %s', username)
        return JsonResponse({'success': False, 'message': 'Invalid login credentials.'}, status=401)

    if user.account_status != STATUS_ACTIVE:
        message = INACTIVE_MESSAGES.get(user.account_status, AccountNotActive.default_message)
        if user.account_status == STATUS_REJECTED and user.rejection_reason:
            message = f'{message} Reason: {user.rejection_reason}'
        logger.warning('Login refused for %s: account is %s', user.username, user.account_status)
        raise AccountNotActive(message)

    login(request, user)
    logger.info('User %s logged in as %s', user.username, user.role)
    return success(message=f'Welcome {user.get_display_name()}', data={'user': user_to_dict(user)})


@json_endpoint(methods=('POST',))
def public_logout(request):
    """Logout user"""
    logout(request)
    return success(message='You have been logged out successfully.')


@csrf_exempt
@json_endpoint(methods=('POST',))
def public_register(request):
    """Reader self-registration; the account waits for approval."""
    user = services.register_reader(request_data(request))
    return success(
        message='Registration received. You can log in once an administrator approves your account.',
        data={'user': user_to_dict(user)},
        status=201,
    )


@json_endpoint(methods=('GET',))
def public_register_check(request):
    """AJAX endpoint to check uniqueness of username and email."""
    username = request.GET.get('username')
    email = request.GET.get('email')

    data = {
        'username_available': True,
        'email_available': True,
    }

    if username:
        if CustomUser.objects.filter(username__iexact=username).exists():
            data['username_available'] = False

    if email:
        if CustomUser.objects.filter(email__iexact=email).exists():
            data['email_available'] = False

    return JsonResponse(data)
