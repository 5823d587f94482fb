import logging

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class AuthenticatedAccessMiddleware(MiddlewareMixin):
    """
    Session gate in front of the lending endpoints:
    1. Public/private URL classification
    2. JSON 401 for anonymous requests to private URLs
    3. Access logging
    4. Security headers on every response

    Role, ownership and account status are decided by library.guard, not here.
    """

    def __init__(self, get_response):
        super().__init__(get_response)

        # Paths that need no session
        self.PUBLIC_PATHS = [
            '/login/',
            '/logout/',
            '/register/',
            '/static/',
            '/favicon.ico', '/robots.txt',
        ]

        self.PUBLIC_MODULES = [
            'django.views.static',
            'django.contrib.staticfiles.views',
        ]

    def process_view(self, request, view_func, view_args, view_kwargs):
        current_path = request.path_info
        current_module = view_func.__module__

        self._log_access_attempt(request, current_path, current_module)

        if self._is_public_path(current_path) or self._is_public_module(current_module):
            return None

        if not request.user.is_authenticated:
            return self._handle_unauthenticated_access(request, current_path)

        return None

    def _is_public_path(self, path):
        """Check if path is in public paths list."""
        return path == '/' or any(path.startswith(public_path) for public_path in self.PUBLIC_PATHS)

    def _is_public_module(self, module):
        return any(module.startswith(public_module) for public_module in self.PUBLIC_MODULES)

    def _log_access_attempt(self, request, path, module):
        """Log access attempts for monitoring."""
        if request.user.is_authenticated:
            logger.info(
                'Access attempt - User: %s, Role: %s, Status: %s, Path: %s, Module: %s',
                request.user.username, request.user.role, request.user.account_status, path, module,
            )
        else:
            logger.info('Unauthenticated access attempt - Path: %s, Module: %s', path, module)

    def _handle_unauthenticated_access(self, request, path):
        logger.warning('Unauthenticated access to protected path: %s', path)
        return JsonResponse({
            'success': False,
            'message': 'Please login to access this resource.',
            'code': 'not_authenticated',
        }, status=401)

    def process_response(self, request, response):
        """
        Add security headers and additional logging to responses.
        """
        security_headers = {
            'X-Content-Type-Options': 'nosniff',
            'X-Frame-Options': 'DENY',
            'Referrer-Policy': 'same-origin',
        }

        for header, value in security_headers.items():
            response[header] = value

        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated and response.status_code == 200:
            path = request.path_info
            if not self._is_public_path(path):
                logger.info(
                    'Protected access completed - User: %s, Path: %s, Status: %s',
                    user.username, path, response.status_code,
                )

        return response
