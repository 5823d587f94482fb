"""
Administrator Views
Account approval, roles and fine level management
"""

from accounts import services
from accounts.decorators import json_endpoint, request_data, success
from accounts.forms.user_forms import AccountRejectionForm, RoleAssignmentForm
from library import fine_levels
from library.exceptions import ValidationError
from library.serializers import fine_level_to_dict, user_to_dict


@json_endpoint(methods=('GET',))
def administrator_users(request):
    """List accounts, optionally filtered by ?status= and ?role="""
    users = services.list_users(
        request.user,
        status=request.GET.get('status') or None,
        role=request.GET.get('role') or None,
    )
    return success(data={'users': [user_to_dict(u) for u in users]})


@json_endpoint(methods=('POST',))
def administrator_approve_user(request, user_id):
    user = services.approve(request.user, user_id)
    return success(message=f'Account "{user.username}" approved.', data={'user': user_to_dict(user)})


@json_endpoint(methods=('POST',))
def administrator_reject_user(request, user_id):
    form = AccountRejectionForm(request_data(request))
    form.is_valid()
    user = services.reject(request.user, user_id, form.cleaned_data.get('reason'))
    return success(message=f'Account "{user.username}" rejected.', data={'user': user_to_dict(user)})


@json_endpoint(methods=('POST',))
def administrator_activate_user(request, user_id):
    user = services.activate(request.user, user_id)
    return success(message=f'Account "{user.username}" activated.', data={'user': user_to_dict(user)})


@json_endpoint(methods=('POST',))
def administrator_disable_user(request, user_id):
    user = services.disable(request.user, user_id)
    return success(message=f'Account "{user.username}" disabled.', data={'user': user_to_dict(user)})


@json_endpoint(methods=('POST',))
def administrator_assign_role(request, user_id):
    form = RoleAssignmentForm(request_data(request))
    if not form.is_valid():
        raise ValidationError.from_form(form)
    user = services.assign_role(request.user, user_id, form.cleaned_data['role'])
    return success(
        message=f'"{user.username}" is now {user.get_role_display().lower()}.',
        data={'user': user_to_dict(user)},
    )


@json_endpoint(methods=('POST',))
def fine_levels_crud(request):
    """Handle create / update / delete of fine levels, selected by `action`"""
    data = request_data(request)
    action = (data.get('action') or '').lower()

    if action == 'create':
        level = fine_levels.create_level(request.user, data)
        return success(
            message=f'Fine level "{level.name}" created successfully.',
            data={'fine_level': fine_level_to_dict(level)},
            status=201,
        )
    elif action == 'update':
        fields = {k: data[k] for k in fine_levels.EDITABLE_FIELDS if k in data}
        level = fine_levels.update_level(request.user, data.get('id'), fields)
        return success(
            message=f'Fine level "{level.name}" updated successfully.',
            data={'fine_level': fine_level_to_dict(level)},
        )
    elif action == 'delete':
        name = fine_levels.delete_level(request.user, data.get('id'))
        return success(message=f'Fine level "{name}" deleted successfully.')

    raise ValidationError('Invalid action specified.')
