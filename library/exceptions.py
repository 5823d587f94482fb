"""
Failures raised by the lending workflow.

Every LendingError is recoverable by the caller and leaves all state as
it was before the call. ConsistencyError signals a broken invariant and
is deliberately outside that hierarchy.
"""


class LendingError(Exception):
    code = 'lending_error'
    status_code = 400
    default_message = 'The request could not be processed.'

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def as_dict(self):
        payload = {
            'success': False,
            'message': self.message,
            'code': self.code,
        }
        if self.errors:
            payload['errors'] = self.errors
        return payload


class ValidationError(LendingError):
    code = 'validation_error'
    status_code = 400
    default_message = 'Invalid data.'

    @classmethod
    def from_form(cls, form, message=None):
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        first = next(iter(errors.values()), [None])[0]
        return cls(message or first, errors=errors)


class OutOfStock(LendingError):
    code = 'out_of_stock'
    status_code = 409
    default_message = 'No copies of this book are available.'


class InvalidStateTransition(LendingError):
    code = 'invalid_state_transition'
    status_code = 409
    default_message = 'This action is not allowed in the current state.'


class AlreadyExtended(LendingError):
    code = 'already_extended'
    status_code = 409
    default_message = 'This loan has already been extended once.'


class StaleStateConflict(LendingError):
    code = 'stale_state_conflict'
    status_code = 409
    default_message = 'The record was changed by someone else. Reload and try again.'


class AccountNotActive(LendingError):
    code = 'account_not_active'
    status_code = 403
    default_message = 'Your account cannot use this feature.'


class Forbidden(LendingError):
    code = 'forbidden'
    status_code = 403
    default_message = 'You do not have permission to perform this action.'


class NotFound(LendingError):
    code = 'not_found'
    status_code = 404
    default_message = 'Record not found.'


class ConsistencyError(Exception):
    """An inventory or state invariant would be violated."""
    code = 'consistency_error'
    status_code = 500
