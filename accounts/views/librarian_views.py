"""
Librarian Views
Catalog upkeep, confirmation queues, return processing, fine settlement
and reports.
Administrators use the same endpoints.
"""

from accounts.decorators import json_endpoint, request_data, success
from library import catalog, fine_levels, queries, reports, workflow
from library.exceptions import ValidationError
from library.forms import ConfirmReturnForm, ReasonForm
from library.serializers import (
    book_to_dict,
    category_to_dict,
    fine_level_to_dict,
    fine_to_dict,
    loan_to_dict,
    pending_loan_to_dict,
    return_request_to_dict,
)


def _reason(request):
    form = ReasonForm(request_data(request))
    form.is_valid()
    return form.cleaned_data.get('reason')


# Borrow requests

@json_endpoint(methods=('GET',))
def librarian_pending_loans(request):
    loans = queries.pending_loans(request.user)
    return success(data={'loans': [pending_loan_to_dict(loan) for loan in loans]})


@json_endpoint(methods=('POST',))
def librarian_confirm_loan(request, loan_id):
    loan = workflow.confirm_loan(request.user, loan_id)
    return success(
        message=f'Loan confirmed. Due date: {loan.due_date:%Y-%m-%d}.',
        data={'loan': loan_to_dict(loan)},
    )


@json_endpoint(methods=('POST',))
def librarian_reject_loan(request, loan_id):
    loan = workflow.reject_loan(request.user, loan_id, _reason(request))
    return success(message='Borrow request rejected.', data={'loan': loan_to_dict(loan)})


# Returns

@json_endpoint(methods=('GET',))
def librarian_pending_returns(request):
    returns = queries.pending_returns(request.user)
    return success(data={'returns': [return_request_to_dict(r) for r in returns]})


@json_endpoint(methods=('POST',))
def librarian_confirm_return(request, return_id):
    """
    Close a loan. Payload: book_condition (normal|damaged|lost),
    fine_level_id, late_fine_level_id and note as the condition requires.
    """
    form = ConfirmReturnForm(request_data(request))
    if not form.is_valid():
        raise ValidationError.from_form(form)

    data = form.cleaned_data
    outcome = workflow.confirm_return(
        request.user,
        return_id,
        data['book_condition'],
        fine_level_id=data.get('fine_level_id'),
        late_fine_level_id=data.get('late_fine_level_id'),
        note=data.get('note'),
    )

    message = 'Return confirmed.'
    if outcome.fines:
        message += f' {len(outcome.fines)} fine(s) assessed.'
    return success(message=message, data={
        'loan': loan_to_dict(outcome.loan),
        'return_request': return_request_to_dict(outcome.return_request),
        'fines': [fine_to_dict(f) for f in outcome.fines],
    })


# Fines

@json_endpoint(methods=('GET',))
def librarian_fines(request):
    result = queries.all_fines(request.user, request.GET.get('state') or None)
    return success(data={
        'fines': [fine_to_dict(f) for f in result['fines']],
        'counts': result['counts'],
    })


@json_endpoint(methods=('POST',))
def librarian_confirm_payment(request, fine_id):
    fine = workflow.confirm_payment(request.user, fine_id)
    return success(message='Payment confirmed.', data={'fine': fine_to_dict(fine)})


@json_endpoint(methods=('POST',))
def librarian_reject_payment(request, fine_id):
    fine = workflow.reject_payment(request.user, fine_id, _reason(request))
    return success(message='Payment rejected.', data={'fine': fine_to_dict(fine)})


@json_endpoint(methods=('GET',))
def librarian_fine_levels(request):
    levels = fine_levels.list_levels(request.user)
    return success(data={'fine_levels': [fine_level_to_dict(level) for level in levels]})


# Catalog

@json_endpoint(methods=('POST',))
def books_crud(request):
    """Handle create / update / delete of catalog titles, selected by `action`"""
    data = request_data(request)
    action = (data.get('action') or '').lower()

    if action == 'create':
        book = catalog.create_book(request.user, data)
        return success(
            message=f'Book "{book.title}" created successfully.',
            data={'book': book_to_dict(book)},
            status=201,
        )
    elif action == 'update':
        book = catalog.update_book(request.user, data.get('id'), data)
        return success(
            message=f'Book "{book.title}" updated successfully.',
            data={'book': book_to_dict(book)},
        )
    elif action == 'delete':
        title = catalog.delete_book(request.user, data.get('id'))
        return success(message=f'Book "{title}" deleted successfully.')

    raise ValidationError('Invalid action specified.')


@json_endpoint(methods=('POST',))
def book_categories_crud(request):
    data = request_data(request)
    action = (data.get('action') or '').lower()

    if action == 'create':
        category = catalog.create_category(request.user, data)
        return success(
            message=f'Category "{category.name}" created successfully.',
            data={'category': category_to_dict(category)},
            status=201,
        )
    elif action == 'update':
        category = catalog.update_category(request.user, data.get('id'), data)
        return success(
            message=f'Category "{category.name}" updated successfully.',
            data={'category': category_to_dict(category)},
        )
    elif action == 'delete':
        name = catalog.delete_category(request.user, data.get('id'))
        return success(message=f'Category "{name}" deleted successfully.')

    raise ValidationError('Invalid action specified.')


# Reports

@json_endpoint(methods=('GET',))
def librarian_report(request, report_name):
    """JSON by default; ?format=csv|xlsx|pdf downloads a file"""
    report = reports.build_report(request.user, report_name, request.GET)
    export_format = request.GET.get('format', '').lower()
    if export_format:
        return reports.export(report, export_format, request)

    return success(data={
        'title': report.title,
        'headers': report.headers,
        'rows': [[str(value) if value is not None else None for value in row] for row in report.rows],
        'summary': [[label, str(value)] for label, value in report.summary],
    })
