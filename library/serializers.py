# library/serializers.py - Plain dict views of lending records for JsonResponse
from decimal import Decimal

from django.utils import timezone

CENTS = Decimal('0.01')


def _date(value):
    return value.isoformat() if value else None


def money(value):
    """Amounts always leave as strings with two decimal places."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS))


def _user(user):
    if user is None:
        return None
    return {'id': user.pk, 'username': user.username, 'name': user.get_display_name()}


def book_to_dict(book):
    return {
        'id': book.pk,
        'title': book.title,
        'author': book.author,
        'isbn': book.isbn or '',
        'publisher': book.publisher,
        'publication_year': book.publication_year,
        'category': book.category.name if book.category_id else None,
        'category_id': book.category_id,
        'description': book.description,
        'total_quantity': book.total_quantity,
        'available_quantity': book.available_quantity,
        'borrowed_quantity': book.borrowed_quantity,
        'lost_quantity': book.lost_quantity,
        'damaged_quantity': book.damaged_quantity,
        'is_available': book.is_available(),
    }


def category_to_dict(category):
    return {
        'id': category.pk,
        'name': category.name,
        'description': category.description,
    }


def loan_to_dict(loan, today=None):
    today = today or timezone.localdate()
    return {
        'id': loan.pk,
        'book_id': loan.book_id,
        'book_title': loan.book.title,
        'reader_id': loan.reader_id,
        'state': loan.state,
        'state_display': loan.get_state_display(),
        'borrow_days': loan.borrow_days,
        'borrow_date': _date(loan.borrow_date),
        'due_date': _date(loan.due_date),
        'expected_due_date': _date(loan.expected_due_date),
        'return_date': _date(loan.return_date),
        'book_condition': loan.book_condition or None,
        'extended_once': loan.extended_once,
        'rejection_reason': loan.rejection_reason or None,
        'is_overdue': loan.is_overdue(today),
        'days_overdue': loan.days_overdue(today),
        'days_remaining': loan.days_remaining(today),
        'created_at': _date(loan.created_at),
    }


def pending_loan_to_dict(loan):
    data = loan_to_dict(loan)
    data['reader'] = _user(loan.reader)
    data['available_quantity'] = loan.book.available_quantity
    return data


def return_request_to_dict(return_request, today=None):
    loan = return_request.loan
    today = today or timezone.localdate()
    return {
        'id': return_request.pk,
        'loan_id': loan.pk,
        'book_title': loan.book.title,
        'reader': _user(loan.reader),
        'request_date': _date(return_request.request_date),
        'due_date': _date(loan.due_date),
        'state': return_request.state,
        'book_condition': return_request.book_condition or None,
        'staff_note': return_request.staff_note or None,
        'is_overdue': loan.is_overdue(today),
        'days_overdue': loan.days_overdue(today),
    }


def fine_to_dict(fine):
    return {
        'id': fine.pk,
        'loan_id': fine.loan_id,
        'book_title': fine.loan.book.title,
        'reader_id': fine.reader_id,
        'reason_code': fine.reason_code,
        'reason_display': fine.get_reason_code_display(),
        'fine_level': fine.fine_level.name,
        'amount': money(fine.amount),
        'note': fine.note or None,
        'state': fine.state,
        'state_display': fine.get_state_display(),
        'fine_date': _date(fine.fine_date),
        'payment_proof': fine.payment_proof or None,
        'submitted_at': _date(fine.submitted_at),
        'rejection_reason': fine.rejection_reason or None,
        'confirmed_by': _user(fine.confirmed_by),
        'confirmed_at': _date(fine.confirmed_at),
        'rejected_by': _user(fine.rejected_by),
        'rejected_at': _date(fine.rejected_at),
        'can_pay': fine.can_pay,
    }


def fine_level_to_dict(level):
    return {
        'id': level.pk,
        'name': level.name,
        'amount': money(level.amount),
        'description': level.description,
    }


def user_to_dict(user):
    return {
        'id': user.pk,
        'username': user.username,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'role': user.role,
        'account_status': user.account_status,
        'rejection_reason': user.rejection_reason or None,
        'date_joined': _date(user.date_joined),
    }
