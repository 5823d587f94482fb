"""
Read-only lending queries.

Every query passes the guard like a transition does; readers only ever
see their own loans and fines.
"""

from decimal import Decimal

from django.db.models import Count, Q, Sum

from library import guard
from library.exceptions import NotFound, ValidationError
from library.guard import Action
from library.models import (
    Book,
    Fine,
    FINE_STATE_CHOICES,
    Loan,
    LOAN_BORROWED,
    LOAN_CANCELLED,
    LOAN_PENDING,
    LOAN_REJECTED,
    LOAN_RETURN_PENDING,
    LOAN_RETURNED,
    OUTSTANDING_FINE_STATES,
    RETURN_PENDING,
    ReturnRequest,
)

# Reader history tabs
HISTORY_FILTERS = {
    'borrowing': (LOAN_BORROWED, LOAN_RETURN_PENDING),
    'returned': (LOAN_RETURNED,),
    'pending': (LOAN_PENDING,),
    'rejected': (LOAN_REJECTED,),
    'cancelled': (LOAN_CANCELLED,),
}

FINE_STATES = tuple(value for value, _ in FINE_STATE_CHOICES)


def _fine_counts(fines):
    counts = {state: 0 for state in FINE_STATES}
    for row in fines.order_by().values('state').annotate(n=Count('id')):
        counts[row['state']] = row['n']
    counts['all'] = sum(counts[state] for state in FINE_STATES)
    return counts


def _filter_fines(fines, state):
    if state:
        if state not in FINE_STATES:
            return fines.none()
        fines = fines.filter(state=state)
    return fines


def loan_history(actor, status_filter=None):
    """Reader's own loans, newest first, with per-tab counts."""
    guard.check(Action.VIEW_OWN_RECORDS, actor, resource_owner_id=actor.pk if actor else None)
    loans = Loan.objects.filter(reader=actor).select_related('book')

    counts = {name: loans.filter(state__in=states).count() for name, states in HISTORY_FILTERS.items()}
    counts['all'] = loans.count()

    if status_filter:
        states = HISTORY_FILTERS.get(status_filter)
        loans = loans.filter(state__in=states) if states else loans.none()

    return {'loans': list(loans.order_by('-created_at')), 'counts': counts}


def my_fines(actor, state=None):
    guard.check(Action.VIEW_OWN_RECORDS, actor, resource_owner_id=actor.pk if actor else None)
    fines = Fine.objects.filter(reader=actor).select_related(
        'loan__book', 'fine_level', 'confirmed_by', 'rejected_by',
    )
    outstanding = fines.filter(state__in=OUTSTANDING_FINE_STATES).aggregate(total=Sum('amount'))['total']
    return {
        'fines': list(_filter_fines(fines, state)),
        'counts': _fine_counts(fines),
        'outstanding_amount': outstanding or Decimal('0'),
    }


def fine_detail(actor, fine_id):
    guard.ensure_active(actor, Action.VIEW_FINE)
    try:
        fine = Fine.objects.select_related(
            'loan__book', 'reader', 'fine_level', 'confirmed_by', 'rejected_by',
        ).get(pk=fine_id)
    except (Fine.DoesNotExist, ValueError, TypeError):
        raise NotFound('Fine not found.')
    guard.check(Action.VIEW_FINE, actor, resource_owner_id=fine.reader_id)
    return fine


def pending_loans(actor):
    """Borrow requests waiting for staff, oldest first."""
    guard.check(Action.VIEW_QUEUES, actor)
    return list(
        Loan.objects.filter(state=LOAN_PENDING)
        .select_related('book', 'reader')
        .order_by('created_at', 'pk')
    )


def pending_returns(actor):
    guard.check(Action.VIEW_QUEUES, actor)
    return list(
        ReturnRequest.objects.filter(state=RETURN_PENDING)
        .select_related('loan__book', 'loan__reader')
        .order_by('request_date', 'created_at')
    )


def all_fines(actor, state=None):
    guard.check(Action.VIEW_QUEUES, actor)
    fines = Fine.objects.select_related('loan__book', 'reader', 'fine_level', 'confirmed_by', 'rejected_by')
    return {
        'fines': list(_filter_fines(fines, state)),
        'counts': _fine_counts(fines),
    }


def list_books(actor, search=None, category_id=None):
    guard.check(Action.BROWSE_CATALOG, actor)
    books = Book.objects.select_related('category')
    if search:
        books = books.filter(Q(title__icontains=search) | Q(author__icontains=search))
    if category_id:
        try:
            books = books.filter(category_id=int(category_id))
        except (TypeError, ValueError):
            raise ValidationError('Category must be an id.', errors={'category': ['Must be an integer.']})
    return list(books)


def book_detail(actor, book_id):
    guard.check(Action.BROWSE_CATALOG, actor)
    try:
        return Book.objects.select_related('category').get(pk=book_id)
    except (Book.DoesNotExist, ValueError, TypeError):
        raise NotFound('Book not found.')
