from datetime import timedelta

from django.utils import timezone

from library.models import Loan


def make_overdue(loan, days):
    """Move the due date into the past instead of freezing the clock."""
    due_date = timezone.localdate() - timedelta(days=days)
    Loan.objects.filter(pk=loan.pk).update(due_date=due_date)
    loan.refresh_from_db()
    return loan


def pool(book):
    book.refresh_from_db()
    return (
        book.total_quantity,
        book.available_quantity,
        book.borrowed_quantity,
        book.lost_quantity,
        book.damaged_quantity,
    )
