# library/models.py - Catalog copy pools and the loan / return / fine records
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


# Loan states
LOAN_PENDING = 'pending_confirmation'
LOAN_BORROWED = 'borrowed'
LOAN_RETURN_PENDING = 'return_pending'
LOAN_RETURNED = 'returned'
LOAN_REJECTED = 'rejected'
LOAN_CANCELLED = 'cancelled'

LOAN_STATE_CHOICES = [
    (LOAN_PENDING, 'Pending confirmation'),
    (LOAN_BORROWED, 'Borrowed'),
    (LOAN_RETURN_PENDING, 'Return pending'),
    (LOAN_RETURNED, 'Returned'),
    (LOAN_REJECTED, 'Rejected'),
    (LOAN_CANCELLED, 'Cancelled'),
]

ON_LOAN_STATES = (LOAN_BORROWED, LOAN_RETURN_PENDING)
ACTIVE_LOAN_STATES = (LOAN_PENDING, LOAN_BORROWED, LOAN_RETURN_PENDING)
TERMINAL_LOAN_STATES = (LOAN_RETURNED, LOAN_REJECTED, LOAN_CANCELLED)

# Return request states
RETURN_PENDING = 'pending'
RETURN_CONFIRMED = 'confirmed'

RETURN_STATE_CHOICES = [
    (RETURN_PENDING, 'Pending'),
    (RETURN_CONFIRMED, 'Confirmed'),
]

CONDITION_NORMAL = 'normal'
CONDITION_DAMAGED = 'damaged'
CONDITION_LOST = 'lost'

BOOK_CONDITION_CHOICES = [
    (CONDITION_NORMAL, 'Normal'),
    (CONDITION_DAMAGED, 'Damaged'),
    (CONDITION_LOST, 'Lost'),
]

# Fine states
FINE_UNPAID = 'unpaid'
FINE_PENDING = 'pending_confirmation'
FINE_PAID = 'paid'
FINE_REJECTED = 'rejected'

FINE_STATE_CHOICES = [
    (FINE_UNPAID, 'Unpaid'),
    (FINE_PENDING, 'Pending confirmation'),
    (FINE_PAID, 'Paid'),
    (FINE_REJECTED, 'Rejected'),
]

OUTSTANDING_FINE_STATES = (FINE_UNPAID, FINE_PENDING, FINE_REJECTED)

REASON_OVERDUE = 'overdue'
REASON_DAMAGED = 'damaged'
REASON_LOST = 'lost'

FINE_REASON_CHOICES = [
    (REASON_OVERDUE, 'Late return'),
    (REASON_DAMAGED, 'Damaged'),
    (REASON_LOST, 'Lost'),
]


class BookCategory(models.Model):
    """Categories for books (e.g., Science, Literature, Reference)"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Book Category'
        verbose_name_plural = 'Book Categories'
        ordering = ['name']

    def __str__(self):
        return self.name


class Book(models.Model):
    """
    A catalog title and its copy pool.

    The five counters partition the physical copies:
    total = available + borrowed + lost + damaged. They are changed only
    through library.inventory.
    """
    title = models.CharField(max_length=200)
    author = models.CharField(max_length=200)
    isbn = models.CharField(max_length=20, unique=True, verbose_name="ISBN", blank=True, null=True)
    publisher = models.CharField(max_length=100, blank=True)
    publication_year = models.IntegerField(null=True, blank=True)
    category = models.ForeignKey(BookCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name='books')
    description = models.TextField(blank=True)

    # Copy pool
    total_quantity = models.PositiveIntegerField(default=0)
    available_quantity = models.PositiveIntegerField(default=0)
    borrowed_quantity = models.PositiveIntegerField(default=0)
    lost_quantity = models.PositiveIntegerField(default=0)
    damaged_quantity = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Book'
        verbose_name_plural = 'Books'
        ordering = ['title', 'author']
        indexes = [
            models.Index(fields=['title', 'author'], name='library_boo_title_8b3a0b_idx'),
        ]

    def __str__(self):
        return f"{self.title} by {self.author}"

    def pool_is_consistent(self):
        counters = (
            self.available_quantity,
            self.borrowed_quantity,
            self.lost_quantity,
            self.damaged_quantity,
        )
        return all(c >= 0 for c in counters) and self.total_quantity == sum(counters)

    def is_available(self):
        return self.available_quantity > 0


class FineLevel(models.Model):
    """Named fine tariff chosen by staff when a return is assessed."""
    name = models.CharField(max_length=100, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Fine Level'
        verbose_name_plural = 'Fine Levels'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.amount})"


class Loan(models.Model):
    """One reader's borrow of one copy of a book, from request to closure."""
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name='loans')
    reader = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='loans')
    borrow_days = models.PositiveSmallIntegerField()
    state = models.CharField(max_length=25, choices=LOAN_STATE_CHOICES, default=LOAN_PENDING)

    borrow_date = models.DateField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    return_date = models.DateField(null=True, blank=True)
    book_condition = models.CharField(max_length=10, choices=BOOK_CONDITION_CHOICES, blank=True)
    extended_once = models.BooleanField(default=False)

    rejection_reason = models.TextField(blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='confirmed_loans',
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='rejected_loans',
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Loan'
        verbose_name_plural = 'Loans'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reader', 'state'], name='library_loa_reader__4f1c2e_idx'),
            models.Index(fields=['book', 'state'], name='library_loa_book_id_9a7d31_idx'),
            models.Index(fields=['due_date', 'state'], name='library_loa_due_dat_c2e845_idx'),
        ]

    def __str__(self):
        return f"{self.book.title} - {self.reader} ({self.state})"

    @property
    def is_on_loan(self):
        return self.state in ON_LOAN_STATES

    def days_overdue(self, today=None):
        """Days past the due date while the copy is still out; 0 otherwise."""
        if not self.is_on_loan or self.due_date is None:
            return 0
        today = today or timezone.localdate()
        return max((today - self.due_date).days, 0)

    def is_overdue(self, today=None):
        return self.days_overdue(today) > 0

    def days_remaining(self, today=None):
        if not self.is_on_loan or self.due_date is None:
            return None
        today = today or timezone.localdate()
        return (self.due_date - today).days

    @property
    def expected_due_date(self):
        """Due date the loan would get if confirmed today."""
        if self.due_date is not None:
            return self.due_date
        return timezone.localdate() + timedelta(days=self.borrow_days)

    def open_return_request(self):
        return self.return_requests.filter(state=RETURN_PENDING).first()


class ReturnRequest(models.Model):
    """Reader-initiated return of a copy that is on loan; confirmed by staff."""
    loan = models.ForeignKey(Loan, on_delete=models.CASCADE, related_name='return_requests')
    request_date = models.DateField()
    state = models.CharField(max_length=15, choices=RETURN_STATE_CHOICES, default=RETURN_PENDING)
    book_condition = models.CharField(max_length=10, choices=BOOK_CONDITION_CHOICES, blank=True)
    staff_note = models.TextField(blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='confirmed_returns',
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Return Request'
        verbose_name_plural = 'Return Requests'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['loan'],
                condition=Q(state=RETURN_PENDING),
                name='one_open_return_request_per_loan',
            ),
        ]

    def __str__(self):
        return f"Return of {self.loan.book.title} ({self.state})"


class Fine(models.Model):
    """
    Monetary penalty raised while confirming a return.

    amount is copied from the fine level when the fine is assessed, so a
    later tariff change never alters it.
    """
    loan = models.ForeignKey(Loan, on_delete=models.PROTECT, related_name='fines')
    reader = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='fines')
    fine_level = models.ForeignKey(FineLevel, on_delete=models.PROTECT, related_name='fines')
    reason_code = models.CharField(max_length=10, choices=FINE_REASON_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    note = models.TextField(blank=True)
    state = models.CharField(max_length=25, choices=FINE_STATE_CHOICES, default=FINE_UNPAID)
    fine_date = models.DateField()

    payment_proof = models.TextField(blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='confirmed_fines',
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='rejected_fines',
    )
    rejected_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Fine'
        verbose_name_plural = 'Fines'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reader', 'state'], name='library_fin_reader__e5d0a4_idx'),
        ]

    def __str__(self):
        return f"{self.get_reason_code_display()} fine of {self.amount} ({self.state})"

    @property
    def can_pay(self):
        return self.state in (FINE_UNPAID, FINE_REJECTED)
