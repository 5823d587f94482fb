"""
Catalog management: book categories and titles.

Catalog fields are saved through forms; copy counts only ever change
through library.inventory, under the book's row lock.
"""

import logging

from django.db import transaction

from library import guard, inventory
from library.exceptions import NotFound, ValidationError
from library.forms import BookCategoryForm, BookForm
from library.guard import Action
from library.models import ACTIVE_LOAN_STATES, Book, BookCategory

logger = logging.getLogger(__name__)

CATEGORY_FIELDS = ('name', 'description')
BOOK_FIELDS = ('title', 'author', 'isbn', 'publisher', 'publication_year', 'category', 'description')


def _get_category(category_id):
    try:
        return BookCategory.objects.get(pk=category_id)
    except (BookCategory.DoesNotExist, ValueError, TypeError):
        raise NotFound('Category not found.')


def _get_book(book_id):
    try:
        return Book.objects.select_related('category').get(pk=book_id)
    except (Book.DoesNotExist, ValueError, TypeError):
        raise NotFound('Book not found.')


def _merged(instance, data, fields):
    """Form payload with current values for every field the caller left out."""
    payload = {}
    for name in fields:
        if name in data:
            payload[name] = data[name]
        elif name == 'category':
            payload[name] = instance.category_id or ''
        else:
            value = getattr(instance, name)
            payload[name] = '' if value is None else value
    return payload


# Categories

def list_categories(actor):
    guard.check(Action.BROWSE_CATALOG, actor)
    return list(BookCategory.objects.order_by('name'))


def create_category(actor, data):
    guard.check(Action.MANAGE_CATALOG, actor)
    form = BookCategoryForm({field: data.get(field, '') for field in CATEGORY_FIELDS})
    if not form.is_valid():
        raise ValidationError.from_form(form)
    category = form.save()
    logger.info('Category %s created by user %s', category.name, actor.pk)
    return category


def update_category(actor, category_id, data):
    guard.check(Action.MANAGE_CATALOG, actor)
    category = _get_category(category_id)
    if not any(field in data for field in CATEGORY_FIELDS):
        raise ValidationError('Provide at least one field to update.')

    form = BookCategoryForm(_merged(category, data, CATEGORY_FIELDS), instance=category)
    if not form.is_valid():
        raise ValidationError.from_form(form)
    category = form.save()
    logger.info('Category %s updated by user %s', category.pk, actor.pk)
    return category


def delete_category(actor, category_id):
    guard.check(Action.MANAGE_CATALOG, actor)
    with transaction.atomic():
        category = _get_category(category_id)
        if category.books.exists():
            raise ValidationError(f'Cannot delete category "{category.name}" because it has associated books.')
        name = category.name
        category.delete()
    logger.info('Category %s deleted by user %s', name, actor.pk)
    return name


# Books

def _total_quantity(value, required):
    if value in (None, ''):
        if required:
            raise ValidationError('Total copies is required.',
                                  errors={'total_quantity': ['This field is required.']})
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError('Total copies must be a whole number.',
                              errors={'total_quantity': ['Must be an integer.']})
    if value < 1:
        raise ValidationError('Total copies must be at least 1.',
                              errors={'total_quantity': ['Must be at least 1.']})
    return value


def create_book(actor, data):
    """Catalogue a new title and put its copies on the shelf."""
    guard.check(Action.MANAGE_CATALOG, actor)
    total = _total_quantity(data.get('total_quantity'), required=True)
    form = BookForm({field: data.get(field, '') for field in BOOK_FIELDS})
    if not form.is_valid():
        raise ValidationError.from_form(form)

    with transaction.atomic():
        book = form.save()
        inventory.receive_copies(book.pk, total)
    book.refresh_from_db()
    logger.info('Book %s "%s" created with %s copies by user %s', book.pk, book.title, total, actor.pk)
    return book


def set_total_quantity(book_id, total):
    """
    Grow or shrink the copy pool to `total`. Only shelf copies can be
    written off, so the total never drops below the copies that are out
    on loan, lost or damaged.
    """
    with transaction.atomic():
        book = inventory.lock_pool(book_id)
        delta = total - book.total_quantity
        if delta > 0:
            return inventory.receive_copies(book_id, delta)
        if delta < 0:
            minimum = book.total_quantity - book.available_quantity
            if total < minimum:
                message = (f'Total copies cannot be less than {minimum}: '
                           f'{book.borrowed_quantity} on loan, {book.lost_quantity} lost, '
                           f'{book.damaged_quantity} damaged.')
                raise ValidationError(message, errors={'total_quantity': [message]})
            return inventory.adjust_quantity(book_id, delta, inventory.AVAILABLE)
        return book


def update_book(actor, book_id, data):
    guard.check(Action.MANAGE_CATALOG, actor)
    book = _get_book(book_id)
    if not any(field in data for field in BOOK_FIELDS + ('total_quantity',)):
        raise ValidationError('Provide at least one field to update.')
    total = _total_quantity(data.get('total_quantity'), required=False)

    form = BookForm(_merged(book, data, BOOK_FIELDS), instance=book)
    if not form.is_valid():
        raise ValidationError.from_form(form)

    with transaction.atomic():
        if total is not None:
            set_total_quantity(book.pk, total)
        book = form.save(commit=False)
        # counters were written by the ledger; leave them alone here
        book.save(update_fields=list(BOOK_FIELDS) + ['updated_at'])
    book.refresh_from_db()
    logger.info('Book %s updated by user %s', book.pk, actor.pk)
    return book


def delete_book(actor, book_id):
    """Remove a title that never went out. Loan history is never deleted."""
    guard.check(Action.MANAGE_CATALOG, actor)
    with transaction.atomic():
        book = _get_book(book_id)
        inventory.lock_pool(book.pk)
        if book.loans.filter(state__in=ACTIVE_LOAN_STATES).exists():
            raise ValidationError(f'Cannot delete "{book.title}" while it has active loans.')
        if book.loans.exists():
            raise ValidationError(f'Cannot delete "{book.title}" because its loan history is kept.')
        title = book.title
        book.delete()
    logger.info('Book %s deleted by user %s', title, actor.pk)
    return title
