"""
Inventory Ledger

Per-title copy counters. Every mutation locks the Book row
(select_for_update) so it serializes with any other transition touching
the same title, and checks total = available + borrowed + lost + damaged
before writing.
"""

import logging

from django.db import transaction

from library.exceptions import ConsistencyError, NotFound, OutOfStock
from library.models import Book

logger = logging.getLogger(__name__)

AVAILABLE = 'available'
BORROWED = 'borrowed'
LOST = 'lost'
DAMAGED = 'damaged'

BUCKET_FIELDS = {
    AVAILABLE: 'available_quantity',
    BORROWED: 'borrowed_quantity',
    LOST: 'lost_quantity',
    DAMAGED: 'damaged_quantity',
}


def lock_pool(book_id):
    """Fetch the book row under a row lock. Must run inside an atomic block."""
    try:
        return Book.objects.select_for_update().get(pk=book_id)
    except Book.DoesNotExist:
        raise NotFound('Book not found.')


def get_available_quantity(book_id):
    try:
        return Book.objects.values_list('available_quantity', flat=True).get(pk=book_id)
    except Book.DoesNotExist:
        raise NotFound('Book not found.')


def _field(bucket):
    try:
        return BUCKET_FIELDS[bucket]
    except KeyError:
        raise ValueError(f'Unknown inventory bucket: {bucket}')


def _write(book, changes, total_delta=0):
    for field, delta in changes.items():
        setattr(book, field, getattr(book, field) + delta)
    book.total_quantity += total_delta

    if not book.pool_is_consistent():
        logger.error(
            'Inventory invariant broken for book %s: total=%s available=%s borrowed=%s lost=%s damaged=%s',
            book.pk, book.total_quantity, book.available_quantity,
            book.borrowed_quantity, book.lost_quantity, book.damaged_quantity,
        )
        raise ConsistencyError(f'Copy counters for book {book.pk} would become inconsistent.')

    book.save(update_fields=list(changes) + ['total_quantity', 'updated_at'])
    return book


def adjust_quantity(book_id, delta, bucket):
    """
    Add (delta > 0) or write off (delta < 0) copies in one bucket.
    The total moves with the bucket so the pool stays balanced.
    """
    field = _field(bucket)
    with transaction.atomic():
        book = lock_pool(book_id)
        return _write(book, {field: delta}, total_delta=delta)


def receive_copies(book_id, count):
    if count <= 0:
        raise ValueError('count must be positive')
    return adjust_quantity(book_id, count, AVAILABLE)


def move_copy(book_id, source, target):
    """Move one copy from `source` to `target` bucket."""
    source_field, target_field = _field(source), _field(target)
    with transaction.atomic():
        book = lock_pool(book_id)
        if source == AVAILABLE and book.available_quantity <= 0:
            raise OutOfStock()
        return _write(book, {source_field: -1, target_field: 1})
