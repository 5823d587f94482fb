import json

import pytest
from django.urls import reverse

from library import catalog, workflow
from library.exceptions import Forbidden, NotFound, ValidationError
from library.models import Book, BookCategory, Loan, LOAN_CANCELLED
from tests.helpers import pool


@pytest.fixture
def fiction(db):
    return BookCategory.objects.create(name='Fiction')


# Categories

def test_create_category(librarian):
    category = catalog.create_category(librarian, {'name': '  Poetry ', 'description': 'Verse'})
    assert category.name == 'Poetry'
    assert category.description == 'Verse'


@pytest.mark.parametrize('name', ['', '   ', 'x' * 51, 'FICTION'])
def test_category_name_validation(librarian, fiction, name):
    with pytest.raises(ValidationError) as exc:
        catalog.create_category(librarian, {'name': name})
    assert 'name' in exc.value.errors


def test_rename_category_to_its_own_name(librarian, fiction):
    category = catalog.update_category(librarian, fiction.pk, {'name': 'fiction'})
    assert category.name == 'fiction'


def test_category_with_books_cannot_be_deleted(librarian, fiction, make_book):
    make_book(category=fiction)
    with pytest.raises(ValidationError) as exc:
        catalog.delete_category(librarian, fiction.pk)
    assert 'associated books' in exc.value.message
    assert BookCategory.objects.filter(pk=fiction.pk).exists()


def test_delete_empty_category(librarian, fiction):
    assert catalog.delete_category(librarian, fiction.pk) == 'Fiction'
    assert not BookCategory.objects.exists()


def test_readers_can_list_but_not_manage_categories(reader, fiction):
    assert catalog.list_categories(reader) == [fiction]
    with pytest.raises(Forbidden):
        catalog.create_category(reader, {'name': 'History'})


# Books

def test_create_book_puts_copies_on_the_shelf(librarian, fiction):
    book = catalog.create_book(librarian, {
        'title': 'Weep Not, Child',
        'author': 'Ngugi wa Thiongo',
        'isbn': '978-0-435-90830-9',
        'publication_year': '1964',
        'category': fiction.pk,
        'total_quantity': '3',
    })
    assert book.isbn == '9780435908309'
    assert book.category == fiction
    assert pool(book) == (3, 3, 0, 0, 0)


@pytest.mark.parametrize('payload, field', [
    ({'title': 'Petals of Blood', 'author': 'Ngugi'}, 'total_quantity'),
    ({'title': 'Petals of Blood', 'author': 'Ngugi', 'total_quantity': '0'}, 'total_quantity'),
    ({'title': 'Petals of Blood', 'author': 'Ngugi', 'total_quantity': 'many'}, 'total_quantity'),
    ({'title': '', 'author': 'Ngugi', 'total_quantity': '1'}, 'title'),
    ({'title': 'Petals of Blood', 'author': 'Ngugi', 'total_quantity': '1', 'isbn': '12345'}, 'isbn'),
    ({'title': 'Petals of Blood', 'author': 'Ngugi', 'total_quantity': '1', 'publication_year': '1850'},
     'publication_year'),
])
def test_create_book_validation(librarian, payload, field):
    with pytest.raises(ValidationError) as exc:
        catalog.create_book(librarian, payload)
    assert field in exc.value.errors
    assert not Book.objects.exists()


def test_reader_cannot_create_books(reader):
    with pytest.raises(Forbidden):
        catalog.create_book(reader, {'title': 'Petals of Blood', 'author': 'Ngugi', 'total_quantity': '1'})


def test_update_keeps_unspecified_fields(librarian, book):
    updated = catalog.update_book(librarian, book.pk, {'publisher': 'Heinemann'})
    assert updated.publisher == 'Heinemann'
    assert updated.title == 'Things Fall Apart'
    assert pool(updated) == (1, 1, 0, 0, 0)


def test_update_needs_a_field(librarian, book):
    with pytest.raises(ValidationError):
        catalog.update_book(librarian, book.pk, {})


def test_unknown_book(librarian, db):
    with pytest.raises(NotFound):
        catalog.update_book(librarian, 999, {'title': 'Gone'})


def test_raise_and_lower_total_copies(librarian, make_book):
    book = make_book(copies=2)
    catalog.update_book(librarian, book.pk, {'total_quantity': 5})
    assert pool(book) == (5, 5, 0, 0, 0)
    catalog.update_book(librarian, book.pk, {'total_quantity': 1})
    assert pool(book) == (1, 1, 0, 0, 0)


def test_total_cannot_drop_below_copies_on_loan(librarian, reader, other_reader, make_book):
    book = make_book(copies=3)
    for borrower in (reader, other_reader):
        loan = workflow.submit_borrow(borrower, book.pk, 14)
        workflow.confirm_loan(librarian, loan.pk)

    catalog.update_book(librarian, book.pk, {'total_quantity': 2})
    assert pool(book) == (2, 0, 2, 0, 0)

    with pytest.raises(ValidationError) as exc:
        catalog.update_book(librarian, book.pk, {'title': 'Renamed', 'total_quantity': 1})
    assert 'total_quantity' in exc.value.errors
    book.refresh_from_db()
    assert book.title == 'Things Fall Apart'
    assert pool(book) == (2, 0, 2, 0, 0)


def test_book_on_loan_cannot_be_deleted(librarian, borrowed_loan, book):
    with pytest.raises(ValidationError) as exc:
        catalog.delete_book(librarian, book.pk)
    assert 'active loans' in exc.value.message
    assert Book.objects.filter(pk=book.pk).exists()


def test_book_with_history_cannot_be_deleted(librarian, reader, book):
    Loan.objects.create(book=book, reader=reader, borrow_days=14, state=LOAN_CANCELLED)
    with pytest.raises(ValidationError):
        catalog.delete_book(librarian, book.pk)


def test_delete_unused_book(librarian, book):
    assert catalog.delete_book(librarian, book.pk) == 'Things Fall Apart'
    assert not Book.objects.exists()


# Endpoints

def test_books_crud_over_http(client, librarian, fiction):
    client.force_login(librarian)
    response = client.post(
        reverse('librarian_books_crud'),
        data=json.dumps({
            'action': 'create',
            'title': 'The River Between',
            'author': 'Ngugi wa Thiongo',
            'category': fiction.pk,
            'total_quantity': 2,
        }),
        content_type='application/json',
    )
    body = response.json()
    assert response.status_code == 201
    assert body['data']['book']['available_quantity'] == 2
    assert body['data']['book']['category_id'] == fiction.pk

    response = client.post(reverse('librarian_books_crud'), {'action': 'delete', 'id': body['data']['book']['id']})
    assert response.status_code == 200
    assert response.json()['message'] == 'Book "The River Between" deleted successfully.'


def test_books_crud_refuses_readers(client, reader):
    client.force_login(reader)
    response = client.post(reverse('librarian_books_crud'), {'action': 'create', 'title': 'X'})
    assert response.status_code == 403


def test_categories_crud_over_http(client, librarian):
    client.force_login(librarian)
    response = client.post(reverse('librarian_book_categories_crud'), {'action': 'create', 'name': 'Drama'})
    assert response.status_code == 201
    category_id = response.json()['data']['category']['id']

    response = client.post(reverse('librarian_book_categories_crud'), {'action': 'archive', 'id': category_id})
    assert response.status_code == 400
    assert response.json()['message'] == 'Invalid action specified.'


def test_reader_lists_categories(client, reader, fiction):
    client.force_login(reader)
    response = client.get(reverse('reader_categories'))
    assert response.status_code == 200
    assert response.json()['data']['categories'] == [{'id': fiction.pk, 'name': 'Fiction', 'description': ''}]
