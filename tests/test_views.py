import json

import pytest
from django.urls import reverse

from accounts.models import STATUS_PENDING
from library import workflow
from library.models import LOAN_BORROWED, LOAN_PENDING, Loan
from tests.conftest import PASSWORD
from tests.helpers import make_overdue


def post_json(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type='application/json')


@pytest.fixture
def reader_client(client, reader):
    client.force_login(reader)
    return client


@pytest.fixture
def librarian_client(client, librarian):
    client.force_login(librarian)
    return client


# Access

@pytest.mark.django_db
def test_anonymous_request_gets_401(client):
    response = client.get(reverse('reader_books'))
    assert response.status_code == 401
    assert response.json()['success'] is False
    assert response['X-Content-Type-Options'] == 'nosniff'


def test_wrong_method_is_405(reader_client):
    response = reader_client.get(reverse('reader_submit_loan'))
    assert response.status_code == 405


def test_reader_cannot_use_staff_endpoints(reader_client, reader, book):
    loan = workflow.submit_borrow(reader, book.pk, 14)
    response = post_json(reader_client, reverse('librarian_confirm_loan', args=[loan.pk]))
    assert response.status_code == 403
    assert response.json()['code'] == 'forbidden'


# Reader

def test_browse_catalog(reader_client, make_book):
    make_book(title='Weep Not, Child', author='Ngugi wa Thiongo')
    make_book(title='Petals of Blood', author='Ngugi wa Thiongo', copies=0)

    response = reader_client.get(reverse('reader_books'), {'search': 'weep'})
    assert response.status_code == 200
    [book] = response.json()['data']['books']
    assert book['title'] == 'Weep Not, Child'
    assert book['available_quantity'] == 1


def test_book_detail_not_found(reader_client):
    response = reader_client.get(reverse('reader_book_detail', args=[404]))
    assert response.status_code == 404
    assert response.json()['code'] == 'not_found'


def test_submit_loan_with_json(reader_client, book):
    response = post_json(reader_client, reverse('reader_submit_loan'), {'book_id': book.pk, 'borrow_days': 10})
    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['data']['loan']['state'] == LOAN_PENDING
    assert body['data']['loan']['borrow_days'] == 10


def test_submit_loan_with_form_data(reader_client, book):
    response = reader_client.post(reverse('reader_submit_loan'), {'book_id': book.pk})
    assert response.status_code == 201
    assert response.json()['data']['loan']['borrow_days'] == 14


def test_submit_loan_validation_errors(reader_client, book):
    response = post_json(reader_client, reverse('reader_submit_loan'), {'book_id': book.pk, 'borrow_days': 45})
    assert response.status_code == 400
    body = response.json()
    assert body['code'] == 'validation_error'
    assert 'borrow_days' in body['errors']


def test_submit_loan_missing_book_id(reader_client):
    response = post_json(reader_client, reverse('reader_submit_loan'), {})
    assert response.status_code == 400
    assert 'book_id' in response.json()['errors']


def test_invalid_json_body(reader_client):
    response = reader_client.post(reverse('reader_submit_loan'), data='{not json', content_type='application/json')
    assert response.status_code == 400


def test_loan_history_with_counts(reader_client, reader, librarian, make_book):
    first = workflow.submit_borrow(reader, make_book(title='A').pk, 14)
    workflow.confirm_loan(librarian, first.pk)
    workflow.submit_borrow(reader, make_book(title='B').pk, 14)

    response = reader_client.get(reverse('reader_loan_history'), {'status': 'borrowing'})
    data = response.json()['data']
    assert [loan['state'] for loan in data['loans']] == [LOAN_BORROWED]
    assert data['counts']['borrowing'] == 1
    assert data['counts']['pending'] == 1
    assert data['counts']['all'] == 2


def test_extend_and_return_request(reader_client, borrowed_loan):
    response = post_json(reader_client, reverse('reader_extend_loan', args=[borrowed_loan.pk]))
    assert response.status_code == 200
    assert response.json()['data']['loan']['extended_once'] is True

    response = post_json(reader_client, reverse('reader_extend_loan', args=[borrowed_loan.pk]))
    assert response.status_code == 409
    assert response.json()['code'] == 'already_extended'

    response = post_json(reader_client, reverse('reader_request_return', args=[borrowed_loan.pk]))
    assert response.status_code == 201
    assert response.json()['data']['return_request']['state'] == 'pending'


def test_cancel_someone_elses_loan(client, other_reader, reader, book):
    loan = workflow.submit_borrow(reader, book.pk, 14)
    client.force_login(other_reader)
    response = post_json(client, reverse('reader_cancel_loan', args=[loan.pk]))
    assert response.status_code == 403
    assert Loan.objects.get(pk=loan.pk).state == LOAN_PENDING


# Librarian

def test_pending_queue_and_confirm(librarian_client, reader, book):
    loan = workflow.submit_borrow(reader, book.pk, 14)

    response = librarian_client.get(reverse('librarian_pending_loans'))
    [pending] = response.json()['data']['loans']
    assert pending['id'] == loan.pk
    assert pending['available_quantity'] == 1
    assert pending['reader']['username'] == reader.username

    response = post_json(librarian_client, reverse('librarian_confirm_loan', args=[loan.pk]))
    assert response.status_code == 200
    assert response.json()['data']['loan']['state'] == LOAN_BORROWED

    response = post_json(librarian_client, reverse('librarian_confirm_loan', args=[loan.pk]))
    assert response.status_code == 409
    assert response.json()['code'] == 'invalid_state_transition'


def test_reject_loan_requires_reason(librarian_client, reader, book):
    loan = workflow.submit_borrow(reader, book.pk, 14)
    response = post_json(librarian_client, reverse('librarian_reject_loan', args=[loan.pk]), {'reason': ''})
    assert response.status_code == 400

    response = post_json(librarian_client, reverse('librarian_reject_loan', args=[loan.pk]), {'reason': 'Reserved'})
    assert response.status_code == 200
    assert response.json()['data']['loan']['rejection_reason'] == 'Reserved'


def test_confirm_return_with_late_fine(librarian_client, borrowed_loan, return_request, late_fee):
    make_overdue(borrowed_loan, 2)

    response = librarian_client.get(reverse('librarian_pending_returns'))
    [pending] = response.json()['data']['returns']
    assert pending['days_overdue'] == 2

    response = post_json(
        librarian_client,
        reverse('librarian_confirm_return', args=[return_request.pk]),
        {'book_condition': 'normal', 'fine_level_id': late_fee.pk},
    )
    assert response.status_code == 200
    data = response.json()['data']
    assert data['loan']['state'] == 'returned'
    assert [f['amount'] for f in data['fines']] == ['1.50']


def test_confirm_return_bad_condition(librarian_client, return_request):
    response = post_json(
        librarian_client,
        reverse('librarian_confirm_return', args=[return_request.pk]),
        {'book_condition': 'wet'},
    )
    assert response.status_code == 400
    assert 'book_condition' in response.json()['errors']


def test_fine_payment_round_trip(client, reader, librarian, borrowed_loan, return_request, late_fee):
    make_overdue(borrowed_loan, 1)
    [fine] = workflow.confirm_return(librarian, return_request.pk, 'normal', fine_level_id=late_fee.pk).fines

    client.force_login(reader)
    response = post_json(client, reverse('reader_pay_fine', args=[fine.pk]), {'payment_proof': 'TX55'})
    assert response.status_code == 200
    assert response.json()['data']['fine']['state'] == 'pending_confirmation'

    response = client.get(reverse('reader_fines'))
    assert response.json()['data']['counts']['pending_confirmation'] == 1
    assert response.json()['data']['outstanding_amount'] == '1.50'

    client.force_login(librarian)
    response = post_json(client, reverse('librarian_confirm_payment', args=[fine.pk]))
    assert response.json()['data']['fine']['state'] == 'paid'

    response = client.get(reverse('librarian_fines'), {'state': 'paid'})
    assert len(response.json()['data']['fines']) == 1


def test_reader_cannot_view_other_readers_fine(client, other_reader, librarian, borrowed_loan, return_request, late_fee):
    make_overdue(borrowed_loan, 1)
    [fine] = workflow.confirm_return(librarian, return_request.pk, 'normal', fine_level_id=late_fee.pk).fines

    client.force_login(other_reader)
    response = client.get(reverse('reader_fine_detail', args=[fine.pk]))
    assert response.status_code == 403


def test_account_disabled_after_login(client, reader, book):
    client.force_login(reader)
    reader.account_status = 'disabled'
    reader.save(update_fields=['account_status'])

    response = post_json(client, reverse('reader_submit_loan'), {'book_id': book.pk})
    assert response.status_code == 403
    assert response.json()['code'] == 'account_not_active'


# Public

def test_login_active_account(client, reader):
    response = post_json(client, reverse('public_login'), {'username': reader.username, 'password': PASSWORD})
    assert response.status_code == 200
    assert response.json()['data']['user']['role'] == 'reader'


def test_login_pending_account_is_refused(client, make_user):
    user = make_user('newcomer', status=STATUS_PENDING)
    response = post_json(client, reverse('public_login'), {'username': user.username, 'password': PASSWORD})
    assert response.status_code == 403
    assert response.json()['code'] == 'account_not_active'


@pytest.mark.django_db
def test_login_bad_credentials(client):
    response = post_json(client, reverse('public_login'), {'username': 'ghost', 'password': 'nope'})
    assert response.status_code == 401


@pytest.mark.django_db
def test_register_creates_pending_reader(client):
    response = post_json(client, reverse('public_register'), {
        'username': 'zawadi',
        'email': 'zawadi@example.com',
        'password': PASSWORD,
        'confirm_password': PASSWORD,
    })
    assert response.status_code == 201
    user = response.json()['data']['user']
    assert user['role'] == 'reader'
    assert user['account_status'] == 'pending'


def test_register_check(client, reader):
    response = client.get(reverse('public_register_check'), {'username': reader.username, 'email': 'free@example.com'})
    assert response.json() == {'username_available': False, 'email_available': True}
