from django.urls import path
from accounts.views.reader_views import *

urlpatterns = [
    # Catalog
    path('books/', reader_books, name='reader_books'),
    path('books/<int:book_id>/', reader_book_detail, name='reader_book_detail'),
    path('categories/', reader_categories, name='reader_categories'),

    # Loans
    path('loans/', reader_submit_loan, name='reader_submit_loan'),
    path('loans/history/', reader_loan_history, name='reader_loan_history'),
    path('loans/<int:loan_id>/cancel/', reader_cancel_loan, name='reader_cancel_loan'),
    path('loans/<int:loan_id>/extend/', reader_extend_loan, name='reader_extend_loan'),
    path('loans/<int:loan_id>/return-request/', reader_request_return, name='reader_request_return'),

    # Fines
    path('fines/', reader_fines, name='reader_fines'),
    path('fines/<int:fine_id>/', reader_fine_detail, name='reader_fine_detail'),
    path('fines/<int:fine_id>/pay/', reader_pay_fine, name='reader_pay_fine'),
]
