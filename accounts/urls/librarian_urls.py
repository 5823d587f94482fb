from django.urls import path
from accounts.views.librarian_views import *

urlpatterns = [
    # Borrow requests
    path('loans/pending/', librarian_pending_loans, name='librarian_pending_loans'),
    path('loans/<int:loan_id>/confirm/', librarian_confirm_loan, name='librarian_confirm_loan'),
    path('loans/<int:loan_id>/reject/', librarian_reject_loan, name='librarian_reject_loan'),

    # Returns
    path('returns/pending/', librarian_pending_returns, name='librarian_pending_returns'),
    path('returns/<int:return_id>/confirm/', librarian_confirm_return, name='librarian_confirm_return'),

    # Fines
    path('fines/', librarian_fines, name='librarian_fines'),
    path('fines/<int:fine_id>/confirm/', librarian_confirm_payment, name='librarian_confirm_payment'),
    path('fines/<int:fine_id>/reject/', librarian_reject_payment, name='librarian_reject_payment'),
    path('fine-levels/', librarian_fine_levels, name='librarian_fine_levels'),

    # Catalog
    path('books/crud/', books_crud, name='librarian_books_crud'),
    path('categories/crud/', book_categories_crud, name='librarian_book_categories_crud'),

    # Reports
    path('reports/<slug:report_name>/', librarian_report, name='librarian_report'),
]
