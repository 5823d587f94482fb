# library/forms.py - Payload parsing for the lending endpoints
#
# Forms only coerce types and check choices. Lengths, ranges and state
# rules stay in the state machines so every caller gets the same checks.
import re
from decimal import Decimal

from django import forms
from django.utils import timezone

from library.conf import lending_setting
from library.models import BOOK_CONDITION_CHOICES, Book, BookCategory, FineLevel

ISBN_PATTERN = re.compile(r'^(\d{9}[\dX]|97[89]\d{10})$')
MIN_PUBLICATION_YEAR = 1900
MAX_CATEGORY_NAME_LENGTH = 50


class BorrowRequestForm(forms.Form):
    book_id = forms.IntegerField()
    borrow_days = forms.IntegerField(required=False)


class ReasonForm(forms.Form):
    reason = forms.CharField(required=False, strip=False)


class ConfirmReturnForm(forms.Form):
    book_condition = forms.ChoiceField(choices=BOOK_CONDITION_CHOICES)
    fine_level_id = forms.IntegerField(required=False)
    late_fine_level_id = forms.IntegerField(required=False)
    note = forms.CharField(required=False, strip=False)


class PaymentForm(forms.Form):
    payment_proof = forms.CharField(required=False, strip=False)


class FineLevelForm(forms.ModelForm):
    """Create or update a fine tariff"""

    class Meta:
        model = FineLevel
        fields = ['name', 'amount', 'description']

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        max_length = lending_setting('MAX_FINE_LEVEL_NAME_LENGTH')
        if not name:
            raise forms.ValidationError('Fine level name is required.')
        if len(name) > max_length:
            raise forms.ValidationError(f'Fine level name cannot exceed {max_length} characters.')

        duplicates = FineLevel.objects.filter(name__iexact=name)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError(f'Fine level "{name}" already exists.')
        return name

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is None or amount <= Decimal('0'):
            raise forms.ValidationError('Amount must be greater than zero.')
        return amount


class BookCategoryForm(forms.ModelForm):
    class Meta:
        model = BookCategory
        fields = ['name', 'description']

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise forms.ValidationError('Category name is required.')
        if len(name) > MAX_CATEGORY_NAME_LENGTH:
            raise forms.ValidationError(f'Category name cannot exceed {MAX_CATEGORY_NAME_LENGTH} characters.')

        duplicates = BookCategory.objects.filter(name__iexact=name)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError(f'Category "{name}" already exists.')
        return name


class BookForm(forms.ModelForm):
    """Catalog fields of a title. Copy counts are handled by library.inventory."""

    class Meta:
        model = Book
        fields = ['title', 'author', 'isbn', 'publisher', 'publication_year', 'category', 'description']

    def clean_isbn(self):
        isbn = self.cleaned_data.get('isbn') or ''
        isbn = re.sub(r'[-\s]', '', isbn).upper()
        if not isbn:
            return None
        if not ISBN_PATTERN.match(isbn):
            raise forms.ValidationError('Enter a 10 or 13 digit ISBN.')
        return isbn

    def clean_publication_year(self):
        year = self.cleaned_data.get('publication_year')
        if year is None:
            return year
        current_year = timezone.localdate().year
        if not MIN_PUBLICATION_YEAR <= year <= current_year:
            raise forms.ValidationError(
                f'Publication year must be between {MIN_PUBLICATION_YEAR} and {current_year}.'
            )
        return year
