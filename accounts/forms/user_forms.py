# accounts/forms/user_forms.py
from django import forms
from django.contrib.auth.password_validation import validate_password

from accounts.models import CustomUser, ROLE_CHOICES


class ReaderRegistrationForm(forms.ModelForm):
    """Self-registration form; the account starts as a pending reader"""

    password = forms.CharField(widget=forms.PasswordInput, label='Password')
    confirm_password = forms.CharField(widget=forms.PasswordInput, label='Confirm Password')

    class Meta:
        model = CustomUser
        fields = ['username', 'email', 'first_name', 'last_name', 'phone', 'address']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['email'].required = True

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get('password')
        confirm_password = cleaned_data.get('confirm_password')

        if password and password != confirm_password:
            raise forms.ValidationError('Passwords do not match.')

        if password:
            validate_password(password)
        return cleaned_data

    def clean_email(self):
        email = self.cleaned_data.get('email')
        if CustomUser.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError('This email is already in use.')
        return email

    def clean_username(self):
        username = self.cleaned_data.get('username')
        if CustomUser.objects.filter(username__iexact=username).exists():
            raise forms.ValidationError('This username is already taken.')
        return username


class RoleAssignmentForm(forms.Form):
    role = forms.ChoiceField(choices=ROLE_CHOICES)


class AccountRejectionForm(forms.Form):
    reason = forms.CharField(required=False)
