from django.conf import settings


DEFAULTS = {
    'MIN_BORROW_DAYS': 7,
    'MAX_BORROW_DAYS': 30,
    'DEFAULT_BORROW_DAYS': 14,
    'EXTENSION_DAYS': 7,
    'MAX_ACTIVE_LOANS': 5,
    'MAX_REASON_LENGTH': 500,
    'MAX_PAYMENT_PROOF_LENGTH': 1000,
    'MAX_FINE_LEVEL_NAME_LENGTH': 25,
}


def lending_setting(name):
    """Read a lending policy value, falling back to the built-in default."""
    overrides = getattr(settings, 'LIBRARY_LENDING', {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
