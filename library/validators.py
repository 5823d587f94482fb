from library.exceptions import ValidationError


def clean_text(value, field, label, max_length, required=True):
    """Strip `value` and enforce presence and length, naming `field` in errors."""
    value = (value or '').strip()
    if required and not value:
        raise ValidationError(f'{label} is required.', errors={field: [f'{label} is required.']})
    if len(value) > max_length:
        message = f'{label} cannot exceed {max_length} characters.'
        raise ValidationError(message, errors={field: [message]})
    return value
