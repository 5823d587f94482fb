from django.utils import timezone

from library.exceptions import StaleStateConflict


def compare_and_swap(model, instance, expected_state, match=None, **changes):
    """
    Write `changes` only if the row is still in `expected_state` (and
    matches `match`). Returns the changes; the caller applies them to the
    in-memory instance once the whole unit has succeeded.
    """
    changes['updated_at'] = timezone.now()
    lookup = {'pk': instance.pk, 'state': expected_state}
    lookup.update(match or {})
    if model.objects.filter(**lookup).update(**changes) != 1:
        raise StaleStateConflict()
    return changes


def apply_changes(instance, changes):
    for field, value in changes.items():
        setattr(instance, field, value)
    return instance
