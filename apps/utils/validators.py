from apps.utils.exceptions import BusinessLogicException, NotFoundException, ValidationException


def check_not_none(value, message):
    """
    Lookup guard: the referenced row must exist.
    """
    if value is None:
        raise NotFoundException(message)
    return value


def check_none(value, message):
    """
    Uniqueness guard: nothing may exist yet.
    """
    if value is not None:
        raise BusinessLogicException(message)


def check_date_range(start, end):
    if start is not None and end is not None and start > end:
        raise ValidationException("Start date cannot be after end date.")


def normalize(value):
    """
    Comparison key for natural keys (barcodes, client names).
    """
    if value is None:
        return ""
    return str(value).strip().lower()
