"""
validation.py
-------------
Item form validation used by both the item-creation form on the client and
the inventory endpoint on the server. Every rule is evaluated and the result
is a mapping of field name to message; an empty mapping means the form is
valid.
"""

import math

from config import MAX_IMAGE_SIZE
from inventory import CATEGORIES, UNITS

NAME_REQUIRED = "name is required"
CODE_REQUIRED = "code is required"
QUANTITY_NEGATIVE = "quantity cannot be negative"
QUANTITY_NOT_INTEGER = "quantity must be an integer"
QUANTITY_TOO_LARGE = "quantity is too large"
DESCRIPTION_NOT_TEXT = "description must be text"
INVALID_PURCHASE_PRICE = "invalid purchase price"
INVALID_SALE_PRICE = "invalid sale price"
INVALID_CATEGORY = "invalid category"
INVALID_UNIT = "invalid unit"
IMAGE_TOO_LARGE = "file is too large (max 5MB)"
IMAGE_NOT_IMAGE = "only image files can be uploaded"

# largest value a 64-bit INTEGER column holds
MAX_QUANTITY = 2 ** 63 - 1

PRICE_MESSAGES = {
    'purchasePrice': INVALID_PURCHASE_PRICE,
    'salePrice': INVALID_SALE_PRICE,
}


def is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def is_missing_text(value):
    """True unless value is a string with something other than whitespace."""
    return not isinstance(value, str) or not value.strip()


def parse_quantity(value):
    """Parse a quantity from an int or a form string; raises ValueError."""
    if isinstance(value, bool):
        raise ValueError("quantity must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("quantity must be an integer")
        return int(value)
    return int(str(value).strip())


def parse_price(value):
    """Parse an optional price; None for blank, ValueError when not a finite number >= 0."""
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    price = float(value)
    if not math.isfinite(price) or price < 0:
        raise ValueError("price must be a finite, non-negative number")
    return price


def validate_image(size, content_type):
    """Return an error message for an unacceptable image, or None."""
    if size > MAX_IMAGE_SIZE:
        return IMAGE_TOO_LARGE
    if not content_type or not content_type.startswith('image/'):
        return IMAGE_NOT_IMAGE
    return None


def validate_item(data, partial=False):
    """Check an item form and return {field: message} for every failing rule.

    With partial=True only the fields present in data are checked, which is
    what an update needs.
    """
    errors = {}

    def present(field):
        return not partial or field in data

    if present('name') and is_missing_text(data.get('name')):
        errors['name'] = NAME_REQUIRED
    if present('code') and is_missing_text(data.get('code')):
        errors['code'] = CODE_REQUIRED
    description = data.get('description')
    if description is not None and not isinstance(description, str):
        errors['description'] = DESCRIPTION_NOT_TEXT

    if present('quantity'):
        try:
            quantity = parse_quantity(data.get('quantity', 0))
            if quantity < 0:
                errors['quantity'] = QUANTITY_NEGATIVE
            elif quantity > MAX_QUANTITY:
                errors['quantity'] = QUANTITY_TOO_LARGE
        except (TypeError, ValueError):
            errors['quantity'] = QUANTITY_NOT_INTEGER

    for field, message in PRICE_MESSAGES.items():
        if field not in data:
            continue
        try:
            parse_price(data[field])
        except (TypeError, ValueError):
            errors[field] = message

    if present('category') and data.get('category') not in CATEGORIES:
        errors['category'] = INVALID_CATEGORY
    if present('unit') and data.get('unit') not in UNITS:
        errors['unit'] = INVALID_UNIT

    return errors


def clean_item(data, partial=False):
    """Normalize a validated form into stored field values.

    Strings are trimmed, numbers parsed, and blank optional prices omitted
    (or cleared to None on a partial update).
    """
    cleaned = {}

    for field in ('name', 'code'):
        if field in data:
            cleaned[field] = data[field].strip()
    if 'description' in data or not partial:
        cleaned['description'] = (data.get('description') or '').strip()
    for field in ('category', 'unit'):
        if field in data:
            cleaned[field] = data[field]
    if 'quantity' in data or not partial:
        cleaned['quantity'] = parse_quantity(data.get('quantity', 0))

    for field in PRICE_MESSAGES:
        if field not in data:
            continue
        price = parse_price(data[field])
        if price is not None or partial:
            cleaned[field] = price

    return cleaned
