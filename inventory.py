"""
inventory.py
------------
Catalog vocabulary and the dashboard logic shared by the server and the
client: stock status, search/category filtering, summary stats and
access-level permissions. Items are plain dicts in their JSON shape.
"""

CATEGORIES = ['elektronika', 'narzędzia', 'materiały', 'części', 'inne']
ALL_CATEGORIES = 'all'
UNITS = ['szt', 'kg', 'l', 'm', 'm²', 'm³', 'op', 'par']

DEFAULT_CATEGORY = 'elektronika'
DEFAULT_UNIT = 'szt'

LOW_STOCK_THRESHOLD = 5

# Minimum access level per action
VIEW_LEVEL = 0  # any authenticated user
ADD_LEVEL = 2
EDIT_LEVEL = 2
DELETE_LEVEL = 2
ADMIN_LEVEL = 3

EMPTY_FILTERED_MESSAGE = "no items match the current filters"
EMPTY_CATALOG_MESSAGE = "the catalog is empty"


def stock_status(quantity):
    """'out' for 0, 'low' up to LOW_STOCK_THRESHOLD, 'ok' above it."""
    if quantity == 0:
        return 'out'
    if quantity <= LOW_STOCK_THRESHOLD:
        return 'low'
    return 'ok'


def filters_active(search_term='', category=ALL_CATEGORIES):
    return bool(search_term) or category != ALL_CATEGORIES


def filter_items(items, search_term='', category=ALL_CATEGORIES):
    """Narrow items by a case-insensitive name/code search and a category.

    Both filters apply together; an empty search term and the 'all'
    category leave the list untouched.
    """
    filtered = list(items)

    if search_term:
        needle = search_term.lower()
        filtered = [
            item for item in filtered
            if needle in item['name'].lower() or needle in item['code'].lower()
        ]

    if category != ALL_CATEGORIES:
        filtered = [item for item in filtered if item['category'] == category]

    return filtered


def compute_stats(items):
    """Summary counts over the full, unfiltered item list."""
    stats = {'total': 0, 'available': 0, 'lowStock': 0, 'outOfStock': 0}
    for item in items:
        stats['total'] += 1
        status = stock_status(item['quantity'])
        if status == 'ok':
            stats['available'] += 1
        elif status == 'low':
            stats['lowStock'] += 1
        else:
            stats['outOfStock'] += 1
    return stats


def permissions_for(access_level):
    level = access_level or 0
    return {
        'canView': level >= VIEW_LEVEL,
        'canAdd': level >= ADD_LEVEL,
        'canEdit': level >= EDIT_LEVEL,
        'canDelete': level >= DELETE_LEVEL,
        'isAdmin': level >= ADMIN_LEVEL,
    }


def empty_message(filtered, search_term='', category=ALL_CATEGORIES):
    """Message for an empty result, or None when there is something to show."""
    if filtered:
        return None
    if filters_active(search_term, category):
        return EMPTY_FILTERED_MESSAGE
    return EMPTY_CATALOG_MESSAGE
