"""
client.py
---------
Python client for the warehouse service. Plays the part of the browser:
keeps the logged-in user in a local session file, gates views by access
level, holds the dashboard's search/category state and drives the
item-creation form. Every HTTP call carries a timeout.
"""

import json
import logging
import mimetypes
import os
from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

import config
from inventory import (
    ALL_CATEGORIES, CATEGORIES, DEFAULT_CATEGORY, DEFAULT_UNIT, VIEW_LEVEL, ADD_LEVEL,
    stock_status, filter_items, compute_stats, permissions_for, empty_message,
)
from validation import validate_item, validate_image, is_blank, parse_price, parse_quantity

logger = logging.getLogger(__name__)

SESSION_KEY = 'user'
ITEM_ADDED = 'item-added'
LOGIN_FAILED_MESSAGE = "invalid email or password"
CONNECTION_ERROR_MESSAGE = "could not connect to the server"
SUBMIT_ERROR_MESSAGE = "an error occurred while adding the item"


def setup_logging(level=config.LOG_LEVEL, log_file=None):
    """Log to the console, and to log_file when one is given."""
    logging.basicConfig(level=level, format=config.LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    logging.getLogger('').setLevel(level)
    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
        logging.getLogger('').addHandler(handler)


# ------------------------------------------------------------
# Errors
# ------------------------------------------------------------

class WarehouseClientError(Exception):
    """Base class for client-side failures."""


class LoginRequired(WarehouseClientError):
    """No user is logged in; the caller should go to the login view."""


class AccessDenied(WarehouseClientError):
    """The logged-in user's access level is too low for the view."""


class LoginFailed(WarehouseClientError):
    pass


class RequestFailed(WarehouseClientError):
    """Network failure, timeout or an unparsable response."""


# ------------------------------------------------------------
# Session store
# ------------------------------------------------------------

class SessionUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    email: str
    name: str
    role: str
    access_level: int = Field(alias='accessLevel')


class SessionStore:
    """A JSON file holding the logged-in user under the 'user' key."""

    def __init__(self, path=None):
        self.path = path or config.SESSION_PATH

    def _read(self):
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Optional[SessionUser]:
        raw = self._read().get(SESSION_KEY)
        if not raw:
            return None
        try:
            return SessionUser.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed session user: {e}")
            return None

    @property
    def token(self) -> Optional[str]:
        return self._read().get('token')

    def save(self, user: SessionUser, token: Optional[str] = None):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = {SESSION_KEY: user.model_dump(by_alias=True), 'token': token}
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False)

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)


def require_session(store, min_level=VIEW_LEVEL) -> SessionUser:
    """Return the logged-in user, or raise when the view may not be shown.

    This only hides views; the server checks access on every request.
    """
    user = store.load()
    if user is None:
        raise LoginRequired("please log in first")
    if user.access_level < min_level:
        raise AccessDenied(f"access level {min_level} required")
    return user


# ------------------------------------------------------------
# HTTP client
# ------------------------------------------------------------

class WarehouseClient:
    def __init__(self, base_url=None, store=None, http=None, timeout=None):
        self.base_url = (base_url or config.API_URL).rstrip('/')
        self.store = store or SessionStore()
        self.http = http or requests.Session()
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT

    def _request(self, method, path, **kwargs):
        headers = kwargs.pop('headers', {})
        token = self.store.token
        if token:
            headers['Authorization'] = f"Bearer {token}"
        try:
            response = self.http.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
            data = response.json()
        except requests.RequestException as e:
            raise RequestFailed(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise RequestFailed(f"{method} {path} returned an unparsable response") from e
        if not isinstance(data, dict):
            raise RequestFailed(f"{method} {path} returned {type(data).__name__}, expected a JSON object")

        if response.status_code == 401 and path != '/api/auth/login':
            # token expired or revoked; the local session is stale
            self.store.clear()
            raise LoginRequired(data.get('message', 'not logged in'))
        return response.status_code, data

    def login(self, email, password) -> SessionUser:
        try:
            status, data = self._request('POST', '/api/auth/login', json={'email': email, 'password': password})
        except RequestFailed as e:
            logger.error(f"Login request failed: {e}")
            raise LoginFailed(CONNECTION_ERROR_MESSAGE) from e

        if not data.get('success'):
            raise LoginFailed(data.get('message') or LOGIN_FAILED_MESSAGE)

        user = SessionUser.model_validate(data['user'])
        self.store.save(user, data.get('token'))
        logger.info(f"Logged in as {user.email}")
        return user

    def logout(self):
        try:
            self._request('POST', '/api/auth/logout')
        except WarehouseClientError as e:
            logger.warning(f"Server logout failed: {e}")
        finally:
            self.store.clear()

    def fetch_items(self):
        status, data = self._request('GET', '/api/warehouse/items')
        if not data.get('success'):
            raise RequestFailed(data.get('error') or data.get('message') or f"listing items failed ({status})")
        return data['items']

    def create_item(self, fields, files=None):
        status, data = self._request('POST', '/api/warehouse/items', data=fields, files=files)
        return data


# ------------------------------------------------------------
# Dashboard view
# ------------------------------------------------------------

class DashboardView:
    """Item list with live search and category filtering.

    Stats always describe the whole catalog, not the filtered rows.
    """

    def __init__(self, client, notice=None):
        self.client = client
        self.notice = notice
        self.user = None
        self.items = []
        self.search_term = ''
        self.selected_category = ALL_CATEGORIES
        self.is_loading = True

    def load(self):
        self.user = require_session(self.client.store, VIEW_LEVEL)
        try:
            self.items = self.client.fetch_items()
        except RequestFailed as e:
            logger.error(f"Error fetching items: {e}")
        finally:
            self.is_loading = False
        return self

    def set_search(self, term):
        self.search_term = term

    def set_category(self, category):
        if category != ALL_CATEGORIES and category not in CATEGORIES:
            raise ValueError(f"unknown category: {category}")
        self.selected_category = category

    @property
    def filtered_items(self):
        return filter_items(self.items, self.search_term, self.selected_category)

    @property
    def stats(self):
        return compute_stats(self.items)

    @property
    def permissions(self):
        return permissions_for(self.user.access_level if self.user else 0)

    @property
    def empty_message(self):
        return empty_message(self.filtered_items, self.search_term, self.selected_category)

    def rows(self):
        """Filtered items with their stock status and the actions the user may take."""
        perms = self.permissions
        return [
            {
                **item,
                'stockStatus': stock_status(item['quantity']),
                'actions': [
                    action for action, allowed in (
                        ('view', perms['canView']),
                        ('edit', perms['canEdit']),
                        ('delete', perms['canDelete']),
                    ) if allowed
                ],
            }
            for item in self.filtered_items
        ]

    def logout(self):
        self.client.logout()


# ------------------------------------------------------------
# Item-creation form
# ------------------------------------------------------------

class ImageUpload:
    def __init__(self, filename, content_type, stream):
        self.filename = filename
        self.content_type = content_type
        self.stream = stream

    def close(self):
        self.stream.close()


class ItemForm:
    def __init__(self, client):
        self.client = client
        self.user = require_session(client.store, ADD_LEVEL)
        self.is_submitting = False
        self.image = None
        self.errors = {}
        self._set_defaults()

    def _set_defaults(self):
        self.name = ''
        self.code = ''
        self.description = ''
        self.category = DEFAULT_CATEGORY
        self.quantity = 0
        self.unit = DEFAULT_UNIT
        self.purchase_price = ''
        self.sale_price = ''

    def as_dict(self):
        return {
            'name': self.name,
            'code': self.code,
            'description': self.description,
            'category': self.category,
            'quantity': self.quantity,
            'unit': self.unit,
            'purchasePrice': self.purchase_price,
            'salePrice': self.sale_price,
        }

    def select_image(self, stream, filename, content_type=None):
        """Attach an image if it passes the size and type checks.

        A rejected file is left out of the form and its error recorded
        under 'image'; returns whether the file was accepted.
        """
        content_type = content_type or mimetypes.guess_type(filename)[0]
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)

        error = validate_image(size, content_type)
        if error:
            self.errors['image'] = error
            return False

        self.remove_image()
        self.image = ImageUpload(filename, content_type, stream)
        self.errors.pop('image', None)
        return True

    def select_image_path(self, path, content_type=None):
        stream = open(path, 'rb')
        accepted = self.select_image(stream, os.path.basename(path), content_type)
        if not accepted:
            stream.close()
        return accepted

    def remove_image(self):
        if self.image is not None:
            self.image.close()
            self.image = None

    def validate(self):
        errors = validate_item(self.as_dict())
        self.errors = errors
        return not errors

    def build_payload(self):
        """Trimmed strings and parsed numbers; blank prices are left out."""
        fields = {
            'name': self.name.strip(),
            'code': self.code.strip(),
            'description': self.description.strip(),
            'category': self.category,
            'quantity': str(parse_quantity(self.quantity)),
            'unit': self.unit,
        }
        if not is_blank(self.purchase_price):
            fields['purchasePrice'] = str(parse_price(self.purchase_price))
        if not is_blank(self.sale_price):
            fields['salePrice'] = str(parse_price(self.sale_price))

        files = None
        if self.image is not None:
            self.image.stream.seek(0)
            files = {'image': (self.image.filename, self.image.stream, self.image.content_type)}
        return fields, files

    def submit(self):
        """Validate and post the form.

        Returns ITEM_ADDED on success and None otherwise; on failure the
        entered fields are kept and errors['submit'] explains why. A 401
        from the server is not a submit error: LoginRequired propagates so
        the caller can send the user back to the login view.
        """
        if self.is_submitting:
            return None
        if not self.validate():
            return None

        self.is_submitting = True
        try:
            fields, files = self.build_payload()
            data = self.client.create_item(fields, files)
            if data.get('success'):
                self.remove_image()
                return ITEM_ADDED
            self.errors = {'submit': data.get('error') or SUBMIT_ERROR_MESSAGE}
        except RequestFailed as e:
            logger.error(f"Error adding item: {e}")
            self.errors = {'submit': SUBMIT_ERROR_MESSAGE}
        finally:
            self.is_submitting = False
        return None

    def reset(self):
        self.remove_image()
        self._set_defaults()
        self.errors = {}
