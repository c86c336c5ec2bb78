"""
Warehouse Configuration
Centralized settings for the warehouse inventory service and its client.
Every value can be overridden with a WAREHOUSE_* environment variable.
"""

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.environ.get('WAREHOUSE_DATA_DIR', os.path.join(BASE_DIR, 'data'))

# Database settings
DATABASE_URL = os.environ.get('WAREHOUSE_DATABASE_URL', 'sqlite:///' + os.path.join(DATA_DIR, 'warehouse.db'))

# Session / JWT settings
SECRET_KEY = os.environ.get('WAREHOUSE_SECRET_KEY', 'supersecretkey')  # Flask session encryption key
JWT_SECRET_KEY = os.environ.get('WAREHOUSE_JWT_SECRET_KEY', 'your_jwt_secret_key')
JWT_ALGORITHM = "HS256"
SESSION_EXPIRATION_MINUTES = int(os.environ.get('WAREHOUSE_SESSION_EXPIRATION_MINUTES', '30'))
SESSION_FILE_DIR = os.environ.get('WAREHOUSE_SESSION_FILE_DIR', os.path.join(DATA_DIR, 'flask_session'))

# Upload settings
UPLOAD_DIR = os.environ.get('WAREHOUSE_UPLOAD_DIR', os.path.join(DATA_DIR, 'images'))
MAX_IMAGE_SIZE = int(os.environ.get('WAREHOUSE_MAX_IMAGE_SIZE', str(5 * 1024 * 1024)))  # 5MB per image
MAX_CONTENT_LENGTH = MAX_IMAGE_SIZE + 2 * 1024 * 1024  # image plus form fields

# Client settings
API_URL = os.environ.get('WAREHOUSE_API_URL', 'http://localhost:5000')
HTTP_TIMEOUT = float(os.environ.get('WAREHOUSE_HTTP_TIMEOUT', '10'))  # seconds
SESSION_PATH = os.environ.get('WAREHOUSE_SESSION_PATH', os.path.join(DATA_DIR, 'session.json'))

# Logging
LOG_LEVEL = os.environ.get('WAREHOUSE_LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
