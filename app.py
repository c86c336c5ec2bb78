import os
import uuid
import datetime
from datetime import timedelta, timezone
from functools import wraps

import jwt
from flask import Flask, request, jsonify, session, url_for, send_from_directory
from flask_session import Session
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

import config as app_config
from inventory import (
    ALL_CATEGORIES, CATEGORIES, VIEW_LEVEL, ADD_LEVEL, EDIT_LEVEL, DELETE_LEVEL,
    stock_status, filter_items, compute_stats, permissions_for, empty_message,
)
from models import db, InventoryItem
from users import find_user, get_user
from validation import validate_item, validate_image, clean_item

# ------------------------------------------------------------
# Configuration
# ------------------------------------------------------------

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = app_config.DATABASE_URL
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False # disable tracking of modifications, saves system resources
app.config['SECRET_KEY'] = app_config.SECRET_KEY # Flask session encryption key
app.config['SESSION_TYPE'] = 'filesystem' # session data lives on the server, the cookie only carries its id
app.config['SESSION_FILE_DIR'] = app_config.SESSION_FILE_DIR
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(minutes=app_config.SESSION_EXPIRATION_MINUTES)
app.config['JWT_SECRET_KEY'] = app_config.JWT_SECRET_KEY # key for signing and verifying JWT tokens.
app.config['MAX_CONTENT_LENGTH'] = app_config.MAX_CONTENT_LENGTH
app.config['UPLOAD_DIR'] = app_config.UPLOAD_DIR
app.logger.setLevel(app_config.LOG_LEVEL)

os.makedirs(app_config.DATA_DIR, exist_ok=True)
os.makedirs(app_config.SESSION_FILE_DIR, exist_ok=True)
os.makedirs(app_config.UPLOAD_DIR, exist_ok=True)

Session(app) # activates Flask-Session
db.init_app(app) # connects the InventoryItem model

with app.app_context(): # creates the tables in models.py if they don't already exist
    db.create_all()


class LoginRequest(BaseModel):
    email: str
    password: str


# ------------------------------------------------------------
# Error handlers
# ------------------------------------------------------------

@app.errorhandler(HTTPException)
def handle_http_error(e):
    return jsonify({"success": False, "message": e.description}), e.code


@app.errorhandler(Exception)
def handle_server_error(e):
    app.logger.exception(f"Unhandled error on {request.method} {request.path}")
    db.session.rollback()
    return jsonify({"success": False, "message": "server error"}), 500


# ------------------------------------------------------------
# Authentication
#        admin:  szymon@example.com / admin123
#        user:   waldek@example.com / user123
# ------------------------------------------------------------

def create_token(user):
    return jwt.encode(
        {
            'id': user['id'],
            'email': user['email'],
            'role': user['role'],
            'accessLevel': user['accessLevel'],
            'exp': datetime.datetime.now(timezone.utc) + timedelta(minutes=app_config.SESSION_EXPIRATION_MINUTES)
        },
        app.config['JWT_SECRET_KEY'],
        algorithm=app_config.JWT_ALGORITHM
    )


@app.route('/api/auth/login', methods=['POST'])
def login():
    try:
        data = request.get_json(force=True, silent=True)
        if not isinstance(data, dict):
            raise ValueError("request body is not a JSON object")
        credentials = LoginRequest.model_validate(data)

        # only the email is logged, never the password
        app.logger.info(f"Login attempt: {credentials.email}")

        user = find_user(credentials.email, credentials.password)
        if not user:
            return jsonify({"success": False, "message": "invalid credentials"}), 401

        token = create_token(user)
        session['user_id'] = user['id']
        session['jwt_token'] = token
        return jsonify({"success": True, "user": user, "token": token}), 200
    except (ValueError, ValidationError) as e:
        app.logger.error(f"Malformed login request: {e}")
        return jsonify({"success": False, "message": "server error"}), 500


# Logout
@app.route('/api/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({"success": True, "message": "logged out"}), 200


# ------------------------------------------------------------
# Access control (JWT, re-checked on every request)
# ------------------------------------------------------------

def _request_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return session.get('jwt_token')


def access_required(min_level=VIEW_LEVEL):
    """Decode the caller's token and require an access level of at least min_level.

    The wrapped view receives the current user, as stored in the user
    directory, as its first argument.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            token = _request_token()
            if not token:
                return jsonify({"success": False, "message": "not logged in"}), 401

            try:
                data = jwt.decode(token, app.config['JWT_SECRET_KEY'], algorithms=[app_config.JWT_ALGORITHM])
            except jwt.ExpiredSignatureError:
                return jsonify({"success": False, "message": "token has expired"}), 401
            except jwt.InvalidTokenError:
                return jsonify({"success": False, "message": "token is invalid"}), 401

            current_user = get_user(data.get('id'))
            if not current_user:
                return jsonify({"success": False, "message": "token is invalid"}), 401
            if current_user['accessLevel'] < min_level:
                return jsonify({"success": False, "message": "insufficient access level"}), 403

            return f(current_user, *args, **kwargs)

        return decorated

    return decorator


@app.route('/api/auth/session', methods=['GET'])
@access_required(VIEW_LEVEL)
def get_session(current_user):
    return jsonify({"success": True, "user": current_user}), 200


# ------------------------------------------------------------
# Inventory
# ------------------------------------------------------------

def item_to_dict(item):
    image_url = None
    if item.image_filename:
        image_url = url_for('get_item_image', item_id=item.id)
    return {
        "id": item.id,
        "name": item.name,
        "code": item.code,
        "description": item.description,
        "category": item.category,
        "quantity": item.quantity,
        "unit": item.unit,
        "purchasePrice": item.purchase_price,
        "salePrice": item.sale_price,
        "image": image_url,
        "stockStatus": stock_status(item.quantity),
        "createdAt": item.created_at.isoformat() if item.created_at else None,
    }


def apply_fields(item, cleaned):
    item.name = cleaned.get('name', item.name)
    item.code = cleaned.get('code', item.code)
    item.description = cleaned.get('description', item.description)
    item.category = cleaned.get('category', item.category)
    item.quantity = cleaned.get('quantity', item.quantity)
    item.unit = cleaned.get('unit', item.unit)
    item.purchase_price = cleaned.get('purchasePrice', item.purchase_price)
    item.sale_price = cleaned.get('salePrice', item.sale_price)


def code_taken(code, exclude_id=None):
    query = InventoryItem.query.filter_by(code=code)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    return query.first() is not None


def _file_size(file):
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    return size


def save_image(file):
    ext = os.path.splitext(secure_filename(file.filename or ''))[1].lower()
    filename = f"{uuid.uuid4().hex}{ext}"
    file.save(os.path.join(app.config['UPLOAD_DIR'], filename))
    return filename


def remove_image(filename):
    if not filename:
        return
    path = os.path.join(app.config['UPLOAD_DIR'], filename)
    try:
        os.remove(path)
    except FileNotFoundError:
        app.logger.warning(f"Image already missing: {path}")


def all_items():
    items = InventoryItem.query.order_by(InventoryItem.id).all()
    return [item_to_dict(item) for item in items]


@app.route('/api/warehouse/items', methods=['GET'])
@access_required(VIEW_LEVEL)
def list_items(current_user):
    return jsonify({"success": True, "items": all_items()}), 200


@app.route('/api/warehouse/items', methods=['POST'])
@access_required(ADD_LEVEL)
def create_item(current_user):
    data = request.form.to_dict()
    errors = validate_item(data)

    image = request.files.get('image')
    if image is not None and image.filename:
        image_error = validate_image(_file_size(image), image.mimetype)
        if image_error:
            errors['image'] = image_error
    else:
        image = None

    if errors:
        return jsonify({"success": False, "error": "validation failed", "errors": errors}), 400

    cleaned = clean_item(data)
    if code_taken(cleaned['code']):
        return jsonify({"success": False, "error": "item code already exists"}), 409

    new_item = InventoryItem()
    apply_fields(new_item, cleaned)
    if image is not None:
        new_item.image_filename = save_image(image)

    db.session.add(new_item)
    try:
        db.session.commit()
    except IntegrityError:
        # another request created the same code in the meantime
        db.session.rollback()
        remove_image(new_item.image_filename)
        return jsonify({"success": False, "error": "item code already exists"}), 409

    app.logger.info(f"Item {new_item.code} created by user {current_user['id']}")
    return jsonify({"success": True, "item": item_to_dict(new_item)}), 201


@app.route('/api/warehouse/items/<int:item_id>', methods=['GET'])
@access_required(VIEW_LEVEL)
def get_item(current_user, item_id):
    item = db.session.get(InventoryItem, item_id)
    if not item:
        return jsonify({"success": False, "error": "item not found"}), 404
    return jsonify({"success": True, "item": item_to_dict(item)}), 200


@app.route('/api/warehouse/items/<int:item_id>', methods=['PUT'])
@access_required(EDIT_LEVEL)
def update_item(current_user, item_id):
    item = db.session.get(InventoryItem, item_id)
    if not item:
        return jsonify({"success": False, "error": "item not found"}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"success": False, "error": "request body is empty"}), 400

    errors = validate_item(data, partial=True)
    if errors:
        return jsonify({"success": False, "error": "validation failed", "errors": errors}), 400

    cleaned = clean_item(data, partial=True)
    if 'code' in cleaned and code_taken(cleaned['code'], exclude_id=item.id):
        return jsonify({"success": False, "error": "item code already exists"}), 409

    apply_fields(item, cleaned)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "item code already exists"}), 409

    return jsonify({"success": True, "item": item_to_dict(item)}), 200


@app.route('/api/warehouse/items/<int:item_id>', methods=['DELETE'])
@access_required(DELETE_LEVEL)
def delete_item(current_user, item_id):
    item = db.session.get(InventoryItem, item_id)
    if not item:
        return jsonify({"success": False, "error": "item not found"}), 404

    image_filename = item.image_filename
    db.session.delete(item)
    db.session.commit()
    remove_image(image_filename)

    app.logger.info(f"Item {item_id} deleted by user {current_user['id']}")
    return jsonify({"success": True}), 200


@app.route('/api/warehouse/items/<int:item_id>/image', methods=['GET'])
@access_required(VIEW_LEVEL)
def get_item_image(current_user, item_id):
    item = db.session.get(InventoryItem, item_id)
    if not item or not item.image_filename:
        return jsonify({"success": False, "error": "image not found"}), 404
    return send_from_directory(app.config['UPLOAD_DIR'], item.image_filename)


@app.route('/api/warehouse/dashboard', methods=['GET'])
@access_required(VIEW_LEVEL)
def dashboard(current_user):
    search_term = request.args.get('search', '')
    category = request.args.get('category', ALL_CATEGORIES)
    if category != ALL_CATEGORIES and category not in CATEGORIES:
        return jsonify({"success": False, "error": "invalid category"}), 400

    items = all_items()
    filtered = filter_items(items, search_term, category)
    return jsonify({
        "success": True,
        "items": filtered,
        "stats": compute_stats(items),
        "permissions": permissions_for(current_user['accessLevel']),
        "emptyMessage": empty_message(filtered, search_term, category),
    }), 200


# ------------------------------------------------------------
# Run the Flask App
# ------------------------------------------------------------

if __name__ == '__main__':
    app.run(debug=True)
