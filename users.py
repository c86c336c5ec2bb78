"""
users.py
--------
Predefined user directory. The plaintext passwords below are seed values
only: the directory keeps salted werkzeug hashes and verifies logins with
check_password_hash.
"""

from werkzeug.security import generate_password_hash, check_password_hash

# ------------------------------------------------------------
# Seed accounts
#        admin
#       "email": "szymon@example.com",
#       "password": "admin123"
#
#        regular user
#       "email": "waldek@example.com",
#       "password": "user123"
# ------------------------------------------------------------

SEED_USERS = [
    {
        "id": 1,
        "email": "szymon@example.com",
        "password": "admin123",
        "name": "Szymon",
        "role": "admin",
        "accessLevel": 3,
    },
    {
        "id": 2,
        "email": "waldek@example.com",
        "password": "user123",
        "name": "Waldek",
        "role": "user",
        "accessLevel": 2,
    },
]


def _build_directory(seed):
    directory = []
    for record in seed:
        entry = {key: value for key, value in record.items() if key != "password"}
        entry["password_hash"] = generate_password_hash(record["password"])
        directory.append(entry)
    return tuple(directory)


USERS = _build_directory(SEED_USERS)


def public_user(record):
    """Return a copy of a directory record without any credential fields."""
    return {key: value for key, value in record.items() if key not in ("password", "password_hash")}


def find_user(email, password):
    """Return the sanitized user whose email and password both match, or None.

    Email comparison is exact and case-sensitive.
    """
    for record in USERS:
        if record["email"] == email and check_password_hash(record["password_hash"], password):
            return public_user(record)
    return None


def get_user(user_id):
    for record in USERS:
        if record["id"] == user_id:
            return public_user(record)
    return None
