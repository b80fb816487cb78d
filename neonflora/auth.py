import re
from datetime import datetime
from typing import Dict, Optional
from uuid import uuid4

import bcrypt
from bson import ObjectId
from bson.errors import InvalidId
from flask import jsonify, request
from flask_jwt_extended import (
    create_access_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)
from pymongo.errors import DuplicateKeyError

ADMIN_ROLE = "admin"
ADMIN_TOKEN_TYPE = "admin"

email_regex = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def is_valid_email(value: Optional[str]) -> bool:
    normalized = normalize_email(value)
    return bool(normalized and email_regex.match(normalized))


def is_admin_claims(claims: Dict) -> bool:
    return claims.get("role") == ADMIN_ROLE and claims.get("type") == ADMIN_TOKEN_TYPE


def serialize_admin(admin_document) -> Dict[str, object]:
    if not admin_document:
        return {}
    return {
        "id": str(admin_document.get("_id")),
        "username": admin_document.get("username", "") or "",
        "email": admin_document.get("email", "") or "",
        "isAdmin": True,
        "role": ADMIN_ROLE,
    }


def build_admin_guard(db):
    """Return ``require_admin_user`` bound to the admin credential store.

    Call it inside a ``@jwt_required()`` view; it yields ``(admin, None)`` or
    ``(None, error_response)``.
    """

    def require_admin_user():
        if not is_admin_claims(get_jwt()):
            return None, (jsonify({"message": "Admin access is required."}), 403)

        try:
            admin_id = ObjectId(str(get_jwt_identity()))
        except (InvalidId, TypeError):
            return None, (jsonify({"message": "Admin access is required."}), 403)

        admin_document = db.admins.find_one({"_id": admin_id})
        if not admin_document:
            return None, (jsonify({"message": "Admin account not found."}), 403)

        return admin_document, None

    return require_admin_user


def register_admin_routes(app, db):
    def derive_username(email: str) -> str:
        base = email.split("@")[0]
        candidate = base
        while db.admins.find_one({"username": candidate}):
            candidate = f"{base}-{uuid4().hex[:6]}"
        return candidate

    try:
        db.admins.create_index("email", unique=True)
        db.admins.create_index("username", unique=True)
    except Exception as exc:
        app.logger.warning("Unable to ensure unique index for admins: %s", exc)

    @app.route("/api/admin/signup", methods=["POST"])
    def admin_signup():
        payload = request.get_json(silent=True) or {}
        username = str(payload.get("username", "") or "").strip()
        email = normalize_email(payload.get("email"))
        password = str(payload.get("password", "") or "")

        if not email or not password:
            return jsonify({"message": "Email and password are required"}), 400

        if not is_valid_email(email):
            return jsonify({"message": "Please provide a valid email address."}), 400

        if db.admins.find_one({"email": email}):
            return jsonify({"message": "Admin already exists"}), 409

        if username and db.admins.find_one({"username": username}):
            return jsonify({"message": "That username is already taken."}), 409

        if not username:
            username = derive_username(email)

        hashed_pw = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        admin_document = {
            "username": username,
            "email": email,
            "password": hashed_pw,
            "created_at": datetime.utcnow(),
        }
        try:
            insert_result = db.admins.insert_one(admin_document)
        except DuplicateKeyError:
            return jsonify({"message": "Admin already exists"}), 409
        admin_document["_id"] = insert_result.inserted_id

        return (
            jsonify(
                {
                    "message": "Admin registered successfully",
                    "user": serialize_admin(admin_document),
                }
            ),
            201,
        )

    @app.route("/api/admin/login", methods=["POST"])
    def admin_login():
        payload = request.get_json(silent=True) or {}
        email = normalize_email(payload.get("email"))
        username = str(payload.get("username", "") or "").strip()
        password = str(payload.get("password", "") or "")

        if (not email and not username) or not password:
            return (
                jsonify({"message": "Email/Username and password are required"}),
                400,
            )

        admin_document = db.admins.find_one(
            {"email": email} if email else {"username": username}
        )
        if not admin_document or not bcrypt.checkpw(
            password.encode("utf-8"), admin_document["password"]
        ):
            return jsonify({"message": "Invalid credentials"}), 401

        db.admins.update_one(
            {"_id": admin_document["_id"]},
            {"$set": {"last_login_at": datetime.utcnow()}},
        )

        token = create_access_token(
            identity=str(admin_document["_id"]),
            additional_claims={
                "id": str(admin_document["_id"]),
                "username": admin_document.get("username", ""),
                "email": admin_document.get("email", ""),
                "isAdmin": True,
                "role": ADMIN_ROLE,
                "type": ADMIN_TOKEN_TYPE,
            },
        )
        app.logger.info("Admin login successful: %s", admin_document.get("email"))

        return jsonify(
            {
                "success": True,
                "token": token,
                "user": serialize_admin(admin_document),
            }
        )

    @app.route("/api/admin/verify", methods=["GET"])
    @jwt_required()
    def verify_admin_token():
        claims = get_jwt()
        if not is_admin_claims(claims):
            return jsonify({"message": "Not an admin token"}), 403

        return jsonify(
            {
                "valid": True,
                "user": {
                    "id": get_jwt_identity(),
                    "username": claims.get("username", ""),
                    "email": claims.get("email", ""),
                    "isAdmin": True,
                    "role": claims.get("role"),
                },
            }
        )
