import math
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from flask import jsonify, request
from flask_jwt_extended import jwt_required

from .errors import ValidationError
from .media import upload_file, validate_image_file

BACKGROUND_IMAGE_FOLDER = "background-images"
SHOWCASE_IMAGE_SLOTS = ("mainImage", "image1", "image2", "image3")
SHOWCASE_UPLOAD_OPTIONS = {
    "allowed_formats": ["jpg", "jpeg", "png", "webp"],
    "transformation": [{"width": 800, "height": 800, "crop": "limit"}],
}


def isoformat_or_none(value) -> Optional[str]:
    return value.isoformat() + "Z" if isinstance(value, datetime) else None


def fetch_document(collection, item_id: str, label: str):
    try:
        object_id = ObjectId(item_id)
    except (InvalidId, TypeError):
        return None, (jsonify({"message": f"Invalid {label} identifier."}), 400)

    document = collection.find_one({"_id": object_id})
    if not document:
        return None, (jsonify({"message": f"{label.capitalize()} not found"}), 404)

    return document, None


def read_form_payload() -> Dict:
    payload = request.form.to_dict() if request.form else {}
    if not payload:
        payload = request.get_json(silent=True) or {}
    return payload if isinstance(payload, dict) else {}


def clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_price(value, label: str, required: bool) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{label} is required.")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a valid number.")
    try:
        price_value = round(float(value), 2)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a valid number.")
    if not math.isfinite(price_value) or price_value < 0:
        raise ValidationError(f"{label} must be zero or greater.")
    return price_value


def serialize_background_image(document) -> Dict[str, object]:
    if not document:
        return {}
    return {
        "id": str(document.get("_id")),
        "name": document.get("name", ""),
        "category": document.get("category", "") or "",
        "description": document.get("description", "") or "",
        "imageUrl": document.get("image_url", ""),
        "cloudinaryId": document.get("cloudinary_id", ""),
        "createdAt": isoformat_or_none(document.get("created_at")),
        "updatedAt": isoformat_or_none(document.get("updated_at")),
    }


def serialize_showcase_product(document) -> Dict[str, object]:
    if not document:
        return {}
    images = document.get("images") if isinstance(document.get("images"), dict) else {}
    main_image = images.get("mainImage") or {}
    return {
        "id": str(document.get("_id")),
        "name": document.get("name", ""),
        "description": document.get("description", "") or "",
        "category": document.get("category", "") or "",
        "price": document.get("price"),
        "originalPrice": document.get("original_price"),
        "mainImage": main_image.get("url", ""),
        "additionalImages": [
            images[slot]["url"]
            for slot in SHOWCASE_IMAGE_SLOTS[1:]
            if isinstance(images.get(slot), dict) and images[slot].get("url")
        ],
        "images": {
            slot: {"url": value.get("url", ""), "publicId": value.get("publicId", "")}
            for slot, value in images.items()
            if isinstance(value, dict)
        },
        "createdAt": isoformat_or_none(document.get("created_at")),
        "updatedAt": isoformat_or_none(document.get("updated_at")),
    }


def register_background_image_routes(app, db, image_store, require_admin_user):
    collection = db.background_images

    def staging_folder() -> str:
        return app.config["UPLOAD_STAGING_FOLDER"]

    @app.route("/api/background-images", methods=["GET"])
    def list_background_images():
        documents = collection.find().sort("created_at", -1)
        return jsonify(
            {"images": [serialize_background_image(document) for document in documents]}
        )

    @app.route("/api/background-images/<image_id>", methods=["GET"])
    def get_background_image(image_id: str):
        document, load_error = fetch_document(collection, image_id, "background image")
        if load_error:
            return load_error
        return jsonify({"image": serialize_background_image(document)})

    @app.route("/api/background-images", methods=["POST"])
    @jwt_required()
    def create_background_image():
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        image_file = request.files.get("image")
        validate_image_file(image_file)
        payload = read_form_payload()

        uploaded = upload_file(
            image_store, image_file, BACKGROUND_IMAGE_FOLDER, staging_folder()
        )

        timestamp = datetime.utcnow()
        document = {
            "name": clean_text(payload.get("name")) or "Untitled",
            "category": clean_text(payload.get("category")),
            "description": clean_text(payload.get("description")),
            "image_url": uploaded["url"],
            "cloudinary_id": uploaded["public_id"],
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        try:
            collection.insert_one(document)
        except Exception:
            image_store.release(uploaded["public_id"])
            raise

        return (
            jsonify(
                {
                    "message": "Background image created successfully.",
                    "image": serialize_background_image(document),
                }
            ),
            201,
        )

    @app.route("/api/background-images/<image_id>", methods=["PUT"])
    @jwt_required()
    def update_background_image(image_id: str):
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        document, load_error = fetch_document(collection, image_id, "background image")
        if load_error:
            return load_error

        payload = read_form_payload()
        updates: Dict[str, object] = {}
        for field in ("name", "category", "description"):
            value = clean_text(payload.get(field))
            if value:
                updates[field] = value

        image_file = request.files.get("image")
        uploaded = None
        if image_file and image_file.filename:
            validate_image_file(image_file)
            uploaded = upload_file(
                image_store, image_file, BACKGROUND_IMAGE_FOLDER, staging_folder()
            )
            updates["image_url"] = uploaded["url"]
            updates["cloudinary_id"] = uploaded["public_id"]

        updates["updated_at"] = datetime.utcnow()
        try:
            result = collection.update_one({"_id": document["_id"]}, {"$set": updates})
        except Exception:
            if uploaded:
                image_store.release(uploaded["public_id"])
            raise

        if result.matched_count == 0:
            if uploaded:
                image_store.release(uploaded["public_id"])
            return jsonify({"message": "Background image not found"}), 404

        previous_id = document.get("cloudinary_id")
        if uploaded and previous_id and previous_id != uploaded["public_id"]:
            image_store.release(previous_id)

        updated = collection.find_one({"_id": document["_id"]})
        return jsonify(
            {
                "message": "Background image updated successfully.",
                "image": serialize_background_image(updated),
            }
        )

    @app.route("/api/background-images/<image_id>", methods=["DELETE"])
    @jwt_required()
    def delete_background_image(image_id: str):
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        document, load_error = fetch_document(collection, image_id, "background image")
        if load_error:
            return load_error

        image_store.release(document.get("cloudinary_id"))
        collection.delete_one({"_id": document["_id"]})
        return jsonify({"message": "Background image deleted successfully"})


def register_showcase_routes(
    app,
    db,
    image_store,
    require_admin_user,
    *,
    url_prefix: str,
    collection_name: str,
    folder: str,
    label: str,
):
    """Best-sellers and featured products share one shape; register one set
    of CRUD routes per collection."""
    collection = db[collection_name]
    endpoint_prefix = collection_name

    def collect_slot_files() -> Dict[str, object]:
        slot_files = {}
        for slot in SHOWCASE_IMAGE_SLOTS:
            image_file = request.files.get(slot)
            if image_file and image_file.filename:
                validate_image_file(image_file)
                slot_files[slot] = image_file
        return slot_files

    def upload_slot_files(slot_files) -> Dict[str, Dict[str, str]]:
        uploaded: Dict[str, Dict[str, str]] = {}
        try:
            for slot, image_file in slot_files.items():
                result = upload_file(
                    image_store,
                    image_file,
                    folder,
                    app.config["UPLOAD_STAGING_FOLDER"],
                    **SHOWCASE_UPLOAD_OPTIONS,
                )
                uploaded[slot] = {"url": result["url"], "publicId": result["public_id"]}
        except Exception:
            release_slots(uploaded)
            raise
        return uploaded

    def release_slots(images: Dict[str, Dict[str, str]], slots=None):
        for slot in slots or list(images):
            entry = images.get(slot)
            if isinstance(entry, dict):
                image_store.release(entry.get("publicId"))

    def list_items():
        documents = collection.find().sort("created_at", -1)
        return jsonify(
            {"products": [serialize_showcase_product(document) for document in documents]}
        )

    def get_item(item_id: str):
        document, load_error = fetch_document(collection, item_id, label)
        if load_error:
            return load_error
        return jsonify({"product": serialize_showcase_product(document)})

    def create_item():
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        payload = read_form_payload()
        name = clean_text(payload.get("name"))
        if not name:
            return jsonify({"message": "A product name is required."}), 400

        price_value = parse_price(payload.get("price"), "Price", required=True)
        original_price = parse_price(
            payload.get("originalPrice"), "Original price", required=False
        )

        slot_files = collect_slot_files()
        if "mainImage" not in slot_files:
            return jsonify({"message": "A main image is required."}), 400

        images = upload_slot_files(slot_files)

        timestamp = datetime.utcnow()
        document = {
            "name": name,
            "description": clean_text(payload.get("description")),
            "category": clean_text(payload.get("category")),
            "price": price_value,
            "images": images,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        if original_price is not None:
            document["original_price"] = original_price

        try:
            collection.insert_one(document)
        except Exception:
            release_slots(images)
            raise

        return (
            jsonify(
                {
                    "message": f"{label.capitalize()} created successfully.",
                    "product": serialize_showcase_product(document),
                }
            ),
            201,
        )

    def update_item(item_id: str):
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        document, load_error = fetch_document(collection, item_id, label)
        if load_error:
            return load_error

        payload = read_form_payload()
        updates: Dict[str, object] = {}
        for field in ("name", "description", "category"):
            if field in payload:
                value = clean_text(payload.get(field))
                if field == "name" and not value:
                    return jsonify({"message": "A product name is required."}), 400
                updates[field] = value

        if "price" in payload:
            updates["price"] = parse_price(payload.get("price"), "Price", required=True)
        if "originalPrice" in payload:
            updates["original_price"] = parse_price(
                payload.get("originalPrice"), "Original price", required=False
            )

        uploaded = upload_slot_files(collect_slot_files())
        for slot, value in uploaded.items():
            updates[f"images.{slot}"] = value
        updates["updated_at"] = datetime.utcnow()

        try:
            result = collection.update_one({"_id": document["_id"]}, {"$set": updates})
        except Exception:
            release_slots(uploaded)
            raise

        if result.matched_count == 0:
            release_slots(uploaded)
            return jsonify({"message": f"{label.capitalize()} not found"}), 404

        previous_images = document.get("images") or {}
        replaced: List[str] = [
            slot
            for slot in uploaded
            if isinstance(previous_images.get(slot), dict)
            and previous_images[slot].get("publicId") != uploaded[slot]["publicId"]
        ]
        release_slots(previous_images, replaced)

        updated = collection.find_one({"_id": document["_id"]})
        return jsonify(
            {
                "message": f"{label.capitalize()} updated successfully.",
                "product": serialize_showcase_product(updated),
            }
        )

    def delete_item(item_id: str):
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        document, load_error = fetch_document(collection, item_id, label)
        if load_error:
            return load_error

        release_slots(document.get("images") or {})
        collection.delete_one({"_id": document["_id"]})
        return jsonify({"message": f"{label.capitalize()} deleted successfully."})

    app.add_url_rule(
        url_prefix, f"{endpoint_prefix}_list", list_items, methods=["GET"]
    )
    app.add_url_rule(
        f"{url_prefix}/<item_id>", f"{endpoint_prefix}_detail", get_item, methods=["GET"]
    )
    app.add_url_rule(
        url_prefix,
        f"{endpoint_prefix}_create",
        jwt_required()(create_item),
        methods=["POST"],
    )
    app.add_url_rule(
        f"{url_prefix}/<item_id>",
        f"{endpoint_prefix}_update",
        jwt_required()(update_item),
        methods=["PUT"],
    )
    app.add_url_rule(
        f"{url_prefix}/<item_id>",
        f"{endpoint_prefix}_delete",
        jwt_required()(delete_item),
        methods=["DELETE"],
    )
