import json

from flask import jsonify, request
from flask_jwt_extended import jwt_required

from .customization import CustomizationOptionsService, serialize_customization_options
from .errors import ValidationError
from .media import upload_file, validate_image_file


def read_options_request():
    """Return ``(payload, files)`` from a JSON or multipart request.

    Multipart requests carry the option set as a JSON-encoded ``options``
    field next to the indexed file fields.
    """
    if request.mimetype == "multipart/form-data":
        raw_options = request.form.get("options")
        if raw_options is None or not raw_options.strip():
            payload = {
                key: value for key, value in request.form.items() if key != "options"
            }
        else:
            try:
                payload = json.loads(raw_options)
            except (json.JSONDecodeError, ValueError):
                raise ValidationError("The options field must contain valid JSON.")
        return payload, request.files

    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError("Options payload must be a JSON object.")
    return payload, None


def register_customization_routes(app, db, image_store, require_admin_user):
    service = CustomizationOptionsService(
        db.customization_options,
        image_store,
        app.config["UPLOAD_STAGING_FOLDER"],
        app.logger,
    )
    service.ensure_indexes()

    @app.route("/api/customization-options", methods=["GET"])
    def list_customization_options():
        return jsonify(
            {
                "options": [
                    serialize_customization_options(document)
                    for document in service.list_active()
                ]
            }
        )

    @app.route("/api/customization-options/<product_type>", methods=["GET"])
    def get_customization_options(product_type: str):
        document = service.get_active(product_type.strip().lower())
        return jsonify(serialize_customization_options(document))

    @app.route("/api/customization-options", methods=["POST"])
    @jwt_required()
    def create_customization_options():
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        payload, files = read_options_request()
        document = service.create(payload, files)
        return jsonify(serialize_customization_options(document)), 201

    @app.route("/api/customization-options/<product_type>", methods=["PUT"])
    @jwt_required()
    def update_customization_options(product_type: str):
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        payload, files = read_options_request()
        document = service.update(
            product_type,
            payload,
            files,
            upsert=app.config["CUSTOMIZATION_OPTIONS_UPSERT"],
        )
        return jsonify(serialize_customization_options(document))

    @app.route("/api/customization-options/<product_type>", methods=["DELETE"])
    @jwt_required()
    def delete_customization_options(product_type: str):
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        service.deactivate(product_type)
        return jsonify({"message": "Customization options deleted successfully"})

    @app.route("/api/customization-options/upload-image", methods=["POST"])
    @jwt_required()
    def upload_customization_image():
        _, permission_error = require_admin_user()
        if permission_error:
            return permission_error

        image_file = request.files.get("image")
        validate_image_file(image_file, allow_svg=True)
        uploaded = upload_file(
            image_store,
            image_file,
            service.folder,
            app.config["UPLOAD_STAGING_FOLDER"],
        )
        return jsonify({"url": uploaded["url"], "publicId": uploaded["public_id"]})

    return service
