import os
import re
from contextlib import contextmanager
from typing import Dict, Iterator, Optional
from urllib.parse import urlparse
from uuid import uuid4

import cloudinary
import cloudinary.uploader
from werkzeug.utils import secure_filename

from .errors import UpstreamError, ValidationError

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "svg"}
SVG_MIME_TYPE = "image/svg+xml"

_version_segment = re.compile(r"^v\d+$")
_transformation_segment = re.compile(r"^[a-z]{1,3}_[^/]*$")


def configure_cloudinary(app) -> bool:
    """Configure the Cloudinary SDK from the environment.

    Returns ``False`` when no credentials are available; uploads are disabled
    in that case but the rest of the API keeps working.
    """
    if os.getenv("CLOUDINARY_URL"):
        cloudinary.config(secure=True)
        return True

    cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME")
    api_key = os.getenv("CLOUDINARY_API_KEY")
    api_secret = os.getenv("CLOUDINARY_API_SECRET")
    if not (cloud_name and api_key and api_secret):
        app.logger.warning(
            "Cloudinary credentials not found. Image uploads will be disabled."
        )
        return False

    cloudinary.config(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
        secure=True,
    )
    return True


class CloudinaryImageStore:
    """Thin adapter around ``cloudinary.uploader``.

    Every stored image is addressed by the delivery URL kept on the owning
    document plus the opaque public id Cloudinary assigned to it.
    """

    def __init__(self, logger, configured: bool = True):
        self.logger = logger
        self.configured = configured

    def upload(self, path: str, folder: str, **options) -> Dict[str, str]:
        if not self.configured:
            raise UpstreamError("Image upload is not configured")

        upload_options = {"folder": folder, "resource_type": "auto"}
        upload_options.update(options)
        try:
            result = cloudinary.uploader.upload(path, **upload_options)
        except Exception as exc:
            raise UpstreamError(f"Image upload failed: {exc}") from exc

        url = result.get("secure_url") or result.get("url")
        public_id = result.get("public_id")
        if not url or not public_id:
            raise UpstreamError("Image upload returned an incomplete response")
        return {"url": url, "public_id": public_id}

    def destroy(self, public_id: str) -> None:
        if not self.configured:
            raise UpstreamError("Image upload is not configured")
        try:
            result = cloudinary.uploader.destroy(public_id)
        except Exception as exc:
            raise UpstreamError(f"Image removal failed: {exc}") from exc

        # "not found" means the asset is already gone
        outcome = (result or {}).get("result")
        if outcome not in ("ok", "not found"):
            raise UpstreamError(f"Image removal failed: {outcome}")

    def release(self, public_id: Optional[str]) -> bool:
        if not public_id:
            return False
        try:
            self.destroy(public_id)
        except UpstreamError as exc:
            self.logger.warning(
                "Unable to release remote image %s: %s", public_id, exc.message
            )
            return False
        return True

    def release_url(self, url: Optional[str]) -> bool:
        return self.release(self.public_id_from_url(url))

    @staticmethod
    def public_id_from_url(url: Optional[str]) -> Optional[str]:
        if not url or not isinstance(url, str):
            return None

        parsed = urlparse(url.strip())
        if not parsed.netloc.endswith("cloudinary.com"):
            return None

        segments = [segment for segment in parsed.path.split("/") if segment]
        if "upload" not in segments:
            return None
        remainder = segments[segments.index("upload") + 1 :]

        version_index = next(
            (
                index
                for index, segment in enumerate(remainder)
                if _version_segment.match(segment)
            ),
            None,
        )
        if version_index is not None:
            remainder = remainder[version_index + 1 :]
        else:
            while remainder and _transformation_segment.match(remainder[0]):
                remainder = remainder[1:]

        if not remainder:
            return None
        remainder[-1] = os.path.splitext(remainder[-1])[0]
        return "/".join(remainder) or None


def validate_image_file(image_file, allow_svg: bool = False) -> None:
    if not image_file or not getattr(image_file, "filename", ""):
        raise ValidationError("No image file provided")

    mimetype = (getattr(image_file, "mimetype", "") or "").lower()
    if not mimetype.startswith("image/"):
        raise ValidationError("Only image files are allowed")
    if mimetype == SVG_MIME_TYPE and not allow_svg:
        raise ValidationError("SVG files are not accepted for this upload")


def is_vector_file(image_file) -> bool:
    return (getattr(image_file, "mimetype", "") or "").lower() == SVG_MIME_TYPE


@contextmanager
def staged_file(image_file, staging_folder: str, logger=None) -> Iterator[str]:
    """Persist an uploaded file locally for the duration of the block.

    The staged copy is removed on every exit path.
    """
    original_filename = secure_filename(image_file.filename or "")
    extension = os.path.splitext(original_filename)[1].lower()
    if extension.lstrip(".") not in ALLOWED_IMAGE_EXTENSIONS:
        extension = ""

    os.makedirs(staging_folder, exist_ok=True)
    destination = os.path.join(staging_folder, f"{uuid4().hex}{extension}")

    try:
        try:
            image_file.save(destination)
        except OSError as exc:
            raise UpstreamError(
                "We could not store the uploaded image. Please try again."
            ) from exc
        yield destination
    finally:
        try:
            os.remove(destination)
        except FileNotFoundError:
            pass
        except OSError as exc:
            if logger is not None:
                logger.warning(
                    "Unable to remove staged upload %s: %s", destination, exc
                )


def upload_file(
    store: CloudinaryImageStore,
    image_file,
    folder: str,
    staging_folder: str,
    **options,
) -> Dict[str, str]:
    with staged_file(image_file, staging_folder, store.logger) as path:
        return store.upload(path, folder, **options)
