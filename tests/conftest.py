import io
import logging
import os

import mongomock
import pytest

from neonflora import create_app
from neonflora.errors import UpstreamError
from neonflora.media import CloudinaryImageStore

TEST_SECRET = "neonflora-test-signing-secret-0123456789"
ADMIN_EMAIL = "admin@neonflora.test"
ADMIN_PASSWORD = "S3cret-pass!"


class RecordingImageStore(CloudinaryImageStore):
    """Stands in for Cloudinary and remembers every call."""

    def __init__(self):
        super().__init__(logging.getLogger("tests.image_store"), configured=True)
        self.uploads = []
        self.destroyed = []
        self.fail_upload = False
        self.fail_destroy = set()
        self.on_upload = None
        self._counter = 0

    def upload(self, path, folder, **options):
        if self.fail_upload:
            raise UpstreamError("Image upload failed: simulated outage")
        self._counter += 1
        public_id = f"{folder}/asset{self._counter}"
        self.uploads.append(
            {
                "path": path,
                "folder": folder,
                "options": options,
                "staged": os.path.exists(path),
                "public_id": public_id,
            }
        )
        if self.on_upload is not None:
            self.on_upload()
        return {"url": cloudinary_url(public_id), "public_id": public_id}

    def destroy(self, public_id):
        self.destroyed.append(public_id)
        if public_id in self.fail_destroy:
            raise UpstreamError("Image removal failed: simulated outage")


def cloudinary_url(public_id, extension="png"):
    return f"https://res.cloudinary.com/demo/image/upload/v1700000000/{public_id}.{extension}"


def image_upload(filename="photo.png", mimetype="image/png", content=b"\x89PNG fake"):
    return (io.BytesIO(content), filename, mimetype)


@pytest.fixture
def db():
    return mongomock.MongoClient()["neonflora_test"]


@pytest.fixture
def image_store():
    return RecordingImageStore()


@pytest.fixture
def staging_folder(tmp_path):
    return str(tmp_path / "staging")


@pytest.fixture
def app(db, image_store, staging_folder):
    return create_app(
        {
            "TESTING": True,
            "JWT_SECRET_KEY": TEST_SECRET,
            "UPLOAD_STAGING_FOLDER": staging_folder,
        },
        db=db,
        image_store=image_store,
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_token(client):
    client.post(
        "/api/admin/signup",
        json={"username": "admin", "email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    response = client.post(
        "/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    return response.get_json()["token"]


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}
