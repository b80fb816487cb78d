import os

import pytest
from bson import ObjectId

from conftest import image_upload

SHOWCASES = [
    ("/api/best-sellers", "bestseller-products"),
    ("/api/featured-products", "featured-products"),
]


@pytest.fixture(params=SHOWCASES, ids=["best-sellers", "featured-products"])
def showcase(request):
    return request.param


def create_product(client, auth_headers, url, **extra):
    data = {
        "name": "Moon Glow",
        "description": "Warm white neon",
        "price": "49.99",
        "mainImage": image_upload("main.png"),
        **extra,
    }
    return client.post(
        url, data=data, headers=auth_headers, content_type="multipart/form-data"
    )


def test_create_uploads_every_slot(client, auth_headers, image_store, staging_folder, showcase):
    url, folder = showcase

    response = create_product(
        client, auth_headers, url, image1=image_upload("side.jpg", "image/jpeg")
    )

    product = response.get_json()["product"]
    assert response.status_code == 201
    assert product["price"] == 49.99
    assert product["mainImage"].startswith("https://res.cloudinary.com/")
    assert len(product["additionalImages"]) == 1
    assert {upload["folder"] for upload in image_store.uploads} == {folder}
    assert image_store.uploads[0]["options"]["transformation"] == [
        {"width": 800, "height": 800, "crop": "limit"}
    ]
    assert os.listdir(staging_folder) == []


def test_create_requires_main_image(client, auth_headers, image_store, showcase):
    url, _ = showcase
    response = client.post(
        url,
        data={"name": "Moon Glow", "price": "10", "image1": image_upload()},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert image_store.uploads == []


def test_create_rejects_bad_price(client, auth_headers, image_store, showcase):
    url, _ = showcase
    response = create_product(client, auth_headers, url, price="free")
    assert response.status_code == 400
    assert image_store.uploads == []


def test_mutations_require_token(client, showcase):
    url, _ = showcase
    response = client.post(
        url,
        data={"name": "x", "price": "1", "mainImage": image_upload()},
        content_type="multipart/form-data",
    )
    assert response.status_code == 401
    assert client.delete(f"{url}/{ObjectId()}").status_code == 401


def test_public_listing(client, auth_headers, showcase):
    url, _ = showcase
    created = create_product(client, auth_headers, url).get_json()["product"]

    listing = client.get(url).get_json()["products"]
    detail = client.get(f"{url}/{created['id']}").get_json()["product"]

    assert [item["id"] for item in listing] == [created["id"]]
    assert detail["name"] == "Moon Glow"


def test_replace_main_image_releases_only_that_slot(client, auth_headers, image_store, showcase):
    url, _ = showcase
    created = create_product(
        client, auth_headers, url, image1=image_upload("side.png")
    ).get_json()["product"]
    old_main = created["images"]["mainImage"]["publicId"]
    side = created["images"]["image1"]["publicId"]

    response = client.put(
        f"{url}/{created['id']}",
        data={"mainImage": image_upload("new.png"), "price": "59"},
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    product = response.get_json()["product"]
    assert response.status_code == 200
    assert product["price"] == 59
    assert product["images"]["mainImage"]["publicId"] != old_main
    assert product["images"]["image1"]["publicId"] == side
    assert image_store.destroyed == [old_main]


def test_update_rejects_blank_name(client, auth_headers, showcase):
    url, _ = showcase
    created = create_product(client, auth_headers, url).get_json()["product"]

    response = client.put(
        f"{url}/{created['id']}", json={"name": "  "}, headers=auth_headers
    )
    assert response.status_code == 400


def test_delete_releases_every_slot(client, auth_headers, image_store, showcase):
    url, _ = showcase
    created = create_product(
        client, auth_headers, url, image2=image_upload("b.png")
    ).get_json()["product"]

    response = client.delete(f"{url}/{created['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert sorted(image_store.destroyed) == sorted(
        slot["publicId"] for slot in created["images"].values()
    )
    assert client.get(f"{url}/{created['id']}").status_code == 404


def test_missing_product_is_not_found(client, auth_headers, showcase):
    url, _ = showcase
    response = client.put(
        f"{url}/{ObjectId()}", json={"name": "x"}, headers=auth_headers
    )
    assert response.status_code == 404


def test_update_of_concurrently_deleted_product(client, auth_headers, image_store, db, showcase):
    url, _ = showcase
    created = create_product(client, auth_headers, url).get_json()["product"]
    collection = "best_sellers" if url == "/api/best-sellers" else "featured_products"
    image_store.on_upload = lambda: db[collection].delete_many({})

    response = client.put(
        f"{url}/{created['id']}",
        data={"mainImage": image_upload("new.png")},
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 404
    assert image_store.destroyed == [image_store.uploads[-1]["public_id"]]
