import json
import os

BASE = "/api/properties"


def _create(client, **payload):
    response = client.post(f"{BASE}/", json={"title": "Thonglor Condo", **payload})
    assert response.status_code == 201
    return response.json()["data"]


def test_create_and_read_property(client):
    created = _create(
        client,
        listings=[{"listingType": "RENT", "price": 32000}],
        amenities={"pool": {"active": True, "iconId": 1}},
    )

    response = client.get(f"{BASE}/{created['id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["property_code"] == "DP00001"
    assert body["data"]["listings"][0]["price"] == 32000.0
    assert body["data"]["amenities"][0]["icon_name"] == "Swimming pool"


def test_unknown_property_is_404(client):
    response = client.get(f"{BASE}/12345")

    assert response.status_code == 404
    assert response.json() == {"success": False, "detail": "Property 12345 not found"}


def test_invalid_payload_is_422(client):
    response = client.post(f"{BASE}/", json={"title": "Bad", "latitude": "north"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["loc"] == "latitude"


def test_malformed_attribute_json_is_422(client):
    response = client.post(f"{BASE}/", json={"title": "Bad", "amenities": "{oops"})

    assert response.status_code == 422


def test_duplicate_code_is_409(client):
    _create(client, propertyCode="DP00100")

    response = client.post(f"{BASE}/", json={"title": "Again", "propertyCode": "DP00100"})

    assert response.status_code == 409


def test_upload_then_create_with_form_data(client, url_path):
    upload = client.post(
        f"{BASE}/uploads/image",
        files={"file": ("living.jpg", b"jpeg-bytes", "image/jpeg")},
    )
    assert upload.status_code == 201
    temp_url = upload.json()["data"]["url"]
    assert "/temp/" in temp_url

    response = client.post(f"{BASE}/", data={
        "title": "Ari Townhome",
        "bedrooms": "3",
        "area": "",
        "images": json.dumps([{"url": temp_url, "title": "Living room"}]),
        "listings": json.dumps([{"listingType": "SALE", "price": "6900000"}]),
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["bedrooms"] == 3
    assert data["area"] == 10.0
    image = data["images"][0]
    assert image["url"] == f"/images/properties/{data['id']}/{temp_url.rsplit('/', 1)[-1]}"
    assert image["title"] == "Living room"
    with open(url_path(image["url"]), "rb") as f:
        assert f.read() == b"jpeg-bytes"


def test_update_with_repeated_form_keys(client):
    created = _create(client, images=[
        {"url": "/images/properties/temp/a.jpg"},
        {"url": "/images/properties/temp/b.jpg"},
        {"url": "/images/properties/temp/c.jpg"},
    ])
    ids = [img["id"] for img in created["images"]]

    response = client.put(f"{BASE}/{created['id']}", data={
        "replaceImages": "true",
        "existingImages": [str(ids[0]), str(ids[2])],
        f"existingImageMetadata[{ids[2]}][title]": "Balcony",
    })

    assert response.status_code == 200
    images = response.json()["data"]["images"]
    assert [img["id"] for img in images] == [ids[0], ids[2]]
    assert images[1]["title"] == "Balcony"


def test_status_patch_controls_public_visibility(client):
    created = _create(client)

    response = client.patch(f"{BASE}/{created['id']}/status", json={"status": "INACTIVE"})
    assert response.status_code == 200
    assert response.json()["data"]["is_published"] is False

    assert client.get(f"{BASE}/{created['id']}").status_code == 404
    assert client.get(f"{BASE}/{created['id']}/admin").status_code == 200

    assert client.patch(f"{BASE}/{created['id']}/status", json={"status": "ARCHIVED"}).status_code == 422


def test_next_code_preview(client):
    _create(client)

    response = client.get(f"{BASE}/next-code")

    assert response.json()["data"] == {"property_code": "DP00002"}


def test_soft_then_hard_delete(client):
    created = _create(client)

    response = client.delete(f"{BASE}/{created['id']}")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "INACTIVE"
    assert client.get(f"{BASE}/{created['id']}/admin").status_code == 404

    response = client.delete(f"{BASE}/{created['id']}/permanent")
    assert response.status_code == 200
    assert client.delete(f"{BASE}/{created['id']}/permanent").status_code == 404


def test_duplicate(client):
    created = _create(client, listings=[{"listingType": "SALE", "price": 1}])

    response = client.post(f"{BASE}/{created['id']}/duplicate", json={"userId": 2})

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["property_code"] == "DP00002"
    assert data["user"]["email"] == "agent@example.com"
    assert len(data["listings"]) == 1


def test_view_deduplicated_by_forwarded_ip(client):
    created = _create(client)
    url = f"{BASE}/{created['id']}/view"

    first = client.post(url, headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"}).json()["data"]
    second = client.post(url, headers={"x-forwarded-for": "203.0.113.7"}).json()["data"]
    third = client.post(url, headers={"x-forwarded-for": "198.51.100.4"}).json()["data"]

    assert (first["counted"], second["counted"], third["counted"]) == (True, False, True)
    assert third["view_count"] == 2


def test_interest(client):
    created = _create(client)

    response = client.post(f"{BASE}/{created['id']}/interest")

    assert response.json()["data"]["interested_count"] == 1
    assert client.post(f"{BASE}/999/interest").status_code == 404


def test_add_and_delete_single_media(client, url_path):
    created = _create(client, images=[{"url": "/images/properties/temp/cover.jpg"}])
    upload = client.post(
        f"{BASE}/uploads/image",
        files={"file": ("bath.jpg", b"bath-bytes", "image/jpeg")},
    ).json()["data"]["url"]

    response = client.post(f"{BASE}/{created['id']}/media/image", data={"url": upload, "sortOrder": "5"})

    assert response.status_code == 201
    asset = response.json()["data"]
    assert asset["sort_order"] == 5
    assert asset["is_featured"] is False
    assert os.path.exists(url_path(asset["url"]))

    response = client.delete(f"{BASE}/media/image/{asset['id']}")

    assert response.status_code == 200
    assert response.json()["data"] == {"id": asset["id"], "kind": "image", "property_id": created["id"]}
    images = client.get(f"{BASE}/{created['id']}/admin").json()["data"]["images"]
    assert [img["id"] for img in images] == [created["images"][0]["id"]]


def test_single_media_not_found(client):
    response = client.post(f"{BASE}/777/media/image", json={"url": "/images/properties/temp/x.jpg"})
    assert response.status_code == 404

    response = client.delete(f"{BASE}/media/floor_plan/777")
    assert response.status_code == 404
    assert response.json() == {"success": False, "detail": "Floor plan with ID 777 not found"}

    assert client.delete(f"{BASE}/media/poster/1").status_code == 422
