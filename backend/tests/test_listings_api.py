import os

import pytest

from roomfood.core.settings import get_settings


@pytest.mark.asyncio
async def test_create_listing_parses_form_fields(client, register, create_listing):
    provider, headers = await register("host@example.com", role="provider", name="Host")
    listing = await create_listing(headers, amenities="WiFi, AC", tags="veg, ,quiet")

    assert listing["title"] == "Room X"
    assert listing["type"] == "room"
    assert listing["amenities"] == ["WiFi", "AC"]
    assert listing["tags"] == ["veg", "quiet"]
    assert listing["price"] == 5000
    assert listing["owner"] == provider["_id"]
    assert listing["hostName"] == "Host"
    assert listing["published"] is True
    assert listing["averageRating"] is None
    assert listing["reviewCount"] is None


@pytest.mark.asyncio
async def test_create_listing_requires_title(client, register):
    _, headers = await register("host@example.com", role="provider")
    response = await client.post("/api/listings", data={"title": "  "}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Title is required"


@pytest.mark.asyncio
async def test_category_is_accepted_as_type(client, register):
    _, headers = await register("cook@example.com", role="provider")
    response = await client.post("/api/listings", data={"title": "Thali", "category": "food"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["type"] == "food"


@pytest.mark.asyncio
async def test_plain_user_cannot_create_listing(client, register):
    _, headers = await register("guest@example.com")
    response = await client.post("/api/listings", data={"title": "Nope"}, headers=headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_image_upload_is_stored_and_linked(client, register):
    _, headers = await register("host@example.com", role="provider")
    response = await client.post(
        "/api/listings",
        data={"title": "Sunny room"},
        files=[("images", ("my room.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg"))],
        headers=headers,
    )
    assert response.status_code == 200
    listing = response.json()
    assert len(listing["images"]) == 1
    url = listing["images"][0]
    assert url.startswith("http://testserver/uploads/")
    assert url.endswith("-my_room.jpg")
    assert listing["imageUrl"] == url

    filename = url.rsplit("/", 1)[1]
    assert os.path.exists(os.path.join(get_settings().UPLOAD_DIR, filename))


@pytest.mark.asyncio
async def test_too_many_images_rejected(client, register):
    _, headers = await register("host@example.com", role="provider")
    files = [("images", (f"p{i}.jpg", b"x", "image/jpeg")) for i in range(7)]
    response = await client.post("/api/listings", data={"title": "Many"}, files=files, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_listing_and_missing(client, register, create_listing):
    _, headers = await register("host@example.com", role="provider")
    listing = await create_listing(headers)

    response = await client.get(f"/api/listings/{listing['_id']}")
    assert response.status_code == 200
    assert response.json()["_id"] == listing["_id"]

    response = await client.get("/api/listings/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_browse_filters_by_type_and_published(client, register, create_listing):
    _, headers = await register("host@example.com", role="provider")
    await create_listing(headers, title="Room A")
    await create_listing(headers, title="Food B", type="food")
    await create_listing(headers, title="Hidden C", published="false")

    titles = {l["title"] for l in (await client.get("/api/listings")).json()}
    assert titles == {"Room A", "Food B"}

    food = (await client.get("/api/listings", params={"type": "food"})).json()
    assert [l["title"] for l in food] == ["Food B"]

    hidden = (await client.get("/api/listings", params={"published": "false"})).json()
    assert [l["title"] for l in hidden] == ["Hidden C"]


@pytest.mark.asyncio
async def test_browse_near_me(client, register, create_listing):
    _, headers = await register("host@example.com", role="provider")
    await create_listing(headers, title="Far", lat="13.5", lng="77.6")
    await create_listing(headers, title="Near", lat="12.91", lng="77.6")
    await create_listing(headers, title="Mid", lat="13.0", lng="77.6")
    await create_listing(headers, title="Nowhere", lat="", lng="")

    response = await client.get("/api/listings", params={"lat": "12.9", "lng": "77.6"})
    results = response.json()
    assert [l["title"] for l in results] == ["Near", "Mid"]
    distances = [l["distance"] for l in results]
    assert distances == sorted(distances)
    assert all(d <= 20 for d in distances)

    wide = (await client.get("/api/listings", params={"lat": "12.9", "lng": "77.6", "radius": "100"})).json()
    assert [l["title"] for l in wide] == ["Near", "Mid", "Far"]


@pytest.mark.asyncio
async def test_browse_ignores_unparseable_point(client, register, create_listing):
    _, headers = await register("host@example.com", role="provider")
    await create_listing(headers, title="Anywhere", lat="", lng="")

    results = (await client.get("/api/listings", params={"lat": "abc", "lng": "77.6"})).json()
    assert [l["title"] for l in results] == ["Anywhere"]
    assert results[0]["distance"] is None


@pytest.mark.asyncio
async def test_provider_listings_only_own(client, register, create_listing):
    _, alice = await register("alice@example.com", role="provider")
    _, bob = await register("bob@example.com", role="provider")
    await create_listing(alice, title="Alice room")
    await create_listing(bob, title="Bob room")

    response = await client.get("/api/listings/provider", headers=alice)
    assert [l["title"] for l in response.json()] == ["Alice room"]


@pytest.mark.asyncio
async def test_update_listing_owner_only_and_appends_images(client, register, create_listing):
    _, owner = await register("owner@example.com", role="provider")
    _, other = await register("other@example.com", role="provider")
    listing = await create_listing(owner)

    response = await client.put(f"/api/listings/{listing['_id']}", data={"title": "Stolen"}, headers=other)
    assert response.status_code == 403

    response = await client.put(
        f"/api/listings/{listing['_id']}",
        data={"price": "6000", "amenities": "WiFi"},
        files=[("images", ("a.jpg", b"a", "image/jpeg"))],
        headers=owner,
    )
    assert response.status_code == 200
    first = response.json()
    assert first["price"] == 6000
    assert first["amenities"] == ["WiFi"]
    assert first["title"] == "Room X"

    response = await client.put(
        f"/api/listings/{listing['_id']}",
        files=[("images", ("b.jpg", b"b", "image/jpeg"))],
        headers=owner,
    )
    second = response.json()
    assert len(second["images"]) == 2
    assert second["images"][0] == first["images"][0]
    assert second["imageUrl"] == first["images"][0]


@pytest.mark.asyncio
async def test_delete_listing(client, register, create_listing):
    _, owner = await register("owner@example.com", role="provider")
    _, other = await register("other@example.com", role="provider")
    listing = await create_listing(owner)

    response = await client.delete(f"/api/listings/{listing['_id']}", headers=other)
    assert response.status_code == 403

    response = await client.delete(f"/api/listings/{listing['_id']}", headers=owner)
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = await client.get(f"/api/listings/{listing['_id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_same_named_uploads_get_distinct_files(client, register):
    _, headers = await register("host@example.com", role="provider")
    files = [
        ("images", ("image.jpg", b"first", "image/jpeg")),
        ("images", ("image.jpg", b"second", "image/jpeg")),
    ]
    response = await client.post("/api/listings", data={"title": "Twins"}, files=files, headers=headers)
    assert response.status_code == 200
    urls = response.json()["images"]
    assert len(set(urls)) == 2

    upload_dir = get_settings().UPLOAD_DIR
    contents = set()
    for url in urls:
        with open(os.path.join(upload_dir, url.rsplit("/", 1)[1]), "rb") as fh:
            contents.add(fh.read())
    assert contents == {b"first", b"second"}


@pytest.mark.asyncio
async def test_browse_unknown_type_is_rejected(client):
    response = await client.get("/api/listings", params={"type": "castle"})
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_listing_type"
