# tests/test_client.py
import pytest

from client import AdminClient, BrowsingClient, ClientError, build_location_index, validate_listing_form


@pytest.fixture
def admin(client):
    return AdminClient(http=client)


@pytest.fixture
def browser(client):
    return BrowsingClient(http=client)


def _add(admin, listing_id, state, city, **extra):
    return admin.add_listing(
        title=extra.pop("title", f"Home {listing_id}"),
        state=state,
        city=city,
        address="1 Main St",
        price=extra.pop("price", 900),
        beds=2,
        baths=1,
        listing_id=listing_id,
        **extra,
    )


def test_location_index_keeps_first_seen_order():
    listings = [
        {"state": "Kerala", "city": "Kochi"},
        {"state": "Goa", "city": "Panaji"},
        {"state": "Kerala", "city": "Munnar"},
        {"state": "Kerala", "city": "Kochi"},
    ]
    assert build_location_index(listings) == {"Kerala": ["Kochi", "Munnar"], "Goa": ["Panaji"]}


def test_browse_and_search(admin, browser):
    _add(admin, "1", "Kerala", "Kochi")
    _add(admin, "2", "Kerala", "Munnar")
    _add(admin, "3", "Goa", "Panaji")
    _add(admin, "4", "Kerala", "Kochi")

    browser.load()

    assert browser.states() == ["Kerala", "Goa"]
    assert browser.cities("Kerala") == ["Kochi", "Munnar"]
    assert browser.cities("Delhi") == []
    assert [p["id"] for p in browser.search("Kerala", "Kochi")] == ["1", "4"]
    assert browser.search("Goa", "Kochi") == []


def test_search_needs_state_and_city(browser):
    with pytest.raises(ValueError):
        browser.search("Kerala", "")


def test_search_loads_on_first_use(admin, browser):
    _add(admin, "1", "Goa", "Panaji")
    assert [p["id"] for p in browser.search("Goa", "Panaji")] == ["1"]


def test_contact_and_shortlist(admin, browser):
    listing = _add(admin, "1", "Goa", "Panaji", title="Beach hut")
    other = _add(admin, "2", "Goa", "Panaji", title="Villa")

    browser.contact(listing, "Ann", "ann@example.com", "Still free?", phone="555-0100")
    browser.contact(other, "Ben", "ben@example.com", "Pets allowed?")
    browser.contact(other, "Ann", "ann@example.com", "Parking?")

    mine = browser.shortlist("ann@example.com")
    assert {m["property_title"] for m in mine} == {"Beach hut", "Villa"}
    assert all(m["status"] == "pending" for m in mine)


def test_admin_approves_listing_and_request(admin, browser):
    listing = _add(admin, "1", "Goa", "Panaji")
    browser.contact(listing, "Ann", "ann@example.com", "Still free?")

    assert admin.approve_listing("1")["approved"] is True

    apps = admin.applications()
    assert len(apps) == 1
    request_id = apps[0]["messages"][0]["id"]
    assert admin.approve_request(request_id)["status"] == "approved"
    assert browser.shortlist("ann@example.com")[0]["status"] == "approved"


def test_admin_edit_and_delete(admin):
    _add(admin, "1", "Goa", "Panaji")

    assert admin.edit_listing("1", price=500)["price"] == 500.0
    admin.delete_listing("1")
    assert admin.listings() == []

    with pytest.raises(ClientError) as exc:
        admin.delete_listing("1")
    assert exc.value.status_code == 404
    assert exc.value.detail == "Property not found"


def test_add_listing_generates_id(admin):
    created = admin.add_listing("Loft", "Goa", "Panaji", "2 Beach Rd", 700, 1, 1)
    assert created["id"].isdigit()


def test_add_listing_uploads_image(admin, tmp_path):
    image = tmp_path / "front.png"
    image.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 8)

    created = _add(admin, "1", "Goa", "Panaji", image_path=str(image))
    assert created["image_url"].startswith("/uploads/")


def test_duplicate_listing_reports_conflict(admin):
    _add(admin, "1", "Goa", "Panaji")
    with pytest.raises(ClientError) as exc:
        _add(admin, "1", "Goa", "Panaji")
    assert exc.value.status_code == 400


@pytest.mark.parametrize("fields,message", [
    ({"title": " ", "state": "Goa", "city": "Panaji", "address": "x", "price": 1, "beds": 0, "baths": 0},
     "Property title is required."),
    ({"title": "t", "state": "Goa", "city": "Panaji", "address": "x", "price": 0, "beds": 0, "baths": 0},
     "Valid price is required."),
    ({"title": "t", "state": "Goa", "city": "Panaji", "address": "x", "price": 5, "beds": -1, "baths": 0},
     "Valid number of bedrooms is required."),
])
def test_listing_form_validation(fields, message):
    with pytest.raises(ValueError) as exc:
        validate_listing_form(fields)
    assert str(exc.value) == message


def test_partial_form_only_checks_given_fields():
    validate_listing_form({"price": "250"}, partial=True)
    with pytest.raises(ValueError):
        validate_listing_form({"baths": "two"}, partial=True)


def test_login_through_client(browser):
    browser.register("Alice", "alice@example.com", "pw123")
    assert browser.login("alice@example.com", "pw123")["name"] == "Alice"
    with pytest.raises(ClientError) as exc:
        browser.login("alice@example.com", "bad")
    assert exc.value.status_code == 401
