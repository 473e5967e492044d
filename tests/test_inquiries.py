# tests/test_inquiries.py
import pytest

from errors import NotFoundError, ValidationError


def _submit(inquiries, property_id, title, name, **extra):
    return inquiries.submit(
        property_id=property_id,
        property_title=title,
        user_name=name,
        user_email=extra.pop("user_email", f"{name.lower()}@example.com"),
        message=extra.pop("message", "Is it still available?"),
        **extra,
    )


def test_grouping_by_property(inquiries):
    _submit(inquiries, "A", "Flat A", "Ann")
    _submit(inquiries, "A", "Flat A", "Ben")
    _submit(inquiries, "B", "House B", "Cat")
    _submit(inquiries, "A", "Flat A", "Dan")

    groups = inquiries.list_grouped()

    assert len(groups) == 2
    by_id = {g["property_id"]: g for g in groups}
    assert len(by_id["A"]["messages"]) == 3
    assert len(by_id["B"]["messages"]) == 1
    assert by_id["B"]["property_title"] == "House B"
    for group in groups:
        for msg in group["messages"]:
            assert msg["status"] == "pending"
            assert "property_id" not in msg
            assert "property_title" not in msg


def test_groups_follow_newest_first_order(inquiries):
    _submit(inquiries, "A", "Flat A", "Ann")
    _submit(inquiries, "B", "House B", "Ben")
    _submit(inquiries, "A", "Flat A", "Cat")

    groups = inquiries.list_grouped()

    # newest message is for A, so A's group comes first
    assert [g["property_id"] for g in groups] == ["A", "B"]
    assert [m["user_name"] for m in groups[0]["messages"]] == ["Cat", "Ann"]


def test_numeric_property_id_groups_as_string(inquiries):
    _submit(inquiries, 5, "Five", "Ann")
    _submit(inquiries, "5", "Five", "Ben")

    groups = inquiries.list_grouped()
    assert len(groups) == 1
    assert groups[0]["property_id"] == "5"


def test_optional_phone(inquiries):
    _submit(inquiries, "A", "Flat A", "Ann", user_phone="555-0100")
    _submit(inquiries, "A", "Flat A", "Ben", user_phone="")

    phones = {m["user_name"]: m["user_phone"] for m in inquiries.list_grouped()[0]["messages"]}
    assert phones == {"Ann": "555-0100", "Ben": None}


@pytest.mark.parametrize("field", ["property_id", "property_title", "user_name", "user_email", "message"])
def test_submit_requires_fields(inquiries, field):
    fields = {
        "property_id": "A",
        "property_title": "Flat A",
        "user_name": "Ann",
        "user_email": "ann@example.com",
        "message": "Hello",
    }
    fields[field] = ""

    with pytest.raises(ValidationError):
        inquiries.submit(**fields)
    assert inquiries.list_grouped() == []


def test_approve_is_idempotent(inquiries):
    inquiry_id = _submit(inquiries, "A", "Flat A", "Ann")

    assert inquiries.approve(inquiry_id)["status"] == "approved"
    again = inquiries.approve(inquiry_id)
    assert again["status"] == "approved"
    assert again["id"] == inquiry_id

    msg = inquiries.list_grouped()[0]["messages"][0]
    assert msg["status"] == "approved"


@pytest.mark.parametrize("bad_id", ["not-an-object-id", "64b7f0c2a1b2c3d4e5f60718"])
def test_approve_missing_request(inquiries, bad_id):
    with pytest.raises(NotFoundError) as exc:
        inquiries.approve(bad_id)
    assert exc.value.message == "Request not found"


def test_list_for_sender(inquiries):
    _submit(inquiries, "A", "Flat A", "Ann")
    _submit(inquiries, "B", "House B", "Ben")
    _submit(inquiries, "B", "House B", "Ann")

    mine = inquiries.list_for_sender("ann@example.com")

    assert [m["property_id"] for m in mine] == ["B", "A"]
    assert all(isinstance(m["id"], str) for m in mine)


def test_list_for_sender_matches_stored_email_form(inquiries):
    _submit(inquiries, "A", "Flat A", "Ann", user_email="Ann@Example.COM")

    assert [m["property_id"] for m in inquiries.list_for_sender("Ann@Example.COM")] == ["A"]
    assert inquiries.list_for_sender("not-an-email") == []
