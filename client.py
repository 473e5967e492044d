"""
HTTP helpers for the two sides of the frontend: browsing listings and
administering them.

Both wrap an ``httpx.Client`` whose base URL points at the API prefix, e.g.
``http://localhost:8000/api``. Any ``httpx.Client`` works, FastAPI's
``TestClient`` included.
"""
from __future__ import annotations

import os
import time
from typing import Any, Optional

import httpx

from config import settings


class ClientError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def build_location_index(listings: list[dict[str, Any]]) -> dict[str, list[str]]:
    """State -> distinct cities, both in first-seen order."""
    locations: dict[str, list[str]] = {}
    for listing in listings:
        cities = locations.setdefault(listing.get("state"), [])
        if listing.get("city") not in cities:
            cities.append(listing.get("city"))
    return locations


def validate_listing_form(fields: dict[str, Any], partial: bool = False) -> None:
    """Raise ``ValueError`` with the first problem found in a listing form."""
    for key, label in (("title", "Property title"), ("state", "State"), ("city", "City"), ("address", "Address")):
        if partial and key not in fields:
            continue
        if not str(fields.get(key) or "").strip():
            raise ValueError(f"{label} is required.")

    checks = (
        ("price", float, lambda v: v > 0, "Valid price is required."),
        ("beds", int, lambda v: v >= 0, "Valid number of bedrooms is required."),
        ("baths", int, lambda v: v >= 0, "Valid number of bathrooms is required."),
    )
    for key, kind, ok, message in checks:
        if partial and key not in fields:
            continue
        try:
            value = kind(fields.get(key))
        except (TypeError, ValueError):
            raise ValueError(message)
        if not ok(value):
            raise ValueError(message)


class _ApiClient:
    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None):
        self.http = http or httpx.Client(base_url=base_url or settings.API_BASE_URL, timeout=10.0)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.http.request(method, path, **kwargs)
        if resp.is_error:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise ClientError(resp.status_code, str(detail))
        return resp.json()

    def messages(self) -> list[dict[str, Any]]:
        return self._request("GET", "messages")


class BrowsingClient(_ApiClient):
    """Fetches every listing once, then filters locally by state and city."""

    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None):
        super().__init__(base_url, http)
        self.listings: Optional[list[dict[str, Any]]] = None
        self.locations: dict[str, list[str]] = {}

    def load(self) -> list[dict[str, Any]]:
        self.listings = self._request("GET", "properties")
        self.locations = build_location_index(self.listings)
        return self.listings

    def states(self) -> list[str]:
        return list(self.locations)

    def cities(self, state: str) -> list[str]:
        return list(self.locations.get(state, []))

    def search(self, state: Optional[str], city: Optional[str]) -> list[dict[str, Any]]:
        if not state or not city:
            raise ValueError("Please select both State and City.")
        if self.listings is None:
            self.load()
        return [p for p in self.listings if p.get("state") == state and p.get("city") == city]

    def get(self, listing_id: str) -> dict[str, Any]:
        return self._request("GET", f"properties/{listing_id}")

    def contact(
        self,
        listing: dict[str, Any],
        name: str,
        email: str,
        message: str,
        phone: Optional[str] = None,
    ) -> dict[str, Any]:
        return self._request("POST", "messages", json={
            "property_id": listing["id"],
            "property_title": listing["title"],
            "user_name": name,
            "user_email": email,
            "user_phone": phone,
            "message": message,
        })

    def shortlist(self, email: str) -> list[dict[str, Any]]:
        """Requests sent by ``email``, each tagged with its property."""
        return self._request("GET", "messages", params={"email": email})

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        return self._request("POST", "register", json={"name": name, "email": email, "password": password})

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._request("POST", "login", json={"email": email, "password": password})


class AdminClient(_ApiClient):
    def listings(self) -> list[dict[str, Any]]:
        return self._request("GET", "properties")

    def add_listing(
        self,
        title: str,
        state: str,
        city: str,
        address: str,
        price: Any,
        beds: Any,
        baths: Any,
        image_desc: str = "",
        listing_id: Optional[str] = None,
        image_url: Optional[str] = None,
        image_path: Optional[str] = None,
    ) -> dict[str, Any]:
        data = {
            "id": listing_id or str(int(time.time() * 1000)),
            "title": title.strip(),
            "state": state,
            "city": city,
            "address": address.strip(),
            "price": price,
            "beds": beds,
            "baths": baths,
            "image_desc": image_desc.strip(),
        }
        validate_listing_form(data)
        if image_url:
            data["image_url"] = image_url

        if image_path is None:
            return self._request("POST", "properties", data=data)
        with open(image_path, "rb") as f:
            files = {"image": (os.path.basename(image_path), f, _guess_image_type(image_path))}
            return self._request("POST", "properties", data=data, files=files)

    def edit_listing(self, listing_id: str, **fields: Any) -> dict[str, Any]:
        validate_listing_form(fields, partial=True)
        return self._request("PUT", f"properties/{listing_id}", data=fields)

    def delete_listing(self, listing_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"properties/{listing_id}")

    def approve_listing(self, listing_id: str) -> dict[str, Any]:
        return self._request("PUT", f"properties/{listing_id}/approve")

    def applications(self) -> list[dict[str, Any]]:
        return self.messages()

    def approve_request(self, inquiry_id: str) -> dict[str, Any]:
        return self._request("PUT", f"messages/{inquiry_id}/approve")


def _guess_image_type(path: str) -> str:
    return "image/png" if path.lower().endswith(".png") else "image/jpeg"
