"""
Repositories over the three collections: listings, accounts and inquiries.

Each repository wraps an injected ``Database`` handle and raises the errors
from ``errors`` so the HTTP layer can map them to status codes.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import pydantic
from bson import ObjectId
from bson.errors import InvalidId
from passlib.context import CryptContext
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from config import settings
from database import CONTACT_MESSAGE, PROPERTY, USER, Database, store_operation, stringify_id, utcnow
from errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from schemas import ContactMessage as ContactSchema, Property as PropertySchema, User as UserSchema, id_to_string, normalize_email

log = logging.getLogger(__name__)

REQUIRED_PROPERTY_FIELDS = ("id", "title", "state", "city", "address", "price", "beds", "baths")
UPDATABLE_PROPERTY_FIELDS = ("title", "state", "city", "address", "price", "beds", "baths", "image_desc", "image_url")
REQUIRED_MESSAGE_FIELDS = ("property_id", "property_title", "user_name", "user_email", "message")

INVALID_CREDENTIALS = "Invalid email or password"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _missing(fields: dict[str, Any], required: tuple[str, ...]) -> list[str]:
    return [name for name in required if _is_blank(fields.get(name))]


def _validation_message(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"Invalid {field}: {err['msg']}" if field else err["msg"]


class ListingRepository:
    def __init__(self, db: Database):
        self.db = db

    @property
    def collection(self):
        return self.db[PROPERTY]

    @store_operation
    def list(self) -> list[dict[str, Any]]:
        return self.db.get_documents(PROPERTY, projection={"_id": 0})

    @store_operation
    def get(self, listing_id: str) -> dict[str, Any]:
        doc = self.collection.find_one({"id": id_to_string(listing_id)}, {"_id": 0})
        if not doc:
            raise NotFoundError("Property not found")
        return doc

    @store_operation
    def create(self, fields: dict[str, Any]) -> dict[str, Any]:
        missing = _missing(fields, REQUIRED_PROPERTY_FIELDS)
        if missing:
            log.debug("Rejected property, missing fields: %s", missing)
            raise ValidationError("All required fields must be provided: " + ", ".join(missing))

        data = {k: fields[k] for k in REQUIRED_PROPERTY_FIELDS}
        if not _is_blank(fields.get("image_desc")):
            data["image_desc"] = str(fields["image_desc"]).strip()
        if not _is_blank(fields.get("image_url")):
            data["image_url"] = str(fields["image_url"]).strip()
        for key in ("title", "state", "city", "address"):
            data[key] = str(data[key]).strip()

        try:
            prop = PropertySchema(**data)
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        try:
            self.db.create_document(PROPERTY, prop.model_dump(exclude={"created_at", "updated_at"}))
        except DuplicateKeyError as e:
            raise ConflictError("Property with this ID already exists") from e

        log.info("Created property %s", prop.id)
        return self.get(prop.id)

    @store_operation
    def update(self, listing_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        existing = self.get(listing_id)

        ignored = sorted(k for k in fields if k not in UPDATABLE_PROPERTY_FIELDS)
        if ignored:
            log.debug("Ignoring non-updatable fields for property %s: %s", listing_id, ignored)
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_PROPERTY_FIELDS and v is not None}
        if not changes:
            return existing

        try:
            merged = PropertySchema(**{**existing, **changes})
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        updates = {k: getattr(merged, k) for k in changes}
        updates["updated_at"] = utcnow()
        doc = self.collection.find_one_and_update(
            {"id": existing["id"]},
            {"$set": updates},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Property not found")
        log.info("Updated property %s: %s", listing_id, sorted(changes))
        return doc

    @store_operation
    def delete(self, listing_id: str) -> dict[str, Any]:
        doc = self.collection.find_one_and_delete({"id": id_to_string(listing_id)}, projection={"_id": 0})
        if not doc:
            raise NotFoundError("Property not found")
        log.info("Deleted property %s", listing_id)
        return doc

    @store_operation
    def approve(self, listing_id: str) -> dict[str, Any]:
        doc = self.collection.find_one_and_update(
            {"id": id_to_string(listing_id)},
            {"$set": {"approved": True, "updated_at": utcnow()}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Property not found")
        log.info("Approved property %s", listing_id)
        return doc


class AccountRepository:
    def __init__(self, db: Database, rounds: Optional[int] = None):
        self.db = db
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds or settings.BCRYPT_ROUNDS,
        )

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    @store_operation
    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> dict[str, str]:
        if _is_blank(name) or _is_blank(email) or _is_blank(password):
            raise ValidationError("All fields are required")
        try:
            email = normalize_email(email)
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        if self.db[USER].find_one({"email": email}):
            raise ConflictError("Email already registered")

        try:
            user = UserSchema(name=name.strip(), email=email, password_hash=self.hash_password(password))
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        try:
            self.db.create_document(USER, user)
        except DuplicateKeyError as e:
            raise ConflictError("Email already registered") from e

        log.info("Registered user %s", user.email)
        return {"name": user.name, "email": user.email}

    @store_operation
    def authenticate(self, email: Optional[str], password: Optional[str]) -> dict[str, str]:
        if _is_blank(email) or _is_blank(password):
            raise ValidationError("Email and password are required")

        # same answer for malformed or unknown email and wrong password
        try:
            user = self.db[USER].find_one({"email": normalize_email(email)})
        except pydantic.ValidationError:
            user = None
        if not user or not self.pwd_context.verify(password, user.get("password_hash", "")):
            log.info("Failed login attempt")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return {"name": user["name"], "email": user["email"]}


class InquiryRepository:
    def __init__(self, db: Database):
        self.db = db

    @property
    def collection(self):
        return self.db[CONTACT_MESSAGE]

    @store_operation
    def submit(
        self,
        *,
        property_id: Any = None,
        property_title: Optional[str] = None,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None,
        message: Optional[str] = None,
        user_phone: Optional[str] = None,
    ) -> str:
        fields = {
            "property_id": property_id,
            "property_title": property_title,
            "user_name": user_name,
            "user_email": user_email,
            "message": message,
        }
        missing = _missing(fields, REQUIRED_MESSAGE_FIELDS)
        if missing:
            log.debug("Rejected message, missing fields: %s", missing)
            raise ValidationError("All required fields must be provided: " + ", ".join(missing))

        try:
            msg = ContactSchema(
                **fields,
                user_phone=None if _is_blank(user_phone) else user_phone.strip(),
                status="pending",
                created_at=utcnow(),
            )
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        inquiry_id = self.db.create_document(CONTACT_MESSAGE, msg.model_dump())
        log.info("Stored message %s for property %s", inquiry_id, msg.property_id)
        return inquiry_id

    def _newest_first(self, filter_dict: Optional[dict] = None) -> list[dict[str, Any]]:
        return self.db.get_documents(
            CONTACT_MESSAGE,
            filter_dict,
            sort=[("created_at", -1), ("_id", -1)],
        )

    @store_operation
    def list_grouped(self) -> list[dict[str, Any]]:
        """
        All messages grouped by property.

        Groups appear in the order their first message is met while walking
        the newest-first list; messages keep that order inside each group.
        """
        groups: dict[str, dict[str, Any]] = {}
        for doc in self._newest_first():
            key = doc["property_id"]
            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    "property_id": key,
                    "property_title": doc["property_title"],
                    "messages": [],
                }
            group["messages"].append({
                "id": str(doc["_id"]),
                "user_name": doc["user_name"],
                "user_email": doc["user_email"],
                "user_phone": doc.get("user_phone"),
                "message": doc["message"],
                "status": doc.get("status", "pending"),
                "created_at": doc.get("created_at"),
            })
        return list(groups.values())

    @store_operation
    def list_for_sender(self, email: str) -> list[dict[str, Any]]:
        try:
            email = normalize_email(email)
        except pydantic.ValidationError:
            return []
        return [stringify_id(doc) for doc in self._newest_first({"user_email": email})]

    @store_operation
    def approve(self, inquiry_id: str) -> dict[str, Any]:
        try:
            oid = ObjectId(inquiry_id)
        except (InvalidId, TypeError):
            raise NotFoundError("Request not found")

        doc = self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {"status": "approved", "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Request not found")
        log.info("Approved message %s", inquiry_id)
        return stringify_id(doc)
