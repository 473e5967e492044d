import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.datastructures import UploadFile as StarletteUploadFile

from config import settings
from database import Database
from errors import RentalError, UnavailableError, ValidationError
from repositories import UPDATABLE_PROPERTY_FIELDS, AccountRepository, InquiryRepository, ListingRepository
from uploads import UploadStore

log = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# Request models

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class MessageRequest(BaseModel):
    property_id: Optional[Union[int, str]] = None
    property_title: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = None
    message: Optional[str] = None


# Dependencies

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_uploads(request: Request) -> UploadStore:
    return request.app.state.uploads


def get_listings(db: Database = Depends(get_db)) -> ListingRepository:
    return ListingRepository(db)


def get_accounts(db: Database = Depends(get_db)) -> AccountRepository:
    return AccountRepository(db)


def get_inquiries(db: Database = Depends(get_db)) -> InquiryRepository:
    return InquiryRepository(db)


async def read_listing_fields(request: Request) -> dict[str, Any]:
    """Listing fields from a JSON object or a multipart/urlencoded form.

    Unknown keys are dropped. A form may also carry an ``image`` upload.
    """
    known = ("id",) + UPDATABLE_PROPERTY_FIELDS
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as e:
            raise ValidationError("Request body is not valid JSON") from e
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return {k: body[k] for k in known if k in body}

    form = await request.form()
    fields: dict[str, Any] = {k: form[k] for k in known if isinstance(form.get(k), str)}
    image = form.get("image")
    if isinstance(image, StarletteUploadFile) and image.filename:
        fields["image"] = image
    return fields


router = APIRouter()


# Auth

@router.post("/register", status_code=201)
def register(payload: RegisterRequest, accounts: AccountRepository = Depends(get_accounts)):
    accounts.register(payload.name, payload.email, payload.password)
    return {"message": "User registered successfully"}


@router.post("/login")
def login(payload: LoginRequest, accounts: AccountRepository = Depends(get_accounts)):
    user = accounts.authenticate(payload.email, payload.password)
    return {"message": "Login successful", **user}


# Property CRUD

@router.get("/properties")
def list_properties(listings: ListingRepository = Depends(get_listings)):
    return listings.list()


@router.get("/properties/{prop_id}")
def get_property(prop_id: str, listings: ListingRepository = Depends(get_listings)):
    return listings.get(prop_id)


@router.post("/properties", status_code=201)
def create_property(
    fields: dict = Depends(read_listing_fields),
    listings: ListingRepository = Depends(get_listings),
    uploads: UploadStore = Depends(get_uploads),
):
    image = fields.pop("image", None)
    if image is not None:
        fields["image_url"] = uploads.save(image)
    return listings.create(fields)


@router.put("/properties/{prop_id}")
def update_property(
    prop_id: str,
    fields: dict = Depends(read_listing_fields),
    listings: ListingRepository = Depends(get_listings),
    uploads: UploadStore = Depends(get_uploads),
):
    # fail before saving an image for a listing that does not exist
    listings.get(prop_id)
    image = fields.pop("image", None)
    if image is None and not any(fields.get(k) is not None for k in UPDATABLE_PROPERTY_FIELDS):
        raise ValidationError("No updatable fields provided: " + ", ".join(UPDATABLE_PROPERTY_FIELDS))
    if image is not None:
        fields["image_url"] = uploads.save(image)
    return listings.update(prop_id, fields)


@router.delete("/properties/{prop_id}")
def delete_property(prop_id: str, listings: ListingRepository = Depends(get_listings)):
    listings.delete(prop_id)
    return {"message": "Property deleted"}


@router.put("/properties/{prop_id}/approve")
def approve_property(prop_id: str, listings: ListingRepository = Depends(get_listings)):
    return listings.approve(prop_id)


# Contact landlord messages

@router.post("/messages", status_code=201)
def send_message(payload: MessageRequest, inquiries: InquiryRepository = Depends(get_inquiries)):
    inquiries.submit(**payload.model_dump())
    return {"message": "Message sent successfully"}


@router.get("/messages")
def list_messages(email: Optional[str] = None, inquiries: InquiryRepository = Depends(get_inquiries)):
    if email:
        return inquiries.list_for_sender(email)
    return inquiries.list_grouped()


@router.put("/messages/{msg_id}/approve")
def approve_message(msg_id: str, inquiries: InquiryRepository = Depends(get_inquiries)):
    return inquiries.approve(msg_id)


# Error handlers

async def rental_error_handler(request: Request, exc: RentalError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        log.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "Invalid request"
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        detail = f"Invalid {loc}: {errors[0]['msg']}" if loc else errors[0]["msg"]
    return JSONResponse(status_code=400, content={"detail": detail})


def create_app(database: Optional[Database] = None, upload_dir: Optional[str] = None) -> FastAPI:
    db = database or Database(settings.DATABASE_URL, settings.DATABASE_NAME)
    uploads = UploadStore(upload_dir or os.path.join(os.getcwd(), settings.UPLOAD_DIR), settings.MAX_UPLOAD_BYTES)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        try:
            db.connect()
        except UnavailableError:
            # keep serving; store-backed routes answer 500 until restart
            log.error("Starting without a database connection")
        try:
            yield
        finally:
            db.close()

    app = FastAPI(title="House Rental API", lifespan=lifespan)
    app.state.db = db
    app.state.uploads = uploads

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Static hosting for uploaded images
    app.mount("/uploads", StaticFiles(directory=uploads.directory), name="uploads")

    app.add_exception_handler(RentalError, rental_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/")
    def root():
        return {"message": "House Rental API running"}

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "message": "Server is running",
            "database": "connected" if db.connected else "unavailable",
        }

    app.include_router(router, prefix=settings.API_PREFIX)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
