import logging
import re
from typing import Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

import affiliates
import discounts
import orders
from auth import create_token, get_current_user, hash_password, require_user, verify_password
from config import LOG_LEVEL, PORT, SEED_ON_STARTUP
from database import create_document, get_db, get_documents, ping, to_public, utcnow
from errors import AuthError, Conflict, NotFound, StoreError, ValidationError
from schemas import (
    ChangePasswordRequest,
    ContactMessage,
    ContactRequest,
    DiscountRequest,
    LoginRequest,
    NewsletterSubscriber,
    OrderRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    SubscribeRequest,
    TestimonialRequest,
    TrackRequest,
    User,
    camelize,
    is_valid_email,
)
from schemas import Testimonial as TestimonialSchema
from seed import seed_database

logger = logging.getLogger(__name__)

app = FastAPI(title="JOESTAR Peptide API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error rendering: every failure is {"message": ...}
@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{field}: {errors[0].get('msg')}" if field else errors[0].get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


@app.on_event("startup")
def _startup_seed():
    if not SEED_ON_STARTUP:
        return
    db = app.dependency_overrides.get(get_db, get_db)()
    seed_database(db)


def public_user(user_doc: dict) -> dict:
    affiliate = user_doc.get("affiliate") or {}
    return {
        "id": str(user_doc["_id"]),
        "name": user_doc["name"],
        "email": user_doc["email"],
        "createdAt": user_doc.get("created_at"),
        "redeemCode": affiliate.get("redeem_code"),
        "referredBy": user_doc.get("referred_by"),
    }


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


@app.get("/")
def root():
    return {"status": "ok", "service": "joestar-peptide-backend"}


@app.get("/api/health")
def health(db: Database = Depends(get_db)):
    return {
        "status": "OK",
        "message": "JOESTAR PEPTIDE API is running",
        "database": "connected" if ping(db) else "error",
    }


# Auth Endpoints
@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not payload.name.strip() or not email or not payload.password:
        raise ValidationError("All fields are required")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    if db["user"].find_one({"email": email}):
        raise Conflict("User with this email already exists")

    referred_by = None
    if payload.referral_code:
        referred_by = payload.referral_code.strip()
        try:
            affiliates.find_affiliate(db, referred_by)
        except NotFound:
            raise ValidationError("Invalid referral code")

    user_id = ObjectId()
    redeem_code = affiliates.available_redeem_code(db, user_id)
    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        referred_by=referred_by,
    )
    user.affiliate.redeem_code = redeem_code
    try:
        create_document(db, "user", {"_id": user_id, **user.model_dump()})
    except DuplicateKeyError:
        raise Conflict("User with this email already exists")
    user_doc = db["user"].find_one({"_id": user_id})
    logger.info("Registered user %s", user_id)
    return {
        "message": "User created successfully",
        "user": public_user(user_doc),
        "token": create_token(user_doc),
    }


@app.post("/api/auth/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not email or not payload.password:
        raise ValidationError("Email and password are required")
    user = db["user"].find_one({"email": email})
    if not user or not verify_password(payload.password, user["password_hash"]):
        logger.info("Failed login for %s", email)
        raise AuthError("Invalid email or password")
    return {
        "message": "Login successful",
        "user": public_user(user),
        "token": create_token(user),
    }


@app.get("/api/auth/profile")
def get_profile(user=Depends(require_user)):
    return {"user": public_user(user)}


@app.put("/api/auth/profile")
def update_profile(payload: ProfileUpdateRequest, user=Depends(require_user), db: Database = Depends(get_db)):
    updates = {}
    if payload.name and payload.name.strip():
        updates["name"] = payload.name.strip()
    email = _normalize_email(payload.email)
    if email and email != user["email"]:
        if not is_valid_email(email):
            raise ValidationError("Invalid email address")
        if db["user"].find_one({"email": email, "_id": {"$ne": user["_id"]}}):
            raise Conflict("Email already in use")
        updates["email"] = email
    if updates:
        updates["updated_at"] = utcnow()
        try:
            user = db["user"].find_one_and_update(
                {"_id": user["_id"]},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise Conflict("Email already in use")
    return {"message": "Profile updated successfully", "user": public_user(user)}


@app.put("/api/auth/change-password")
def change_password(payload: ChangePasswordRequest, user=Depends(require_user), db: Database = Depends(get_db)):
    if not payload.current_password or not payload.new_password:
        raise ValidationError("Current password and new password are required")
    if not verify_password(payload.current_password, user["password_hash"]):
        raise ValidationError("Current password is incorrect")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": utcnow()}},
    )
    return {"message": "Password changed successfully"}


# Affiliate
@app.get("/api/affiliate/dashboard")
def affiliate_dashboard(user=Depends(require_user)):
    return camelize(affiliates.dashboard(user))


@app.post("/api/affiliate/generate-code")
def generate_affiliate_code(user=Depends(require_user), db: Database = Depends(get_db)):
    code = affiliates.ensure_redeem_code(db, user)
    return {"message": "Affiliate code ready", "redeemCode": code}


@app.post("/api/affiliate/track")
def track_affiliate(payload: TrackRequest, user=Depends(get_current_user), db: Database = Depends(get_db)):
    referred_user_id = payload.referred_user_id or (str(user["_id"]) if user else None)
    affiliate = affiliates.track_referral(db, payload.affiliate_code.strip(), payload.order_amount, referred_user_id)
    return {
        "message": "Referral tracked successfully",
        "commission": affiliates.calculate_commission(payload.order_amount),
        "affiliate": {
            "tier": affiliate["tier"],
            "commission": affiliate["commission"],
            "totalEarned": affiliate["total_earned"],
        },
    }


# Discount codes
@app.post("/api/discount/validate")
def validate_discount(payload: DiscountRequest, db: Database = Depends(get_db)):
    result = discounts.validate_code(db, payload.code, payload.amount)
    return {"valid": True, "message": "Discount code is valid", **camelize(result.to_dict())}


@app.post("/api/discount/apply")
def apply_discount(payload: DiscountRequest, db: Database = Depends(get_db)):
    result = discounts.apply_code(db, payload.code, payload.amount)
    return {"message": "Discount code applied", **camelize(result.to_dict())}


# Products
PRODUCT_SORTS = {
    "price-low": [("price", 1)],
    "price-high": [("price", -1)],
    "name": [("name", 1)],
    "newest": [("created_at", -1)],
}


@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    sort: str = "newest",
    db: Database = Depends(get_db),
):
    if sort not in PRODUCT_SORTS:
        raise ValidationError(f"Unknown sort '{sort}'")
    filt = {}
    if category:
        filt["category"] = category
    if featured is not None:
        filt["featured"] = featured
    if search:
        pattern = re.escape(search.strip())
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"tags": search.strip().lower()},
        ]
    return camelize(get_documents(db, "product", filt, sort=PRODUCT_SORTS[sort]))


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    doc = db["product"].find_one({"_id": product_id})
    if not doc:
        raise NotFound("Product not found")
    return camelize(to_public(doc))


# Wishlist
def _wishlist_response(db: Database, user_doc: dict) -> dict:
    ids = user_doc.get("wishlist", [])
    products = get_documents(db, "product", {"_id": {"$in": ids}}) if ids else []
    return {"wishlist": ids, "products": camelize(products)}


@app.get("/api/wishlist")
def get_wishlist(user=Depends(require_user), db: Database = Depends(get_db)):
    return _wishlist_response(db, user)


@app.post("/api/wishlist/{product_id}")
def add_to_wishlist(product_id: str, user=Depends(require_user), db: Database = Depends(get_db)):
    if not db["product"].find_one({"_id": product_id}):
        raise NotFound("Product not found")
    updated = db["user"].find_one_and_update(
        {"_id": user["_id"], "wishlist": {"$ne": product_id}},
        {"$push": {"wishlist": product_id}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise Conflict("Product already in wishlist")
    return {"message": "Added to wishlist", **_wishlist_response(db, updated)}


@app.delete("/api/wishlist/{product_id}")
def remove_from_wishlist(product_id: str, user=Depends(require_user), db: Database = Depends(get_db)):
    updated = db["user"].find_one_and_update(
        {"_id": user["_id"], "wishlist": product_id},
        {"$pull": {"wishlist": product_id}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Product not in wishlist")
    return {"message": "Removed from wishlist", **_wishlist_response(db, updated)}


# Orders
@app.post("/api/orders", status_code=201)
def create_order(payload: OrderRequest, user=Depends(require_user), db: Database = Depends(get_db)):
    order = orders.place_order(db, user, payload)
    return {"message": "Order placed successfully", "order": camelize(order)}


@app.get("/api/orders")
def list_orders(user=Depends(require_user), db: Database = Depends(get_db)):
    return camelize(orders.recent_orders(db, user))


# Testimonials
@app.get("/api/testimonials")
def list_testimonials(db: Database = Depends(get_db)):
    return camelize(get_documents(db, "testimonial", sort=[("created_at", -1)]))


@app.post("/api/testimonials", status_code=201)
def create_testimonial(payload: TestimonialRequest, user=Depends(get_current_user), db: Database = Depends(get_db)):
    if not payload.name.strip() or not payload.text.strip() or not payload.product.strip() or payload.rating is None:
        raise ValidationError("Name, rating, text and product are required")
    if not 1 <= payload.rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    testimonial = TestimonialSchema(
        user_id=str(user["_id"]) if user else None,
        name=payload.name.strip(),
        location=(payload.location or "").strip() or "Indonesia",
        rating=payload.rating,
        text=payload.text.strip(),
        product=payload.product.strip(),
        date=utcnow(),
        verified=user is not None,
    )
    testimonial_id = create_document(db, "testimonial", testimonial)
    return {
        "message": "Testimonial submitted successfully",
        "testimonial": camelize({"id": testimonial_id, **testimonial.model_dump()}),
    }


# E-books
@app.get("/api/ebooks")
def list_ebooks(category: Optional[str] = None, featured: Optional[bool] = None, db: Database = Depends(get_db)):
    filt = {}
    if category:
        filt["category"] = category
    if featured is not None:
        filt["featured"] = featured
    return camelize(get_documents(db, "ebook", filt, sort=[("created_at", -1)]))


@app.get("/api/ebooks/{ebook_id}")
def get_ebook(ebook_id: str, db: Database = Depends(get_db)):
    doc = db["ebook"].find_one({"_id": ebook_id})
    if not doc:
        raise NotFound("E-book not found")
    return camelize(to_public(doc))


@app.post("/api/ebooks/{ebook_id}/download")
def download_ebook(ebook_id: str, db: Database = Depends(get_db)):
    doc = db["ebook"].find_one_and_update(
        {"_id": ebook_id},
        {"$inc": {"downloads": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFound("E-book not found")
    return {
        "message": "Download started",
        "downloadUrl": doc.get("download_url"),
        "downloads": doc["downloads"],
    }


# Newsletter
@app.post("/api/newsletter/subscribe", status_code=201)
def subscribe(payload: SubscribeRequest, db: Database = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not email:
        raise ValidationError("Email is required")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    existing = db["newslettersubscriber"].find_one({"email": email})
    if existing and existing.get("active"):
        raise Conflict("Email already subscribed")
    if existing:
        db["newslettersubscriber"].update_one(
            {"_id": existing["_id"]},
            {"$set": {"active": True, "unsubscribed_at": None, "subscribed_at": utcnow(), "name": payload.name or existing.get("name")}},
        )
        return {"message": "Welcome back! Subscription reactivated"}
    try:
        create_document(db, "newslettersubscriber", NewsletterSubscriber(email=email, name=payload.name, subscribed_at=utcnow()))
    except DuplicateKeyError:
        raise Conflict("Email already subscribed")
    return {"message": "Successfully subscribed to newsletter"}


@app.post("/api/newsletter/unsubscribe")
def unsubscribe(payload: SubscribeRequest, db: Database = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not email:
        raise ValidationError("Email is required")
    result = db["newslettersubscriber"].update_one(
        {"email": email, "active": True},
        {"$set": {"active": False, "unsubscribed_at": utcnow()}},
    )
    if result.matched_count == 0:
        raise NotFound("Subscriber not found")
    return {"message": "Successfully unsubscribed"}


# Contact
@app.post("/api/contact", status_code=201)
def contact(payload: ContactRequest, db: Database = Depends(get_db)):
    if not all(v.strip() for v in (payload.name, payload.email, payload.subject, payload.message)):
        raise ValidationError("All fields are required")
    if not is_valid_email(payload.email.strip()):
        raise ValidationError("Invalid email address")
    message = ContactMessage(
        name=payload.name.strip(),
        email=payload.email.strip(),
        subject=payload.subject.strip(),
        message=payload.message.strip(),
    )
    message_id = create_document(db, "contactmessage", message)
    logger.info("Contact message %s received", message_id)
    return {"message": "Message sent successfully", "id": message_id}


# Blog
@app.get("/api/blog")
def list_blog_posts(
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    limit: int = 10,
    db: Database = Depends(get_db),
):
    if limit < 1:
        raise ValidationError("Limit must be at least 1")
    filt = {}
    if category:
        filt["category"] = category
    if featured is not None:
        filt["featured"] = featured
    return camelize(get_documents(db, "blogpost", filt, sort=[("published_at", -1)], limit=limit))


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
