"""
Database Schemas for the JOESTAR Peptide store

Each Pydantic model correlates to a MongoDB collection. The collection name is the lowercase of the class name.
- User -> "user"
- Product -> "product"
- DiscountCode -> "discountcode"
- Order -> "order"
- Testimonial -> "testimonial"
- Ebook -> "ebook"
- NewsletterSubscriber -> "newslettersubscriber"
- ContactMessage -> "contactmessage"
- BlogPost -> "blogpost"

Stored documents use snake_case keys. Request bodies use camelCase keys, which is
what the storefront sends.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

Tier = Literal["Bronze", "Silver", "Gold", "Diamond"]


class Referral(BaseModel):
    amount: float = Field(..., ge=0)
    commission: float = Field(..., ge=0)
    referred_user_id: Optional[str] = None
    status: str = "pending"
    date: datetime


class AffiliateProfile(BaseModel):
    redeem_code: Optional[str] = Field(None, description="JOESTAR + last 4 chars of the user id")
    tier: Tier = "Bronze"
    commission: float = Field(0, ge=0, description="Current commission balance")
    total_earned: float = Field(0, ge=0, description="Lifetime commission")
    referrals: List[Referral] = Field(default_factory=list)


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    affiliate: AffiliateProfile = Field(default_factory=AffiliateProfile)
    wishlist: List[str] = Field(default_factory=list, description="Product ids")
    referred_by: Optional[str] = Field(None, description="Affiliate code used at signup")


class Product(BaseModel):
    id: str = Field(..., alias="_id", description="Product slug")
    name: str
    category: str = Field(..., description="peptides | blends | supplies | ...")
    description: str
    price: float = Field(..., ge=0, description="Price in IDR")
    original_price: Optional[float] = Field(None, ge=0)
    dosage: Optional[str] = None
    purity: Optional[str] = None
    lab_tested: bool = True
    in_stock: bool = True
    featured: bool = False
    image: Optional[str] = None
    benefits: List[str] = Field(default_factory=list)
    usage: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class DiscountCode(BaseModel):
    code: str = Field(..., description="Stored upper-case; matched case-insensitively")
    discount: float = Field(..., ge=0)
    type: Literal["percentage", "fixed"]
    max_uses: int = Field(999999, ge=0)
    used_count: int = Field(0, ge=0)
    valid_until: Optional[datetime] = None
    active: bool = True
    description: Optional[str] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class OrderItem(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0, description="Unit price at purchase")


class Order(BaseModel):
    user_id: str
    customer_name: str
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    items: List[OrderItem]
    subtotal: float
    discount_code: Optional[str] = None
    discount_amount: float = 0
    total: float
    status: str = "pending"


class Testimonial(BaseModel):
    user_id: Optional[str] = None
    name: str
    location: str = "Indonesia"
    rating: int = Field(..., ge=1, le=5)
    text: str
    product: str
    date: datetime
    verified: bool = True


class Ebook(BaseModel):
    id: str = Field(..., alias="_id")
    title: str
    description: str
    pages: Optional[int] = None
    language: str = "Indonesia"
    download_url: Optional[str] = None
    preview_url: Optional[str] = None
    thumbnail: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    downloads: int = 0
    featured: bool = False

    model_config = ConfigDict(populate_by_name=True)


class NewsletterSubscriber(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    subscribed_at: datetime
    active: bool = True
    unsubscribed_at: Optional[datetime] = None


class ContactMessage(BaseModel):
    name: str
    email: EmailStr
    subject: str
    message: str


class BlogPost(BaseModel):
    id: str = Field(..., alias="_id")
    title: str
    excerpt: str
    content: str
    category: str
    author: str = "JOESTAR Team"
    featured: bool = False
    published_at: datetime
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


# Lightweight request models
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    name: str = ""
    email: str = ""
    password: str = ""
    referral_code: Optional[str] = None


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = ""
    new_password: str = ""


class DiscountRequest(CamelModel):
    code: str = ""
    amount: Optional[float] = None


class TrackRequest(CamelModel):
    affiliate_code: str = ""
    order_amount: Optional[float] = None
    referred_user_id: Optional[str] = None


class OrderItemRequest(CamelModel):
    product_id: str
    quantity: int = 1


class OrderRequest(CamelModel):
    items: List[OrderItemRequest] = Field(default_factory=list)
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    discount_code: Optional[str] = None
    total: Optional[float] = None


class TestimonialRequest(CamelModel):
    name: str = ""
    location: Optional[str] = None
    rating: Optional[int] = None
    text: str = ""
    product: str = ""


class SubscribeRequest(CamelModel):
    email: str = ""
    name: Optional[str] = None


class ContactRequest(CamelModel):
    name: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""


def camelize(value: Any) -> Any:
    """Recursively rewrite dict keys to camelCase for API responses."""
    if isinstance(value, dict):
        return {to_camel(k): camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [camelize(v) for v in value]
    return value


_email_adapter = TypeAdapter(EmailStr)


def is_valid_email(value: str) -> bool:
    try:
        _email_adapter.validate_python(value)
    except ValueError:
        return False
    return True
