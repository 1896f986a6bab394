"""
Pydantic request and response models for the Bouquet Bar API.
"""
import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

PHONE_RE = re.compile(r"(\+91|0)?[6-9][0-9]{9}")
POSTAL_CODE_RE = re.compile(r"[1-9][0-9]{5}")

MAX_QUANTITY_PER_ITEM = 99


# ============================================================================
# CATALOG
# ============================================================================

class Product(BaseModel):
    """Flower product shown in the shop."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    category: str
    image: Optional[str] = None
    in_stock: bool
    featured: bool


class Category(BaseModel):
    id: str
    label: str


class DeliveryOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    price: float
    estimated_days: str
    free_above: Optional[float] = None


class PaymentMethodInfo(BaseModel):
    id: str
    title: str
    description: str
    fee: float


class Bank(BaseModel):
    value: str
    label: str


class Coupon(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    description: str
    discount_type: str
    discount_value: float
    min_order_amount: Optional[float] = None
    max_discount: Optional[float] = None
    first_order_only: bool


class Course(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    price: float
    duration: str
    level: str


class EnrollmentRequest(BaseModel):
    """Course enrollment request from the school section."""
    full_name: str = Field(..., min_length=2)
    email: EmailStr
    phone: str
    course_id: int
    batch: str
    questions: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not PHONE_RE.fullmatch(value):
            raise ValueError("Please enter a valid Indian mobile number")
        return value

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "full_name": "Asha Rao",
            "email": "asha@example.com",
            "phone": "9876543210",
            "course_id": 1,
            "batch": "march-15-morning",
            "questions": "Is the material included?"
        }
    })


class ContactMessage(BaseModel):
    """Contact form message model."""
    name: str
    email: EmailStr
    message: str

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Priya Sharma",
            "email": "priya@example.com",
            "message": "Do you deliver to Whitefield on Sundays?"
        }
    })


# ============================================================================
# AUTH
# ============================================================================

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None


class SignUpRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: Optional[str] = None
    email: EmailStr
    phone: str
    password: str
    confirm_password: str

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not PHONE_RE.fullmatch(value):
            raise ValueError("Please enter a valid Indian mobile number")
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    user: UserOut
    token: str
    token_type: str = "bearer"


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=r"^[0-9]{6}$")


class VerifyOtpResponse(BaseModel):
    reset_token: str


class ResetPasswordRequest(BaseModel):
    reset_token: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class MessageResponse(BaseModel):
    status: str = "ok"
    message: str


# ============================================================================
# ADDRESSES
# ============================================================================

class AddressIn(BaseModel):
    full_name: str
    phone: str
    email: Optional[EmailStr] = None
    address_line1: str
    address_line2: Optional[str] = None
    landmark: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str = "India"
    address_type: Literal["Home", "Office", "Other"] = "Home"
    is_default: bool = False

    @field_validator("email", "address_line2", "landmark", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return value

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        value = value.strip()
        if not PHONE_RE.fullmatch(value):
            raise ValueError("Please enter a valid Indian mobile number")
        return value

    @field_validator("address_line1")
    @classmethod
    def check_line1(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 5:
            raise ValueError("Address must be at least 5 characters")
        return value

    @field_validator("city", "state")
    @classmethod
    def check_place(cls, value: str, info) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError(f"{info.field_name.capitalize()} must be at least 2 characters")
        return value

    @field_validator("postal_code")
    @classmethod
    def check_postal_code(cls, value: str) -> str:
        value = value.strip()
        if not POSTAL_CODE_RE.fullmatch(value):
            raise ValueError("Please enter a valid 6-digit postal code")
        return value

    @field_validator("country")
    @classmethod
    def check_country(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Country is required")
        return value


class AddressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    phone: str
    email: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    landmark: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    address_type: str
    is_default: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# CART & CHECKOUT
# ============================================================================

class CartItemRequest(BaseModel):
    """Cart item request model."""
    product_id: int
    quantity: int = Field(1, gt=0, le=MAX_QUANTITY_PER_ITEM)


class CartQuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY_PER_ITEM)


class CartSyncRequest(BaseModel):
    items: List[CartItemRequest]


class CartLine(BaseModel):
    """Cart line with its computed total."""
    product_id: int
    product_name: str
    image: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    in_stock: bool


class CartResponse(BaseModel):
    items: List[CartLine]
    item_count: int
    subtotal: float


class CouponRequest(BaseModel):
    code: str = Field(..., min_length=1)


class AddressSelection(BaseModel):
    address_id: int


class DeliverySelection(BaseModel):
    delivery_option_id: str


class PaymentMethodSelection(BaseModel):
    method: Literal["card", "upi", "netbanking", "cod", "qrcode"]


class AppliedCoupon(BaseModel):
    code: str
    description: str
    discount_amount: float
    message: Optional[str] = None


class CheckoutTotals(BaseModel):
    subtotal: float
    discount_amount: float
    delivery_charge: float
    payment_charge: float
    final_amount: float


class PaymentSummary(BaseModel):
    selected_method: Optional[str] = None
    method_name: str
    details: str
    validated: bool


class CheckoutStateOut(BaseModel):
    items: List[CartLine]
    totals: CheckoutTotals
    applied_coupon: Optional[AppliedCoupon] = None
    shipping_address: Optional[AddressOut] = None
    delivery_option: Optional[DeliveryOption] = None
    payment: PaymentSummary
    current_step: str
    completed_steps: List[str]
    validation_errors: List[str]


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str]


# ============================================================================
# ORDERS
# ============================================================================

class PlaceOrderRequest(BaseModel):
    accept_terms: bool = False
    accept_privacy: bool = False
    confirm_order: bool = False


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[int] = None
    product_name: str
    unit_price: float
    quantity: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_name: str
    email: str
    phone: str
    items: List[OrderItemOut]
    subtotal: float
    discount_amount: float
    delivery_charge: float
    payment_charges: float
    total: float
    coupon_code: Optional[str] = None
    payment_method: str
    payment_status: str
    payment_reference: Optional[str] = None
    delivery_address: str
    delivery_option_id: Optional[str] = None
    status: str
    points_awarded: int
    estimated_delivery_date: Optional[datetime] = None
    created_at: datetime


class StatusHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    status: str
    notes: Optional[str] = None
    created_at: datetime


class ProgressStep(BaseModel):
    step: str
    status: str
    completed: bool


class TrackingOrder(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    status: str
    total: float
    created_at: datetime
    status_updated_at: Optional[datetime] = None
    estimated_delivery_date: Optional[datetime] = None
    points_awarded: int


class TrackingResponse(BaseModel):
    order: TrackingOrder
    status_history: List[StatusHistoryOut]
    progress_steps: List[ProgressStep]
    can_cancel: bool


class StatusUpdateRequest(BaseModel):
    status: Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


# ============================================================================
# LOCATION
# ============================================================================

class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class DetectedAddress(BaseModel):
    address_line1: str
    city: str
    state: str
    postal_code: str
    country: str


# ============================================================================
# LANDING PAGE
# ============================================================================

class NewsletterRequest(BaseModel):
    email: EmailStr


class LandingContactRequest(BaseModel):
    """Callback request from the landing page offer card."""
    name: str = Field(..., min_length=1)
    phone: str
    email: EmailStr

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        value = value.strip()
        if not PHONE_RE.fullmatch(value):
            raise ValueError("Please enter a valid Indian mobile number")
        return value


class BlogPost(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    excerpt: str
    content: str
    category: str
    image: Optional[str] = None
    published_at: datetime


class Testimonial(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    location: Optional[str] = None
    comment: str
    rating: int
    type: str
    image: Optional[str] = None
