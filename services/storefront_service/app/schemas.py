"""Pydantic schemas for the storefront service."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt, field_validator

OrderStatus = Literal["requested_whatsapp", "contacted", "completed", "cancelled"]
CertificateStatus = Literal["verified", "revoked", "pending"]
ServiceRequestStatus = Literal["pending", "contacted", "resolved"]

# Keeps every stored amount, and the order totals derived from them, inside SQLite's 64-bit INTEGER.
MAX_PRICE_NAIRA = 1_000_000_000_000
MAX_CART_QUANTITY = 10_000


def _strip_required(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        msg = "value must be non-empty"
        raise ValueError(msg)
    return cleaned


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


# Catalog -----------------------------------------------------------------------------------


class GadgetBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=64)
    description: str | None = None
    image_url: str | None = Field(default=None, max_length=1024, alias="imageUrl")
    price: NonNegativeInt = Field(le=MAX_PRICE_NAIRA)
    in_stock: bool = Field(default=True, alias="inStock")
    swap_available: bool = Field(default=False, alias="swapAvailable")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name", "category")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)


class GadgetCreate(GadgetBase):
    pass


class GadgetUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=64)
    description: str | None = None
    image_url: str | None = Field(default=None, max_length=1024, alias="imageUrl")
    price: NonNegativeInt | None = Field(default=None, le=MAX_PRICE_NAIRA)
    in_stock: bool | None = Field(default=None, alias="inStock")
    swap_available: bool | None = Field(default=None, alias="swapAvailable")

    model_config = ConfigDict(populate_by_name=True)


class GadgetResponse(GadgetBase):
    id: PositiveInt
    formatted_price: str = Field(alias="formattedPrice")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class GadgetListResponse(BaseModel):
    items: list[GadgetResponse]
    total: int


class WhatsAppLinkResponse(BaseModel):
    message: str
    url: str


# Cart and checkout -------------------------------------------------------------------------


class NoticeResponse(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"]

    model_config = ConfigDict(from_attributes=True)


class CartGadgetResponse(BaseModel):
    id: PositiveInt
    name: str
    price: int
    image_url: str | None = Field(default=None, alias="imageUrl")
    swap_available: bool = Field(alias="swapAvailable")
    in_stock: bool = Field(alias="inStock")

    model_config = ConfigDict(populate_by_name=True)


class CartLineResponse(BaseModel):
    id: PositiveInt
    gadget_id: PositiveInt = Field(alias="gadgetId")
    quantity: PositiveInt
    gadget: CartGadgetResponse
    subtotal: int
    formatted_subtotal: str = Field(alias="formattedSubtotal")

    model_config = ConfigDict(populate_by_name=True)


class CartResponse(BaseModel):
    user_id: str | None = Field(alias="userId")
    items: list[CartLineResponse]
    item_count: int = Field(alias="itemCount")
    total_price: int = Field(alias="totalPrice")
    formatted_total: str = Field(alias="formattedTotal")
    notices: list[NoticeResponse] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class CartItemAdd(BaseModel):
    gadget_id: PositiveInt = Field(alias="gadgetId")

    model_config = ConfigDict(populate_by_name=True)


class CartItemQuantity(BaseModel):
    # Values below 1 are accepted here and ignored by the cart.
    quantity: int = Field(le=MAX_CART_QUANTITY)


class OrderIntentResponse(BaseModel):
    item_count: int = Field(alias="itemCount")
    total_price: int = Field(alias="totalPrice")
    formatted_total: str = Field(alias="formattedTotal")
    message: str | None = None
    whatsapp_url: str | None = Field(default=None, alias="whatsappUrl")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutResponse(BaseModel):
    status: Literal["completed", "sign_in_required", "empty_cart", "failed"]
    order_id: PositiveInt | None = Field(default=None, alias="orderId")
    message: str | None = None
    whatsapp_url: str | None = Field(default=None, alias="whatsappUrl")
    redirect: str | None = None
    notices: list[NoticeResponse] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


# Orders ------------------------------------------------------------------------------------


class OrderItemResponse(BaseModel):
    id: PositiveInt
    gadget_id: int | None = Field(default=None, alias="gadgetId")
    gadget_name: str = Field(alias="gadgetName")
    gadget_price: int = Field(alias="gadgetPrice")
    quantity: PositiveInt
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class OrderResponse(BaseModel):
    id: PositiveInt
    user_id: str = Field(alias="userId")
    gadget_id: int | None = Field(default=None, alias="gadgetId")
    customer_name: str = Field(alias="customerName")
    customer_email: str = Field(alias="customerEmail")
    customer_phone: str = Field(alias="customerPhone")
    delivery_address: str = Field(alias="deliveryAddress")
    total_price: int = Field(alias="totalPrice")
    formatted_total: str = Field(alias="formattedTotal")
    status: str
    items: list[OrderItemResponse]
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


# Back office -------------------------------------------------------------------------------


class FeedEntryResponse(BaseModel):
    id: str
    type: str
    message: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class DashboardStatsResponse(BaseModel):
    total_orders: int = Field(alias="totalOrders")
    pending_orders: int = Field(alias="pendingOrders")
    revenue: int
    formatted_revenue: str = Field(alias="formattedRevenue")
    gadgets: int
    gadgets_in_stock: int = Field(alias="gadgetsInStock")
    service_requests: int = Field(alias="serviceRequests")
    pending_service_requests: int = Field(alias="pendingServiceRequests")
    enrollments: int
    courses: int
    certificates: int

    model_config = ConfigDict(populate_by_name=True)


# Courses and enrollments -------------------------------------------------------------------


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=64)
    description: str = Field(min_length=1)
    duration: str | None = Field(default=None, max_length=64)
    level: str | None = Field(default=None, max_length=32)
    price: NonNegativeInt | None = Field(default=None, le=MAX_PRICE_NAIRA)
    image_url: str | None = Field(default=None, max_length=1024, alias="imageUrl")
    certificate_available: bool = Field(default=True, alias="certificateAvailable")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("title", "category", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)


class CourseResponse(BaseModel):
    id: PositiveInt
    title: str
    category: str
    description: str
    duration: str | None = None
    level: str | None = None
    price: int | None = None
    formatted_price: str = Field(alias="formattedPrice")
    image_url: str | None = Field(default=None, alias="imageUrl")
    certificate_available: bool = Field(alias="certificateAvailable")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class CourseListResponse(BaseModel):
    items: list[CourseResponse]
    total: int


class EnrollmentCreate(BaseModel):
    course_id: PositiveInt = Field(alias="courseId")

    model_config = ConfigDict(populate_by_name=True)


class EnrollmentResponse(BaseModel):
    id: PositiveInt
    user_id: str = Field(alias="userId")
    course_id: PositiveInt = Field(alias="courseId")
    course_title: str | None = Field(default=None, alias="courseTitle")
    status: str
    progress: int
    enrolled_at: datetime = Field(alias="enrolledAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int


# Repair services ---------------------------------------------------------------------------


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    icon: str | None = Field(default=None, max_length=64)

    @field_validator("name", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)


class ServiceResponse(BaseModel):
    id: PositiveInt
    name: str
    description: str
    icon: str | None = None
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class ServiceRequestCreate(BaseModel):
    service_id: PositiveInt = Field(alias="serviceId")
    message: str | None = Field(default=None, max_length=2000)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("message")
    @classmethod
    def _clean_optional(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class ServiceRequestResponse(BaseModel):
    id: PositiveInt
    user_id: str | None = Field(default=None, alias="userId")
    service_id: PositiveInt = Field(alias="serviceId")
    service_name: str | None = Field(default=None, alias="serviceName")
    customer_name: str = Field(alias="customerName")
    customer_email: str = Field(alias="customerEmail")
    customer_phone: str = Field(alias="customerPhone")
    message: str | None = None
    status: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class ServiceRequestListResponse(BaseModel):
    items: list[ServiceRequestResponse]
    total: int


class ServiceRequestCreated(BaseModel):
    request: ServiceRequestResponse
    message: str
    whatsapp_url: str = Field(alias="whatsappUrl")
    notices: list[NoticeResponse] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class ServiceRequestStatusUpdate(BaseModel):
    status: ServiceRequestStatus


# Profiles ----------------------------------------------------------------------------------


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=255, alias="fullName")
    phone: str | None = Field(default=None, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=1024, alias="avatarUrl")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("full_name", "phone", "avatar_url")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class ProfileResponse(BaseModel):
    user_id: str = Field(alias="userId")
    full_name: str | None = Field(default=None, alias="fullName")
    phone: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# Certificates ------------------------------------------------------------------------------


class CertificateBase(BaseModel):
    full_name: str = Field(min_length=1, max_length=255, alias="fullName")
    program: str | None = Field(default=None, max_length=255)
    training_period: str | None = Field(default=None, max_length=128, alias="trainingPeriod")
    passport_url: str | None = Field(default=None, max_length=1024, alias="passportUrl")
    issuing_organization: str | None = Field(default=None, max_length=255, alias="issuingOrganization")
    status: CertificateStatus = "verified"

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("program", "training_period", "passport_url", "issuing_organization")
    @classmethod
    def _clean_optional(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class CertificateCreate(CertificateBase):
    certificate_number: str = Field(min_length=1, max_length=64, alias="certificateNumber")

    @field_validator("certificate_number", "full_name")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)


class CertificateUpdate(BaseModel):
    certificate_number: str | None = Field(default=None, min_length=1, max_length=64, alias="certificateNumber")
    full_name: str | None = Field(default=None, min_length=1, max_length=255, alias="fullName")
    program: str | None = Field(default=None, max_length=255)
    training_period: str | None = Field(default=None, max_length=128, alias="trainingPeriod")
    passport_url: str | None = Field(default=None, max_length=1024, alias="passportUrl")
    issuing_organization: str | None = Field(default=None, max_length=255, alias="issuingOrganization")
    status: CertificateStatus | None = None

    model_config = ConfigDict(populate_by_name=True)


class CertificateResponse(BaseModel):
    id: PositiveInt
    certificate_number: str = Field(alias="certificateNumber")
    full_name: str = Field(alias="fullName")
    program: str | None = None
    training_period: str | None = Field(default=None, alias="trainingPeriod")
    passport_url: str | None = Field(default=None, alias="passportUrl")
    issuing_organization: str = Field(alias="issuingOrganization")
    status: str
    issued_at: datetime = Field(alias="issuedAt")
    verification_url: str = Field(alias="verificationUrl")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class CertificateListResponse(BaseModel):
    items: list[CertificateResponse]
    total: int
