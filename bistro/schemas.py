"""
Pydantic Schemas

Domain models for the storefront (menu items, cart lines, order records,
restaurant profile, session) plus the request/response schemas used by the
HTTP surface.

Store rows use snake_case columns:
    profiles:   id, name, address, contact, logo, owner_name, receipt_header,
                receipt_footer, theme_color, font_pair, custom_font_family
    menu_items: id, user_id, name, description, price, half_price, category, image
    orders:     id, user_id, customer_name, customer_contact, total, timestamp,
                items_summary, payment_method, cart_items_json

Author: Khalil Bannouri
Version: 4.0.0
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bistro.core.config import get_settings


# =============================================================================
# ENUMS
# =============================================================================

class Category(str, Enum):
    STARTERS = "Starters"
    MAIN_COURSE = "Main Course"
    DESSERTS = "Desserts"
    BEVERAGES = "Beverages"
    DRINKS = "Drinks"
    SPECIALS = "Specials"


class PlateSize(str, Enum):
    HALF = "Half"
    FULL = "Full"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"


# =============================================================================
# IDENTIFIERS
# =============================================================================

class TemporaryId(BaseModel):
    """Locally minted id for an item the store has not assigned one to yet."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["temporary"] = "temporary"
    token: str

    @classmethod
    def mint(cls) -> "TemporaryId":
        return cls(token=uuid.uuid4().hex[:9])

    def __str__(self) -> str:
        return self.token


class PersistedId(BaseModel):
    """Id assigned by the remote store."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["persisted"] = "persisted"
    store_id: str

    def __str__(self) -> str:
        return self.store_id


ItemId = Annotated[Union[TemporaryId, PersistedId], Field(discriminator="kind")]


# =============================================================================
# DOMAIN MODELS
# =============================================================================

class MenuItem(BaseModel):
    """A dish on the menu. Immutable: edits produce a new instance."""
    model_config = ConfigDict(frozen=True)

    id: ItemId
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    half_price: Optional[float] = Field(None, ge=0)
    category: Category
    image: str = ""

    @property
    def is_persisted(self) -> bool:
        return isinstance(self.id, PersistedId)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MenuItem":
        """Build from a menu_items row; numeric columns may arrive as text."""
        half_price = row.get("half_price")
        return cls(
            id=PersistedId(store_id=str(row["id"])),
            name=row.get("name") or "",
            description=row.get("description") or "",
            price=float(row["price"]),
            half_price=float(half_price) if half_price not in (None, "") else None,
            category=row["category"],
            image=row.get("image") or "",
        )

    def to_row(self, user_id: str) -> dict[str, Any]:
        """Row payload for insert/upsert. Temporary ids are left out."""
        row = {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "half_price": self.half_price,
            "category": self.category.value,
            "image": self.image,
            "user_id": user_id,
        }
        if isinstance(self.id, PersistedId):
            row["id"] = self.id.store_id
        return row

    def to_rewrite_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category.value,
            "image": self.image,
        }


class CartLine(BaseModel):
    """One (item, size) entry in the cart. The item is a snapshot taken at add time."""
    model_config = ConfigDict(frozen=True)

    item: MenuItem
    quantity: int = Field(..., ge=1)
    size: PlateSize = PlateSize.FULL

    @property
    def key(self) -> tuple[Union[TemporaryId, PersistedId], PlateSize]:
        return (self.item.id, self.size)

    @property
    def unit_price(self) -> float:
        if self.size == PlateSize.HALF and self.item.half_price is not None:
            return self.item.half_price
        return self.item.price

    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-ready copy stored alongside the order."""
        return {
            "id": str(self.item.id),
            "id_kind": self.item.id.kind,
            "name": self.item.name,
            "description": self.item.description,
            "price": self.item.price,
            "half_price": self.item.half_price,
            "category": self.item.category.value,
            "image": self.item.image,
            "quantity": self.quantity,
            "selected_size": self.size.value,
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "CartLine":
        # Older rows were written with camelCase keys.
        half_price = data.get("half_price", data.get("halfPrice"))
        raw_id = str(data["id"])
        if data.get("id_kind") == "temporary":
            item_id = TemporaryId(token=raw_id)
        else:
            item_id = PersistedId(store_id=raw_id)
        item = MenuItem(
            id=item_id,
            name=data.get("name") or "",
            description=data.get("description") or "",
            price=float(data["price"]),
            half_price=float(half_price) if half_price not in (None, "") else None,
            category=data["category"],
            image=data.get("image") or "",
        )
        return cls(
            item=item,
            quantity=int(data["quantity"]),
            size=data.get("selected_size", data.get("selectedSize", PlateSize.FULL.value)),
        )


# Receipt date layout; rows written by the first web release store it as text.
DATE_FORMAT = "%d %b %Y, %I:%M %p"


class OrderRecord(BaseModel):
    """A finalized invoice. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    id: str
    customer_name: str
    customer_contact: str
    total: float
    timestamp: datetime
    items_summary: str
    payment_method: str
    cart_lines: Optional[tuple[CartLine, ...]] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_text_timestamp(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return datetime.strptime(v.strip(), DATE_FORMAT)
            except ValueError:
                return v
        return v

    @field_validator("timestamp")
    @classmethod
    def attach_zone(cls, v: datetime) -> datetime:
        """Naive times are restaurant-local."""
        if v.tzinfo is None:
            return v.replace(tzinfo=get_settings().restaurant_zone)
        return v

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "OrderRecord":
        snapshot = row.get("cart_items_json")
        return cls(
            id=str(row["id"]),
            customer_name=row.get("customer_name") or "",
            customer_contact=row.get("customer_contact") or "",
            total=float(row["total"]),
            timestamp=row["timestamp"],
            items_summary=row.get("items_summary") or "",
            payment_method=row.get("payment_method") or PaymentMethod.CASH.value,
            cart_lines=(
                tuple(CartLine.from_snapshot(line) for line in snapshot)
                if snapshot else None
            ),
        )

    def to_row(self, user_id: str) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": user_id,
            "customer_name": self.customer_name,
            "customer_contact": self.customer_contact,
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
            "items_summary": self.items_summary,
            "payment_method": self.payment_method,
            "cart_items_json": (
                [line.to_snapshot() for line in self.cart_lines]
                if self.cart_lines is not None else None
            ),
        }


class RestaurantProfile(BaseModel):
    """Branding and receipt text for one account."""
    model_config = ConfigDict(frozen=True)

    name: str
    address: str = ""
    contact: str = ""
    logo: str = ""
    owner_name: str = ""
    receipt_header: Optional[str] = None
    receipt_footer: Optional[str] = None
    theme_color: str = "indigo"
    font_pair: str = "modern"
    custom_font_family: Optional[str] = None

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        defaults: "RestaurantProfile",
    ) -> "RestaurantProfile":
        """Build from a profiles row, falling back to `defaults` per field."""
        return cls(
            name=row.get("name") or defaults.name,
            address=row.get("address") or defaults.address,
            contact=row.get("contact") or defaults.contact,
            logo=row.get("logo") or "",
            owner_name=row.get("owner_name") or defaults.owner_name,
            receipt_header=row.get("receipt_header") or defaults.receipt_header,
            receipt_footer=row.get("receipt_footer") or defaults.receipt_footer,
            theme_color=row.get("theme_color") or "indigo",
            font_pair=row.get("font_pair") or "modern",
            custom_font_family=row.get("custom_font_family"),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "contact": self.contact,
            "logo": self.logo,
            "owner_name": self.owner_name,
            "receipt_header": self.receipt_header,
            "receipt_footer": self.receipt_footer,
            "theme_color": self.theme_color,
            "font_pair": self.font_pair,
            "custom_font_family": self.custom_font_family,
        }


class Session(BaseModel):
    """The signed-in identity. Absent in guest mode."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    email: str = ""
    avatar_url: str = ""


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, examples=["chef@example.com"])
    password: str = Field(..., min_length=1)


class SignupRequest(LoginRequest):
    full_name: str = Field(default="", max_length=100, examples=["Dhruv Sharma"])


class MenuItemIn(BaseModel):
    """Admin form payload. Omit `id` to create a new dish."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(default="", max_length=1000)
    price: float = Field(..., ge=0)
    half_price: Optional[float] = Field(None, ge=0)
    category: Category = Category.STARTERS
    image: str = ""


class CartIncrement(BaseModel):
    item_id: str
    size: PlateSize = PlateSize.FULL
    delta: int = 1


class CheckoutRequest(BaseModel):
    customer_name: str = Field(default="", max_length=100)
    customer_contact: str = Field(default="", max_length=30)
    payment_method: PaymentMethod = PaymentMethod.CASH


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    address: str = ""
    contact: str = ""
    logo: str = ""
    owner_name: str = ""
    receipt_header: Optional[str] = None
    receipt_footer: Optional[str] = None
    theme_color: str = "indigo"
    font_pair: str = "modern"
    custom_font_family: Optional[str] = None

    @field_validator("custom_font_family")
    @classmethod
    def strip_font(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class InvoiceResponse(BaseModel):
    order: OrderRecord
    receipt: str
    whatsapp_url: str
    sms_url: str


class DashboardResponse(BaseModel):
    total_revenue: float
    order_count: int
    category_count: int
    item_count: int
    items: list[MenuItem]
    history: list[OrderRecord]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    backend: str
    enhancer: str
    timestamp: datetime
