"""Pydantic contracts shared across the store client, services and API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


PAGE_SIZE = 10


def local_today() -> str:
    """Return the local calendar date in `YYYY-MM-DD` form."""
    return date.today().isoformat()


def parse_amount(value: object) -> Decimal:
    """Parse a user or store supplied amount into a finite decimal."""
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, Decimal):
        parsed = value
    else:
        raw = str(value).strip() if value is not None else ""
        if not raw:
            raise ValueError("amount is required")
        try:
            parsed = Decimal(raw)
        except InvalidOperation as exc:
            raise ValueError(f"amount must be a number, got {raw!r}") from exc
    if not parsed.is_finite():
        raise ValueError("amount must be a finite number")
    return parsed


class LookupKind(str, Enum):
    """The three independent lookup collections and the field each one tracks."""

    CATEGORIES = "categories"
    ACCOUNTS = "accounts"
    PAYERS = "payers"

    @property
    def transaction_field(self) -> str:
        return _LOOKUP_FIELDS[self]


_LOOKUP_FIELDS = {
    LookupKind.CATEGORIES: "category",
    LookupKind.ACCOUNTS: "from_account",
    LookupKind.PAYERS: "paid_by",
}


class Transaction(BaseModel):
    """One persisted consumption record as returned by the store."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    date: str
    category: str
    item: str
    vendor: str
    amount: Decimal
    from_account: str
    paid_by: str
    created_at: datetime | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: object) -> Decimal:
        return parse_amount(value)


class TransactionCreateRequest(BaseModel):
    """Candidate transaction submitted from the input form."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    date: str = Field(default_factory=local_today)
    category: str = Field(min_length=1)
    item: str = Field(min_length=1)
    vendor: str = Field(min_length=1)
    amount: Decimal
    from_account: str = Field(min_length=1)
    paid_by: str = Field(min_length=1)

    @field_validator("date")
    @classmethod
    def validate_iso_date(cls, value: str) -> str:
        try:
            return date.fromisoformat(value).isoformat()
        except ValueError as exc:
            raise ValueError("date must use the YYYY-MM-DD format") from exc

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: object) -> Decimal:
        return parse_amount(value)

    def to_row(self) -> dict[str, object]:
        """Return the JSON payload inserted into the `transactions` collection."""
        return {
            "date": self.date,
            "category": self.category,
            "item": self.item,
            "vendor": self.vendor,
            "amount": str(self.amount),
            "from_account": self.from_account,
            "paid_by": self.paid_by,
        }


class LookupItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str


class LookupCollections(BaseModel):
    model_config = ConfigDict(extra="forbid")

    categories: list[LookupItem] = Field(default_factory=list)
    accounts: list[LookupItem] = Field(default_factory=list)
    payers: list[LookupItem] = Field(default_factory=list)

    def items_for(self, kind: LookupKind) -> list[LookupItem]:
        return getattr(self, kind.value)

    def contains(self, kind: LookupKind, name: str) -> bool:
        return any(item.name == name for item in self.items_for(kind))


class SortKey(str, Enum):
    ID = "id"
    DATE = "date"
    CATEGORY = "category"
    ITEM = "item"
    VENDOR = "vendor"
    AMOUNT = "amount"
    FROM_ACCOUNT = "from_account"
    PAID_BY = "paid_by"
    CREATED_AT = "created_at"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    key: SortKey = SortKey.CREATED_AT
    direction: SortDirection = SortDirection.DESC


class SearchSpec(BaseModel):
    """Date range and category filter for the search grid."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    from_date: date | None = None
    to_date: date | None = None
    category: str | None = None


class Page(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[Transaction]
    page: int
    page_size: int = PAGE_SIZE
    total_items: int
    total_pages: int
    sort: SortConfig
