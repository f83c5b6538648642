"""Sale creation value objects."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class SaleItem(BaseModel):
    """Snapshot of one line item at sale time."""

    product_id: Optional[str] = Field(None, description="Catalog product ID")
    variant_sku: Optional[str] = Field(None, description="Variant SKU")
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., gt=0)
    unit_price_cents: int = Field(..., ge=0)
    unit_cost_cents: Optional[int] = Field(None, ge=0)
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents


class LoanData(BaseModel):
    """Loan granted inside a sale."""

    principal_amount_cents: int = Field(..., description="Capital lent")
    interest_rate: Decimal = Field(default=Decimal("0"), description="e.g. 0.20 for 20%")
    total_to_repay_cents: int = Field(..., ge=0, description="Capital plus interest")
    observations: Optional[str] = None

    @property
    def has_loan(self) -> bool:
        return self.principal_amount_cents != 0


class QuotaRequest(BaseModel):
    """One installment requested at sale creation."""

    expiration_date: date
    amount_cents: int
    coin: str = "ARS"


class CreateSaleRequest(BaseModel):
    """Payload for creating a sale with its installment plan."""

    client_id: str
    items: list[SaleItem] = Field(default_factory=list)
    loan: Optional[LoanData] = None
    quotas: list[QuotaRequest] = Field(default_factory=list)
    sale_date: datetime
    observations: Optional[str] = None
