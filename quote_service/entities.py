"""
entities.py — Domain Records of the Quote Service

This module defines the records held by the in-memory stores and passed
between the calculators. They are Pydantic models so that stored quotes can be
serialised to JSON (camelCase, matching the public API) and validated on read.

Entities:
    - Organisation, Customer, Country: identity records
    - ExchangeRate, CarbonFactor, FeeConfig, TaxRate: lookup table rows
    - ImpactPartner, ImpactProject: the credit catalogue
    - Footprint: immutable result of one carbon calculation
    - Quote: the aggregate root, owning ContributionDetails and OrderItems
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

WILDCARD = "*"


class Entity(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw):
        return cls.model_validate_json(raw)


# --- Shared value types ---

class Money(Entity):
    amount: float
    currency: str


class Address(Entity):
    line1: str = ""
    line2: Optional[str] = None
    line3: Optional[str] = None
    city: str = ""
    postal_code: str = ""
    state: Optional[str] = None
    country_code: str


# --- Organisation domain ---

class OrganisationStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class OrganisationImpactPartner(Entity):
    id: str
    name: str


class Organisation(Entity):
    """
    An onboarded client organisation.

    Organisations are frozen: the parent reference of a child organisation
    never changes once set. Hierarchies are one level deep.
    """
    model_config = ConfigDict(frozen=True)

    organisation_id: str
    parent_organisation_id: Optional[str] = None
    trading_name: str
    legal_name: str
    address: Address
    currency_code: str
    mcc: Optional[str] = None
    service_fee_percentage: float = 0.0
    status: OrganisationStatus = OrganisationStatus.ACTIVE
    impact_partners: List[OrganisationImpactPartner] = Field(default_factory=list)

    def is_child_of(self, parent_id: str) -> bool:
        return self.parent_organisation_id is not None and self.parent_organisation_id == parent_id

    def get_mcc(self) -> str:
        return self.mcc or ""


class Customer(Entity):
    id: str
    organisation_id: str
    reference: str
    email: Optional[str] = None
    name: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country_code: str
    created_at: datetime
    updated_at: datetime


# --- Platform / finance domain ---

class Country(Entity):
    id: str
    iso3_code: str
    iso2_code: str
    name: str
    currency: str = ""
    is_eu: bool = False


class ExchangeRate(Entity):
    source_currency: str
    target_currency: str
    rate: float
    conversion_date: datetime
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None

    def inverse(self) -> "ExchangeRate":
        """The same quotation seen from the opposite direction (1/rate)."""
        return ExchangeRate(
            source_currency=self.target_currency,
            target_currency=self.source_currency,
            rate=1.0 / self.rate,
            conversion_date=self.conversion_date,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
        )


class ConversionResult(Entity):
    original_amount: float
    original_currency: str
    converted_amount: float
    target_currency: str
    exchange_rate: float


# --- Impact domain ---

class CarbonFactor(Entity):
    id: str
    mcc: str
    country_id: str
    factor: float  # kg CO2e per base-currency unit
    description: str = ""


class Footprint(Entity):
    """One carbon footprint calculation. Written once, never mutated."""
    model_config = ConfigDict(frozen=True)

    id: str
    customer_id: str
    organisation_id: str
    mcc: str
    merchant_country: str
    amount: float
    currency: str
    carbon_co2e_grams: float
    carbon_co2e_ounces: float
    factor: float
    calculation_method: str = "MCC-based calculation"
    created_at: datetime

    @property
    def carbon_kg(self) -> float:
        return self.carbon_co2e_grams / 1000.0


class FeeConfig(Entity):
    organisation_id: str
    fee_percentage: float
    minimum_fee: float
    maximum_fee: float = 0.0  # 0 means no upper bound


class FeeResult(Entity):
    compensation_amount: float
    fee_amount: float
    fee_percentage: float


# --- Funds domain ---

class TaxLocation(Entity):
    country: str
    state: str = ""
    postal_code: str = ""


class TaxRate(Entity):
    id: str
    merchant_location: TaxLocation
    customer_location: TaxLocation
    is_tax_liable: bool = False
    service_fee_rate: float = 0.0
    carbon_credit_rate: float = 0.0
    charity_rate: float = 0.0
    non_charity_rate: float = 0.0


class TaxResult(Entity):
    taxable_amount: float
    tax_rate: float
    tax_amount: float
    tax_name: str
    is_applicable: bool


# --- Impact partner catalogue ---

class ImpactPartner(Entity):
    id: str
    name: str
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    logo: Optional[str] = None
    website: str = ""


class ProjectType(str, Enum):
    CARBON_CREDITS = "carbonCredits"
    NATURE_CREDITS = "natureCredits"
    CONTRIBUTION = "contribution"


class ProjectLocation(Entity):
    country: str = ""
    region: Optional[str] = None


class ImpactProject(Entity):
    id: str
    name: str
    impact_partner_id: str
    type: ProjectType = ProjectType.CARBON_CREDITS
    unit_price: float  # base currency per kg CO2e
    location: ProjectLocation = Field(default_factory=ProjectLocation)
    short_description: Optional[str] = None
    image: Optional[str] = None
    status: str = "active"


class BlendedProject(Entity):
    project_id: str
    project_name: str
    partner_id: str
    unit_price: float
    allocation: float
    location: ProjectLocation = Field(default_factory=ProjectLocation)


class BlendedPriceResult(Entity):
    blended_unit_price: float
    projects: List[BlendedProject] = Field(default_factory=list)


# --- Quote aggregate ---

class QuoteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    COMPLETED = "completed"


class OrderItem(Entity):
    item_id: str
    sku: Optional[str] = None
    name: str = ""
    category: str = ""
    quantity: int
    unit_price: Money


class ContributionImpactPartner(Entity):
    id: str
    impact_percentage: float
    impact_sales_tax_percentage: float
    service_fee_percentage: float
    service_fee_sales_tax_percentage: float
    project_ids: List[str] = Field(default_factory=list)


class ContributionDetails(Entity):
    impact_percentage: float = 0.0
    impact_sales_tax_percentage: float = 0.0
    service_fee_percentage: float = 0.0
    service_fee_sales_tax_percentage: float = 0.0
    impact_partners: List[ContributionImpactPartner] = Field(default_factory=list)


class Quote(Entity):
    """A priced carbon-offset quote. Amounts are in the quote currency."""
    id: str
    quote_reference: str
    calculation_reference: str
    organisation_id: str
    customer_id: str
    currency: str

    carbon_credit_total: float
    carbon_credit_impact: float
    carbon_credit_impact_sales_tax: float
    impact_tax_rate: float
    carbon_credit_service_fee: float
    carbon_credit_service_fee_sales_tax: float
    service_fee_tax_rate: float

    price_per_tonne_co2e: float

    contribution_details: ContributionDetails = Field(default_factory=ContributionDetails)

    customer_location_filter: bool = False
    include_partner_detail: bool = False
    include_project_detail: bool = False

    product: str = "API"
    service_fee_share: float = 0.0

    order_items: List[OrderItem] = Field(default_factory=list)

    status: QuoteStatus = QuoteStatus.PENDING
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    @staticmethod
    def expiry_for(created_at: datetime, ttl_hours: int) -> datetime:
        return created_at + timedelta(hours=ttl_hours)
