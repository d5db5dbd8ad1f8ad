"""
models.py — API Data Models for Quote Creation

This module defines the request and response payloads of the quote API.
Field names are camelCase, exactly as they appear on the wire, so FastAPI can
validate incoming JSON and serialise responses without aliasing.

Models:
    - CreateQuoteRequest: Complete quote request (customer, merchant, order items, options).
    - CreateQuoteResponse: Footprint, credits and contribution breakdown of a created quote.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


# --- Request ---

class UnitPrice(BaseModel):
    value: float
    currencyCode: str


class OrderItemRequest(BaseModel):
    """
    A single line of the customer's order.

    Attributes:
        itemId (str): Client identifier of the line.
        quantity (int): Number of units. Must be greater than zero.
        unitPrice (UnitPrice): Price of one unit and its ISO 4217 currency.
    """
    itemId: str
    sku: Optional[str] = None
    name: str = ""
    category: str = ""
    quantity: int = Field(..., gt=0)
    unitPrice: UnitPrice


class CustomerRequest(BaseModel):
    """
    Customer identity and location.

    `reference` and `country` (ISO 3166-1 alpha-3) are required by the API;
    they default to empty here so the endpoint can answer with MISSING_FIELD.
    """
    reference: str = ""
    country: str = ""
    postalCode: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


class MerchantAddressRequest(BaseModel):
    address1: str = ""
    address2: Optional[str] = None
    address3: Optional[str] = None
    city: str = ""
    state: Optional[str] = None
    postalCode: str = ""
    country: str = ""


class MerchantRequest(BaseModel):
    mcc: str = ""
    name: str = ""
    address: MerchantAddressRequest = Field(default_factory=MerchantAddressRequest)


class QuoteFilters(BaseModel):
    customerLocation: bool = False


class CreateQuoteRequest(BaseModel):
    """
    Quote request as sent by the client organisation.

    Attributes:
        organisationId (str): Organisation the quote is created for.
        customer (CustomerRequest): The paying customer.
        merchant (MerchantRequest, optional): Overrides the organisation's MCC and country.
        orderItems (List[OrderItemRequest]): Lines priced to derive the transaction amount.
        includeImpactPartnerDetails (bool): Enrich partners with name, description and logo.
        filters (QuoteFilters, optional): Restrict projects to the customer's country.
    """
    organisationId: str = ""
    customer: CustomerRequest = Field(default_factory=CustomerRequest)
    merchant: Optional[MerchantRequest] = None
    orderItems: List[OrderItemRequest] = Field(default_factory=list)
    includeImpactPartnerDetails: bool = False
    filters: Optional[QuoteFilters] = None


# --- Response ---

class EquivalentResponse(BaseModel):
    key: str
    value: float
    template: str


class FootprintResponse(BaseModel):
    co2eGrams: float
    co2eOunces: float
    equivalents: List[EquivalentResponse]


class ProjectResponse(BaseModel):
    id: str


class ImpactPartnerResponse(BaseModel):
    # name, description and logo are only set when partner details were requested
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    projects: List[ProjectResponse] = Field(default_factory=list)


class CreditsResponse(BaseModel):
    totalAmount: float
    impactAmount: float
    impactSalesTaxAmount: float
    serviceFeeAmount: float
    serviceFeeSalesTaxAmount: float
    pricePerTonneCo2e: float
    impactPartners: List[ImpactPartnerResponse]
    customerLocationMatch: str


class ContributionImpactPartnerResponse(BaseModel):
    id: str
    impactPercentage: float
    impactSalesTaxPercentage: float
    serviceFeePercentage: float
    serviceFeeSalesTaxPercentage: float
    name: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    projects: List[ProjectResponse] = Field(default_factory=list)


class ContributionResponse(BaseModel):
    impactPercentage: float
    impactSalesTaxPercentage: float
    serviceFeePercentage: float
    serviceFeeSalesTaxPercentage: float
    impactPartners: List[ContributionImpactPartnerResponse]


class CreateQuoteResponse(BaseModel):
    id: str
    quoteReference: str
    footprint: FootprintResponse
    credits: CreditsResponse
    contribution: ContributionResponse
