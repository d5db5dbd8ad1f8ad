"""
repositories.py — In-Memory Stores for the Quote Service

Every store keeps its rows in a dict guarded by a threading.Lock, so the
FastAPI worker threads can read and write concurrently. Stores accept an
optional iterable of seed rows; see seed_data for the demo tables.

Lookups raise errors.NotFoundError for missing entities. The fee config and
tax rate stores never fail: they fall back to a default row instead.
"""

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from .entities import (
    WILDCARD,
    CarbonFactor,
    Country,
    Customer,
    ExchangeRate,
    FeeConfig,
    Footprint,
    ImpactPartner,
    ImpactProject,
    Organisation,
    Quote,
    TaxLocation,
    TaxRate,
)
from .errors import NotFoundError, ValidationError

DEFAULT_FEE_PERCENTAGE = 0.10
DEFAULT_MINIMUM_FEE = 0.01


class InMemoryOrganisationRepository:
    domain = "organisation"

    def __init__(self, organisations: Optional[Iterable[Organisation]] = None):
        self._lock = threading.Lock()
        self._organisations: Dict[str, Organisation] = {o.organisation_id: o for o in organisations or []}

    def get_by_id(self, organisation_id: str) -> Organisation:
        with self._lock:
            org = self._organisations.get(organisation_id)
        if org is None:
            raise NotFoundError(self.domain, f"organisation not found: {organisation_id}")
        return org


class InMemoryCustomerRepository:
    """Customers indexed by id and by (organisation id, reference)."""

    domain = "customer"

    def __init__(self):
        self._lock = threading.Lock()
        self._customers: Dict[str, Customer] = {}
        self._reference_index: Dict[Tuple[str, str], str] = {}

    def get_by_id(self, customer_id: str) -> Customer:
        with self._lock:
            customer = self._customers.get(customer_id)
        if customer is None:
            raise NotFoundError(self.domain, "customer not found")
        return customer

    def get_by_reference(self, organisation_id: str, reference: str) -> Customer:
        with self._lock:
            customer_id = self._reference_index.get((organisation_id, reference))
            customer = self._customers.get(customer_id) if customer_id else None
        if customer is None:
            raise NotFoundError(self.domain, "customer not found")
        return customer

    def create(self, customer: Customer) -> None:
        key = (customer.organisation_id, customer.reference)
        with self._lock:
            if customer.id in self._customers:
                raise ValidationError(self.domain, "customer already exists")
            if customer.reference and key in self._reference_index:
                raise ValidationError(self.domain, f"customer reference already in use: {customer.reference}")
            self._customers[customer.id] = customer
            if customer.reference:
                self._reference_index[key] = customer.id


class InMemoryCountryRepository:
    """Countries addressable by ISO 3166 alpha-2 or alpha-3 code."""

    domain = "country"

    def __init__(self, countries: Optional[Iterable[Country]] = None):
        self._lock = threading.Lock()
        self._by_code: Dict[str, Country] = {}
        self._by_id: Dict[str, Country] = {}
        for country in countries or []:
            self._by_code[country.iso2_code] = country
            self._by_code[country.iso3_code] = country
            self._by_id[country.id] = country

    def get_by_code(self, code: str) -> Country:
        with self._lock:
            country = self._by_code.get(code)
        if country is None:
            raise NotFoundError(self.domain, f"country not found for code: {code}")
        return country

    def get_by_id(self, country_id: str) -> Country:
        with self._lock:
            country = self._by_id.get(country_id)
        if country is None:
            raise NotFoundError(self.domain, "country not found")
        return country


class InMemoryExchangeRateRepository:
    domain = "currency"

    def __init__(self, rates: Optional[Iterable[ExchangeRate]] = None):
        self._lock = threading.Lock()
        self._rates: Dict[Tuple[str, str], ExchangeRate] = {
            (r.source_currency, r.target_currency): r for r in rates or []
        }

    def get_exchange_rate(self, source: str, target: str) -> ExchangeRate:
        with self._lock:
            rate = self._rates.get((source, target))
            reverse = self._rates.get((target, source))
        if rate is not None:
            return rate
        if reverse is not None:
            return reverse.inverse()
        raise NotFoundError(self.domain, f"exchange rate not found for {source} to {target}")


class InMemoryCarbonFactorRepository:
    """Factors keyed by (mcc, country id); "*" acts as a wildcard on either side."""

    domain = "carbon_footprint"

    def __init__(self, factors: Optional[Iterable[CarbonFactor]] = None):
        self._lock = threading.Lock()
        self._factors: Dict[Tuple[str, str], CarbonFactor] = {(f.mcc, f.country_id): f for f in factors or []}

    def get_factor(self, mcc: str, country_id: str) -> CarbonFactor:
        # exact match, then MCC for any country, then the global default
        candidates = [(mcc, country_id), (mcc, WILDCARD), (WILDCARD, WILDCARD)]
        with self._lock:
            for key in candidates:
                factor = self._factors.get(key)
                if factor is not None:
                    return factor
        raise NotFoundError(self.domain, "no carbon factor found")


class InMemoryFootprintRepository:
    domain = "carbon_footprint"

    def __init__(self):
        self._lock = threading.Lock()
        self._footprints: Dict[str, Footprint] = {}

    def create(self, footprint: Footprint) -> None:
        with self._lock:
            if footprint.id in self._footprints:
                raise ValidationError(self.domain, "footprint already exists")
            self._footprints[footprint.id] = footprint

    def get_by_id(self, footprint_id: str) -> Footprint:
        with self._lock:
            footprint = self._footprints.get(footprint_id)
        if footprint is None:
            raise NotFoundError(self.domain, "footprint not found")
        return footprint


class InMemoryFeeConfigRepository:
    def __init__(self, configs: Optional[Iterable[FeeConfig]] = None):
        self._lock = threading.Lock()
        self._configs: Dict[str, FeeConfig] = {c.organisation_id: c for c in configs or []}

    def get_fee_config(self, organisation_id: str) -> FeeConfig:
        with self._lock:
            config = self._configs.get(organisation_id)
        if config is None:
            return FeeConfig(
                organisation_id=organisation_id,
                fee_percentage=DEFAULT_FEE_PERCENTAGE,
                minimum_fee=DEFAULT_MINIMUM_FEE,
                maximum_fee=0.0,
            )
        return config


class InMemoryTaxRateRepository:
    """
    Tax rates keyed by (merchant country, merchant state, customer country, customer state).

    Lookups are made for a single location that is used on both sides of the
    key: first with the state, then country only. Unknown locations resolve to
    a zero-rate record.
    """

    def __init__(self, rates: Optional[Iterable[TaxRate]] = None):
        self._lock = threading.Lock()
        self._rates: Dict[Tuple[str, str, str, str], TaxRate] = {}
        for rate in rates or []:
            key = (
                rate.merchant_location.country,
                rate.merchant_location.state,
                rate.customer_location.country,
                rate.customer_location.state,
            )
            self._rates[key] = rate

    def get_tax_rate(self, country: str, state: str = "", postal_code: str = "") -> TaxRate:
        with self._lock:
            rate = self._rates.get((country, state, country, state))
            if rate is None:
                rate = self._rates.get((country, "", country, ""))
        if rate is not None:
            return rate
        location = TaxLocation(country=country, state=state, postal_code=postal_code)
        return TaxRate(id="default", merchant_location=location, customer_location=location)


class InMemoryImpactPartnerRepository:
    domain = "impact_partner"

    def __init__(self, partners: Optional[Iterable[ImpactPartner]] = None):
        self._lock = threading.Lock()
        self._partners: Dict[str, ImpactPartner] = {p.id: p for p in partners or []}

    def get_all(self) -> List[ImpactPartner]:
        with self._lock:
            return list(self._partners.values())

    def get_by_id(self, partner_id: str) -> ImpactPartner:
        with self._lock:
            partner = self._partners.get(partner_id)
        if partner is None:
            raise NotFoundError(self.domain, f"partner not found: {partner_id}")
        return partner


class InMemoryImpactProjectRepository:
    domain = "impact_project"

    def __init__(self, projects: Optional[Iterable[ImpactProject]] = None):
        self._lock = threading.Lock()
        self._projects: Dict[str, ImpactProject] = {p.id: p for p in projects or []}

    def get_all(self) -> List[ImpactProject]:
        with self._lock:
            return list(self._projects.values())

    def get_by_id(self, project_id: str) -> ImpactProject:
        with self._lock:
            project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(self.domain, f"project not found: {project_id}")
        return project

    def get_by_partner_id(self, partner_id: str) -> List[ImpactProject]:
        with self._lock:
            return [p for p in self._projects.values() if p.impact_partner_id == partner_id]


class InMemoryQuoteRepository:
    domain = "quote"

    def __init__(self):
        self._lock = threading.Lock()
        self._quotes: Dict[str, Quote] = {}

    def create(self, quote: Quote) -> None:
        with self._lock:
            if quote.id in self._quotes:
                raise ValidationError(self.domain, "quote already exists")
            self._quotes[quote.id] = quote

    def get_by_id(self, quote_id: str) -> Quote:
        with self._lock:
            quote = self._quotes.get(quote_id)
        if quote is None:
            raise NotFoundError(self.domain, "quote not found")
        return quote

    def update(self, quote: Quote) -> None:
        with self._lock:
            if quote.id not in self._quotes:
                raise NotFoundError(self.domain, "quote not found")
            self._quotes[quote.id] = quote
