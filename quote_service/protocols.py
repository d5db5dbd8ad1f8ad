"""
protocols.py — Collaborator Contracts of the Quote Pipeline

The orchestrator and calculators depend on these protocols rather than on the
in-memory stores, so tests can swap in doubles and a remote adapter (see
clients.ImpactPartnerClient) can replace a local store.

All methods are synchronous. Lookups raise errors.NotFoundError when the
entity is absent; writes raise errors.ValidationError on duplicate identity.
"""

from typing import List, Protocol, Sequence, TypeVar

from .entities import (
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
    TaxRate,
)

T = TypeVar("T")


class OrganisationRepository(Protocol):
    def get_by_id(self, organisation_id: str) -> Organisation: ...


class CustomerRepository(Protocol):
    def get_by_id(self, customer_id: str) -> Customer: ...

    def get_by_reference(self, organisation_id: str, reference: str) -> Customer: ...

    def create(self, customer: Customer) -> None: ...


class CountryRepository(Protocol):
    def get_by_code(self, code: str) -> Country: ...

    def get_by_id(self, country_id: str) -> Country: ...


class ExchangeRateRepository(Protocol):
    def get_exchange_rate(self, source: str, target: str) -> ExchangeRate:
        """Directional rate; the untabulated direction resolves to the inverse of the reverse entry."""
        ...


class CarbonFactorRepository(Protocol):
    def get_factor(self, mcc: str, country_id: str) -> CarbonFactor: ...


class FootprintRepository(Protocol):
    def create(self, footprint: Footprint) -> None: ...

    def get_by_id(self, footprint_id: str) -> Footprint: ...


class FeeConfigRepository(Protocol):
    def get_fee_config(self, organisation_id: str) -> FeeConfig:
        """Never fails: unconfigured organisations get the default fee config."""
        ...


class TaxRateRepository(Protocol):
    def get_tax_rate(self, country: str, state: str = "", postal_code: str = "") -> TaxRate:
        """Never fails: unknown locations get a zero-rate record."""
        ...


class ImpactPartnerRepository(Protocol):
    def get_all(self) -> List[ImpactPartner]: ...

    def get_by_id(self, partner_id: str) -> ImpactPartner: ...


class ImpactProjectRepository(Protocol):
    def get_all(self) -> List[ImpactProject]: ...

    def get_by_id(self, project_id: str) -> ImpactProject: ...

    def get_by_partner_id(self, partner_id: str) -> List[ImpactProject]: ...


class QuoteRepository(Protocol):
    def create(self, quote: Quote) -> None: ...

    def get_by_id(self, quote_id: str) -> Quote: ...

    def update(self, quote: Quote) -> None: ...


class AllocationStrategy(Protocol):
    """Splits a whole (1.0) across a sequence of participants."""

    def allocate(self, participants: Sequence[T]) -> List[float]: ...
