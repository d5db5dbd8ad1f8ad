"""
services.py — Calculators and Lookups Used by the Quote Pipeline

Each class wraps one store (or a pair of stores) and owns a single step of the
quote calculation:

    CountryService            → merchant country identity
    CurrencyConverter         → base-currency normalisation (and back)
    CarbonFootprintCalculator → kg CO2e for a base-currency amount
    ServiceFeeCalculator      → clamped percentage fee
    SalesTaxCalculator        → tax on an amount for a customer location
    OrganisationValidator     → header vs. body organisation hierarchy check
    CustomerResolver          → idempotent customer lookup-or-create

All amounts are plain floats; rounding to cents happens via utils.round2.
"""

import logging
import uuid
from typing import Optional

from .entities import ConversionResult, Country, Customer, FeeResult, Footprint, Organisation, TaxLocation, TaxResult
from .errors import ForbiddenError, NotFoundError, ValidationError
from .protocols import (
    CarbonFactorRepository,
    CountryRepository,
    CustomerRepository,
    ExchangeRateRepository,
    FeeConfigRepository,
    FootprintRepository,
    OrganisationRepository,
    TaxRateRepository,
)
from .utils import round2, utcnow

log = logging.getLogger(__name__)

GRAMS_PER_KG = 1000.0
OUNCES_PER_KG = 35.274


class CountryService:
    def __init__(self, repository: CountryRepository):
        self.repository = repository

    def get_country_by_code(self, code: str) -> Country:
        return self.repository.get_by_code(code)


class CurrencyConverter:
    """
    Converts amounts between a transaction currency and the base currency.

    Conversions involving the base currency on both sides short-circuit with
    a rate of 1.0 and never touch the rate table.
    """

    def __init__(self, repository: ExchangeRateRepository, base_currency: str = "EUR"):
        self.repository = repository
        self.base_currency = base_currency

    def _convert(self, amount: float, source: str, target: str) -> ConversionResult:
        if source == target:
            rate = 1.0
        else:
            rate = self.repository.get_exchange_rate(source, target).rate
        return ConversionResult(
            original_amount=amount,
            original_currency=source,
            converted_amount=amount * rate,
            target_currency=target,
            exchange_rate=rate,
        )

    def to_base(self, amount: float, currency: str) -> ConversionResult:
        return self._convert(amount, currency, self.base_currency)

    def from_base(self, amount: float, currency: str) -> ConversionResult:
        return self._convert(amount, self.base_currency, currency)


class CarbonFootprintCalculator:
    """Turns a base-currency amount into a persisted Footprint record."""

    def __init__(self, factor_repository: CarbonFactorRepository, footprint_repository: FootprintRepository,
                 base_currency: str = "EUR"):
        self.factor_repository = factor_repository
        self.footprint_repository = footprint_repository
        self.base_currency = base_currency

    def calculate(self, amount: float, mcc: str, country_id: str, organisation_id: str, customer_id: str) -> Footprint:
        """
        Calculates and stores the footprint of a transaction.

        Args:
            amount (float): Transaction amount in the base currency.
            mcc (str): Merchant category code used to select the factor.
            country_id (str): Merchant country id.
            organisation_id (str): Owning organisation.
            customer_id (str): Customer the transaction belongs to.

        Returns:
            Footprint: The stored record.

        Raises:
            NotFoundError: If no carbon factor applies, not even the global default.
            ValidationError: If the footprint store rejects the record.
        """
        factor = self.factor_repository.get_factor(mcc, country_id)
        carbon_kg = amount * factor.factor

        footprint = Footprint(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            organisation_id=organisation_id,
            mcc=mcc,
            merchant_country=country_id,
            amount=amount,
            currency=self.base_currency,
            carbon_co2e_grams=carbon_kg * GRAMS_PER_KG,
            carbon_co2e_ounces=carbon_kg * OUNCES_PER_KG,
            factor=factor.factor,
            created_at=utcnow(),
        )
        self.footprint_repository.create(footprint)
        return footprint


class ServiceFeeCalculator:
    def __init__(self, repository: FeeConfigRepository):
        self.repository = repository

    def calculate_service_fee(self, organisation_id: str, compensation_amount: float) -> FeeResult:
        config = self.repository.get_fee_config(organisation_id)

        fee = compensation_amount * config.fee_percentage
        if fee < config.minimum_fee:
            fee = config.minimum_fee
        # a maximum of 0 leaves the fee unbounded
        if config.maximum_fee > 0 and fee > config.maximum_fee:
            fee = config.maximum_fee

        return FeeResult(
            compensation_amount=compensation_amount,
            fee_amount=round2(fee),
            fee_percentage=config.fee_percentage,
        )


class SalesTaxCalculator:
    """
    Sales tax on impact and service fee amounts.

    Only the customer location selects the tax rate. The merchant location is
    accepted for interface symmetry and logged, but does not take part in the
    lookup.
    """

    NOT_APPLICABLE = "N/A"
    TAX_NAME = "Sales Tax"

    def __init__(self, repository: TaxRateRepository):
        self.repository = repository

    def calculate_sales_tax(self, merchant_location: TaxLocation, customer_location: TaxLocation,
                            amount: float) -> TaxResult:
        rate_record = self.repository.get_tax_rate(
            customer_location.country, customer_location.state, customer_location.postal_code
        )
        rate = rate_record.carbon_credit_rate or rate_record.service_fee_rate

        if rate == 0:
            log.debug(f"No sales tax for customer in {customer_location.country} "
                      f"(merchant in {merchant_location.country}).")
            return TaxResult(
                taxable_amount=amount,
                tax_rate=0.0,
                tax_amount=0.0,
                tax_name=self.NOT_APPLICABLE,
                is_applicable=False,
            )

        return TaxResult(
            taxable_amount=amount,
            tax_rate=rate,
            tax_amount=round2(amount * rate),
            tax_name=self.TAX_NAME,
            is_applicable=True,
        )


class OrganisationValidator:
    domain = "organisation"

    def __init__(self, repository: OrganisationRepository):
        self.repository = repository

    def get_organisation(self, organisation_id: str) -> Organisation:
        return self.repository.get_by_id(organisation_id)

    def validate(self, header_organisation_id: str, body_organisation_id: str) -> Organisation:
        """
        Checks that the caller may act for the organisation named in the body.

        The caller (header) organisation may act for itself or for one of its
        direct children.

        Raises:
            NotFoundError: If the body organisation does not exist.
            ForbiddenError: If the body organisation is neither the caller nor its child.
        """
        if header_organisation_id == body_organisation_id:
            return self.get_organisation(body_organisation_id)

        organisation = self.repository.get_by_id(body_organisation_id)
        if not organisation.is_child_of(header_organisation_id):
            raise ForbiddenError(
                self.domain,
                f"organisation {body_organisation_id} is not a child of {header_organisation_id}",
            )
        return organisation


class CustomerResolver:
    """Returns the customer for (organisation, reference), creating it on first sight."""

    def __init__(self, repository: CustomerRepository):
        self.repository = repository

    def get_or_create(self, organisation_id: str, reference: str, *, country_code: str,
                      state: Optional[str] = None, postal_code: Optional[str] = None,
                      city: Optional[str] = None, email: Optional[str] = None,
                      name: Optional[str] = None) -> Customer:
        if reference:
            try:
                existing = self.repository.get_by_reference(organisation_id, reference)
            except NotFoundError:
                existing = None
            if existing is not None:
                return existing

        now = utcnow()
        customer = Customer(
            id=str(uuid.uuid4()),
            organisation_id=organisation_id,
            reference=reference,
            email=email,
            name=name,
            postal_code=postal_code,
            city=city,
            state=state,
            country_code=country_code,
            created_at=now,
            updated_at=now,
        )
        try:
            self.repository.create(customer)
        except ValidationError:
            if not reference:
                raise
            # lost a race with a concurrent request for the same reference
            existing = self.repository.get_by_reference(organisation_id, reference)
            log.info(f"Customer {existing.id} was created concurrently for organisation {organisation_id}.")
            return existing
        log.info(f"Created customer {customer.id} for organisation {organisation_id}.")
        return customer
