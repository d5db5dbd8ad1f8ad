"""
workflow.py — Core Orchestration Logic for Quote Creation

This module contains the pipeline that turns a quote request into a priced,
persisted carbon-offset quote. It coordinates all calculators in a fixed order.

Workflow Overview:
1. Validate the organisation hierarchy and resolve the customer
2. Resolve merchant details and the transaction amount in the base currency
3. Calculate the carbon footprint and the blended project price
4. Price the impact, add service fee and sales tax
5. Build the partner and contribution breakdown, persist the quote, respond

Every step either produces its value or aborts the whole request with an error
tagged by the step. The quote is written last, so a failed request never
leaves a partial quote behind.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Dict, List, Optional

from . import seed_data
from .clients import ImpactPartnerClient
from .config import BASE_CURRENCY, DEFAULT_TRANSACTION_AMOUNT, IMPACT_PARTNER_SERVICE_URL, QUOTE_TTL_HOURS
from .entities import (
    BlendedPriceResult,
    ContributionDetails,
    ContributionImpactPartner,
    Money,
    OrderItem,
    Quote,
    QuoteStatus,
    TaxLocation,
)
from .errors import tag_step_error
from .models import (
    ContributionImpactPartnerResponse,
    ContributionResponse,
    CreateQuoteRequest,
    CreateQuoteResponse,
    CreditsResponse,
    EquivalentResponse,
    FootprintResponse,
    ImpactPartnerResponse,
    ProjectResponse,
)
from .pricing import BlendedPriceCalculator
from .protocols import ImpactPartnerRepository, QuoteRepository
from .repositories import (
    InMemoryCarbonFactorRepository,
    InMemoryCountryRepository,
    InMemoryCustomerRepository,
    InMemoryExchangeRateRepository,
    InMemoryFeeConfigRepository,
    InMemoryFootprintRepository,
    InMemoryImpactPartnerRepository,
    InMemoryImpactProjectRepository,
    InMemoryOrganisationRepository,
    InMemoryQuoteRepository,
    InMemoryTaxRateRepository,
)
from .services import (
    CarbonFootprintCalculator,
    CountryService,
    CurrencyConverter,
    CustomerResolver,
    OrganisationValidator,
    SalesTaxCalculator,
    ServiceFeeCalculator,
)
from .utils import round2, utcnow

log = logging.getLogger(__name__)

KG_PER_TONNE = 1000.0
KG_CO2E_PER_TREE = 40.0
PRODUCT = "API"

LOCATION_MATCH_WORLD = "world"
LOCATION_MATCH_COUNTRY = "country"
LOCATION_MATCH_STATE = "state"


class QuoteOrchestrator:
    """
    Runs the quote pipeline over injected collaborators.

    All collaborators are passed in by the caller (see build_orchestrator for
    the in-memory wiring), so tests can replace any of them with a double.
    """

    def __init__(
            self,
            organisation_validator: OrganisationValidator,
            customer_resolver: CustomerResolver,
            country_service: CountryService,
            currency_converter: CurrencyConverter,
            footprint_calculator: CarbonFootprintCalculator,
            blended_price_calculator: BlendedPriceCalculator,
            fee_calculator: ServiceFeeCalculator,
            tax_calculator: SalesTaxCalculator,
            partner_repository: ImpactPartnerRepository,
            quote_repository: QuoteRepository,
            base_currency: str = BASE_CURRENCY,
            default_transaction_amount: float = DEFAULT_TRANSACTION_AMOUNT,
            quote_ttl_hours: int = QUOTE_TTL_HOURS,
    ):
        self.organisation_validator = organisation_validator
        self.customer_resolver = customer_resolver
        self.country_service = country_service
        self.currency_converter = currency_converter
        self.footprint_calculator = footprint_calculator
        self.blended_price_calculator = blended_price_calculator
        self.fee_calculator = fee_calculator
        self.tax_calculator = tax_calculator
        self.partner_repository = partner_repository
        self.quote_repository = quote_repository
        self.base_currency = base_currency
        self.default_transaction_amount = default_transaction_amount
        self.quote_ttl_hours = quote_ttl_hours

    @contextmanager
    def _step(self, log_prefix: str, step: str):
        log.info(f"{log_prefix} {step}...")
        try:
            yield
        except Exception as e:
            tagged = tag_step_error(step, e)
            log.error(f"{log_prefix} Aborted: {tagged}")
            raise tagged from e

    def create_quote(self, request: CreateQuoteRequest, caller_organisation_id: str) -> CreateQuoteResponse:
        """
        Executes the complete quote pipeline for a single request.

        Args:
            request (CreateQuoteRequest): Validated quote request.
            caller_organisation_id (str): Organisation the caller is authenticated as.
                It must equal request.organisationId or be that organisation's parent.

        Returns:
            CreateQuoteResponse: Footprint, credits and contribution breakdown.

        Raises:
            QuoteServiceError: The step-tagged error of the first failing step. Domain
                errors keep their class, anything unexpected becomes an InternalError.
        """
        quote_id = str(uuid.uuid4())
        quote_reference = str(uuid.uuid4())
        log_prefix = f"[Quote: {quote_reference}]"
        log.info(f"{log_prefix} Creating quote for organisation {request.organisationId} "
                 f"(caller: {caller_organisation_id}).")

        # --- 1. Organisation ---
        with self._step(log_prefix, "step 1 - validate organisation"):
            organisation = self.organisation_validator.validate(caller_organisation_id, request.organisationId)

        # --- 2. Customer ---
        with self._step(log_prefix, "step 2 - get/create customer"):
            customer = self.customer_resolver.get_or_create(
                organisation.organisation_id,
                request.customer.reference,
                country_code=request.customer.country,
                state=request.customer.state,
                postal_code=request.customer.postalCode,
                city=request.customer.city,
            )

        # --- 3. Merchant details: request overrides organisation defaults ---
        merchant_mcc = organisation.get_mcc()
        merchant_country_code = organisation.address.country_code
        merchant_location = TaxLocation(
            country=organisation.address.country_code,
            state=organisation.address.state or "",
            postal_code=organisation.address.postal_code,
        )
        if request.merchant is not None:
            if request.merchant.mcc:
                merchant_mcc = request.merchant.mcc
            address = request.merchant.address
            if address.country:
                merchant_country_code = address.country
                merchant_location = TaxLocation(
                    country=address.country,
                    state=address.state if address.state is not None else merchant_location.state,
                    postal_code=address.postalCode,
                )

        # --- 4. Merchant country ---
        with self._step(log_prefix, "step 4 - get merchant country"):
            merchant_country = self.country_service.get_country_by_code(merchant_country_code)

        # --- 5. Transaction amount ---
        if request.orderItems:
            transaction_currency = request.orderItems[0].unitPrice.currencyCode
            transaction_amount = sum(item.unitPrice.value * item.quantity for item in request.orderItems)
        else:
            log.info(f"{log_prefix} No order items, using default amount "
                     f"{self.default_transaction_amount} {self.base_currency}.")
            transaction_currency = self.base_currency
            transaction_amount = self.default_transaction_amount

        # --- 6. Normalise to base currency ---
        amount_base = transaction_amount
        if transaction_currency != self.base_currency:
            with self._step(log_prefix, "step 6 - convert currency"):
                amount_base = self.currency_converter.to_base(transaction_amount, transaction_currency).converted_amount

        # --- 7. Carbon footprint ---
        with self._step(log_prefix, "step 7 - calculate carbon footprint"):
            footprint = self.footprint_calculator.calculate(
                amount_base, merchant_mcc, merchant_country.id, organisation.organisation_id, customer.id
            )
        log.info(f"{log_prefix} Footprint {footprint.id}: {footprint.carbon_kg:.3f} kg CO2e "
                 f"for {amount_base:.2f} {self.base_currency} (MCC {merchant_mcc}).")

        # --- 8. Blended project price ---
        filter_by_location = request.filters is not None and request.filters.customerLocation
        location_country = request.customer.country if filter_by_location else ""
        with self._step(log_prefix, "step 8 - get blended price"):
            blended = self.blended_price_calculator.calculate_blended_price(
                organisation.organisation_id, filter_by_location, location_country
            )

        # --- 9. Price per tonne in the quote currency ---
        quote_currency = transaction_currency
        price_per_tonne = blended.blended_unit_price * KG_PER_TONNE
        if quote_currency != self.base_currency:
            with self._step(log_prefix, "step 9 - convert price to quote currency"):
                price_per_tonne = self.currency_converter.from_base(price_per_tonne, quote_currency).converted_amount

        # --- 10. Impact amount (round-up is reserved and always zero) ---
        impact_amount = round2(footprint.carbon_kg / KG_PER_TONNE * price_per_tonne)
        round_up_amount = 0.0
        total_before_fees = impact_amount + round_up_amount

        # --- 11. Service fee ---
        with self._step(log_prefix, "step 11 - calculate service fee"):
            fee = self.fee_calculator.calculate_service_fee(organisation.organisation_id, total_before_fees)

        # --- 12. Sales tax, keyed on the customer location ---
        customer_location = TaxLocation(
            country=request.customer.country,
            state=request.customer.state or "",
            postal_code=request.customer.postalCode or "",
        )
        with self._step(log_prefix, "step 12.1 - calculate impact sales tax"):
            impact_tax = self.tax_calculator.calculate_sales_tax(merchant_location, customer_location, impact_amount)
        with self._step(log_prefix, "step 12.2 - calculate service fee sales tax"):
            fee_tax = self.tax_calculator.calculate_sales_tax(merchant_location, customer_location, fee.fee_amount)

        # --- 13. Total ---
        total_amount = round2(impact_amount + impact_tax.tax_amount + fee.fee_amount + fee_tax.tax_amount)

        # --- 14. Customer location match ---
        location_match = LOCATION_MATCH_WORLD
        if filter_by_location:
            location_match = self._location_match(blended, request.customer.country, request.customer.state or "")

        # --- 15. Partners ---
        partners = self._group_partners(log_prefix, blended, request.includeImpactPartnerDetails)

        # --- 16. Contribution breakdown ---
        contribution_partners = self._contribution_partners(partners, impact_tax.tax_rate, fee_tax.tax_rate)
        if total_amount > 0:
            impact_pct = impact_amount / total_amount
            impact_tax_pct = impact_tax.tax_amount / total_amount
            fee_pct = fee.fee_amount / total_amount
            fee_tax_pct = fee_tax.tax_amount / total_amount
        else:
            impact_pct = impact_tax_pct = fee_pct = fee_tax_pct = 0.0

        # --- 17. Persist ---
        now = utcnow()
        quote = Quote(
            id=quote_id,
            quote_reference=quote_reference,
            calculation_reference=footprint.id,
            organisation_id=organisation.organisation_id,
            customer_id=customer.id,
            currency=quote_currency,
            carbon_credit_total=total_amount,
            carbon_credit_impact=impact_amount,
            carbon_credit_impact_sales_tax=impact_tax.tax_amount,
            impact_tax_rate=impact_tax.tax_rate,
            carbon_credit_service_fee=fee.fee_amount,
            carbon_credit_service_fee_sales_tax=fee_tax.tax_amount,
            service_fee_tax_rate=fee_tax.tax_rate,
            price_per_tonne_co2e=price_per_tonne,
            contribution_details=ContributionDetails(
                impact_percentage=impact_pct,
                impact_sales_tax_percentage=impact_tax_pct,
                service_fee_percentage=fee_pct,
                service_fee_sales_tax_percentage=fee_tax_pct,
                impact_partners=[
                    ContributionImpactPartner(
                        id=p.id,
                        impact_percentage=p.impactPercentage,
                        impact_sales_tax_percentage=p.impactSalesTaxPercentage,
                        service_fee_percentage=p.serviceFeePercentage,
                        service_fee_sales_tax_percentage=p.serviceFeeSalesTaxPercentage,
                        project_ids=[project.id for project in p.projects],
                    )
                    for p in contribution_partners
                ],
            ),
            customer_location_filter=filter_by_location,
            include_partner_detail=request.includeImpactPartnerDetails,
            include_project_detail=False,
            product=PRODUCT,
            service_fee_share=fee.fee_percentage,
            order_items=[
                OrderItem(
                    item_id=item.itemId,
                    sku=item.sku,
                    name=item.name,
                    category=item.category,
                    quantity=item.quantity,
                    unit_price=Money(amount=item.unitPrice.value, currency=item.unitPrice.currencyCode),
                )
                for item in request.orderItems
            ],
            status=QuoteStatus.PENDING,
            expires_at=Quote.expiry_for(now, self.quote_ttl_hours),
            created_at=now,
            updated_at=now,
        )
        with self._step(log_prefix, "step 17 - save quote"):
            self.quote_repository.create(quote)

        log.info(f"{log_prefix} Quote {quote.id} created: {total_amount:.2f} {quote_currency} "
                 f"({len(partners)} partner(s), location match: {location_match}).")

        # --- 18. Response ---
        trees = footprint.carbon_kg / KG_CO2E_PER_TREE
        return CreateQuoteResponse(
            id=quote.id,
            quoteReference=quote_reference,
            footprint=FootprintResponse(
                co2eGrams=footprint.carbon_co2e_grams,
                co2eOunces=footprint.carbon_co2e_ounces,
                equivalents=[
                    EquivalentResponse(key="tree", value=trees, template=f"That's like planting {trees:.1f} trees"),
                ],
            ),
            credits=CreditsResponse(
                totalAmount=total_amount,
                impactAmount=impact_amount,
                impactSalesTaxAmount=impact_tax.tax_amount,
                serviceFeeAmount=fee.fee_amount,
                serviceFeeSalesTaxAmount=fee_tax.tax_amount,
                pricePerTonneCo2e=price_per_tonne,
                impactPartners=partners,
                customerLocationMatch=location_match,
            ),
            contribution=ContributionResponse(
                impactPercentage=impact_pct,
                impactSalesTaxPercentage=impact_tax_pct,
                serviceFeePercentage=fee_pct,
                serviceFeeSalesTaxPercentage=fee_tax_pct,
                impactPartners=contribution_partners,
            ),
        )

    @staticmethod
    def _location_match(blended: BlendedPriceResult, customer_country: str, customer_state: str) -> str:
        # first project in the customer's country decides
        for project in blended.projects:
            if project.location.country == customer_country:
                if customer_state and project.location.region == customer_state:
                    return LOCATION_MATCH_STATE
                return LOCATION_MATCH_COUNTRY
        return LOCATION_MATCH_WORLD

    def _group_partners(self, log_prefix: str, blended: BlendedPriceResult,
                        include_details: bool) -> List[ImpactPartnerResponse]:
        """Groups the contributing projects by partner, in order of first appearance."""
        grouped: Dict[str, ImpactPartnerResponse] = {}
        for project in blended.projects:
            partner = grouped.get(project.partner_id)
            if partner is None:
                partner = ImpactPartnerResponse(id=project.partner_id)
                if include_details:
                    self._enrich_partner(log_prefix, partner)
                grouped[project.partner_id] = partner
            partner.projects.append(ProjectResponse(id=project.project_id))
        return list(grouped.values())

    def _enrich_partner(self, log_prefix: str, partner: ImpactPartnerResponse):
        try:
            details = self.partner_repository.get_by_id(partner.id)
        except Exception as e:
            # enrichment is best effort and never fails the quote
            log.warning(f"{log_prefix} Partner details unavailable for {partner.id}: {e!r}")
            return
        partner.name = details.name
        partner.description = details.short_description
        partner.logo = details.logo

    @staticmethod
    def _contribution_partners(partners: List[ImpactPartnerResponse], impact_tax_rate: float,
                               fee_tax_rate: float) -> List[ContributionImpactPartnerResponse]:
        # equal split across partners, independent of each partner's share of the price
        if not partners:
            return []
        count = len(partners)
        return [
            ContributionImpactPartnerResponse(
                id=partner.id,
                impactPercentage=1.0 / count,
                impactSalesTaxPercentage=impact_tax_rate / count,
                serviceFeePercentage=1.0 / count,
                serviceFeeSalesTaxPercentage=fee_tax_rate / count,
                name=partner.name,
                description=partner.description,
                logo=partner.logo,
                projects=list(partner.projects),
            )
            for partner in partners
        ]

    def get_quote(self, quote_id: str) -> Quote:
        return self.quote_repository.get_by_id(quote_id)


def build_orchestrator(partner_service_url: Optional[str] = None) -> QuoteOrchestrator:
    """
    Wires the orchestrator over freshly seeded in-memory stores.

    Args:
        partner_service_url (str, optional): Base URL of the remote partner catalogue.
            Defaults to IMPACT_PARTNER_SERVICE_URL; when empty the seeded in-memory
            catalogue is used instead.

    Returns:
        QuoteOrchestrator: Ready to serve requests.
    """
    if partner_service_url is None:
        partner_service_url = IMPACT_PARTNER_SERVICE_URL

    organisations = InMemoryOrganisationRepository(seed_data.organisations())
    projects = InMemoryImpactProjectRepository(seed_data.impact_projects())
    if partner_service_url:
        log.info(f"Using remote Impact Partner Service at {partner_service_url}.")
        partners = ImpactPartnerClient(partner_service_url)
    else:
        partners = InMemoryImpactPartnerRepository(seed_data.impact_partners())

    return QuoteOrchestrator(
        organisation_validator=OrganisationValidator(organisations),
        customer_resolver=CustomerResolver(InMemoryCustomerRepository()),
        country_service=CountryService(InMemoryCountryRepository(seed_data.countries())),
        currency_converter=CurrencyConverter(
            InMemoryExchangeRateRepository(seed_data.exchange_rates(BASE_CURRENCY)), BASE_CURRENCY
        ),
        footprint_calculator=CarbonFootprintCalculator(
            InMemoryCarbonFactorRepository(seed_data.carbon_factors()), InMemoryFootprintRepository(), BASE_CURRENCY
        ),
        blended_price_calculator=BlendedPriceCalculator(organisations, projects),
        fee_calculator=ServiceFeeCalculator(InMemoryFeeConfigRepository(seed_data.fee_configs())),
        tax_calculator=SalesTaxCalculator(InMemoryTaxRateRepository(seed_data.tax_rates())),
        partner_repository=partners,
        quote_repository=InMemoryQuoteRepository(),
    )
