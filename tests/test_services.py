"""Unit tests for the calculators and lookups of the quote pipeline."""

import threading

import pytest

from quote_service import seed_data
from quote_service.entities import Customer, FeeConfig, TaxLocation, TaxRate
from quote_service.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from quote_service.repositories import (
    InMemoryCarbonFactorRepository,
    InMemoryCountryRepository,
    InMemoryCustomerRepository,
    InMemoryExchangeRateRepository,
    InMemoryFeeConfigRepository,
    InMemoryFootprintRepository,
    InMemoryTaxRateRepository,
)
from quote_service.services import (
    CarbonFootprintCalculator,
    CountryService,
    CurrencyConverter,
    CustomerResolver,
    OrganisationValidator,
    SalesTaxCalculator,
    ServiceFeeCalculator,
)
from quote_service.utils import utcnow


class TestCountryService:
    def test_get_country_by_code(self):
        service = CountryService(InMemoryCountryRepository(seed_data.countries()))
        assert service.get_country_by_code("DEU").name == "Germany"
        with pytest.raises(NotFoundError):
            service.get_country_by_code("ZZZ")


class TestCurrencyConverter:
    @pytest.fixture
    def converter(self):
        return CurrencyConverter(InMemoryExchangeRateRepository(seed_data.exchange_rates()), "EUR")

    def test_base_currency_short_circuits(self):
        converter = CurrencyConverter(InMemoryExchangeRateRepository(), "EUR")
        result = converter.to_base(42.0, "EUR")
        assert result.converted_amount == 42.0
        assert result.exchange_rate == 1.0

    def test_from_base_uses_tabulated_rate(self, converter):
        result = converter.from_base(100.0, "GBP")
        assert result.original_currency == "EUR"
        assert result.target_currency == "GBP"
        assert result.converted_amount == pytest.approx(117.0)

    def test_to_base_uses_inverse(self, converter):
        result = converter.to_base(117.0, "GBP")
        assert result.exchange_rate == pytest.approx(1 / 1.17)
        assert result.converted_amount == pytest.approx(100.0)

    @pytest.mark.parametrize("currency", ["GBP", "USD", "CHF", "SEK", "NOK", "DKK"])
    def test_round_trip_returns_original_amount(self, converter, currency):
        there = converter.from_base(1.0, currency).converted_amount
        back = converter.to_base(there, currency).converted_amount
        assert back == pytest.approx(1.0)

    def test_unknown_currency(self, converter):
        with pytest.raises(NotFoundError):
            converter.to_base(10.0, "JPY")


class TestCarbonFootprintCalculator:
    @pytest.fixture
    def footprints(self):
        return InMemoryFootprintRepository()

    @pytest.fixture
    def calculator(self, footprints):
        return CarbonFootprintCalculator(InMemoryCarbonFactorRepository(seed_data.carbon_factors()), footprints)

    def test_grams_and_ounces_follow_kg(self, calculator):
        footprint = calculator.calculate(250.0, "5541", "1", "org-parent-1", "c-1")
        kg = 250.0 * 2.5
        assert footprint.factor == 2.5
        assert footprint.carbon_co2e_grams == kg * 1000
        assert footprint.carbon_co2e_ounces == pytest.approx(kg * 35.274)
        assert footprint.carbon_kg == pytest.approx(kg)

    def test_footprint_is_stored(self, calculator, footprints):
        footprint = calculator.calculate(10.0, "5812", "3", "org-child-2", "c-9")
        stored = footprints.get_by_id(footprint.id)
        assert stored.customer_id == "c-9"
        assert stored.merchant_country == "3"
        assert stored.currency == "EUR"

    def test_missing_factor_propagates(self, footprints):
        calculator = CarbonFootprintCalculator(InMemoryCarbonFactorRepository(), footprints)
        with pytest.raises(NotFoundError):
            calculator.calculate(10.0, "5812", "1", "org-parent-1", "c-1")


class TestServiceFeeCalculator:
    def calculator(self, percentage, minimum, maximum):
        config = FeeConfig(organisation_id="org", fee_percentage=percentage, minimum_fee=minimum, maximum_fee=maximum)
        return ServiceFeeCalculator(InMemoryFeeConfigRepository([config]))

    def test_percentage_of_amount(self):
        result = self.calculator(0.10, 0.01, 10.0).calculate_service_fee("org", 50.0)
        assert result.fee_amount == 5.0
        assert result.fee_percentage == 0.10
        assert result.compensation_amount == 50.0

    def test_minimum_applies(self):
        assert self.calculator(0.10, 0.50, 10.0).calculate_service_fee("org", 1.0).fee_amount == 0.50

    def test_maximum_applies(self):
        assert self.calculator(0.10, 0.01, 5.0).calculate_service_fee("org", 1000.0).fee_amount == 5.0

    def test_zero_maximum_is_unbounded(self):
        assert self.calculator(0.10, 0.01, 0.0).calculate_service_fee("org", 1000.0).fee_amount == 100.0

    def test_rounds_halves_away_from_zero(self):
        assert self.calculator(0.5, 0.0, 0.0).calculate_service_fee("org", 0.25).fee_amount == 0.13

    def test_default_config(self):
        calculator = ServiceFeeCalculator(InMemoryFeeConfigRepository())
        assert calculator.calculate_service_fee("unknown-org", 0.0).fee_amount == 0.01
        assert calculator.calculate_service_fee("unknown-org", 200.0).fee_amount == 20.0

    @pytest.mark.parametrize("amount", [0.0, 0.05, 1.0, 12.34, 99.99, 150.0, 10000.0])
    def test_fee_stays_within_bounds(self, amount):
        fee = self.calculator(0.12, 0.02, 15.0).calculate_service_fee("org", amount).fee_amount
        assert 0.02 <= fee <= 15.0


class TestSalesTaxCalculator:
    @pytest.fixture
    def calculator(self):
        return SalesTaxCalculator(InMemoryTaxRateRepository(seed_data.tax_rates()))

    def test_vat_for_customer_country(self, calculator):
        result = calculator.calculate_sales_tax(TaxLocation(country="GBR"), TaxLocation(country="GBR"), 100.0)
        assert result.is_applicable is True
        assert result.tax_rate == 0.20
        assert result.tax_amount == pytest.approx(20.0)
        assert result.tax_name == "Sales Tax"

    def test_state_rate(self, calculator):
        result = calculator.calculate_sales_tax(
            TaxLocation(country="USA", state="NY"), TaxLocation(country="USA", state="CA"), 20.0
        )
        assert result.tax_rate == 0.0725
        assert result.tax_amount == pytest.approx(1.45)

    def test_merchant_location_does_not_select_rate(self, calculator):
        result = calculator.calculate_sales_tax(TaxLocation(country="DEU"), TaxLocation(country="IRL"), 10.0)
        assert result.tax_rate == 0.23

    def test_no_location_match(self, calculator):
        result = calculator.calculate_sales_tax(TaxLocation(country="GBR"), TaxLocation(country="JPN"), 80.0)
        assert result.is_applicable is False
        assert result.tax_amount == 0.0
        assert result.tax_rate == 0.0
        assert result.tax_name == "N/A"

    def test_falls_back_to_service_fee_rate(self):
        rate = TaxRate(
            id="svc",
            merchant_location=TaxLocation(country="CHE"),
            customer_location=TaxLocation(country="CHE"),
            service_fee_rate=0.081,
        )
        calculator = SalesTaxCalculator(InMemoryTaxRateRepository([rate]))
        result = calculator.calculate_sales_tax(TaxLocation(country="CHE"), TaxLocation(country="CHE"), 100.0)
        assert result.tax_rate == 0.081
        assert result.tax_amount == pytest.approx(8.1)


class TestOrganisationValidator:
    @pytest.fixture
    def validator(self, organisations):
        return OrganisationValidator(organisations)

    def test_same_organisation(self, validator):
        assert validator.validate("org-child-1", "org-child-1").organisation_id == "org-child-1"

    def test_parent_acts_for_child(self, validator):
        assert validator.validate("org-parent-1", "org-child-2").organisation_id == "org-child-2"

    def test_siblings_forbidden(self, validator):
        with pytest.raises(ForbiddenError, match="org-child-2 is not a child of org-child-1"):
            validator.validate("org-child-1", "org-child-2")

    def test_child_cannot_act_for_parent(self, validator):
        with pytest.raises(ForbiddenError):
            validator.validate("org-child-1", "org-parent-1")

    def test_unknown_body_organisation(self, validator):
        with pytest.raises(NotFoundError):
            validator.validate("org-parent-1", "org-missing")
        with pytest.raises(NotFoundError):
            validator.validate("org-missing", "org-missing")


class FailingCustomerRepository(InMemoryCustomerRepository):
    def get_by_reference(self, organisation_id, reference):
        raise InternalError("customer", "store unavailable")


class RacingCustomerRepository(InMemoryCustomerRepository):
    """Another request stores the same reference between the lookup and the create."""

    def __init__(self, rival):
        super().__init__()
        self.rival = rival

    def create(self, customer):
        if self.rival is not None:
            rival, self.rival = self.rival, None
            super().create(rival)
        super().create(customer)


class TestCustomerResolver:
    def test_same_reference_resolves_to_same_customer(self):
        repo = InMemoryCustomerRepository()
        resolver = CustomerResolver(repo)

        first = resolver.get_or_create("org-parent-1", "cust-1", country_code="GBR", city="London")
        second = resolver.get_or_create("org-parent-1", "cust-1", country_code="FRA", city="Paris")

        assert second.id == first.id
        assert second.country_code == "GBR"
        assert second.city == "London"

    def test_new_customer_fields(self):
        customer = CustomerResolver(InMemoryCustomerRepository()).get_or_create(
            "org-child-1", "cust-2", country_code="USA", state="CA", postal_code="94105"
        )
        assert customer.organisation_id == "org-child-1"
        assert customer.reference == "cust-2"
        assert customer.state == "CA"
        assert customer.created_at == customer.updated_at

    def test_same_reference_in_other_organisation_is_new_customer(self):
        resolver = CustomerResolver(InMemoryCustomerRepository())
        a = resolver.get_or_create("org-child-1", "cust-1", country_code="IRL")
        b = resolver.get_or_create("org-child-2", "cust-1", country_code="DEU")
        assert a.id != b.id

    def test_empty_reference_always_creates(self):
        resolver = CustomerResolver(InMemoryCustomerRepository())
        a = resolver.get_or_create("org-parent-1", "", country_code="GBR")
        b = resolver.get_or_create("org-parent-1", "", country_code="GBR")
        assert a.id != b.id

    def test_lookup_failure_propagates(self):
        resolver = CustomerResolver(FailingCustomerRepository())
        with pytest.raises(InternalError):
            resolver.get_or_create("org-parent-1", "cust-1", country_code="GBR")

    def test_reference_taken_between_lookup_and_create(self):
        rival = Customer(
            id="c-rival",
            organisation_id="org-parent-1",
            reference="cust-x",
            country_code="GBR",
            created_at=utcnow(),
            updated_at=utcnow(),
        )
        repo = RacingCustomerRepository(rival)

        customer = CustomerResolver(repo).get_or_create("org-parent-1", "cust-x", country_code="FRA")

        assert customer.id == "c-rival"
        assert repo.get_by_reference("org-parent-1", "cust-x").id == "c-rival"

    def test_empty_reference_create_failure_propagates(self):
        rival = Customer(
            id="c-rival",
            organisation_id="org-parent-1",
            reference="",
            country_code="GBR",
            created_at=utcnow(),
            updated_at=utcnow(),
        )

        class DuplicateIdRepository(InMemoryCustomerRepository):
            def create(self, customer):
                super().create(customer.model_copy(update={"id": rival.id}))

        repo = DuplicateIdRepository()
        repo.create(rival)
        with pytest.raises(ValidationError):
            CustomerResolver(repo).get_or_create("org-parent-1", "", country_code="GBR")

    def test_concurrent_requests_share_one_customer(self):
        repo = InMemoryCustomerRepository()
        resolver = CustomerResolver(repo)
        workers = 8
        barrier = threading.Barrier(workers)
        results, errors = [], []

        def resolve():
            barrier.wait()
            try:
                results.append(resolver.get_or_create("org-parent-1", "cust-x", country_code="GBR"))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=resolve) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len({customer.id for customer in results}) == 1
        assert repo.get_by_reference("org-parent-1", "cust-x").id == results[0].id
