"""Unit tests for the in-memory stores."""

from datetime import timedelta

import pytest

from quote_service import seed_data
from quote_service.entities import WILDCARD, CarbonFactor, Customer, TaxLocation, TaxRate
from quote_service.errors import NotFoundError, ValidationError
from quote_service.repositories import (
    InMemoryCarbonFactorRepository,
    InMemoryCountryRepository,
    InMemoryCustomerRepository,
    InMemoryExchangeRateRepository,
    InMemoryFeeConfigRepository,
    InMemoryFootprintRepository,
    InMemoryImpactPartnerRepository,
    InMemoryQuoteRepository,
    InMemoryTaxRateRepository,
)
from quote_service.utils import utcnow
from quote_service.workflow import build_orchestrator


def make_customer(customer_id="c-1", organisation_id="org-parent-1", reference="ref-1"):
    now = utcnow()
    return Customer(
        id=customer_id,
        organisation_id=organisation_id,
        reference=reference,
        country_code="GBR",
        created_at=now,
        updated_at=now,
    )


class TestOrganisationRepository:
    def test_get_by_id(self, organisations):
        org = organisations.get_by_id("org-child-1")
        assert org.parent_organisation_id == "org-parent-1"
        assert org.address.country_code == "IRL"

    def test_unknown_organisation(self, organisations):
        with pytest.raises(NotFoundError) as exc_info:
            organisations.get_by_id("org-missing")
        assert exc_info.value.domain == "organisation"


class TestCustomerRepository:
    def test_lookup_by_id_and_reference(self):
        repo = InMemoryCustomerRepository()
        customer = make_customer()
        repo.create(customer)

        assert repo.get_by_id("c-1") == customer
        assert repo.get_by_reference("org-parent-1", "ref-1") == customer

    def test_reference_is_scoped_to_organisation(self):
        repo = InMemoryCustomerRepository()
        repo.create(make_customer())
        with pytest.raises(NotFoundError):
            repo.get_by_reference("org-child-1", "ref-1")

    def test_duplicate_id_rejected(self):
        repo = InMemoryCustomerRepository()
        repo.create(make_customer())
        with pytest.raises(ValidationError):
            repo.create(make_customer(reference="ref-2"))

    def test_empty_reference_not_indexed(self):
        repo = InMemoryCustomerRepository()
        repo.create(make_customer(customer_id="c-1", reference=""))
        repo.create(make_customer(customer_id="c-2", reference=""))
        with pytest.raises(NotFoundError):
            repo.get_by_reference("org-parent-1", "")


class TestCountryRepository:
    def test_lookup_by_iso3_and_iso2(self):
        repo = InMemoryCountryRepository(seed_data.countries())
        assert repo.get_by_code("GBR").id == "1"
        assert repo.get_by_code("GB").id == "1"
        assert repo.get_by_id("5").iso3_code == "USA"

    def test_unknown_code(self):
        repo = InMemoryCountryRepository(seed_data.countries())
        with pytest.raises(NotFoundError):
            repo.get_by_code("XXX")


class TestExchangeRateRepository:
    def test_tabulated_direction(self):
        repo = InMemoryExchangeRateRepository(seed_data.exchange_rates())
        assert repo.get_exchange_rate("EUR", "GBP").rate == 1.17

    def test_reverse_direction_uses_inverse(self):
        repo = InMemoryExchangeRateRepository(seed_data.exchange_rates())
        rate = repo.get_exchange_rate("GBP", "EUR")
        assert rate.source_currency == "GBP"
        assert rate.target_currency == "EUR"
        assert rate.rate == pytest.approx(1 / 1.17)

    def test_missing_in_both_directions(self):
        repo = InMemoryExchangeRateRepository(seed_data.exchange_rates())
        with pytest.raises(NotFoundError, match="exchange rate not found for JPY to EUR"):
            repo.get_exchange_rate("JPY", "EUR")


class TestCarbonFactorRepository:
    @pytest.fixture
    def repo(self):
        factors = seed_data.carbon_factors()
        factors.append(CarbonFactor(id="uk-restaurants", mcc="5812", country_id="1", factor=0.5))
        return InMemoryCarbonFactorRepository(factors)

    def test_exact_match_wins(self, repo):
        assert repo.get_factor("5812", "1").factor == 0.5

    def test_mcc_for_any_country(self, repo):
        assert repo.get_factor("5812", "3").factor == 0.35

    def test_global_default(self, repo):
        factor = repo.get_factor("9999", "3")
        assert (factor.mcc, factor.country_id) == (WILDCARD, WILDCARD)
        assert factor.factor == 0.23

    def test_no_default_is_not_found(self):
        repo = InMemoryCarbonFactorRepository([CarbonFactor(id="1", mcc="4511", country_id=WILDCARD, factor=1.2)])
        with pytest.raises(NotFoundError):
            repo.get_factor("5812", "1")


class TestFootprintRepository:
    def test_duplicate_rejected(self, orchestrator):
        footprints = InMemoryFootprintRepository()
        calculator = orchestrator.footprint_calculator
        footprint = calculator.calculate(10.0, "6011", "1", "org-parent-1", "c-1")
        footprints.create(footprint)

        assert footprints.get_by_id(footprint.id) == footprint
        with pytest.raises(ValidationError):
            footprints.create(footprint)


class TestFeeConfigRepository:
    def test_configured(self):
        repo = InMemoryFeeConfigRepository(seed_data.fee_configs())
        assert repo.get_fee_config("org-child-2").maximum_fee == 15.00

    def test_default_when_unconfigured(self):
        config = InMemoryFeeConfigRepository().get_fee_config("org-new")
        assert config.organisation_id == "org-new"
        assert config.fee_percentage == 0.10
        assert config.minimum_fee == 0.01
        assert config.maximum_fee == 0.0


class TestTaxRateRepository:
    @pytest.fixture
    def repo(self):
        return InMemoryTaxRateRepository(seed_data.tax_rates())

    def test_country_and_state(self, repo):
        assert repo.get_tax_rate("USA", "CA").carbon_credit_rate == 0.0725

    def test_falls_back_to_country(self, repo):
        assert repo.get_tax_rate("GBR", "Greater London").carbon_credit_rate == 0.20
        assert repo.get_tax_rate("USA", "WA").carbon_credit_rate == 0.0

    def test_unknown_location_is_zero_rate(self, repo):
        rate = repo.get_tax_rate("JPN", "", "100-0001")
        assert rate.id == "default"
        assert rate.carbon_credit_rate == 0.0
        assert rate.service_fee_rate == 0.0
        assert rate.customer_location.postal_code == "100-0001"

    def test_key_uses_both_locations(self):
        cross_border = TaxRate(
            id="x",
            merchant_location=TaxLocation(country="DEU"),
            customer_location=TaxLocation(country="GBR"),
            carbon_credit_rate=0.5,
        )
        repo = InMemoryTaxRateRepository([cross_border])
        assert repo.get_tax_rate("GBR").id == "default"


class TestCatalogueRepositories:
    def test_partner_lookup(self):
        repo = InMemoryImpactPartnerRepository(seed_data.impact_partners())
        assert repo.get_by_id("partner-3").name == "Green Energy Co"
        assert len(repo.get_all()) == 3
        with pytest.raises(NotFoundError):
            repo.get_by_id("partner-9")

    def test_projects_by_partner(self, projects):
        assert [p.id for p in projects.get_by_partner_id("partner-1")] == ["project-1", "project-4"]
        assert projects.get_by_partner_id("partner-3") == []
        with pytest.raises(NotFoundError):
            projects.get_by_id("project-9")


class TestQuoteRepository:
    @pytest.fixture
    def stored_quote(self, quote_request):
        orchestrator = build_orchestrator(partner_service_url="")
        response = orchestrator.create_quote(quote_request, "org-parent-1")
        return orchestrator.get_quote(response.id)

    def test_create_and_get(self, stored_quote):
        repo = InMemoryQuoteRepository()
        repo.create(stored_quote)
        assert repo.get_by_id(stored_quote.id) == stored_quote

    def test_duplicate_create_rejected(self, stored_quote):
        repo = InMemoryQuoteRepository()
        repo.create(stored_quote)
        with pytest.raises(ValidationError):
            repo.create(stored_quote)

    def test_update_replaces(self, stored_quote):
        repo = InMemoryQuoteRepository()
        repo.create(stored_quote)
        accepted = stored_quote.model_copy(update={"status": "accepted",
                                                   "updated_at": stored_quote.updated_at + timedelta(minutes=5)})
        repo.update(accepted)
        assert repo.get_by_id(stored_quote.id).status == "accepted"

    def test_update_unknown_is_not_found(self, stored_quote):
        with pytest.raises(NotFoundError):
            InMemoryQuoteRepository().update(stored_quote)

    def test_get_unknown_is_not_found(self):
        with pytest.raises(NotFoundError):
            InMemoryQuoteRepository().get_by_id("missing")
