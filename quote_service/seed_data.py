"""
seed_data.py — Static Sample Data for the In-Memory Stores

Demo organisations, lookup tables and the impact partner catalogue. Each
function returns fresh objects so independent stores never share state.
"""

from datetime import timedelta

from .entities import (
    WILDCARD,
    Address,
    CarbonFactor,
    Country,
    ExchangeRate,
    FeeConfig,
    ImpactPartner,
    ImpactProject,
    Organisation,
    OrganisationImpactPartner,
    ProjectLocation,
    ProjectType,
    TaxLocation,
    TaxRate,
)
from .utils import utcnow

GREEN_CARBON_TRUST = OrganisationImpactPartner(id="partner-1", name="Green Carbon Trust")
OCEAN_CONSERVATION_FUND = OrganisationImpactPartner(id="partner-2", name="Ocean Conservation Fund")


def organisations():
    banks = "6011"
    return [
        Organisation(
            organisation_id="org-parent-1",
            trading_name="Acme Bank",
            legal_name="Acme Bank PLC",
            mcc=banks,
            currency_code="EUR",
            address=Address(line1="100 Bank Street", city="London", postal_code="EC1A 1BB", country_code="GBR"),
            service_fee_percentage=0.05,
            impact_partners=[GREEN_CARBON_TRUST, OCEAN_CONSERVATION_FUND],
        ),
        Organisation(
            organisation_id="org-child-1",
            parent_organisation_id="org-parent-1",
            trading_name="Acme Bank Ireland",
            legal_name="Acme Bank Ireland Ltd",
            mcc=banks,
            currency_code="EUR",
            address=Address(line1="50 Finance Street", city="Dublin", postal_code="D02", country_code="IRL"),
            service_fee_percentage=0.05,
            impact_partners=[GREEN_CARBON_TRUST],
        ),
        Organisation(
            organisation_id="org-child-2",
            parent_organisation_id="org-parent-1",
            trading_name="Acme Bank Germany",
            legal_name="Acme Bank Germany GmbH",
            mcc=banks,
            currency_code="EUR",
            address=Address(line1="25 Bankstraße", city="Berlin", postal_code="10115", country_code="DEU"),
            service_fee_percentage=0.05,
            impact_partners=[GREEN_CARBON_TRUST, OCEAN_CONSERVATION_FUND],
        ),
    ]


def countries():
    return [
        Country(id="1", iso2_code="GB", iso3_code="GBR", name="United Kingdom", currency="GBP"),
        Country(id="2", iso2_code="IE", iso3_code="IRL", name="Ireland", currency="EUR", is_eu=True),
        Country(id="3", iso2_code="DE", iso3_code="DEU", name="Germany", currency="EUR", is_eu=True),
        Country(id="4", iso2_code="FR", iso3_code="FRA", name="France", currency="EUR", is_eu=True),
        Country(id="5", iso2_code="US", iso3_code="USA", name="United States", currency="USD"),
        Country(id="6", iso2_code="NL", iso3_code="NLD", name="Netherlands", currency="EUR", is_eu=True),
        Country(id="7", iso2_code="ES", iso3_code="ESP", name="Spain", currency="EUR", is_eu=True),
    ]


def exchange_rates(base_currency="EUR"):
    """Rates quoted from the base currency; the reverse direction is derived on lookup."""
    now = utcnow()
    quoted = {"GBP": 1.17, "USD": 0.92, "CHF": 1.05, "SEK": 0.088, "NOK": 0.086, "DKK": 0.134}
    return [
        ExchangeRate(
            source_currency=base_currency,
            target_currency=target,
            rate=rate,
            conversion_date=now,
            valid_from=now - timedelta(hours=24),
            valid_to=now + timedelta(hours=24),
        )
        for target, rate in quoted.items()
    ]


def carbon_factors():
    return [
        CarbonFactor(id="default", mcc=WILDCARD, country_id=WILDCARD, factor=0.23, description="Default carbon factor"),
        CarbonFactor(id="1", mcc="4511", country_id=WILDCARD, factor=1.2, description="Airlines"),
        CarbonFactor(id="2", mcc="5812", country_id=WILDCARD, factor=0.35, description="Restaurants"),
        CarbonFactor(id="3", mcc="5541", country_id=WILDCARD, factor=2.5, description="Gas stations"),
        CarbonFactor(id="4", mcc="5411", country_id=WILDCARD, factor=0.18, description="Grocery stores"),
        CarbonFactor(id="5", mcc="6011", country_id=WILDCARD, factor=0.05, description="Banks/Financial"),
        CarbonFactor(id="6", mcc="5732", country_id=WILDCARD, factor=0.45, description="Electronics"),
        CarbonFactor(id="7", mcc="5651", country_id=WILDCARD, factor=0.40, description="Clothing"),
    ]


def fee_configs():
    return [
        FeeConfig(organisation_id="org-parent-1", fee_percentage=0.10, minimum_fee=0.01, maximum_fee=10.00),
        FeeConfig(organisation_id="org-child-1", fee_percentage=0.08, minimum_fee=0.01, maximum_fee=5.00),
        FeeConfig(organisation_id="org-child-2", fee_percentage=0.12, minimum_fee=0.02, maximum_fee=15.00),
    ]


def tax_rates():
    def same_location(rate_id, country, rate, state=""):
        return TaxRate(
            id=rate_id,
            merchant_location=TaxLocation(country=country, state=state),
            customer_location=TaxLocation(country=country, state=state),
            carbon_credit_rate=rate,
        )

    return [
        # VAT by country
        same_location("1", "GBR", 0.20),
        same_location("2", "DEU", 0.19),
        same_location("3", "FRA", 0.20),
        same_location("4", "IRL", 0.23),
        same_location("5", "NLD", 0.21),
        same_location("6", "ESP", 0.21),
        # US sales tax varies by state
        same_location("7", "USA", 0.0725, state="CA"),
        same_location("8", "USA", 0.08, state="NY"),
        same_location("9", "USA", 0.0625, state="TX"),
        same_location("10", "USA", 0.0),
    ]


def impact_partners():
    return [
        ImpactPartner(
            id="partner-1",
            name="Green Carbon Trust",
            short_description="Leading carbon offset certification body",
            long_description="The global leader in carbon offset certification, ensuring high-quality "
                             "environmental and social impact.",
            logo="https://example.com/goldstandard-logo.png",
            website="https://greencarbontrust.org",
        ),
        ImpactPartner(
            id="partner-2",
            name="Ocean Conservation Fund",
            short_description="Climate action through reforestation",
            long_description="Focuses on reforestation and ecosystem restoration projects worldwide.",
            logo="https://example.com/ekko-logo.png",
            website="https://oceanconservation.org",
        ),
        ImpactPartner(
            id="partner-3",
            name="Green Energy Co",
            short_description="Renewable energy solutions",
            long_description="Provides renewable energy certificates and carbon reduction projects.",
            logo="https://example.com/greenenergy-logo.png",
            website="https://greenenergy.co",
        ),
    ]


def impact_projects():
    # unit_price is EUR per kg CO2e
    return [
        ImpactProject(
            id="project-1",
            name="Amazon Rainforest Conservation",
            impact_partner_id="partner-1",
            unit_price=15.00,
            location=ProjectLocation(country="BRA", region="South America"),
            short_description="Preserving the world's largest rainforest",
            image="https://example.com/amazon-forest.jpg",
        ),
        ImpactProject(
            id="project-4",
            name="Mangrove Restoration Program",
            impact_partner_id="partner-1",
            type=ProjectType.NATURE_CREDITS,
            unit_price=22.00,
            location=ProjectLocation(country="VNM", region="Southeast Asia"),
            short_description="Coastal ecosystem restoration",
            image="https://example.com/mangrove.jpg",
        ),
        ImpactProject(
            id="project-2",
            name="Solar Farm Initiative India",
            impact_partner_id="partner-2",
            unit_price=8.50,
            location=ProjectLocation(country="IND", region="Asia"),
            short_description="Clean energy for rural communities",
            image="https://example.com/solar-india.jpg",
        ),
        ImpactProject(
            id="project-3",
            name="Wind Energy Project Denmark",
            impact_partner_id="partner-2",
            unit_price=10.00,
            location=ProjectLocation(country="DNK", region="Europe"),
            short_description="Offshore wind power generation",
            image="https://example.com/wind-denmark.jpg",
        ),
    ]
