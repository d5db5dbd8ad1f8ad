"""Test configuration and shared fixtures."""

import os

# Keep test runs from writing a log file or reaching a remote partner service
os.environ.setdefault("QUOTE_SERVICE_LOG_FILE", "")
os.environ["IMPACT_PARTNER_SERVICE_URL"] = ""

import pytest

from quote_service import seed_data
from quote_service.models import CreateQuoteRequest
from quote_service.repositories import (
    InMemoryImpactProjectRepository,
    InMemoryOrganisationRepository,
)
from quote_service.workflow import build_orchestrator


@pytest.fixture
def orchestrator():
    """Orchestrator over freshly seeded in-memory stores and the local partner catalogue."""
    return build_orchestrator(partner_service_url="")


@pytest.fixture
def organisations():
    return InMemoryOrganisationRepository(seed_data.organisations())


@pytest.fixture
def projects():
    return InMemoryImpactProjectRepository(seed_data.impact_projects())


@pytest.fixture
def quote_payload():
    """Request body for a 100 EUR order of org-parent-1 for a UK customer."""
    return {
        "organisationId": "org-parent-1",
        "customer": {"reference": "cust-001", "country": "GBR", "postalCode": "SW1A 1AA", "city": "London"},
        "orderItems": [
            {
                "itemId": "item-1",
                "sku": "SKU-1",
                "name": "Headphones",
                "category": "electronics",
                "quantity": 1,
                "unitPrice": {"value": 100.0, "currencyCode": "EUR"},
            }
        ],
    }


@pytest.fixture
def quote_request(quote_payload):
    return CreateQuoteRequest(**quote_payload)
