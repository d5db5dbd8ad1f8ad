"""
main.py — FastAPI Entry Point for the Quote Service

This module provides the REST API of the carbon quote service. It validates
incoming requests, hands them to the quote pipeline and maps domain errors to
HTTP responses.

Responsibilities:
    • Create quotes and read stored quotes
    • Expose the impact partner and project catalogue
    • Translate domain errors into {"error": {"code", "message"}} bodies
    • Provide system health information
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .clients import ImpactPartnerClient
from .config import HOST, PORT
from .entities import ImpactPartner, ImpactProject, Quote
from .errors import QuoteServiceError
from .logging_config import get_logger, setup_logging
from .models import CreateQuoteRequest, CreateQuoteResponse
from .protocols import ImpactPartnerRepository, ImpactProjectRepository
from .workflow import QuoteOrchestrator, build_orchestrator

# Initialization
# Configure logging before the app and its collaborators are created
setup_logging()
log = get_logger(__name__)


@lru_cache()
def get_orchestrator() -> QuoteOrchestrator:
    """Process-wide orchestrator over the seeded in-memory stores."""
    return build_orchestrator()


def get_partner_repository(orchestrator: QuoteOrchestrator = Depends(get_orchestrator)) -> ImpactPartnerRepository:
    return orchestrator.partner_repository


def get_project_repository(orchestrator: QuoteOrchestrator = Depends(get_orchestrator)) -> ImpactProjectRepository:
    return orchestrator.blended_price_calculator.project_repository


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Quote Service starting...")
    orchestrator = get_orchestrator()
    yield
    if isinstance(orchestrator.partner_repository, ImpactPartnerClient):
        orchestrator.partner_repository.close()
    log.info("Quote Service stopped.")


app = FastAPI(title="Carbon Quote Service", lifespan=lifespan)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})


@app.exception_handler(QuoteServiceError)
async def quote_service_error_handler(request: Request, exc: QuoteServiceError) -> JSONResponse:
    """Maps domain errors to their HTTP status (404, 403, 400, otherwise 500)."""
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc}")
    return error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "INVALID_REQUEST", f"Invalid request body: {exc.errors()}")


# API Endpoint: Client organisation → Quote Service
@app.post("/api/quotes", status_code=201, response_model=CreateQuoteResponse, response_model_exclude_none=True)
def create_quote(
        request: CreateQuoteRequest,
        x_organisation_id: Optional[str] = Header(None, alias="X-Organisation-ID"),
        orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
):
    """
    Creates and stores a carbon-offset quote.

    The caller organisation is taken from the `X-Organisation-ID` header and
    defaults to the body's `organisationId` when the header is absent.

    Args:
        request (CreateQuoteRequest): Validated quote payload.
        x_organisation_id (str, optional): Organisation the caller acts as.
        orchestrator (QuoteOrchestrator): Injected quote pipeline.

    Returns:
        CreateQuoteResponse: The created quote (HTTP 201).
        Missing organisationId, customer.reference or customer.country → 400 MISSING_FIELD.
    """
    if not request.organisationId:
        return error_response(400, "MISSING_FIELD", "organisationId is required")
    if not request.customer.reference:
        return error_response(400, "MISSING_FIELD", "customer.reference is required")
    if not request.customer.country:
        return error_response(400, "MISSING_FIELD", "customer.country is required")

    caller_organisation_id = x_organisation_id or request.organisationId
    log.info(f"[Org: {request.organisationId}] New quote request for customer {request.customer.reference}.")

    try:
        return orchestrator.create_quote(request, caller_organisation_id)
    except QuoteServiceError:
        raise
    except Exception as e:
        log.critical(f"Critical error while creating quote for {request.organisationId}: {e}", exc_info=True)
        return error_response(500, "INTERNAL_ERROR", "Internal server error while creating quote.")


@app.get("/api/quotes/{quote_id}", response_model=Quote)
def get_quote(quote_id: str, orchestrator: QuoteOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_quote(quote_id)


@app.get("/api/impact-partners", response_model=List[ImpactPartner])
def list_impact_partners(partners: ImpactPartnerRepository = Depends(get_partner_repository)):
    return partners.get_all()


@app.get("/api/impact-partners/{partner_id}", response_model=ImpactPartner)
def get_impact_partner(partner_id: str, partners: ImpactPartnerRepository = Depends(get_partner_repository)):
    return partners.get_by_id(partner_id)


@app.get("/api/impact-projects", response_model=List[ImpactProject])
def list_impact_projects(
        partner_id: Optional[str] = Query(None, alias="partnerId"),
        projects: ImpactProjectRepository = Depends(get_project_repository),
):
    """Lists all projects, or only those of one partner when `partnerId` is given."""
    if partner_id:
        return projects.get_by_partner_id(partner_id)
    return projects.get_all()


@app.get("/api/impact-projects/{project_id}", response_model=ImpactProject)
def get_impact_project(project_id: str, projects: ImpactProjectRepository = Depends(get_project_repository)):
    return projects.get_by_id(project_id)


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Can be used by monitoring systems or container orchestrators
    (e.g., Docker, Kubernetes) to verify that the service is running.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)
