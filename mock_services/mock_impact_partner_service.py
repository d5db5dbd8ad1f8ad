"""
mock_impact_partner_service.py — Mock Implementation of the Impact Partner Service (REST API)

This module provides a simulated Impact Partner Service for running the quote service
against a remote partner catalogue. It exposes a simple FastAPI application serving the
same partners as the quote service's in-memory catalogue.

Simulation Scenarios:
    • Partner catalogue listing
    • Unknown partner (HTTP 404)
    • Service outage (HTTP 503) for ids starting with "unavailable-"

Endpoints:
    GET /api/impact-partners — Lists all partners.
    GET /api/impact-partners/{partner_id} — Returns a single partner.

Port:
    Default: 8002 (HTTP)
"""

from fastapi import FastAPI, HTTPException
import logging

from quote_service import seed_data

app = FastAPI(title="Mock Impact Partner Service")
logging.basicConfig(level=logging.INFO)

PARTNERS = {partner.id: partner for partner in seed_data.impact_partners()}


@app.get("/api/impact-partners")
def list_partners():
    logging.info(f"[IPS] Catalogue requested ({len(PARTNERS)} partners).")
    return [partner.model_dump(by_alias=True) for partner in PARTNERS.values()]


@app.get("/api/impact-partners/{partner_id}")
def get_partner(partner_id: str):
    """
    Returns one partner of the catalogue.

    Args:
        partner_id (str): Partner identifier, e.g. "partner-1".

    Returns:
        dict: The partner in camelCase JSON.

    Raises:
        HTTPException(404): If the partner is unknown.
        HTTPException(503): If the id simulates an outage.
    """
    if partner_id.startswith("unavailable-"):
        logging.warning(f"[IPS] Simulating outage for {partner_id}.")
        raise HTTPException(status_code=503, detail="Service temporarily unavailable.")

    partner = PARTNERS.get(partner_id)
    if partner is None:
        logging.info(f"[IPS] Partner {partner_id} not found.")
        raise HTTPException(status_code=404, detail="partner not found")
    return partner.model_dump(by_alias=True)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
