"""
pricing.py — Blended Project Pricing

Computes one per-kg unit price for an organisation from the projects of its
impact partners. How much each project counts is decided by an allocation
strategy; EqualAllocation gives every project the same weight.
"""

import logging
from typing import List, Optional, Sequence

from .entities import BlendedPriceResult, BlendedProject
from .protocols import AllocationStrategy, ImpactProjectRepository, OrganisationRepository

log = logging.getLogger(__name__)


class EqualAllocation:
    """Every participant receives 1/N of the whole."""

    def allocate(self, participants: Sequence) -> List[float]:
        if not participants:
            return []
        share = 1.0 / len(participants)
        return [share] * len(participants)


class BlendedPriceCalculator:
    def __init__(self, organisation_repository: OrganisationRepository,
                 project_repository: ImpactProjectRepository,
                 strategy: Optional[AllocationStrategy] = None):
        self.organisation_repository = organisation_repository
        self.project_repository = project_repository
        self.strategy = strategy or EqualAllocation()

    def calculate_blended_price(self, organisation_id: str, filter_by_location: bool = False,
                                location_country: str = "") -> BlendedPriceResult:
        """
        Blends the unit prices of every project offered by the organisation's partners.

        Args:
            organisation_id (str): Organisation whose partner list is used.
            filter_by_location (bool): Keep only projects located in `location_country`.
            location_country (str): ISO-3 country code; an empty value disables the filter.

        Returns:
            BlendedPriceResult: Allocation-weighted price and the contributing projects.
            No eligible projects yields a price of 0 and an empty project list.

        Raises:
            NotFoundError: If the organisation does not exist.
        """
        organisation = self.organisation_repository.get_by_id(organisation_id)

        candidates = []
        for partner in organisation.impact_partners:
            for project in self.project_repository.get_by_partner_id(partner.id):
                if filter_by_location and location_country and project.location.country != location_country:
                    continue
                candidates.append(project)

        if not candidates:
            log.info(f"No eligible projects for organisation {organisation_id} "
                     f"(location filter: {location_country if filter_by_location else 'off'}).")
            return BlendedPriceResult(blended_unit_price=0.0, projects=[])

        allocations = self.strategy.allocate(candidates)
        projects = [
            BlendedProject(
                project_id=project.id,
                project_name=project.name,
                partner_id=project.impact_partner_id,
                unit_price=project.unit_price,
                allocation=allocation,
                location=project.location,
            )
            for project, allocation in zip(candidates, allocations)
        ]
        blended = sum(p.unit_price * p.allocation for p in projects)
        return BlendedPriceResult(blended_unit_price=blended, projects=projects)
