"""
Module: crowdfund_kernel.models.registry
Responsibility: Registry-side record of a created campaign.
Architecture position: Kernel > Models.  Created by ProjectRegistry at
    registration time; ``status`` is mirrored by the owning ProjectLedger.

Invariants enforced:
    - is_verified only moves False -> True.
"""

from __future__ import annotations

from dataclasses import dataclass

from crowdfund_kernel.models.campaign import CampaignStatus


@dataclass(slots=True)
class RegistryEntry:
    """Registry listing for one campaign."""

    campaign_id: str
    creator: str
    name: str
    symbol: str
    created_at: int
    target_amount: int
    duration: int
    is_verified: bool = False
    status: CampaignStatus = CampaignStatus.ACTIVE
