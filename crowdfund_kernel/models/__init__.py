"""State records for the crowdfund kernel."""

from crowdfund_kernel.models.campaign import (
    VALID_TRANSITIONS,
    Campaign,
    CampaignStatus,
    Investment,
)
from crowdfund_kernel.models.registry import RegistryEntry
from crowdfund_kernel.models.vesting import VestingSchedule

__all__ = [
    "Campaign",
    "CampaignStatus",
    "Investment",
    "RegistryEntry",
    "VALID_TRANSITIONS",
    "VestingSchedule",
]
