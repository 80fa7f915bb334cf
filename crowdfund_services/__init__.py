"""
crowdfund_services -- Package init and public API.

Responsibility:
    Stateful services that compose the pure engines (crowdfund_engines)
    with the kernel's clock, payout gateway and event log: the per-campaign
    ProjectLedger, the VestingService vault, the ProjectRegistry and the
    CrowdfundPlatform facade.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundary.py):
        crowdfund_services/ -> crowdfund_engines/  (allowed)
        crowdfund_services/ -> crowdfund_kernel/   (allowed)
        crowdfund_services/ -> crowdfund_config/   (allowed)
        crowdfund_engines/  -> crowdfund_services/ (FORBIDDEN)
        crowdfund_kernel/   -> crowdfund_services/ (FORBIDDEN)

Failure modes:
    - ImportError at startup if a service's dependency graph is broken.
"""

from crowdfund_kernel.logging_config import get_logger

logger = get_logger("services")

from crowdfund_services.platform import CrowdfundPlatform
from crowdfund_services.project_ledger import ProjectLedger, RegistryLink
from crowdfund_services.registry import ProjectRegistry, RegistryStore
from crowdfund_services.vesting_service import VestingService

__all__ = [
    "CrowdfundPlatform",
    "ProjectLedger",
    "ProjectRegistry",
    "RegistryLink",
    "RegistryStore",
    "VestingService",
]
