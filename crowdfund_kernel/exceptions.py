"""
Typed Exception Hierarchy for the Crowdfund Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected operation is a named failure. Callers catch by type, read
the machine-readable ``code`` class attribute, and use the structured
attributes each exception carries. Nothing in the kernel signals failure by
returning ``None`` or ``False``.

Example:
    try:
        ledger.invest(investor, amount)
    except TargetExceededError as e:
        api_response(code=e.code, remaining=e.remaining)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CrowdfundError (base)
    |
    +-- ValidationError                 rejected before any state mutation
    |   +-- InvalidProjectParametersError
    |   +-- InvalidAmountError
    |   +-- InvalidIdentityError
    |   +-- InsufficientFeeError
    |   +-- FeeTooHighError
    |   +-- InvestmentTooSmallError
    |   +-- InvestmentTooLargeError
    |   +-- ZeroTokenAllocationError
    |   +-- BatchLengthMismatchError
    |   +-- EmptyBatchError
    |   +-- ProtectedAssetError
    |
    +-- StateError                      rejected with current state intact
    |   +-- ProjectNotActiveError
    |   +-- ProjectEndedError
    |   +-- ProjectPausedError
    |   +-- RegistryPausedError
    |   +-- TargetExceededError
    |   +-- TokenSupplyExceededError
    |   +-- StillActiveError
    |   +-- AlreadyFinalizedError
    |   +-- ProjectNotSuccessfulError
    |   +-- ProjectNotRefundableError
    |   +-- FundsAlreadyWithdrawnError
    |   +-- RefundAlreadyClaimedError
    |   +-- AlreadyVerifiedError
    |   +-- AlreadyPausedError
    |   +-- NotPausedError
    |   +-- DuplicateScheduleError
    |   +-- ScheduleNotActiveError
    |   +-- NoActiveScheduleError
    |   +-- VestingNotInitializedError
    |   +-- VestingNotCompleteError
    |
    +-- AuthorizationError              rejected, no state change
    |   +-- NotCreatorError
    |   +-- NotOperatorError
    |   +-- NotScheduleOwnerError
    |
    +-- ResourceError
        +-- ProjectNotFoundError
        +-- InvestmentNotFoundError
        +-- OffsetOutOfBoundsError
        +-- IndexOutOfBoundsError
        +-- NothingToWithdrawError
        +-- NothingToClaimError
        +-- InsufficientTokenBalanceError

===============================================================================
PROPAGATION
===============================================================================

All errors are local and recoverable. The kernel never retries; retries are
the caller's responsibility. StateError subclasses are raised after the
relevant lock is taken but before any field is written, so the observed
state is exactly the state that caused the rejection.
"""


class CrowdfundError(Exception):
    """
    Base exception for all crowdfund kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CROWDFUND_ERROR"


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------


class ValidationError(CrowdfundError):
    """Input has the wrong shape; nothing was mutated."""

    code: str = "VALIDATION_ERROR"


class InvalidProjectParametersError(ValidationError):
    """A campaign creation parameter failed validation."""

    code: str = "INVALID_PROJECT_PARAMETERS"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid project parameter '{field}': {reason}")


class InvalidAmountError(ValidationError):
    """Amount is zero or negative where a positive amount is required."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: int, reason: str = "amount must be greater than 0"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InvalidIdentityError(ValidationError):
    """Identity is the null identity (empty or missing)."""

    code: str = "INVALID_IDENTITY"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Invalid {role}: null identity")


class InsufficientFeeError(ValidationError):
    """Creation fee paid is below the required fee."""

    code: str = "INSUFFICIENT_FEE"

    def __init__(self, paid: int, required: int):
        self.paid = paid
        self.required = required
        super().__init__(f"Insufficient creation fee: paid {paid}, required {required}")


class FeeTooHighError(ValidationError):
    """Platform fee percentage exceeds the cap."""

    code: str = "FEE_TOO_HIGH"

    def __init__(self, fee_bps: int, max_bps: int):
        self.fee_bps = fee_bps
        self.max_bps = max_bps
        super().__init__(f"Fee too high: {fee_bps} bps exceeds cap of {max_bps} bps")


class InvestmentTooSmallError(ValidationError):
    """Investment is below the minimum."""

    code: str = "INVESTMENT_TOO_SMALL"

    def __init__(self, amount: int, minimum: int):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Investment too small: {amount} < {minimum}")


class InvestmentTooLargeError(ValidationError):
    """Investment is above the maximum."""

    code: str = "INVESTMENT_TOO_LARGE"

    def __init__(self, amount: int, maximum: int):
        self.amount = amount
        self.maximum = maximum
        super().__init__(f"Investment too large: {amount} > {maximum}")


class ZeroTokenAllocationError(ValidationError):
    """Investment is too small to buy a single base unit of token."""

    code: str = "ZERO_TOKEN_ALLOCATION"

    def __init__(self, amount: int, token_price: int):
        self.amount = amount
        self.token_price = token_price
        super().__init__(
            f"Investment of {amount} buys no tokens at price {token_price}"
        )


class BatchLengthMismatchError(ValidationError):
    """Parallel batch arrays have different lengths."""

    code: str = "BATCH_LENGTH_MISMATCH"

    def __init__(self, beneficiaries: int, amounts: int):
        self.beneficiaries = beneficiaries
        self.amounts = amounts
        super().__init__(
            f"Arrays length mismatch: {beneficiaries} beneficiaries, {amounts} amounts"
        )


class EmptyBatchError(ValidationError):
    """Batch operation received no entries."""

    code: str = "EMPTY_BATCH"

    def __init__(self) -> None:
        super().__init__("Empty batch")


class ProtectedAssetError(ValidationError):
    """Asset belongs to the campaign itself and cannot be recovered."""

    code: str = "PROTECTED_ASSET"

    def __init__(self, campaign_id: str, asset: str):
        self.campaign_id = campaign_id
        self.asset = asset
        super().__init__(f"Cannot recover {asset} from project {campaign_id}")


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------


class StateError(CrowdfundError):
    """Operation is not allowed in the current lifecycle phase."""

    code: str = "STATE_ERROR"


class ProjectNotActiveError(StateError):
    """Campaign has reached a terminal status."""

    code: str = "PROJECT_NOT_ACTIVE"

    def __init__(self, campaign_id: str, status: str):
        self.campaign_id = campaign_id
        self.status = status
        super().__init__(f"Project {campaign_id} not active (status: {status})")


class ProjectEndedError(StateError):
    """Campaign deadline has passed."""

    code: str = "PROJECT_ENDED"

    def __init__(self, campaign_id: str, end_time: int):
        self.campaign_id = campaign_id
        self.end_time = end_time
        super().__init__(f"Project {campaign_id} ended at {end_time}")


class ProjectPausedError(StateError):
    """Campaign is paused by the operator."""

    code: str = "PROJECT_PAUSED"

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Project {campaign_id} is paused")


class RegistryPausedError(StateError):
    """Registry is paused; no new campaigns may be created."""

    code: str = "REGISTRY_PAUSED"

    def __init__(self) -> None:
        super().__init__("Registry is paused")


class TargetExceededError(StateError):
    """Investment would push total raised above the target."""

    code: str = "TARGET_EXCEEDED"

    def __init__(self, campaign_id: str, amount: int, remaining: int):
        self.campaign_id = campaign_id
        self.amount = amount
        self.remaining = remaining
        super().__init__(
            f"Target exceeded for project {campaign_id}: "
            f"amount {amount}, remaining {remaining}"
        )


class TokenSupplyExceededError(StateError):
    """Investment would sell more tokens than the campaign supply."""

    code: str = "TOKEN_SUPPLY_EXCEEDED"

    def __init__(self, campaign_id: str, tokens: int, available: int):
        self.campaign_id = campaign_id
        self.tokens = tokens
        self.available = available
        super().__init__(
            f"Token supply exceeded for project {campaign_id}: "
            f"requested {tokens}, available {available}"
        )


class StillActiveError(StateError):
    """Finalization requested before the deadline with target unmet."""

    code: str = "STILL_ACTIVE"

    def __init__(self, campaign_id: str, end_time: int):
        self.campaign_id = campaign_id
        self.end_time = end_time
        super().__init__(f"Project {campaign_id} still active until {end_time}")


class AlreadyFinalizedError(StateError):
    """Campaign already reached a terminal status."""

    code: str = "ALREADY_FINALIZED"

    def __init__(self, campaign_id: str, status: str):
        self.campaign_id = campaign_id
        self.status = status
        super().__init__(f"Project {campaign_id} already finalized ({status})")


class ProjectNotSuccessfulError(StateError):
    """Fund withdrawal requires a successful campaign."""

    code: str = "PROJECT_NOT_SUCCESSFUL"

    def __init__(self, campaign_id: str, status: str):
        self.campaign_id = campaign_id
        self.status = status
        super().__init__(f"Project {campaign_id} not successful (status: {status})")


class ProjectNotRefundableError(StateError):
    """Refunds require a failed or cancelled campaign."""

    code: str = "PROJECT_NOT_REFUNDABLE"

    def __init__(self, campaign_id: str, status: str):
        self.campaign_id = campaign_id
        self.status = status
        super().__init__(f"Project {campaign_id} not failed (status: {status})")


class FundsAlreadyWithdrawnError(StateError):
    """Creator already withdrew the raised funds."""

    code: str = "FUNDS_ALREADY_WITHDRAWN"

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Funds already withdrawn for project {campaign_id}")


class RefundAlreadyClaimedError(StateError):
    """Investor already claimed the refund."""

    code: str = "REFUND_ALREADY_CLAIMED"

    def __init__(self, campaign_id: str, investor: str):
        self.campaign_id = campaign_id
        self.investor = investor
        super().__init__(f"Refund already claimed by {investor} on project {campaign_id}")


class AlreadyVerifiedError(StateError):
    """Registry entry is already verified."""

    code: str = "ALREADY_VERIFIED"

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Project {campaign_id} already verified")


class AlreadyPausedError(StateError):
    """Pause requested while already paused."""

    code: str = "ALREADY_PAUSED"

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"{target} already paused")


class NotPausedError(StateError):
    """Unpause requested while not paused."""

    code: str = "NOT_PAUSED"

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"{target} not paused")


class DuplicateScheduleError(StateError):
    """Beneficiary already has an active vesting schedule."""

    code: str = "DUPLICATE_SCHEDULE"

    def __init__(self, beneficiary: str):
        self.beneficiary = beneficiary
        super().__init__(f"Vesting schedule already exists for {beneficiary}")


class ScheduleNotActiveError(StateError):
    """Revocation requested for a schedule that is not active."""

    code: str = "SCHEDULE_NOT_ACTIVE"

    def __init__(self, beneficiary: str):
        self.beneficiary = beneficiary
        super().__init__(f"Vesting schedule not active for {beneficiary}")


class NoActiveScheduleError(StateError):
    """Claim requested for a beneficiary without an active schedule."""

    code: str = "NO_ACTIVE_SCHEDULE"

    def __init__(self, beneficiary: str):
        self.beneficiary = beneficiary
        super().__init__(f"No active vesting schedule for {beneficiary}")


class VestingNotInitializedError(StateError):
    """Campaign has no vesting schedules yet."""

    code: str = "VESTING_NOT_INITIALIZED"

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Vesting not initialized for project {campaign_id}")


class VestingNotCompleteError(StateError):
    """Emergency withdrawal requested before the grace period elapsed."""

    code: str = "VESTING_NOT_COMPLETE"

    def __init__(self, available_at: int, now: int):
        self.available_at = available_at
        self.now = now
        super().__init__(f"Vesting not complete: available at {available_at}, now {now}")


# ---------------------------------------------------------------------------
# Authorization errors
# ---------------------------------------------------------------------------


class AuthorizationError(CrowdfundError):
    """Actor is not permitted to perform the operation."""

    code: str = "AUTHORIZATION_ERROR"

    def __init__(self, actor: str, operation: str):
        self.actor = actor
        self.operation = operation
        super().__init__(f"Actor {actor!r} not authorized to {operation}")


class NotCreatorError(AuthorizationError):
    """Only the campaign creator may perform this operation."""

    code: str = "NOT_CREATOR"


class NotOperatorError(AuthorizationError):
    """Only the registry operator may perform this operation."""

    code: str = "NOT_OPERATOR"


class NotScheduleOwnerError(AuthorizationError):
    """Only the vesting owner may perform this operation."""

    code: str = "NOT_SCHEDULE_OWNER"


# ---------------------------------------------------------------------------
# Resource errors
# ---------------------------------------------------------------------------


class ResourceError(CrowdfundError):
    """Referenced resource is missing, out of bounds, or empty."""

    code: str = "RESOURCE_ERROR"


class ProjectNotFoundError(ResourceError):
    """Campaign id is not known to the registry."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Invalid project: {campaign_id}")


class InvestmentNotFoundError(ResourceError):
    """Investor has no contribution on this campaign."""

    code: str = "INVESTMENT_NOT_FOUND"

    def __init__(self, campaign_id: str, investor: str):
        self.campaign_id = campaign_id
        self.investor = investor
        super().__init__(f"No investment found for {investor} on project {campaign_id}")


class OffsetOutOfBoundsError(ResourceError):
    """Pagination offset is beyond the collection size."""

    code: str = "OFFSET_OUT_OF_BOUNDS"

    def __init__(self, offset: int, count: int):
        self.offset = offset
        self.count = count
        super().__init__(f"Offset out of bounds: {offset} > {count}")


class IndexOutOfBoundsError(ResourceError):
    """Index lookup is beyond the collection size."""

    code: str = "INDEX_OUT_OF_BOUNDS"

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"Index out of bounds: {index} >= {count}")


class NothingToWithdrawError(ResourceError):
    """Balance to withdraw is zero."""

    code: str = "NOTHING_TO_WITHDRAW"

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Nothing to withdraw from {source}")


class NothingToClaimError(ResourceError):
    """No vested tokens are currently claimable."""

    code: str = "NOTHING_TO_CLAIM"

    def __init__(self, beneficiary: str):
        self.beneficiary = beneficiary
        super().__init__(f"No tokens available to claim for {beneficiary}")


class InsufficientTokenBalanceError(ResourceError):
    """Vault balance does not cover the requested commitment."""

    code: str = "INSUFFICIENT_TOKEN_BALANCE"

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient token balance: requested {requested}, available {available}"
        )
