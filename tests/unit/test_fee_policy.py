"""Tests for platform fee and creation-fee arithmetic."""

import pytest

from crowdfund_engines.fee_policy import (
    MAX_PLATFORM_FEE_BPS,
    FeePolicy,
    net_amount,
    platform_fee,
    split_proceeds,
    validate_creation_fee,
    validate_fee_bps,
)
from crowdfund_kernel.domain.values import UNIT
from crowdfund_kernel.exceptions import (
    FeeTooHighError,
    InsufficientFeeError,
    InvalidAmountError,
)


class TestPlatformFee:
    def test_default_rate(self):
        # 2.5% of 100 units
        assert platform_fee(100 * UNIT, 250) == 25 * UNIT // 10

    def test_floor_rounding(self):
        assert platform_fee(399, 250) == 9

    def test_zero_rate(self):
        assert platform_fee(100 * UNIT, 0) == 0

    def test_cap_rate(self):
        assert platform_fee(100, MAX_PLATFORM_FEE_BPS) == 10

    def test_above_cap_rejected(self):
        with pytest.raises(FeeTooHighError) as exc_info:
            platform_fee(100, 1_001)
        assert exc_info.value.fee_bps == 1_001
        assert exc_info.value.code == "FEE_TOO_HIGH"

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            platform_fee(-1, 250)

    def test_net_never_negative(self):
        assert net_amount(1, 1_000) == 1
        assert net_amount(0, 1_000) == 0

    def test_split_sums_to_gross(self):
        net, fee = split_proceeds(12_345_678, 777)
        assert net + fee == 12_345_678
        assert fee == 12_345_678 * 777 // 10_000


class TestFeeRateValidation:
    def test_negative_rate_rejected(self):
        with pytest.raises(InvalidAmountError):
            validate_fee_bps(-1)

    def test_custom_cap(self):
        validate_fee_bps(500, max_bps=500)
        with pytest.raises(FeeTooHighError):
            validate_fee_bps(501, max_bps=500)


class TestCreationFee:
    def test_exact_fee_has_no_excess(self):
        assert validate_creation_fee(UNIT, UNIT) == 0

    def test_excess_returned_exactly(self):
        assert validate_creation_fee(2 * UNIT, UNIT) == UNIT

    def test_insufficient_fee(self):
        with pytest.raises(InsufficientFeeError) as exc_info:
            validate_creation_fee(UNIT - 1, UNIT)
        assert exc_info.value.paid == UNIT - 1
        assert exc_info.value.required == UNIT

    def test_negative_payment_rejected(self):
        with pytest.raises(InvalidAmountError):
            validate_creation_fee(-1, 0)


class TestFeePolicy:
    def test_policy_applies_its_cap(self):
        policy = FeePolicy(max_fee_bps=300)
        assert policy.platform_fee(10_000, 300) == 300
        with pytest.raises(FeeTooHighError):
            policy.validate_fee_bps(301)

    def test_policy_split(self):
        assert FeePolicy().split_proceeds(100 * UNIT, 250) == (
            100 * UNIT - 25 * UNIT // 10,
            25 * UNIT // 10,
        )
