"""Unit tests for the quota gate decision functions."""
import pytest

from swipefeed.schemas.feed import QuotaDecision
from swipefeed.schemas.profile import SwipeAction
from swipefeed.services import quota_gate
from swipefeed.services.quota_gate import QuotaGate
from swipefeed.services.profile_cache import InMemoryProfileCache
from swipefeed.services.profile_repository import ProfileRepository
from swipefeed.services.swipe_ledger import SwipeLedger


class TestCheck:

    @pytest.mark.parametrize("count", [0, 1, 9])
    def test_permit_below_limit(self, count):
        assert quota_gate.check(count, 10) is QuotaDecision.PERMIT

    @pytest.mark.parametrize("count", [10, 11, 50])
    def test_deny_at_or_above_limit(self, count):
        assert quota_gate.check(count, 10) is QuotaDecision.DENY

    def test_zero_limit_always_denies(self):
        assert quota_gate.check(0, 0) is QuotaDecision.DENY

    def test_negative_limit_is_a_configuration_error(self):
        with pytest.raises(ValueError):
            quota_gate.check(0, -1)
        with pytest.raises(ValueError):
            QuotaGate(-1)


class TestRemaining:

    def test_remaining_below_limit(self):
        for count in range(0, 11):
            assert quota_gate.remaining(count, 10) == 10 - count

    def test_remaining_clamped_above_limit(self):
        assert quota_gate.remaining(11, 10) == 0
        assert quota_gate.remaining(100, 10) == 0

    def test_has_reached_limit(self):
        gate = QuotaGate(limit=3)
        assert not gate.has_reached_limit(2)
        assert gate.has_reached_limit(3)
        assert gate.remaining(1) == 2


class TestIdempotence:

    @pytest.mark.asyncio
    async def test_repeated_checks_never_touch_ledger(self):
        ledger = SwipeLedger(ProfileRepository(source=None, cache=InMemoryProfileCache()))
        await ledger.append(SwipeAction(profile_id="p1", direction="right"))
        gate = QuotaGate(limit=2)

        decisions = {gate.check(ledger.count()) for _ in range(25)}

        assert decisions == {QuotaDecision.PERMIT}
        assert ledger.count() == 1
        assert len(ledger.history()) == 1
