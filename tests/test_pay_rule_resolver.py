"""Tests for pay rule multiplier resolution."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ph_payroll.calculators.pay_rule_resolver import PayRuleResolver
from ph_payroll.calculators.types import DayType, HolidayType, PayComponent, PayRuleRow
from ph_payroll.errors import MissingPayRuleError

ORG = uuid4()
ON = date(2024, 6, 3)


def _rule(day_type, multiplier, holiday_type=None, component=PayComponent.REGULAR,
          effective_from=date(2024, 1, 1), effective_to=None, organization_id=ORG):
    return PayRuleRow(
        rule_id=uuid4(),
        organization_id=organization_id,
        day_type=day_type,
        holiday_type=holiday_type,
        applies_to=component,
        multiplier=Decimal(multiplier),
        effective_from=effective_from,
        effective_to=effective_to,
    )


class TestSelectRule:
    """Pure rule selection."""

    def test_specific_holiday_type_beats_wildcard(self):
        rules = [
            _rule(DayType.HOLIDAY, "1.30"),
            _rule(DayType.HOLIDAY, "2.00", HolidayType.REGULAR),
        ]
        multiplier = PayRuleResolver.resolve_from(
            rules, ORG, DayType.HOLIDAY, HolidayType.REGULAR, PayComponent.REGULAR, ON
        )
        assert multiplier == Decimal("2.00")

    def test_wildcard_covers_unlisted_holiday_type(self):
        rules = [
            _rule(DayType.HOLIDAY, "1.30"),
            _rule(DayType.HOLIDAY, "2.00", HolidayType.REGULAR),
        ]
        multiplier = PayRuleResolver.resolve_from(
            rules, ORG, DayType.HOLIDAY, HolidayType.LGU, PayComponent.REGULAR, ON
        )
        assert multiplier == Decimal("1.30")

    def test_later_effective_from_wins(self):
        """A newer wildcard rule outranks an older specific one."""
        rules = [
            _rule(DayType.HOLIDAY, "2.00", HolidayType.REGULAR, effective_from=date(2023, 1, 1)),
            _rule(DayType.HOLIDAY, "2.50", effective_from=date(2024, 1, 1)),
        ]
        multiplier = PayRuleResolver.resolve_from(
            rules, ORG, DayType.HOLIDAY, HolidayType.REGULAR, PayComponent.REGULAR, ON
        )
        assert multiplier == Decimal("2.50")

    def test_expired_and_future_rules_skipped(self):
        rules = [
            _rule(DayType.REGULAR, "1.10", effective_to=date(2023, 12, 31)),
            _rule(DayType.REGULAR, "1.20", effective_from=date(2025, 1, 1)),
        ]
        assert PayRuleResolver.select_rule(
            rules, ORG, DayType.REGULAR, None, PayComponent.REGULAR, ON
        ) is None

    def test_component_and_organization_must_match(self):
        rules = [
            _rule(DayType.REGULAR, "1.25", component=PayComponent.OVERTIME),
            _rule(DayType.REGULAR, "1.00", organization_id=uuid4()),
        ]
        assert PayRuleResolver.select_rule(
            rules, ORG, DayType.REGULAR, None, PayComponent.REGULAR, ON
        ) is None

    def test_missing_rule_raises(self):
        with pytest.raises(MissingPayRuleError) as exc_info:
            PayRuleResolver.resolve_from(
                [], ORG, DayType.REST, None, PayComponent.NIGHT_DIFF, ON
            )

        assert exc_info.value.day_type == "REST"
        assert exc_info.value.component == "NIGHT_DIFF"


class TestPayRuleResolver:
    """Resolution backed by the pay_rule table."""

    @pytest.mark.asyncio
    async def test_resolve_loads_rules(self, session, organization, pay_rules):
        resolver = PayRuleResolver(session)
        multiplier = await resolver.resolve(
            organization.organization_id,
            DayType.REST,
            None,
            PayComponent.OVERTIME,
            ON,
        )
        assert multiplier == Decimal("1.69")

    @pytest.mark.asyncio
    async def test_no_implicit_default(self, session, organization):
        resolver = PayRuleResolver(session)
        with pytest.raises(MissingPayRuleError):
            await resolver.resolve(
                organization.organization_id, DayType.REGULAR, None, PayComponent.REGULAR, ON
            )
