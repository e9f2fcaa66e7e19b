"""Pay rule multiplier resolution."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.calculators.types import DayType, HolidayType, PayComponent, PayRuleRow
from ph_payroll.errors import MissingPayRuleError
from ph_payroll.models import PayRule


class PayRuleResolver:
    """Resolves the multiplier for a day type and pay component.

    Matching rules for a row:
    - same organization, day type and component
    - holiday type equal to the given one, or NULL (wildcard)
    - effective on the date

    Tie-break: latest ``effective_from``, then a specific holiday type over
    the wildcard. There is no implicit 1.0 fallback.
    """

    def __init__(self, session: AsyncSession, rules: list[PayRuleRow] | None = None):
        self.session = session
        self._rules = rules

    async def load_rules(self, organization_id: UUID) -> list[PayRuleRow]:
        """Load and cache every rule for the organization."""
        result = await self.session.execute(
            select(PayRule).where(PayRule.organization_id == organization_id)
        )
        self._rules = [r.to_row() for r in result.scalars().all()]
        return self._rules

    async def resolve(
        self,
        organization_id: UUID,
        day_type: DayType,
        holiday_type: HolidayType | None,
        component: PayComponent,
        as_of_date: date,
    ) -> Decimal:
        """Resolve a multiplier.

        Raises:
            MissingPayRuleError: If no rule matches
        """
        rules = self._rules
        if rules is None:
            rules = await self.load_rules(organization_id)
        return self.resolve_from(
            rules, organization_id, day_type, holiday_type, component, as_of_date
        )

    @classmethod
    def resolve_from(
        cls,
        rules: Iterable[PayRuleRow],
        organization_id: UUID,
        day_type: DayType,
        holiday_type: HolidayType | None,
        component: PayComponent,
        as_of_date: date,
    ) -> Decimal:
        """Resolve a multiplier from preloaded rules."""
        rule = cls.select_rule(
            rules, organization_id, day_type, holiday_type, component, as_of_date
        )
        if rule is None:
            raise MissingPayRuleError(
                organization_id,
                day_type.value,
                holiday_type.value if holiday_type else None,
                component.value,
                as_of_date,
            )
        return rule.multiplier

    @staticmethod
    def select_rule(
        rules: Iterable[PayRuleRow],
        organization_id: UUID,
        day_type: DayType,
        holiday_type: HolidayType | None,
        component: PayComponent,
        as_of_date: date,
    ) -> PayRuleRow | None:
        best: PayRuleRow | None = None
        best_key: tuple[date, int] | None = None

        for rule in rules:
            if rule.organization_id != organization_id:
                continue
            if rule.day_type != day_type or rule.applies_to != component:
                continue
            if rule.holiday_type is not None and rule.holiday_type != holiday_type:
                continue
            if rule.effective_from > as_of_date:
                continue
            if rule.effective_to is not None and rule.effective_to < as_of_date:
                continue

            # Later effective_from wins, then specific over wildcard
            key = (rule.effective_from, 0 if rule.holiday_type is None else 1)
            if best_key is None or key > best_key:
                best = rule
                best_key = key

        return best
