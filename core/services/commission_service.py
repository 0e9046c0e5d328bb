"""
Commission calculation.

Pure functions over contracts and commission scales. A FLAT contract uses its
fixed percentage; a TIERED contract picks the single tier whose bracket holds
the gross sales display value and applies that percentage to the whole
amount.
"""

import logging
from decimal import Decimal
from typing import Iterable

from core.models import CommissionScale, CommissionTier, CommissionType, Contract, Money

logger = logging.getLogger(__name__)


class CommissionCalculator:
    """Resolves the agency percentage for a sales total."""

    def resolve_percentage(
        self,
        gross_sales: Money,
        contract: Contract,
        scale: CommissionScale | None = None
    ) -> Decimal:
        """
        Agency percentage that applies to gross_sales under contract.

        Args:
            gross_sales: Total sales for the period
            contract: Client's effective contract
            scale: Commission scale, required for TIERED contracts

        Returns:
            Percentage as a Decimal (20 = 20%)

        Raises:
            ValueError: If the contract is missing the terms its type needs
        """
        if contract.commission_type == CommissionType.FLAT:
            if contract.flat_percentage is None:
                raise ValueError(f"Contract {contract.id} is FLAT but has no percentage")
            return contract.flat_percentage

        if scale is None:
            raise ValueError(f"Contract {contract.id} is TIERED but no commission scale was given")

        value = gross_sales.to_display()
        matches = self.matching_tiers(value, scale)
        if matches:
            return matches[0].percentage

        # only reachable when the highest tier has a max_usd; validate_scale rejects that
        fallback = max(scale.tiers, key=lambda t: t.min_usd)
        logger.warning(
            "No tier of scale %s matches %s; using last tier (%s%%)",
            scale.name, value, fallback.percentage
        )
        return fallback.percentage

    def commission_for(
        self,
        gross_sales: Money,
        contract: Contract,
        scale: CommissionScale | None = None
    ) -> tuple[Decimal, Money]:
        """Resolve the percentage and apply it. Returns (percentage, commission)."""
        percentage = self.resolve_percentage(gross_sales, contract, scale)
        return percentage, gross_sales.percentage(percentage)

    @staticmethod
    def matching_tiers(value: Decimal, scale: CommissionScale) -> list[CommissionTier]:
        """
        Every tier whose bracket holds value, in ascending order.

        Bounds are written in whole units (0-19999, 20000-25999), so a bracket
        runs from its min_usd up to, but not including, the next tier's
        min_usd. 19999.50 is therefore still in the first bracket. The
        highest tier ends at its own max_usd, inclusive, or never.
        """
        ordered = sorted(scale.tiers, key=lambda t: t.min_usd)
        matches = []
        for tier, following in zip(ordered, ordered[1:] + [None]):
            if following is None:
                inside = tier.matches(value)
            else:
                inside = tier.min_usd <= value < following.min_usd
            if inside:
                matches.append(tier)
        return matches

    @staticmethod
    def validate_scale(tiers: Iterable[CommissionTier]) -> list[CommissionTier]:
        """
        Check that tiers cover [0, inf) exactly once and return them sorted by min_usd.

        Rules: at least one tier, the first starts at 0, brackets never overlap,
        each min_usd lies within one unit above the previous max_usd (the
        bracket covers that step, see matching_tiers), and the last tier, and
        only the last, is open-ended.

        Raises:
            ValueError: Describing the first rule broken
        """
        ordered = sorted(tiers, key=lambda t: t.min_usd)
        if not ordered:
            raise ValueError("A commission scale needs at least one tier")

        if ordered[0].min_usd != 0:
            raise ValueError("The first tier must start at 0")

        for current, following in zip(ordered, ordered[1:]):
            if current.max_usd is None:
                raise ValueError("Only the last tier may have no maximum")
            if following.min_usd <= current.max_usd:
                raise ValueError(
                    f"Tiers overlap: {current.min_usd}-{current.max_usd} and "
                    f"{following.min_usd}-{following.max_usd or 'and above'}"
                )
            if following.min_usd - current.max_usd > 1:
                raise ValueError(
                    f"Gap between tiers: nothing covers {current.max_usd} to {following.min_usd}"
                )

        if ordered[-1].max_usd is not None:
            raise ValueError(f"Gap between tiers: nothing covers amounts above {ordered[-1].max_usd}")

        return ordered
