"""
Internal ledger of agency funds, one independent book per currency.

Two pools are tracked: funds in movement (recognized but not yet closed into
a month) and consolidated funds. The transaction log is the only stored
fact; balances are always a fold of the log from zero.

Credits and debits are plain appends and take no lock. Consolidating a period
reads the in-movement balance and writes the matching pair of entries inside
the store's per-currency exclusive section, so two consolidations can never
both move the same balance.
"""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from core.exceptions import AlreadyConsolidatedError
from core.models import (
    ConsolidationResult,
    Currency,
    EntryType,
    LedgerPool,
    LedgerReason,
    LedgerState,
    LedgerSummary,
    LedgerTransaction,
    Money,
)
from core.stores.base import LedgerStore
from utils.actor_context import peek_current_actor_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def fold(currency: Currency, transactions: list[LedgerTransaction]) -> LedgerState:
    """Replay a currency's log from zero."""
    state = LedgerState(currency=currency)

    for tx in transactions:
        if tx.currency != currency:
            continue
        state.transaction_count += 1
        if tx.pool == LedgerPool.IN_MOVEMENT:
            state.in_movement_scaled += tx.signed_scaled
        else:
            state.consolidated_scaled += tx.signed_scaled
            if tx.reason == LedgerReason.PERIOD_CONSOLIDATION:
                state.periods_consolidated += 1
                if state.last_consolidated_at is None or tx.created_at >= state.last_consolidated_at:
                    state.last_consolidated_at = tx.created_at
                    state.last_period_id = tx.period_id

    return state


def _prior_consolidation(
    period_id: str,
    currency: Currency,
    transactions: list[LedgerTransaction]
) -> ConsolidationResult | None:
    in_movement_side = None
    consolidated_side = None
    for tx in transactions:
        if tx.reason != LedgerReason.PERIOD_CONSOLIDATION or tx.period_id != period_id:
            continue
        if tx.pool == LedgerPool.IN_MOVEMENT:
            in_movement_side = tx
        else:
            consolidated_side = tx

    if consolidated_side is None or in_movement_side is None:
        return None
    return ConsolidationResult(
        period_id=period_id,
        currency=currency,
        amount_scaled=consolidated_side.signed_scaled,
        debit_id=in_movement_side.id,
        credit_id=consolidated_side.id,
        consolidated_at=consolidated_side.created_at,
    )


class LedgerService:
    """Service for ledger movements and consolidation."""

    def __init__(self, store: LedgerStore):
        self.store = store

    def _entry(
        self,
        pool: LedgerPool,
        entry_type: EntryType,
        amount_scaled: int,
        currency: Currency,
        reason: LedgerReason,
        reference: str | None,
        period_id: str | None,
        description: str | None,
        created_by: UUID | None
    ) -> LedgerTransaction:
        return LedgerTransaction(
            id=uuid4(),
            currency=currency,
            pool=pool,
            entry_type=entry_type,
            amount_scaled=amount_scaled,
            reason=reason,
            reference=reference,
            period_id=period_id,
            description=description,
            created_by=created_by or peek_current_actor_id(),
            created_at=now_utc(),
        )

    def _movement(
        self,
        entry_type: EntryType,
        amount: Money,
        reason: LedgerReason,
        reference: str | None,
        period_id: str | None,
        description: str | None,
        created_by: UUID | None
    ) -> LedgerTransaction:
        if not amount.is_positive():
            raise ValueError(f"Ledger {entry_type.value.lower()} must be positive, got {amount}")

        tx = self.store.append(self._entry(
            LedgerPool.IN_MOVEMENT, entry_type, amount.scaled, amount.currency,
            reason, reference, period_id, description, created_by,
        ))
        logger.info("Ledger %s %s (%s, ref=%s)", entry_type.value, amount, reason.value, reference)
        return tx

    def credit(
        self,
        amount: Money,
        reason: LedgerReason,
        reference: str | None = None,
        description: str | None = None,
        period_id: str | None = None,
        created_by: UUID | None = None
    ) -> LedgerTransaction:
        """
        Add funds to the in-movement pool.

        Raises:
            ValueError: If amount is not positive
        """
        return self._movement(EntryType.CREDIT, amount, reason, reference, period_id, description, created_by)

    def debit(
        self,
        amount: Money,
        reason: LedgerReason,
        reference: str | None = None,
        description: str | None = None,
        period_id: str | None = None,
        created_by: UUID | None = None
    ) -> LedgerTransaction:
        """
        Remove funds from the in-movement pool. Balances may go negative.

        Raises:
            ValueError: If amount is not positive
        """
        return self._movement(EntryType.DEBIT, amount, reason, reference, period_id, description, created_by)

    def get_state(self, currency: Currency) -> LedgerState:
        return fold(currency, self.store.list(currency))

    def replay(self, currency: Currency) -> LedgerState:
        """Recompute a currency's balances from its full log, for audits."""
        state = self.get_state(currency)
        logger.info(
            "Ledger replay %s: %d transactions, in movement %s, consolidated %s",
            currency.value, state.transaction_count, state.in_movement, state.consolidated
        )
        return state

    def consolidate_into(
        self,
        period_id: str,
        currency: Currency,
        created_by: UUID | None = None
    ) -> ConsolidationResult:
        """
        Move the whole in-movement balance of currency into the consolidated pool.

        Writes a DEBIT on in-movement and a CREDIT on consolidated (reversed if
        the balance is negative), both tagged with period_id. A zero balance
        still writes the pair so a second call is recognized.

        Returns:
            ConsolidationResult with the amount moved

        Raises:
            AlreadyConsolidatedError: If period_id was already consolidated
                for currency; carries the prior result and moves nothing
        """
        with self.store.exclusive(currency) as session:
            transactions = session.transactions()

            prior = _prior_consolidation(period_id, currency, transactions)
            if prior is not None:
                raise AlreadyConsolidatedError(prior)

            balance = fold(currency, transactions).in_movement_scaled
            if balance >= 0:
                out_type, in_type = EntryType.DEBIT, EntryType.CREDIT
            else:
                out_type, in_type = EntryType.CREDIT, EntryType.DEBIT

            description = f"Consolidation of period {period_id}"
            out_entry = session.append(self._entry(
                LedgerPool.IN_MOVEMENT, out_type, abs(balance), currency,
                LedgerReason.PERIOD_CONSOLIDATION, period_id, period_id, description, created_by,
            ))
            in_entry = session.append(self._entry(
                LedgerPool.CONSOLIDATED, in_type, abs(balance), currency,
                LedgerReason.PERIOD_CONSOLIDATION, period_id, period_id, description, created_by,
            ))

        result = ConsolidationResult(
            period_id=period_id,
            currency=currency,
            amount_scaled=balance,
            debit_id=out_entry.id,
            credit_id=in_entry.id,
            consolidated_at=in_entry.created_at,
        )
        logger.info("Consolidated %s into period %s", result.amount, period_id)
        return result

    def list_transactions(
        self,
        currency: Currency,
        reference: str | None = None,
        period_id: str | None = None
    ) -> list[LedgerTransaction]:
        return self.store.list(currency, reference=reference, period_id=period_id)

    def period_summary(self, currency: Currency, start: datetime, end: datetime) -> LedgerSummary:
        """Credit and debit totals of in-movement entries created in [start, end]."""
        summary = LedgerSummary(currency=currency)

        for tx in self.store.list(currency, start=start, end=end):
            if tx.pool != LedgerPool.IN_MOVEMENT or tx.reason == LedgerReason.PERIOD_CONSOLIDATION:
                continue
            if tx.entry_type == EntryType.CREDIT:
                summary.total_credits_scaled += tx.amount_scaled
                summary.credit_count += 1
            else:
                summary.total_debits_scaled += tx.amount_scaled
                summary.debit_count += 1
            summary.by_reason[tx.reason.value] = summary.by_reason.get(tx.reason.value, 0) + tx.signed_scaled

        summary.net_scaled = summary.total_credits_scaled - summary.total_debits_scaled
        return summary
