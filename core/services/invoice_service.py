"""
Invoice lifecycle: creation, activation, payment, overdue and cancellation.

Scheduled invoices are created in TRACKING while their billing period is still
accruing sales, and become PENDING once the cut date arrives. Manual invoices
start in PENDING. Payments move an invoice to PARTIAL and finally PAID;
unpaid balances past the due date become OVERDUE. PAID and CANCELLED are
terminal. Invoices are never deleted.

Status changes are written with compare-and-update against the status and
outstanding balance the decision was based on, so two writers can never both
apply a transition or a payment to the same starting state.
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable
from uuid import UUID, uuid4

from core.audit import AuditAction, AuditLogger, compute_changes
from core.collaborators import ContractDirectory, SalesSource
from core.config import BillingConfig
from core.event_bus import EventBus
from core.events import InvoiceActivated, InvoiceCancelled, InvoiceOverdue, InvoicePaid, InvoiceReminderDue
from core.exceptions import (
    CurrencyMismatchError,
    DuplicateKeyError,
    DuplicatePeriodError,
    InvalidTransitionError,
    InvoiceAlreadyClosedError,
    OverpaymentRejectedError,
)
from core.models import (
    AccountStatement,
    ActivationResult,
    BatchItemOutcome,
    BillingPeriod,
    CLOSED_STATUSES,
    CommissionType,
    Contract,
    Currency,
    Invoice,
    InvoiceStatus,
    LineItem,
    ManualInvoiceCreate,
    Money,
    OverdueResult,
    PAYABLE_STATUSES,
    Payment,
    PaymentCreate,
    PortfolioSummary,
    ScheduledBatchResult,
)
from core.services.commission_service import CommissionCalculator
from core.services.invoice_number_allocator import InvoiceNumberAllocator
from core.services.period_calculator import due_date, period_for, period_range
from core.stores.base import (
    INVOICE_CLIENT_PERIOD_CONSTRAINT,
    INVOICE_NUMBER_CONSTRAINT,
    RECEIPT_NUMBER_CONSTRAINT,
    InvoiceStore,
    PaymentStore,
)
from utils.actor_context import get_current_actor_id
from utils.timezone import as_date, end_of_day, now_utc, start_of_day, to_utc, today_utc

logger = logging.getLogger(__name__)

# Re-reads after losing a compare-and-update race before giving up
MAX_UPDATE_ATTEMPTS = 3


class InvoiceService:
    """Service for invoice lifecycle operations."""

    def __init__(
        self,
        invoices: InvoiceStore,
        payments: PaymentStore,
        sales: SalesSource,
        contracts: ContractDirectory,
        audit: AuditLogger,
        event_bus: EventBus,
        config: BillingConfig | None = None,
        commission: CommissionCalculator | None = None
    ):
        self.invoices = invoices
        self.payments = payments
        self.sales = sales
        self.contracts = contracts
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or BillingConfig()
        self.commission = commission or CommissionCalculator()
        self.invoice_numbers = InvoiceNumberAllocator(
            invoices,
            prefix=self.config.invoice_prefix,
            max_attempts=self.config.max_allocation_attempts,
            unique_constraint=INVOICE_NUMBER_CONSTRAINT,
        )
        self.receipt_numbers = InvoiceNumberAllocator(
            payments,
            prefix=self.config.receipt_prefix,
            max_attempts=self.config.max_allocation_attempts,
            unique_constraint=RECEIPT_NUMBER_CONSTRAINT,
        )

    # =========================================================================
    # CREATION
    # =========================================================================

    def _ensure_no_active_invoice(self, client_id: UUID, period: BillingPeriod) -> None:
        if self.invoices.find_active_for_period(client_id, period) is not None:
            raise DuplicatePeriodError(client_id, period.label)

    def _insert_numbered(
        self,
        year: int,
        build: Callable[[str], Invoice],
        client_id: UUID,
        period: BillingPeriod | None
    ) -> Invoice:
        try:
            _, invoice = self.invoice_numbers.allocate(year, commit=lambda number: self.invoices.insert(build(number)))
        except DuplicateKeyError as e:
            if e.constraint == INVOICE_CLIENT_PERIOD_CONSTRAINT and period is not None:
                raise DuplicatePeriodError(client_id, period.label) from e
            raise
        return invoice

    def create_scheduled(
        self,
        contract: Contract,
        reference_date: date | None = None,
        created_by: UUID | None = None
    ) -> Invoice:
        """
        Create the TRACKING invoice for the billing period containing reference_date.

        Args:
            contract: Client's effective contract
            reference_date: Any day inside the period (defaults to today UTC)
            created_by: Operator to attribute (defaults to current actor)

        Returns:
            Created invoice in TRACKING status

        Raises:
            DuplicatePeriodError: If the client already has an active invoice for the period
            ValueError: If the client has no sales in the period or the scale is missing
        """
        reference_date = reference_date or today_utc()
        created_by = created_by or get_current_actor_id()
        period = period_for(contract.billing_cadence, reference_date)

        self._ensure_no_active_invoice(contract.client_id, period)

        range_start, _ = period_range(period)
        range_end = period.cut_date - timedelta(days=1)
        if range_start < contract.start_date <= range_end:
            range_start = contract.start_date

        sales = self.sales.list_sales(contract.client_id, start_of_day(range_start), end_of_day(range_end))
        if not sales:
            raise ValueError(
                f"Client {contract.client_id} has no sales between {range_start} and {range_end}"
            )

        gross = Money.sum((sale.amount for sale in sales), contract.currency)

        scale = None
        if contract.commission_type == CommissionType.TIERED:
            scale = self.contracts.get_scale(contract.tiered_scale_id)
            if scale is None:
                raise ValueError(f"Commission scale {contract.tiered_scale_id} not found")

        percentage, commission = self.commission.commission_for(gross, contract, scale)

        if scale is None:
            concept = f"Commission {percentage.normalize():f}% on sales"
        else:
            concept = f"Tiered commission ({scale.name})"

        item = LineItem(
            concept=concept,
            quantity=Decimal("1"),
            unit_price_scaled=commission.scaled,
            subtotal_scaled=commission.scaled,
            notes=f"Total sales: {gross.format(self.config.currency_config(gross.currency))}",
        )

        now = now_utc()
        fields = dict(
            client_id=contract.client_id,
            contract_id=contract.id,
            status=InvoiceStatus.TRACKING,
            currency=contract.currency,
            period_year=period.year,
            period_month=period.month,
            period_half=period.half,
            line_items=[item],
            subtotal_scaled=commission.scaled,
            discount_scaled=0,
            total_scaled=commission.scaled,
            outstanding_scaled=commission.scaled,
            issue_date=today_utc(),
            cut_date=period.cut_date,
            due_date=due_date(period.cut_date, contract.due_days or self.config.grace_period_days),
            sales_total_scaled=gross.scaled,
            sales_count=len(sales),
            commission_percentage=percentage,
            range_start=range_start,
            range_end=range_end,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

        invoice = self._insert_numbered(
            period.year,
            lambda number: Invoice(id=uuid4(), invoice_number=number, **fields),
            contract.client_id,
            period,
        )

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={"created": invoice.model_dump(mode="json")}
        )

        logger.info(
            "Created scheduled invoice %s for client %s period %s: %s on sales %s",
            invoice.invoice_number, invoice.client_id, period.label, invoice.total, gross
        )
        return invoice

    def create_manual(self, data: ManualInvoiceCreate, created_by: UUID | None = None) -> Invoice:
        """
        Issue an invoice by hand. It starts PENDING with the cut date on its issue date.

        Args:
            data: Invoice contents
            created_by: Operator to attribute (defaults to current actor)

        Returns:
            Created invoice in PENDING status

        Raises:
            DuplicatePeriodError: If a period is given and already has an active invoice
            ValueError: If the discount exceeds the subtotal
        """
        created_by = created_by or get_current_actor_id()

        if data.period is not None:
            self._ensure_no_active_invoice(data.client_id, data.period)

        items = []
        for line in data.items:
            unit_price = Money.from_display(line.unit_price, data.currency)
            subtotal = unit_price.multiply_by_ratio(line.quantity)
            items.append(LineItem(
                concept=line.concept,
                quantity=line.quantity,
                unit_price_scaled=unit_price.scaled,
                subtotal_scaled=subtotal.scaled,
                notes=line.notes,
            ))

        subtotal = Money.sum((Money(i.subtotal_scaled, data.currency) for i in items), data.currency)
        discount = Money.from_display(data.discount, data.currency)
        if discount > subtotal:
            raise ValueError(f"Discount {discount} exceeds subtotal {subtotal}")
        total = subtotal - discount

        issue_date = data.issue_date or today_utc()
        now = now_utc()
        fields = dict(
            client_id=data.client_id,
            status=InvoiceStatus.PENDING,
            currency=data.currency,
            period_year=data.period.year if data.period else None,
            period_month=data.period.month if data.period else None,
            period_half=data.period.half if data.period else None,
            line_items=items,
            subtotal_scaled=subtotal.scaled,
            discount_scaled=discount.scaled,
            total_scaled=total.scaled,
            outstanding_scaled=total.scaled,
            issue_date=issue_date,
            cut_date=issue_date,
            due_date=due_date(issue_date, data.due_days or self.config.grace_period_days),
            notes=data.notes,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            activated_at=now,
        )

        invoice = self._insert_numbered(
            issue_date.year,
            lambda number: Invoice(id=uuid4(), invoice_number=number, **fields),
            data.client_id,
            data.period,
        )

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={"created": invoice.model_dump(mode="json")}
        )

        logger.info("Created manual invoice %s for client %s: %s", invoice.invoice_number, invoice.client_id, total)
        return invoice

    def generate_scheduled_for_all(
        self,
        contracts: Iterable[Contract],
        reference_date: date | None = None
    ) -> ScheduledBatchResult:
        """
        Create the scheduled invoice of every contract's current period.

        Clients that already have one, or had no sales, are skipped. Any
        other failure is recorded per client and does not stop the batch.
        """
        result = ScheduledBatchResult()

        for contract in contracts:
            key = str(contract.client_id)
            try:
                result.created.append(self.create_scheduled(contract, reference_date))
            except DuplicatePeriodError as e:
                result.skipped[key] = str(e)
            except ValueError as e:
                logger.info("Skipping client %s: %s", contract.client_id, e)
                result.skipped[key] = str(e)
            except Exception as e:
                logger.exception("Failed to create scheduled invoice for client %s", contract.client_id)
                result.failed[key] = str(e)

        logger.info(
            "Scheduled invoice run: %d created, %d skipped, %d failed",
            len(result.created), len(result.skipped), len(result.failed)
        )
        return result

    # =========================================================================
    # TIME-DRIVEN TRANSITIONS
    # =========================================================================

    def _transition(
        self,
        invoice_id: UUID,
        guard: Callable[[Invoice], bool],
        changes: Callable[[Invoice], dict]
    ) -> Invoice | None:
        """Re-read, re-check guard, and compare-and-update. None if the guard no longer holds."""
        current = self.invoices.get(invoice_id)
        if current is None or not guard(current):
            return None

        updated = current.model_copy(update=changes(current))
        stored = self.invoices.compare_and_update(current, updated)
        if stored is None:
            return None

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.STATUS_CHANGE,
            changes=compute_changes(current.model_dump(mode="json"), stored.model_dump(mode="json"))
        )
        return stored

    def activate_due(self, now: datetime | date | None = None) -> ActivationResult:
        """
        Move every TRACKING invoice whose cut date has arrived to PENDING.

        Safe to re-run: invoices already activated are simply not found again.
        A failure on one invoice is logged and does not stop the others.

        Args:
            now: Moment of the run (defaults to now UTC)

        Returns:
            ActivationResult with per-invoice outcomes
        """
        moment = now if isinstance(now, datetime) else now_utc()
        today = as_date(now) if now is not None else today_utc()
        result = ActivationResult()

        def guard(invoice: Invoice) -> bool:
            return invoice.status == InvoiceStatus.TRACKING and invoice.cut_date <= today

        def changes(invoice: Invoice) -> dict:
            return {"status": InvoiceStatus.PENDING, "activated_at": moment, "updated_at": moment}

        for candidate in self.invoices.list_due_for_activation(today):
            outcome = BatchItemOutcome(
                outcome="done", invoice_id=candidate.id,
                invoice_number=candidate.invoice_number, client_id=candidate.client_id,
            )
            try:
                activated = self._transition(candidate.id, guard, changes)
            except Exception as e:
                logger.exception("Failed to activate invoice %s", candidate.invoice_number)
                result.failed += 1
                result.items.append(outcome.model_copy(update={"outcome": "failed", "error": str(e)}))
                continue

            if activated is None:
                result.skipped += 1
                result.items.append(outcome.model_copy(update={"outcome": "skipped"}))
                continue

            result.activated += 1
            result.items.append(outcome)
            logger.info("Invoice %s activated (cut date %s)", activated.invoice_number, activated.cut_date)
            self.event_bus.publish(InvoiceActivated.create(invoice=activated))

        return result

    def mark_overdue_if_past_due(self, now: datetime | date | None = None) -> OverdueResult:
        """
        Mark PENDING or PARTIAL invoices past their due date with a balance as OVERDUE.

        Idempotent; per-invoice failures are isolated like activate_due.
        """
        moment = now if isinstance(now, datetime) else now_utc()
        today = as_date(now) if now is not None else today_utc()
        result = OverdueResult()

        def guard(invoice: Invoice) -> bool:
            return (
                invoice.status in (InvoiceStatus.PENDING, InvoiceStatus.PARTIAL)
                and invoice.due_date < today
                and invoice.outstanding_scaled > 0
            )

        def changes(invoice: Invoice) -> dict:
            return {"status": InvoiceStatus.OVERDUE, "overdue_at": moment, "updated_at": moment}

        for candidate in self.invoices.list_past_due(today):
            outcome = BatchItemOutcome(
                outcome="done", invoice_id=candidate.id,
                invoice_number=candidate.invoice_number, client_id=candidate.client_id,
            )
            try:
                overdue = self._transition(candidate.id, guard, changes)
            except Exception as e:
                logger.exception("Failed to mark invoice %s overdue", candidate.invoice_number)
                result.failed += 1
                result.items.append(outcome.model_copy(update={"outcome": "failed", "error": str(e)}))
                continue

            if overdue is None:
                result.skipped += 1
                result.items.append(outcome.model_copy(update={"outcome": "skipped"}))
                continue

            result.marked += 1
            result.items.append(outcome)
            logger.info("Invoice %s is overdue (due %s)", overdue.invoice_number, overdue.due_date)
            self.event_bus.publish(InvoiceOverdue.create(invoice=overdue))

        return result

    def send_reminders(self, now: datetime | date | None = None) -> int:
        """
        Publish InvoiceReminderDue for unpaid invoices on a configured reminder day.

        Reminder days are offsets from the due date (reminder_days_before_due and
        reminder_days_after_due). Not deduplicated; run it once a day.

        Returns:
            Number of reminders published
        """
        today = as_date(now) if now is not None else today_utc()
        before = set(self.config.reminder_days_before_due)
        after = set(self.config.reminder_days_after_due)
        sent = 0

        for invoice in self.invoices.list(statuses=PAYABLE_STATUSES):
            if invoice.outstanding_scaled == 0:
                continue
            days_from_due = (today - invoice.due_date).days
            if -days_from_due in before or days_from_due in after:
                self.event_bus.publish(InvoiceReminderDue.create(invoice=invoice, days_from_due=days_from_due))
                sent += 1

        if sent:
            logger.info("Published %d payment reminders for %s", sent, today)
        return sent

    # =========================================================================
    # OPERATOR ACTIONS
    # =========================================================================

    def _require(self, invoice_id: UUID) -> Invoice:
        invoice = self.invoices.get(invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        return invoice

    def _undo_payment(self, stored: Invoice, before: Invoice) -> None:
        """Put back the balance a payment took when its Payment row could not be written."""
        restored = stored.model_copy(update={
            "status": before.status,
            "outstanding_scaled": before.outstanding_scaled,
            "payment_ids": list(before.payment_ids),
            "paid_at": before.paid_at,
            "updated_at": now_utc(),
        })
        if self.invoices.compare_and_update(stored, restored) is None:
            logger.error(
                "Invoice %s changed before a failed payment could be undone; outstanding %s needs review",
                stored.invoice_number, stored.outstanding
            )
            return
        logger.warning("Payment on invoice %s not recorded; balance restored", stored.invoice_number)

    def apply_payment(self, invoice_id: UUID, data: PaymentCreate) -> tuple[Invoice, Payment]:
        """
        Record a payment against an invoice.

        The invoice update and the Payment row are written separately. If the
        Payment row cannot be written, the invoice balance is restored before
        the error propagates.

        Args:
            invoice_id: Invoice UUID
            data: Payment amount, currency and details

        Returns:
            (updated invoice, stored payment with its receipt number)

        Raises:
            ValueError: If invoice not found
            InvoiceAlreadyClosedError: If invoice is PAID or CANCELLED
            InvalidTransitionError: If invoice is still TRACKING
            CurrencyMismatchError: If payment currency differs from the invoice
            OverpaymentRejectedError: If amount exceeds the outstanding balance
        """
        recorded_by = get_current_actor_id()
        payment_id = uuid4()
        paid_at = to_utc(data.paid_at) if data.paid_at else now_utc()
        receipt_year = paid_at.year

        for _ in range(MAX_UPDATE_ATTEMPTS):
            current = self._require(invoice_id)

            if current.status in CLOSED_STATUSES:
                raise InvoiceAlreadyClosedError(invoice_id, current.status.value)
            if current.status == InvoiceStatus.TRACKING:
                raise InvalidTransitionError(invoice_id, current.status.value, "accept payments")
            if data.currency != current.currency:
                raise CurrencyMismatchError(current.currency.value, data.currency.value)

            amount = Money.from_display(data.amount, data.currency)
            if not amount.is_positive():
                raise ValueError("Payment amount must be positive")
            if amount > current.outstanding:
                raise OverpaymentRejectedError(invoice_id, amount, current.outstanding)

            remaining = current.outstanding - amount
            now = now_utc()
            new_status = InvoiceStatus.PAID if remaining.is_zero() else InvoiceStatus.PARTIAL

            updated = current.model_copy(update={
                "status": new_status,
                "outstanding_scaled": remaining.scaled,
                "payment_ids": [*current.payment_ids, payment_id],
                "paid_at": paid_at if new_status == InvoiceStatus.PAID else current.paid_at,
                "updated_at": now,
            })
            stored = self.invoices.compare_and_update(current, updated)
            if stored is not None:
                break
            logger.info("Invoice %s changed while recording a payment, retrying", current.invoice_number)
        else:
            raise ValueError(f"Invoice {invoice_id} is being modified concurrently, try again")

        try:
            _, payment = self.receipt_numbers.allocate(
                receipt_year,
                commit=lambda number: self.payments.insert(Payment(
                    id=payment_id,
                    invoice_id=invoice_id,
                    receipt_number=number,
                    amount_scaled=amount.scaled,
                    currency=amount.currency,
                    paid_at=paid_at,
                    method=data.method,
                    reference=data.reference,
                    notes=data.notes,
                    recorded_by=recorded_by,
                    created_at=now,
                )),
            )
        except Exception:
            self._undo_payment(stored, current)
            raise

        self.audit.log_change(
            entity_type="payment",
            entity_id=payment.id,
            action=AuditAction.CREATE,
            changes={"created": payment.model_dump(mode="json")}
        )
        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.UPDATE,
            changes={
                "outstanding_scaled": {"old": current.outstanding_scaled, "new": stored.outstanding_scaled},
                "status": {"old": current.status.value, "new": stored.status.value},
                "payment_recorded": str(payment.id),
            }
        )

        logger.info(
            "Payment %s of %s on invoice %s; outstanding %s (%s)",
            payment.receipt_number, amount, stored.invoice_number, stored.outstanding, stored.status.value
        )

        if stored.status == InvoiceStatus.PAID:
            self.event_bus.publish(InvoicePaid.create(invoice=stored, payment=payment))

        return stored, payment

    def record_payment(self, invoice_id: UUID, data: PaymentCreate) -> tuple[Invoice, Payment]:
        """Alias of apply_payment."""
        return self.apply_payment(invoice_id, data)

    def cancel(self, invoice_id: UUID, reason: str | None = None) -> Invoice:
        """
        Cancel an invoice. Terminal; frees its billing period for a new invoice.

        Raises:
            ValueError: If invoice not found
            InvoiceAlreadyClosedError: If invoice is PAID or already CANCELLED
        """
        for _ in range(MAX_UPDATE_ATTEMPTS):
            current = self._require(invoice_id)
            if current.status in CLOSED_STATUSES:
                raise InvoiceAlreadyClosedError(invoice_id, current.status.value)

            now = now_utc()
            updated = current.model_copy(update={
                "status": InvoiceStatus.CANCELLED,
                "cancel_reason": reason,
                "cancelled_at": now,
                "updated_at": now,
            })
            stored = self.invoices.compare_and_update(current, updated)
            if stored is not None:
                break
        else:
            raise ValueError(f"Invoice {invoice_id} is being modified concurrently, try again")

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.STATUS_CHANGE,
            changes={
                "status": {"old": current.status.value, "new": InvoiceStatus.CANCELLED.value},
                "cancel_reason": {"old": None, "new": reason},
            }
        )

        logger.info("Invoice %s cancelled (was %s)", stored.invoice_number, current.status.value)
        self.event_bus.publish(InvoiceCancelled.create(invoice=stored, reason=reason))
        return stored

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        return self.invoices.get(invoice_id)

    def list_for_client(self, client_id: UUID, statuses: Iterable[InvoiceStatus] | None = None) -> list[Invoice]:
        return self.invoices.list(statuses=statuses, client_id=client_id)

    def list_by_status(self, status: InvoiceStatus) -> list[Invoice]:
        return self.invoices.list(statuses=[status])

    def list_payments(self, invoice_id: UUID) -> list[Payment]:
        return self.payments.list_for_invoices([invoice_id])

    def portfolio_summary(self, currency: Currency | None = None) -> PortfolioSummary:
        """
        Receivables overview: billed, paid, outstanding and overdue amounts.

        Billed covers invoices that are payable or settled; TRACKING and
        CANCELLED invoices only appear in the status counts.
        """
        currency = currency or self.config.default_currency
        summary = PortfolioSummary(currency=currency)

        for invoice in self.invoices.list():
            summary.counts_by_status[invoice.status.value] = summary.counts_by_status.get(invoice.status.value, 0) + 1
            if invoice.currency != currency or invoice.status in (InvoiceStatus.TRACKING, InvoiceStatus.CANCELLED):
                continue
            summary.billed_scaled += invoice.total_scaled
            summary.paid_scaled += invoice.paid_amount.scaled
            summary.outstanding_scaled += invoice.outstanding_scaled
            if invoice.status == InvoiceStatus.OVERDUE:
                summary.overdue_scaled += invoice.outstanding_scaled

        if summary.billed_scaled:
            rate = Decimal(summary.paid_scaled) * 100 / Decimal(summary.billed_scaled)
            summary.collection_rate = rate.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return summary

    def account_statement(
        self,
        client_id: UUID,
        start: date,
        end: date,
        currency: Currency | None = None
    ) -> AccountStatement:
        """A client's non-cancelled invoices issued in [start, end] and their payments."""
        currency = currency or self.config.default_currency
        invoices = [
            i for i in self.invoices.list(client_id=client_id, issued_from=start, issued_to=end)
            if i.currency == currency and i.status != InvoiceStatus.CANCELLED
        ]
        payments = self.payments.list_for_invoices([i.id for i in invoices])

        billed = sum(i.total_scaled for i in invoices)
        paid = sum(p.amount_scaled for p in payments)
        return AccountStatement(
            client_id=client_id,
            currency=currency,
            start=start,
            end=end,
            invoices=invoices,
            payments=payments,
            total_billed_scaled=billed,
            total_paid_scaled=paid,
            balance_scaled=billed - paid,
        )
