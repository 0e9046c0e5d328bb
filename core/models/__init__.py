"""Core domain models."""

from core.models.money import (
    Money, Currency, CurrencyConfig, DisplayFormat,
    DEFAULT_CURRENCY_CONFIGS, SCALE_FACTOR, SCALE_DIGITS,
)
from core.models.contract import (
    Contract, CommissionType, BillingCadence,
    CommissionTier, CommissionScale, DEFAULT_COMMISSION_SCALE,
)
from core.models.period import (
    BillingPeriod, PeriodState, PeriodTotals, TopClient, ConsolidatedPeriod, period_id_for,
)
from core.models.sale import Sale
from core.models.invoice import (
    Invoice, InvoiceStatus, LineItem, LineItemCreate, ManualInvoiceCreate,
    CLOSED_STATUSES, PAYABLE_STATUSES,
)
from core.models.payment import Payment, PaymentCreate, PaymentMethod
from core.models.statement import MonthlyStatement
from core.models.ledger import (
    LedgerPool, EntryType, LedgerReason, LedgerTransaction,
    LedgerState, ConsolidationResult, LedgerSummary,
)
from core.models.results import (
    BatchItemOutcome, ActivationResult, OverdueResult, ScheduledBatchResult,
    StatementBatchResult, PortfolioSummary, AccountStatement,
)

__all__ = [
    # Money
    "Money", "Currency", "CurrencyConfig", "DisplayFormat",
    "DEFAULT_CURRENCY_CONFIGS", "SCALE_FACTOR", "SCALE_DIGITS",
    # Contract
    "Contract", "CommissionType", "BillingCadence",
    "CommissionTier", "CommissionScale", "DEFAULT_COMMISSION_SCALE",
    # Period
    "BillingPeriod", "PeriodState", "PeriodTotals", "TopClient", "ConsolidatedPeriod", "period_id_for",
    # Sale
    "Sale",
    # Invoice
    "Invoice", "InvoiceStatus", "LineItem", "LineItemCreate", "ManualInvoiceCreate",
    "CLOSED_STATUSES", "PAYABLE_STATUSES",
    # Payment
    "Payment", "PaymentCreate", "PaymentMethod",
    # Statement
    "MonthlyStatement",
    # Ledger
    "LedgerPool", "EntryType", "LedgerReason", "LedgerTransaction",
    "LedgerState", "ConsolidationResult", "LedgerSummary",
    # Results
    "BatchItemOutcome", "ActivationResult", "OverdueResult", "ScheduledBatchResult",
    "StatementBatchResult", "PortfolioSummary", "AccountStatement",
]
