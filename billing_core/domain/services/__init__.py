"""Domain services package."""

from .ledger import (
    SUMMARY_PERIODS,
    apply_credit,
    apply_debit,
    block,
    fail_pending,
    open_pending,
    period_start,
    plan_reversal,
    replay_ledger,
    settle_pending,
    summarize_transactions,
    unblock,
)
from .numbering import format_document_number, period_key_for
from .pricing import (
    clamp_wallet_amount,
    compute_round_off,
    price_order,
    rebuild_breakdown,
)
from .tax import (
    MAX_GST_RATE,
    aggregate,
    compute_line,
    is_inter_state,
    price_line,
    split_tax,
)
from .tax_summary import summarize_tax

__all__ = [
    "MAX_GST_RATE",
    "SUMMARY_PERIODS",
    "aggregate",
    "apply_credit",
    "apply_debit",
    "block",
    "clamp_wallet_amount",
    "compute_line",
    "compute_round_off",
    "fail_pending",
    "format_document_number",
    "is_inter_state",
    "open_pending",
    "period_key_for",
    "period_start",
    "plan_reversal",
    "price_line",
    "price_order",
    "rebuild_breakdown",
    "replay_ledger",
    "settle_pending",
    "split_tax",
    "summarize_tax",
    "summarize_transactions",
    "unblock",
]
