"""Refund aggregation and claim module."""

from eventbase.services.refunds.schemas import (
    ClaimBatchResult,
    RefundCandidate,
    RefundStatus,
    RefundSummary,
)
from eventbase.services.refunds.service import (
    RefundClaimer,
    compute_refundable,
    get_refund_claimer,
    reset_refund_claimers,
)

__all__ = [
    "ClaimBatchResult",
    "RefundCandidate",
    "RefundStatus",
    "RefundSummary",
    "RefundClaimer",
    "compute_refundable",
    "get_refund_claimer",
    "reset_refund_claimers",
]
