"""Tax reporting grouped by GST rate and HSN code."""

from collections.abc import Iterable

from billing_core.domain.models import Money, PricingBreakdown, TaxRateSummary


def summarize_tax(breakdowns: Iterable[PricingBreakdown]) -> list[TaxRateSummary]:
    """Group line taxes from many breakdowns by ``(gst_rate, hsn_code)``.

    Line taxable amounts already exclude each line's share of the order
    coupon, so the GST columns add up to the GST charged on the documents.

    Returns:
        list[TaxRateSummary]: Rows sorted by rate, then HSN code.
    """
    groups: dict[tuple, list[int]] = {}
    for breakdown in breakdowns:
        for line in breakdown.lines:
            key = (line.item.gst_rate, line.item.hsn_code)
            totals = groups.setdefault(key, [0, 0, 0, 0, 0])
            totals[0] += line.taxable_amount.minor
            totals[1] += line.split.cgst.minor
            totals[2] += line.split.sgst.minor
            totals[3] += line.split.igst.minor
            totals[4] += 1

    return [
        TaxRateSummary(
            gst_rate=rate,
            hsn_code=hsn_code,
            taxable_amount=Money(totals[0]),
            cgst=Money(totals[1]),
            sgst=Money(totals[2]),
            igst=Money(totals[3]),
            line_count=totals[4],
        )
        for (rate, hsn_code), totals in sorted(groups.items())
    ]


__all__ = ["summarize_tax"]
