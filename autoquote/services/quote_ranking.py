"""Rank quotations collected from a call session."""

from autoquote.models.calls import CallResult, QuoteAnalysis


def _format_days(days: float) -> str:
    return f"{days:g}"


def analyze_and_rank(results: list[CallResult]) -> QuoteAnalysis:
    """Rank calls by quoted price, cheapest first.

    Calls without a quotation or with a non-positive price are left out.
    Ties keep their call order.

    Args:
        results: Call results of one session

    Returns:
        QuoteAnalysis with ranked quotes, the best option and a text summary
    """
    quoted = [r for r in results if r.quotation is not None and r.quotation.price > 0]
    ranked = sorted(quoted, key=lambda r: r.quotation.price)
    best = ranked[0] if ranked else None

    summary = f"Analyzed {len(results)} repair shop(s).\n"
    if not ranked:
        summary += "No quotations were obtained from the calls."
        return QuoteAnalysis(ranked=[], best_option=None, summary=summary)

    summary += f"Received {len(ranked)} quote(s):\n\n"
    for i, result in enumerate(ranked, start=1):
        line = f"{i}. {result.shop_name}: ${result.quotation.price:.2f}"
        if result.quotation.estimated_days:
            line += f" ({_format_days(result.quotation.estimated_days)} days)"
        summary += line + "\n"
    summary += (
        f"\nRECOMMENDED: {best.shop_name} with the lowest quote of ${best.quotation.price:.2f}"
    )
    return QuoteAnalysis(ranked=ranked, best_option=best, summary=summary)
