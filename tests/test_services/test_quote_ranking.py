"""Tests for quote ranking."""

from autoquote.models.calls import CallResult, Quotation
from autoquote.services.quote_ranking import analyze_and_rank


def _result(call_id: str, shop: str, price: float | None = None, days: float | None = None) -> CallResult:
    quotation = Quotation(price=price, estimated_days=days) if price is not None else None
    return CallResult(call_id=call_id, shop_name=shop, status="ended", quotation=quotation)


def test_ranks_cheapest_first():
    results = [
        _result("c-1", "A", 600, 5),
        _result("c-2", "B", 450, 3),
        _result("c-3", "C"),
    ]

    analysis = analyze_and_rank(results)

    assert [r.shop_name for r in analysis.ranked] == ["B", "A"]
    assert analysis.best_option.shop_name == "B"
    assert analysis.summary == (
        "Analyzed 3 repair shop(s).\n"
        "Received 2 quote(s):\n\n"
        "1. B: $450.00 (3 days)\n"
        "2. A: $600.00 (5 days)\n"
        "\nRECOMMENDED: B with the lowest quote of $450.00"
    )


def test_no_positive_price_means_no_best_option():
    results = [_result("c-1", "A", 0), _result("c-2", "B")]

    analysis = analyze_and_rank(results)

    assert analysis.ranked == []
    assert analysis.best_option is None
    assert analysis.summary == "Analyzed 2 repair shop(s).\nNo quotations were obtained from the calls."


def test_empty_results():
    analysis = analyze_and_rank([])
    assert analysis.best_option is None
    assert analysis.summary.startswith("Analyzed 0 repair shop(s).")


def test_ties_keep_call_order():
    results = [_result("c-1", "First", 500), _result("c-2", "Second", 500)]
    analysis = analyze_and_rank(results)
    assert [r.call_id for r in analysis.ranked] == ["c-1", "c-2"]


def test_ranking_is_deterministic():
    results = [_result(f"c-{i}", f"Shop {i}", price) for i, price in enumerate([700, 300, 300, 900])]
    first = analyze_and_rank(results)
    second = analyze_and_rank(list(results))
    assert first == second


def test_days_omitted_when_unknown():
    analysis = analyze_and_rank([_result("c-1", "A", 1234.5)])
    assert "1. A: $1234.50\n" in analysis.summary
    assert "days" not in analysis.summary


def test_fractional_days():
    analysis = analyze_and_rank([_result("c-1", "A", 800, 2.5)])
    assert "(2.5 days)" in analysis.summary
