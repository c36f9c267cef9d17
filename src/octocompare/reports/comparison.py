"""Render tariff comparisons as text lines or JSON-ready dicts."""

from ..models import Comparison, TariffComparison


def format_tariff_comparison(result: TariffComparison) -> str:
    """Format one result like 'CODE: Standing charges: ..., saving: £x.xx'."""
    code = f"*** {result.code}" if result.is_comparator else result.code
    return (
        f"{code:>28}: Standing charges: {result.sc:5.2f}, tariff charges {result.tc:5.2f}; "
        f"total £{result.total:5.2f}, saving: £{result.saving:5.2f}"
    )


def format_comparison_text(comparison: Comparison, verbose: bool = False) -> str:
    """Format a comparison summary, listing every alternative when verbose."""
    text = f"Period: {comparison.period_start.strftime('%Y-%m-%d')}"
    if comparison.period_end:
        text += f"..{comparison.period_end.strftime('%Y-%m-%d')}"
    text += f" Comparator: {comparison.comparator.code} "
    if verbose:
        text += "\n"
        text += "\n".join(format_tariff_comparison(a) for a in comparison.alternatives)
        text += "\n"
    winner = comparison.winner
    text += f"Winner: {winner.code}: Total: £{winner.total:5.2f}, Saving: £{winner.saving:5.2f}"
    return text


def tariff_comparison_to_dict(result: TariffComparison) -> dict:
    return {
        "code": result.code,
        "sc": result.sc,
        "tc": result.tc,
        "total": result.total,
        "saving": result.saving,
        "is_comparator": result.is_comparator,
    }


def comparison_to_dict(comparison: Comparison) -> dict:
    """Convert a comparison to a JSON-serialisable dict."""
    return {
        "period_start": comparison.period_start.isoformat(),
        "period_end": comparison.period_end.isoformat() if comparison.period_end else None,
        "comparator": tariff_comparison_to_dict(comparison.comparator),
        "alternatives": [tariff_comparison_to_dict(a) for a in comparison.alternatives],
        "winner": tariff_comparison_to_dict(comparison.winner),
    }
