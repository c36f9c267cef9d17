"""Render products and their tariffs as text."""

from ..models import Product, RateWindow, TariffSummary, TariffType


def format_rate(value: float | None) -> str:
    return "n/a" if value is None else f"{value}"


def format_rate_window(window: RateWindow, rate_name: str = "", rate_unit: str = "p/kWh") -> str:
    """Format one rate window, e.g. '2020-01-01 ... to ...: Day unit rate 15.0 p/kWh'."""
    return (
        f"    {window.valid_from.isoformat()} to {window.valid_to.isoformat()}: "
        f"{rate_name} {window.value_inc_vat} {rate_unit}"
    )


def format_tariff_summary(tariff: TariffSummary) -> list[str]:
    """Format a tariff headline plus its rate history, oldest first."""
    if tariff.tariff_type is TariffType.DUAL_REGISTER_ELECTRICITY:
        price = (
            f"Day unit rate: {format_rate(tariff.day_unit_rate_inc_vat)} p/kWh, "
            f"Night unit rate: {format_rate(tariff.night_unit_rate_inc_vat)} p/kWh"
        )
    else:
        price = f"Standard unit rate: {format_rate(tariff.standard_unit_rate_inc_vat)} p/kWh"

    lines = [
        f"  + {tariff.tariff_code}: {tariff.tariff_type.display_name} {tariff.payment_model}: "
        f"Standing charge: {format_rate(tariff.standing_charge_inc_vat)} p/day, {price}"
    ]

    schedules = [
        (tariff.standing_charges, "Standing charge", "p/day"),
        (tariff.standard_unit_rates, "Standard unit rate", "p/kWh"),
        (tariff.day_unit_rates, "Day unit rate", "p/kWh"),
        (tariff.night_unit_rates, "Night unit rate", "p/kWh"),
    ]
    for schedule, name, unit in schedules:
        for window in reversed(schedule or ()):
            lines.append(format_rate_window(window, name, unit))
    return lines


def format_product(product: Product) -> str:
    """Format a product and the tariffs it offers in its region (or all regions)."""
    active_at = product.tariffs_active_at.isoformat() if product.tariffs_active_at else "unknown"
    lines = [f'Product {product.code} "{product.display_name}" tariffs active at {active_at}']

    if not product.tariffs:
        lines.append("  + No applicable tariffs")
        return "\n".join(lines)

    if product.region:
        tariff_sets = [product.tariffs.get(product.region, ())]
    else:
        tariff_sets = list(product.tariffs.values())

    for tariffs in tariff_sets:
        for tariff in tariffs:
            lines.extend(format_tariff_summary(tariff))
    return "\n".join(lines)
