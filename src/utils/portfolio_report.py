from __future__ import annotations

from typing import Sequence

from domain.portfolio import AssetSummary, GainDistributionEntry, PortfolioSummary, WalletDetail

from .formatting import format_currency, format_decimal, format_percent, format_signed_currency


def _render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    """First column left aligned, the rest right aligned."""
    widths = [max(len(header), max((len(row[index]) for row in rows), default=0)) for index, header in enumerate(headers)]

    def render_row(cells: Sequence[str]) -> str:
        parts = [f"{cells[0]:<{widths[0]}}"]
        parts.extend(f"{cell:>{width}}" for cell, width in zip(cells[1:], widths[1:]))
        return " ".join(parts)

    header = render_row(headers)
    lines = [header, "-" * len(header)]
    lines.extend(render_row(row) for row in rows)
    lines.append("-" * len(header))
    return lines


def render_portfolio_summary(summary: PortfolioSummary) -> str:
    lines = [
        "Portfolio summary:",
        f"  Invested:      {format_currency(summary.total_invested_usd)}",
        f"  Current value: {format_currency(summary.total_current_value_usd)}",
        f"  Sold:          {format_currency(summary.total_sold_usd)}",
        f"  Gain:          {format_signed_currency(summary.total_gain)} ({format_percent(summary.gain_percent)})",
    ]
    return "\n".join(lines)


def render_wallet_details(wallet_details: Sequence[WalletDetail]) -> str:
    if not wallet_details:
        return "Wallets:\n  (empty)"

    lines = ["Wallets:"]
    for detail in wallet_details:
        lines.append(
            f"{detail.wallet.name} ({detail.wallet.symbol}): value {format_currency(detail.total_current_value)}, "
            f"gain {format_signed_currency(detail.total_gain)} ({format_percent(detail.gain_percent)})"
        )
        rows = [
            (
                asset.asset_symbol,
                format_decimal(asset.current_balance),
                format_currency(asset.invested_fiat),
                format_currency(asset.current_value_fiat),
                format_signed_currency(asset.gain),
                format_percent(asset.gain_percent),
            )
            for asset in detail.asset_details
        ]
        lines.extend(_render_table(("Asset", "Balance", "Invested", "Value", "Gain", "Gain %"), rows))
    return "\n".join(lines)


def render_gain_distribution(entries: Sequence[GainDistributionEntry]) -> str:
    if not entries:
        return "Gain distribution:\n  (empty)"
    rows = [
        (entry.symbol, format_signed_currency(entry.gain), format_currency(entry.current_value), format_percent(entry.percent))
        for entry in entries
    ]
    return "\n".join(["Gain distribution:", *_render_table(("Asset", "Gain", "Value", "Share"), rows)])


def render_asset_summaries(summaries: Sequence[AssetSummary]) -> str:
    if not summaries:
        return "Assets:\n  (empty)"
    rows = [
        (
            summary.asset.symbol,
            format_decimal(summary.total_available),
            format_currency(summary.current_price),
            format_currency(summary.total_acquired_usd),
            format_currency(summary.total_sold_usd),
            format_currency(summary.current_value_usd),
            format_signed_currency(summary.gain_usd),
        )
        for summary in summaries
    ]
    headers = ("Asset", "Available", "Price", "Acquired", "Sold", "Value", "Gain")
    return "\n".join(["Assets:", *_render_table(headers, rows)])


def render_portfolio_report(
    summary: PortfolioSummary,
    wallet_details: Sequence[WalletDetail],
    distribution: Sequence[GainDistributionEntry],
    asset_summaries: Sequence[AssetSummary],
) -> str:
    sections = [
        render_portfolio_summary(summary),
        render_wallet_details(wallet_details),
        render_asset_summaries(asset_summaries),
        render_gain_distribution(distribution),
    ]
    return "\n\n".join(sections)


__all__ = [
    "render_asset_summaries",
    "render_gain_distribution",
    "render_portfolio_report",
    "render_portfolio_summary",
    "render_wallet_details",
]
