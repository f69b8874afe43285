"""Settings Resolver: start-of-day DTBP cap from account settings."""

from __future__ import annotations

from decimal import Decimal

import msgspec

from truedtbp.engine.formatting import usd
from truedtbp.engine.models import PDT_MIN_EQUITY, AccountSettings, AccountType


PDT_MULTIPLIER = Decimal(4)
NON_PDT_MULTIPLIER = Decimal(2)


class ResolvedCap(msgspec.Struct, frozen=True, gc=False):
    """Starting DTBP cap with its provenance."""

    cap: Decimal
    maintenance_excess: Decimal
    source: str  # "broker override" or "computed"
    audit_line: str
    warnings: tuple[str, ...] = ()


def resolve_cap(settings: AccountSettings) -> ResolvedCap:
    """
    Derive the day's DTBP cap.

    A broker-reported override > 0 wins; otherwise the cap is the
    start-of-day maintenance excess times 4 (PDT) or 2.

    Example:
        >>> resolve_cap(AccountSettings(start_equity=Decimal("30000"))).cap
        Decimal('120000')
    """
    maintenance_excess = max(
        Decimal(0), settings.start_equity - settings.start_maintenance_req
    )
    multiplier = PDT_MULTIPLIER if settings.is_pdt else NON_PDT_MULTIPLIER

    if settings.dtbp_override is not None and settings.dtbp_override > 0:
        cap = Decimal(settings.dtbp_override)
        source = "broker override"
        detail = "broker override"
    else:
        cap = maintenance_excess * multiplier
        source = "computed"
        detail = f"computed: {multiplier}x maintenance excess {usd(maintenance_excess)}"

    warnings: list[str] = []
    if settings.is_pdt and settings.start_equity < PDT_MIN_EQUITY:
        warnings.append(
            f"Below PDT minimum equity ({usd(PDT_MIN_EQUITY)}); "
            "broker may restrict day trading"
        )
    if settings.account_type == AccountType.CASH:
        warnings.append(
            "Cash account: margin DTBP figures are hypothetical, "
            "only settled cash is spendable"
        )

    audit_line = (
        f"[Init] Equity: {usd(settings.start_equity)} | "
        f"Maint Req: {usd(settings.start_maintenance_req)} | "
        f"DTBP Cap: {usd(cap)} ({detail})"
    )

    return ResolvedCap(
        cap=cap,
        maintenance_excess=maintenance_excess,
        source=source,
        audit_line=audit_line,
        warnings=tuple(warnings),
    )
