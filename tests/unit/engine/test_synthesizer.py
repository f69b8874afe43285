"""Tests for the Result Synthesizer."""

from decimal import Decimal

import pytest

from truedtbp.engine import (
    MARGIN_CALL_WARNING,
    EngineState,
    MarginPolicy,
    Position,
    ReplayOutcome,
    synthesize,
)


def _outcome(**overrides) -> ReplayOutcome:
    log = {
        "warnings": overrides.pop("warnings", ()),
        "audit_log": overrides.pop("audit_log", ("[Init]",)),
    }
    fields = {
        "dtbp_cap": Decimal("120000"),
        "dtbp_used": Decimal("0"),
        "maintenance_req": Decimal("0"),
        "equity": Decimal("30000"),
        "cash": Decimal("30000"),
        "pending_proceeds": Decimal("0"),
        "option_cash_used": Decimal("0"),
        "positions": {},
    }
    fields.update(overrides)
    return ReplayOutcome(state=EngineState(**fields), **log)


class TestSynthesize:
    """Tests for final capacity figures."""

    def test_untouched_account(self) -> None:
        """No trades: stock BP is the cap, option BP the excess."""
        result = synthesize(_outcome(), MarginPolicy.conservative())

        assert result.stock_bp == Decimal("120000")
        assert result.option_bp == Decimal("30000")
        assert result.intraday_bp == Decimal("120000")
        assert result.current_cash == Decimal("30000")
        assert result.warnings == ()

    def test_stock_bp_bounded_by_excess(self) -> None:
        """Stock BP is the lesser of DTBP left and 4x excess."""
        result = synthesize(
            _outcome(maintenance_req=Decimal("20000")), MarginPolicy.conservative()
        )

        assert result.intraday_bp == Decimal("40000")
        assert result.stock_bp == Decimal("40000")

    def test_stock_bp_bounded_by_dtbp(self) -> None:
        result = synthesize(_outcome(dtbp_used=Decimal("100000")), MarginPolicy.conservative())

        assert result.stock_bp == Decimal("20000")

    def test_clamped_at_zero(self) -> None:
        """Exceeded DTBP and margin deficits never go negative."""
        state = _outcome(
            dtbp_used=Decimal("150000"),
            maintenance_req=Decimal("40000"),
            warnings=(MARGIN_CALL_WARNING,),
        )

        result = synthesize(state, MarginPolicy.conservative())

        assert result.stock_bp == Decimal("0")
        assert result.option_bp == Decimal("0")
        assert result.intraday_bp == Decimal("0")
        assert result.has_margin_call

    def test_terminal_warnings(self) -> None:
        """Exhausted capacities add one warning each."""
        result = synthesize(_outcome(equity=Decimal("0")), MarginPolicy.conservative())

        assert any(w.startswith("NO STOCK BUYING POWER") for w in result.warnings)
        assert any(w.startswith("NO OPTION BUYING POWER") for w in result.warnings)

    def test_warnings_deduplicated_in_order(self) -> None:
        """Repeated warnings collapse, keeping first-seen order."""
        state = _outcome(warnings=("A", MARGIN_CALL_WARNING, "A", MARGIN_CALL_WARNING))

        result = synthesize(state, MarginPolicy.conservative())

        assert result.warnings == ("A", MARGIN_CALL_WARNING)

    def test_diagnostics_carried(self) -> None:
        """Running totals and policy label are reported."""
        state = _outcome(dtbp_used=Decimal("500"), pending_proceeds=Decimal("700"))

        result = synthesize(state, MarginPolicy.standard())

        assert result.dtbp_used == Decimal("500")
        assert result.pending_proceeds == Decimal("700")
        assert result.dtbp_start_of_day == Decimal("120000")
        assert result.policy == "standard/cash_only/broker_specific"
        assert result.audit_log == ("[Init]",)

    def test_open_positions_read_only(self) -> None:
        """Callers cannot edit the snapshot's positions."""
        positions = {"SPY": Position(quantity=Decimal("100"), avg_price=Decimal("100"))}

        result = synthesize(_outcome(positions=positions), MarginPolicy.conservative())

        with pytest.raises(TypeError):
            result.open_positions["QQQ"] = positions["SPY"]
        positions.clear()
        assert list(result.open_positions) == ["SPY"]
