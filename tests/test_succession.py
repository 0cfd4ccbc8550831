"""
Tests for the succession cost estimate.
"""

import pytest

from wealthlab.config import DEFAULT_CONFIG
from wealthlab.core.diagnostics import D, Diagnostics
from wealthlab.core.kinds import AssetKind
from wealthlab.core.profile import Asset, ClientProfile, SuccessionConfig
from wealthlab.succession import calculate_succession, effective_rates


@pytest.fixture
def estate_assets():
    return (
        Asset("a1", "Brokerage", 1_000_000.0),
        Asset("a2", "Offshore ETF", 100_000.0, currency="USD"),
        Asset("a3", "Apartment", 2_000_000.0, kind=AssetKind.ILLIQUID),
        Asset("a4", "VGBL", 300_000.0, kind=AssetKind.PENSION, plan_type="VGBL"),
        Asset("a5", "PGBL", 200_000.0, kind=AssetKind.PENSION, plan_type="PGBL"),
    )


class TestSuccessionBuckets:
    """Test how assets are split into estate buckets."""

    def test_buckets_in_base_currency(self, estate_assets):
        result = calculate_succession(ClientProfile(assets=estate_assets))

        assert result.financial_total == pytest.approx(1_500_000.0)
        assert result.illiquid_total == pytest.approx(2_000_000.0)
        assert result.previdencia_vgbl == pytest.approx(300_000.0)
        assert result.previdencia_pgbl == pytest.approx(200_000.0)
        assert result.previdencia_total == pytest.approx(500_000.0)
        assert result.total_estate == pytest.approx(4_000_000.0)

    def test_other_assets_count_as_illiquid(self):
        assets = (Asset("x1", "Art", 10_000.0, kind=AssetKind.OTHER),)
        result = calculate_succession(ClientProfile(assets=assets))

        assert result.illiquid_total == 10_000.0
        assert result.financial_total == 0.0

    def test_pension_without_plan_type_is_vgbl(self):
        assets = (Asset("p1", "Plan", 1000.0, kind=AssetKind.PENSION),)
        result = calculate_succession(ClientProfile(assets=assets))

        assert result.previdencia_vgbl == 1000.0
        assert result.previdencia_pgbl == 0.0

    def test_empty_estate(self):
        result = calculate_succession(ClientProfile())

        assert result.total_estate == 0.0
        assert result.costs.total == 0.0
        assert result.liquidity_gap == 0.0
        assert result.liquidity_ratio == 0.0


class TestSuccessionCosts:
    """Test ITCMD, legal and court fee computation."""

    def test_default_sp_costs(self, estate_assets):
        result = calculate_succession(ClientProfile(assets=estate_assets))

        assert result.taxable_estate == pytest.approx(3_500_000.0)
        assert result.itcmd_base == pytest.approx(3_500_000.0)
        assert result.costs.itcmd == pytest.approx(140_000.0)
        assert result.costs.legal == pytest.approx(175_000.0)
        assert result.costs.fees == pytest.approx(70_000.0)
        assert result.costs.total == pytest.approx(385_000.0)
        assert result.liquidity_gap == 0.0

    def test_itcmd_applied_to_pension(self, estate_assets):
        succession = SuccessionConfig(apply_itcmd_to_pension=True)
        result = calculate_succession(
            ClientProfile(assets=estate_assets, succession=succession)
        )

        assert result.itcmd_base == pytest.approx(4_000_000.0)
        assert result.taxable_estate == pytest.approx(3_500_000.0)
        assert result.costs.itcmd == pytest.approx(160_000.0)

    def test_pension_in_inventory(self, estate_assets):
        succession = SuccessionConfig(exclude_pension_from_inventory=False)
        result = calculate_succession(
            ClientProfile(assets=estate_assets, succession=succession)
        )

        assert result.taxable_estate == pytest.approx(4_000_000.0)
        assert result.itcmd_base == pytest.approx(4_000_000.0)
        assert result.costs.legal == pytest.approx(200_000.0)

    def test_illiquid_estate_has_liquidity_gap(self):
        assets = (Asset("h1", "House", 1_000_000.0, kind=AssetKind.ILLIQUID),)
        result = calculate_succession(ClientProfile(assets=assets))

        assert result.costs.total == pytest.approx(110_000.0)
        assert result.liquidity_gap == pytest.approx(110_000.0)

    def test_state_fallback_rate(self):
        assets = (Asset("a1", "Cash", 100_000.0),)
        result = calculate_succession(
            ClientProfile(assets=assets, succession=SuccessionConfig(state="RJ"))
        )

        assert result.state == "RJ"
        assert result.rates["itcmd"] == 0.08
        assert result.costs.itcmd == pytest.approx(8_000.0)

    def test_fixed_fees(self):
        assets = (Asset("a1", "Cash", 100_000.0),)
        succession = SuccessionConfig(fees_fixed=1500.0)
        result = calculate_succession(ClientProfile(assets=assets, succession=succession))

        assert result.costs.fees == pytest.approx(2_000.0 + 1500.0)

    def test_to_dict_keys(self, estate_assets):
        data = calculate_succession(ClientProfile(assets=estate_assets)).to_dict()

        assert data["costs"]["total"] == pytest.approx(385_000.0)
        assert data["rates"]["itcmd"] == 0.04
        assert "liquidityGap" in data
        assert "itcmdBase" in data


class TestEffectiveRates:
    """Test rate fallbacks and clamping."""

    def test_defaults(self):
        rates = effective_rates(SuccessionConfig())

        assert rates == {"itcmd": 0.04, "legal": 0.05, "fees": 0.02, "feesFixed": 0.0}

    def test_unknown_state_uses_default_itcmd(self):
        rates = effective_rates(SuccessionConfig(state="XX"))
        assert rates["itcmd"] == DEFAULT_CONFIG.default_itcmd_rate

    def test_rates_clamped(self):
        succession = SuccessionConfig(
            itcmd_rate=0.5, legal_rate=-0.1, fees_rate=0.03, fees_fixed=-10.0
        )
        rates = effective_rates(succession)

        assert rates["itcmd"] == DEFAULT_CONFIG.max_succession_rate
        assert rates["legal"] == 0.0
        assert rates["fees"] == 0.03
        assert rates["feesFixed"] == 0.0


class TestSuccessionCurrency:
    """Test currency handling."""

    def test_profile_rates_win(self):
        assets = (Asset("a1", "ETF", 1000.0, currency="USD"),)
        result = calculate_succession(
            ClientProfile(assets=assets, fx_rates={"USD_BRL": 5.4})
        )

        assert result.financial_total == pytest.approx(5400.0)

    def test_unknown_currency_records_diagnostic(self):
        assets = (Asset("a1", "Gilt", 1000.0, currency="GBP"),)
        diagnostics = Diagnostics()

        result = calculate_succession(ClientProfile(assets=assets), diagnostics=diagnostics)

        assert result.financial_total == 1000.0
        assert diagnostics.has(D.FX_RATE_DEFAULTED)
