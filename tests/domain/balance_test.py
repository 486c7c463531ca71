from decimal import Decimal

from domain.balance import BalanceEngine, WalletBalanceTracker, inflow_of, net_add_back, outflow_of
from domain.ledger import LedgerSnapshot
from tests.constants import BIN_WALLET, BTC, DAY_1, DAY_2, ETH, LEDGER_WALLET, USDT
from tests.helpers.builders import deposit, swap, transfer, withdrawal


def test_available_balance_is_zero_without_movements() -> None:
    engine = BalanceEngine(LedgerSnapshot())

    assert engine.available_balance(BIN_WALLET, BTC) == Decimal(0)
    assert engine.available_balance(LEDGER_WALLET, USDT) == Decimal(0)


def test_deposit_increases_balance_by_exact_quantity() -> None:
    before = BalanceEngine(LedgerSnapshot([deposit("0.1", "30000")]))
    after = BalanceEngine(LedgerSnapshot([deposit("0.1", "30000"), deposit("0.2", "31000", day=DAY_2)]))

    delta = after.available_balance(BIN_WALLET, BTC) - before.available_balance(BIN_WALLET, BTC)

    assert delta == Decimal("0.2")
    assert after.available_balance(BIN_WALLET, BTC) == Decimal("0.3")


def test_balance_combines_every_movement_kind() -> None:
    snapshot = LedgerSnapshot(
        [
            deposit("2", "40000"),
            withdrawal("0.25", "42000", day=DAY_2),
            transfer("0.5", "0.49", day=DAY_2),
            swap("0.25", "4", source_price="40000", dest_price="2500", day=DAY_2),
            deposit("1", "2000", asset_id=ETH),
        ]
    )
    engine = BalanceEngine(snapshot)

    assert engine.available_balance(BIN_WALLET, BTC) == Decimal("1.00")
    assert engine.available_balance(LEDGER_WALLET, BTC) == Decimal("0.49")
    assert engine.available_balance(BIN_WALLET, ETH) == Decimal("5")


def test_balance_is_not_clamped_when_negative() -> None:
    engine = BalanceEngine(LedgerSnapshot([withdrawal("1", "100")]))

    assert engine.available_balance(BIN_WALLET, BTC) == Decimal("-1")


def test_add_back_is_added_to_the_balance() -> None:
    engine = BalanceEngine(LedgerSnapshot([deposit("1", "100"), withdrawal("0.4", "100")]))

    assert engine.available_balance(BIN_WALLET, BTC, add_back=Decimal("0.4")) == Decimal("1.0")


def test_asset_balances_for_filters_wallets() -> None:
    snapshot = LedgerSnapshot(
        [
            deposit("1.2", "2000", asset_id=ETH),
            deposit("0.8", "2000", asset_id=ETH, wallet_id=LEDGER_WALLET),
            deposit("0.2", "30000"),
        ]
    )
    engine = BalanceEngine(snapshot)

    assert engine.asset_balances_for({BIN_WALLET}) == {ETH: Decimal("1.2"), BTC: Decimal("0.2")}
    assert engine.asset_balances_for()[ETH] == Decimal("2.0")


def test_outflow_of_only_counts_matching_outflow_legs() -> None:
    movement = transfer("0.5", "0.45")

    assert outflow_of(movement, BIN_WALLET, BTC) == Decimal("0.5")
    assert outflow_of(movement, LEDGER_WALLET, BTC) == Decimal(0)
    assert outflow_of(deposit("1", "1"), BIN_WALLET, BTC) == Decimal(0)


def test_net_add_back_removes_both_directions_of_a_movement() -> None:
    movement = transfer("0.5", "0.45")

    assert inflow_of(movement, LEDGER_WALLET, BTC) == Decimal("0.45")
    assert inflow_of(movement, BIN_WALLET, BTC) == Decimal(0)
    assert net_add_back(movement, BIN_WALLET, BTC) == Decimal("0.5")
    assert net_add_back(movement, LEDGER_WALLET, BTC) == Decimal("-0.45")
    assert net_add_back(deposit("1", "1"), BIN_WALLET, BTC) == Decimal(-1)


def test_wallet_balance_tracker_accumulates_on_top_of_engine() -> None:
    engine = BalanceEngine(LedgerSnapshot([deposit("1", "100", day=DAY_1)]))
    tracker = WalletBalanceTracker(engine)

    tracker.apply_movement(withdrawal("0.3", "100"))
    tracker.apply_movement(transfer("0.2", "0.2"))

    assert tracker.get_balance(wallet_id=BIN_WALLET, asset_id=BTC) == Decimal("0.5")
    assert tracker.get_balance(wallet_id=LEDGER_WALLET, asset_id=BTC) == Decimal("0.2")
    assert tracker.has_available(wallet_id=BIN_WALLET, asset_id=BTC, quantity=Decimal("0.5"))
    assert not tracker.has_available(wallet_id=BIN_WALLET, asset_id=BTC, quantity=Decimal("0.51"))
    # The underlying engine is untouched.
    assert engine.available_balance(BIN_WALLET, BTC) == Decimal("1")
