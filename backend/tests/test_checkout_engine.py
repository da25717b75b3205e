"""
Cart & checkout engine tests.

The engine is pure in-memory logic; persistence is a fake recorder so these
tests need no app or database.
"""

import threading
from dataclasses import dataclass
from decimal import Decimal

import pytest

from counterpos.checkout import Cashier, CheckoutEngine, CheckoutState
from counterpos.errors import (
    CheckoutStateError,
    CollaboratorUnavailable,
    EmptyCart,
    InsufficientPayment,
    InsufficientStock,
    NotFound,
)


@dataclass
class StockItem:
    id: int
    name: str
    price: Decimal
    stock: int


class FakeRecorder:
    """Stands in for OrderLedger: remembers drafts and stock movements."""

    def __init__(self, stock=None, fail_with=None):
        self.drafts = []
        self.stock = dict(stock or {})
        self.fail_with = fail_with

    def record_sale(self, draft):
        if self.fail_with is not None:
            raise self.fail_with
        for line in draft.lines:
            self.stock[line.item_id] -= line.quantity
        self.drafts.append(draft)
        return draft


class BlockingRecorder(FakeRecorder):
    """Holds record_sale open until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def record_sale(self, draft):
        self.entered.set()
        self.release.wait(timeout=5)
        self.drafts.append(draft)
        return draft


WATER = StockItem(1, "Water", Decimal("10.00"), 5)
BREAD = StockItem(2, "Bread", Decimal("5.50"), 3)
SOLD_OUT = StockItem(3, "Gum", Decimal("1.00"), 0)


@pytest.fixture
def recorder():
    return FakeRecorder(stock={WATER.id: WATER.stock, BREAD.id: BREAD.stock})


@pytest.fixture
def engine(recorder):
    return CheckoutEngine(Cashier(id=7, name="cashier"), recorder)


# =============================================================================
# CART BUILDING
# =============================================================================


class TestCartBuilding:
    def test_new_engine_is_empty(self, engine):
        assert engine.state == CheckoutState.EMPTY
        assert engine.lines == []
        assert engine.compute_total() == Decimal("0.00")

    def test_add_item_inserts_line_with_quantity_one(self, engine):
        line = engine.add_item(WATER)
        assert line.quantity == 1
        assert engine.state == CheckoutState.BUILDING

    def test_add_same_item_increments_quantity(self, engine):
        engine.add_item(WATER)
        engine.add_item(WATER)
        assert engine.quantity_of(WATER.id) == 2
        assert len(engine.lines) == 1

    def test_add_out_of_stock_item_rejected(self, engine):
        with pytest.raises(InsufficientStock):
            engine.add_item(SOLD_OUT)
        assert engine.lines == []
        assert engine.state == CheckoutState.EMPTY

    def test_add_beyond_stock_rejected_and_quantity_kept(self, engine):
        for _ in range(3):
            engine.add_item(BREAD)
        with pytest.raises(InsufficientStock):
            engine.add_item(BREAD)
        assert engine.quantity_of(BREAD.id) == 3

    def test_increment_beyond_stock_rejected_and_quantity_kept(self, engine):
        for _ in range(3):
            engine.add_item(BREAD)
        with pytest.raises(InsufficientStock):
            engine.set_quantity(BREAD.id, +1)
        assert engine.quantity_of(BREAD.id) == 3

    def test_decrement_never_drops_below_one(self, engine):
        engine.add_item(WATER)
        engine.set_quantity(WATER.id, -1)
        assert engine.quantity_of(WATER.id) == 1
        assert engine.state == CheckoutState.BUILDING

    def test_set_quantity_on_missing_line(self, engine):
        with pytest.raises(NotFound):
            engine.set_quantity(WATER.id, 1)

    @pytest.mark.parametrize("delta", [0, 2, -5, None, "1", True, 1.5])
    def test_set_quantity_rejects_bad_delta(self, engine, delta):
        engine.add_item(WATER)
        with pytest.raises(ValueError):
            engine.set_quantity(WATER.id, delta)
        assert engine.quantity_of(WATER.id) == 1

    def test_remove_item_deletes_line(self, engine):
        engine.add_item(WATER)
        engine.add_item(BREAD)
        engine.remove_item(WATER.id)
        assert [line.item_id for line in engine.lines] == [BREAD.id]
        engine.remove_item(BREAD.id)
        assert engine.state == CheckoutState.EMPTY

    def test_remove_missing_item_is_noop(self, engine):
        engine.remove_item(99)
        assert engine.state == CheckoutState.EMPTY

    def test_lines_are_copies(self, engine):
        engine.add_item(WATER)
        engine.lines[0].quantity = 99
        assert engine.quantity_of(WATER.id) == 1

    def test_readd_refreshes_price_and_stock(self, engine):
        engine.add_item(WATER)
        repriced = StockItem(WATER.id, "Water", Decimal("12.00"), 1)
        with pytest.raises(InsufficientStock):
            engine.add_item(repriced)
        assert engine.lines[0].unit_price == Decimal("10.00")

        restocked = StockItem(WATER.id, "Water", Decimal("12.00"), 10)
        engine.add_item(restocked)
        assert engine.lines[0].unit_price == Decimal("12.00")
        assert engine.lines[0].stock == 10

    def test_quantity_stays_within_bounds_over_random_edits(self, engine):
        import random

        rng = random.Random(1234)
        for _ in range(300):
            op = rng.choice(["add", "inc", "dec", "remove"])
            item = rng.choice([WATER, BREAD])
            try:
                if op == "add":
                    engine.add_item(item)
                elif op == "inc":
                    engine.set_quantity(item.id, 1)
                elif op == "dec":
                    engine.set_quantity(item.id, -1)
                else:
                    engine.remove_item(item.id)
            except (InsufficientStock, NotFound):
                pass
            for line in engine.lines:
                assert 1 <= line.quantity <= line.stock


# =============================================================================
# TOTALS
# =============================================================================


class TestTotals:
    def test_total_is_exact_sum(self, engine):
        engine.add_item(WATER)
        engine.add_item(WATER)
        engine.add_item(BREAD)
        assert engine.compute_total() == Decimal("25.50")

    def test_total_has_no_float_drift(self):
        cents = StockItem(10, "Mint", Decimal("0.10"), 100)
        engine = CheckoutEngine(Cashier(1, "c"), FakeRecorder())
        for _ in range(3):
            engine.add_item(cents)
        assert engine.compute_total() == Decimal("0.30")

    def test_total_follows_every_mutation(self, engine):
        engine.add_item(WATER)
        assert engine.compute_total() == Decimal("10.00")
        engine.set_quantity(WATER.id, 1)
        assert engine.compute_total() == Decimal("20.00")
        engine.remove_item(WATER.id)
        assert engine.compute_total() == Decimal("0.00")

    def test_quote_previews_change(self, engine):
        engine.add_item(WATER)
        quote = engine.quote("12.25")
        assert quote == {
            "total": "10.00",
            "amount_tendered": "12.25",
            "change": "2.25",
            "sufficient": True,
        }
        assert engine.quote("5")["sufficient"] is False


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckout:
    def test_begin_checkout_on_empty_cart(self, engine):
        with pytest.raises(EmptyCart):
            engine.begin_checkout()
        assert engine.state == CheckoutState.EMPTY

    def test_begin_checkout_returns_total(self, engine):
        engine.add_item(BREAD)
        assert engine.begin_checkout() == Decimal("5.50")
        assert engine.state == CheckoutState.READY_FOR_PAYMENT

    def test_cart_frozen_while_ready_for_payment(self, engine):
        engine.add_item(BREAD)
        engine.begin_checkout()
        with pytest.raises(CheckoutStateError):
            engine.add_item(WATER)

    def test_cancel_checkout_keeps_cart(self, engine):
        engine.add_item(BREAD)
        engine.begin_checkout()
        engine.cancel_checkout()
        assert engine.state == CheckoutState.BUILDING
        assert engine.quantity_of(BREAD.id) == 1

    def test_commit_without_begin_rejected(self, engine, recorder):
        engine.add_item(BREAD)
        with pytest.raises(CheckoutStateError):
            engine.commit("CASH", "100")
        assert recorder.drafts == []

    def test_short_payment_has_no_side_effects(self, engine, recorder):
        engine.add_item(WATER)
        engine.begin_checkout()
        with pytest.raises(InsufficientPayment):
            engine.commit("CASH", "9.99")
        assert recorder.drafts == []
        assert recorder.stock[WATER.id] == 5
        assert engine.state == CheckoutState.READY_FOR_PAYMENT
        assert engine.quantity_of(WATER.id) == 1

    def test_unknown_payment_method_rejected(self, engine, recorder):
        engine.add_item(WATER)
        engine.begin_checkout()
        with pytest.raises(ValueError):
            engine.commit("CHEQUE", "10.00")
        assert recorder.drafts == []

    def test_scenario_two_lines_cash(self, engine, recorder):
        engine.add_item(WATER)
        engine.add_item(WATER)
        engine.add_item(BREAD)
        assert engine.begin_checkout() == Decimal("25.50")

        draft = engine.commit("cash", "30.00")

        assert draft.total == Decimal("25.50")
        assert draft.change == Decimal("4.50")
        assert draft.payment_method == "CASH"
        assert draft.cashier == Cashier(id=7, name="cashier")
        assert [(l.item_id, l.quantity) for l in draft.lines] == [(WATER.id, 2), (BREAD.id, 1)]
        assert recorder.stock == {WATER.id: 3, BREAD.id: 2}
        assert engine.state == CheckoutState.COMMITTED
        assert engine.lines == []

    def test_exact_payment_gives_zero_change(self, engine):
        engine.add_item(BREAD)
        engine.begin_checkout()
        draft = engine.commit("GCASH", Decimal("5.50"))
        assert draft.change == Decimal("0.00")

    def test_new_episode_after_commit(self, engine):
        engine.add_item(BREAD)
        engine.begin_checkout()
        engine.commit("CASH", "10")
        engine.add_item(WATER)
        assert engine.state == CheckoutState.BUILDING


# =============================================================================
# FAILURE AND REENTRANCY
# =============================================================================


class TestCommitFailure:
    def test_collaborator_failure_lands_in_failed_with_cart_kept(self):
        recorder = FakeRecorder(fail_with=CollaboratorUnavailable("database is locked"))
        engine = CheckoutEngine(Cashier(1, "c"), recorder)
        engine.add_item(WATER)
        engine.begin_checkout()

        with pytest.raises(CollaboratorUnavailable):
            engine.commit("CASH", "10")

        assert engine.state == CheckoutState.FAILED
        assert engine.last_error == "database is locked"
        assert engine.quantity_of(WATER.id) == 1

    def test_retry_after_failure_succeeds(self):
        recorder = FakeRecorder(
            stock={WATER.id: 5},
            fail_with=InsufficientStock("Not enough stock for Water"),
        )
        engine = CheckoutEngine(Cashier(1, "c"), recorder)
        engine.add_item(WATER)
        engine.begin_checkout()
        with pytest.raises(InsufficientStock):
            engine.commit("CASH", "10")

        recorder.fail_with = None
        engine.commit("CASH", "10")
        assert engine.state == CheckoutState.COMMITTED
        assert engine.last_error is None

    def test_failed_cart_can_be_edited(self):
        engine = CheckoutEngine(Cashier(1, "c"), FakeRecorder(fail_with=CollaboratorUnavailable("down")))
        engine.add_item(WATER)
        engine.begin_checkout()
        with pytest.raises(CollaboratorUnavailable):
            engine.commit("CASH", "10")

        engine.remove_item(WATER.id)
        assert engine.state == CheckoutState.EMPTY
        assert engine.last_error is None

    def test_second_commit_while_first_in_flight_is_rejected(self):
        recorder = BlockingRecorder()
        engine = CheckoutEngine(Cashier(1, "c"), recorder)
        engine.add_item(WATER)
        engine.begin_checkout()

        worker = threading.Thread(target=engine.commit, args=("CASH", "10"))
        worker.start()
        assert recorder.entered.wait(timeout=5)

        assert engine.state == CheckoutState.COMMITTING
        with pytest.raises(CheckoutStateError):
            engine.commit("CASH", "10")
        with pytest.raises(CheckoutStateError):
            engine.clear()
        with pytest.raises(CheckoutStateError):
            engine.add_item(BREAD)

        recorder.release.set()
        worker.join(timeout=5)
        assert len(recorder.drafts) == 1
        assert engine.state == CheckoutState.COMMITTED
