"""
Tests for the genesis snapshot codec.

Tests cover:
1. JSON layout and default state
2. Export/import of a live registry
3. Rejection of malformed and inconsistent snapshots
4. Custody reconciliation
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from auctioneer.core.auction import GenesisError
from auctioneer.core.config import AuctionParams, ParamStore
from auctioneer.core.engine import AuctionEngine
from auctioneer.core.genesis import (
    GenesisState,
    default_genesis,
    export_genesis,
    init_genesis,
    load_genesis,
    read_genesis,
    write_genesis,
)
from auctioneer.core.registry import AuctionRegistry
from auctioneer.core.state import new_bank
from auctioneer.core.types import Amount, new_weighted_addresses
from auctioneer.crypto import module_address


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
ALICE = bytes([1]) * 20
BOB = bytes([2]) * 20

LIQUIDATOR = module_address("liquidator")
CDP = module_address("cdp")


def coin(denom, value):
    return Amount.of(denom, value)


@pytest.fixture
def bank():
    return new_bank([
        (LIQUIDATOR, coin("usdx", 1000)),
        (LIQUIDATOR, coin("coll", 1000)),
        (LIQUIDATOR, coin("debt", 1000)),
        (CDP, coin("debt", 1000)),
        (ALICE, coin("token", 100)),
        (ALICE, coin("usdx", 100)),
    ])


@pytest.fixture
def engine(bank):
    """Engine with one auction of each type, all with bids."""
    engine = AuctionEngine(AuctionRegistry(), bank)

    surplus = engine.start_surplus_auction("liquidator", coin("usdx", 100), "token", NOW)
    engine.submit_bid(surplus, ALICE, coin("token", 10), NOW)

    debt = engine.start_debt_auction("cdp", coin("usdx", 50), coin("gov", 1000), coin("debt", 50), NOW)
    engine.submit_bid(debt, ALICE, coin("gov", 960), NOW)

    collateral = engine.start_collateral_auction(
        "liquidator",
        coin("coll", 100),
        coin("usdx", 50),
        new_weighted_addresses([BOB, ALICE], [3, 1]),
        coin("debt", 40),
        NOW,
    )
    engine.submit_bid(collateral, ALICE, coin("usdx", 40), NOW)
    return engine


def snapshot_dict(engine):
    return export_genesis(engine.registry, engine.params.current()).to_dict()


class TestLayout:
    """Tests for the serialized form."""

    def test_default_genesis(self):
        data = default_genesis().to_dict()

        assert data["next_auction_id"] == 1
        assert data["auctions"] == []
        assert data["params"]["increment_surplus"] == "0.05"

    def test_default_round_trip(self):
        text = default_genesis().to_json()
        assert load_genesis(text).to_dict() == default_genesis().to_dict()

    def test_auction_layout(self, engine):
        data = snapshot_dict(engine)
        surplus, debt, collateral = data["auctions"]

        assert data["next_auction_id"] == 4
        assert surplus["type"] == "surplus"
        assert surplus["lot"] == {"denom": "usdx", "amount": "100"}
        assert surplus["bidder"] == "0x" + ALICE.hex()
        assert debt["type"] == "debt"
        assert debt["lot"] == {"denom": "gov", "amount": "960"}
        assert collateral["type"] == "collateral"
        assert collateral["lot_returns"]["weights"] == [3, 1]
        assert collateral["initial_lot"] == {"denom": "coll", "amount": "100"}

    def test_params_exported(self, engine):
        params = AuctionParams(bid_duration=timedelta(minutes=5))
        state = export_genesis(engine.registry, params)

        assert state.params.to_params() == params


class TestImport:
    """Tests for loading snapshots into a fresh registry."""

    def test_round_trip(self, engine, bank):
        data = snapshot_dict(engine)
        registry = AuctionRegistry()
        store = ParamStore()

        init_genesis(registry, store, load_genesis(data), custody=bank)

        assert registry.peek_next_id() == 4
        assert registry.all_auctions() == engine.registry.all_auctions()
        assert export_genesis(registry, store.current()).to_dict() == data

    def test_restored_engine_continues(self, engine, bank):
        """Auctions loaded from a snapshot close and pay out as before."""
        registry = AuctionRegistry()
        init_genesis(registry, ParamStore(), load_genesis(snapshot_dict(engine)), custody=bank)
        restored = AuctionEngine(registry, bank)

        results = restored.close_expired_auctions(NOW + timedelta(days=2))

        assert len(results) == 3
        assert bank.balance(ALICE, "gov") == coin("gov", 960)
        assert bank.balances_of(module_address("auction")) == {}

    def test_params_loaded_into_store(self, engine):
        state = export_genesis(engine.registry, AuctionParams(bid_duration=timedelta(minutes=5)))
        store = ParamStore()

        init_genesis(AuctionRegistry(), store, state)

        assert store.current().bid_duration == timedelta(minutes=5)

    def test_non_empty_registry_rejected(self, engine):
        state = export_genesis(engine.registry, engine.params.current())

        with pytest.raises(GenesisError):
            init_genesis(engine.registry, ParamStore(), state)

    def test_custody_mismatch_rejected(self, engine):
        state = export_genesis(engine.registry, engine.params.current())

        with pytest.raises(GenesisError):
            init_genesis(AuctionRegistry(), ParamStore(), state, custody=new_bank())

    def test_custody_mismatch_leaves_registry_empty(self, engine):
        registry = AuctionRegistry()
        state = export_genesis(engine.registry, engine.params.current())

        with pytest.raises(GenesisError):
            init_genesis(registry, ParamStore(), state, custody=new_bank())
        assert len(registry) == 0


class TestValidation:
    """Tests for rejected snapshots."""

    @pytest.fixture
    def data(self, engine):
        return snapshot_dict(engine)

    def test_duplicate_ids(self, data):
        data["auctions"][1]["id"] = 1

        with pytest.raises(GenesisError, match="duplicate"):
            load_genesis(data)

    def test_id_not_below_next_id(self, data):
        data["next_auction_id"] = 3

        with pytest.raises(GenesisError, match="nextAuctionID"):
            load_genesis(data)

    def test_invalid_params(self, data):
        data["params"]["bid_duration"] = 3 * 24 * 3600

        with pytest.raises(GenesisError, match="invalid params"):
            load_genesis(data)

    def test_unknown_type(self, data):
        data["auctions"][0]["type"] = "dutch"

        with pytest.raises(GenesisError):
            load_genesis(data)

    def test_naive_time(self, data):
        data["auctions"][0]["end_time"] = "2026-01-01T01:00:00"

        with pytest.raises(GenesisError):
            load_genesis(data)

    def test_bad_address(self, data):
        data["auctions"][0]["bidder"] = "0x1234"

        with pytest.raises(GenesisError):
            load_genesis(data)

    def test_negative_amount(self, data):
        data["auctions"][0]["lot"]["amount"] = "-1"

        with pytest.raises(GenesisError):
            load_genesis(data)

    def test_bad_denom(self, data):
        data["auctions"][0]["lot"]["denom"] = "X"

        with pytest.raises(GenesisError):
            load_genesis(data)

    def test_record_invariant(self, data):
        data["auctions"][0]["end_time"] = "2030-01-01T00:00:00Z"

        with pytest.raises(GenesisError, match="MaxEndTime"):
            load_genesis(data)

    def test_collateral_bid_above_max(self, data):
        data["auctions"][2]["bid"]["amount"] = "51"

        with pytest.raises(GenesisError, match="exceeds max bid"):
            load_genesis(data)


class TestFiles:
    """Tests for file helpers."""

    def test_write_and_read(self, engine, tmp_path):
        state = export_genesis(engine.registry, engine.params.current())

        path = write_genesis(state, tmp_path / "out" / "genesis.json")

        assert read_genesis(path).to_dict() == state.to_dict()

    def test_missing_file(self, tmp_path):
        with pytest.raises(GenesisError, match="not found"):
            read_genesis(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "genesis.json"
        path.write_text("{not json")

        with pytest.raises(GenesisError, match="invalid JSON"):
            read_genesis(path)

    def test_file_is_plain_json(self, tmp_path):
        path = write_genesis(GenesisState(next_auction_id=7), tmp_path / "genesis.json")
        assert json.loads(path.read_text())["next_auction_id"] == 7
