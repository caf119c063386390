"""
Genesis Snapshot Codec - export and restore of the full auction state.

Layout (JSON):

    {
      "next_auction_id": 4,
      "params": {"max_auction_duration": "P2D", "bid_duration": "PT1H",
                 "increment_surplus": "0.05", ...},
      "auctions": [
        {"type": "surplus", "id": 1, "initiator": "liquidator",
         "lot": {"denom": "usdx", "amount": "100"}, ...},
        ...
      ]
    }

Amounts are decimal strings, addresses 0x-hex, times ISO-8601 with an
offset. ``type`` selects the record variant.
"""

import json
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import AwareDatetime, BaseModel, Field, ValidationError, field_validator

from auctioneer.core.auction.errors import GenesisError
from auctioneer.core.auction.records import (
    BaseAuction,
    CollateralAuction,
    DebtAuction,
    SurplusAuction,
    sum_coins,
)
from auctioneer.core.config import (
    DEFAULT_BID_DURATION,
    DEFAULT_INCREMENT,
    DEFAULT_MAX_AUCTION_DURATION,
    DEFAULT_NEXT_AUCTION_ID,
    AuctionParams,
    ParamStore,
)
from auctioneer.core.engine import MODULE_NAME
from auctioneer.core.registry import AuctionRegistry
from auctioneer.core.state.bank import Custody
from auctioneer.core.types import Amount, WeightedAddresses
from auctioneer.crypto import bytes_to_hex, hex_to_bytes, is_valid_address
from auctioneer.crypto import module_address as derive_module_address
from auctioneer.utils.logger import get_logger

logger = get_logger("genesis")


# =============================================================================
# Schema
# =============================================================================


def _check_hex_address(value: str) -> str:
    if not is_valid_address(value):
        raise ValueError(f"invalid address {value!r}, expected 0x followed by 40 hex digits")
    return value.lower()


class CoinModel(BaseModel):
    """Denomination-tagged amount."""
    denom: str
    amount: str = Field(pattern=r"^[0-9]+(\.[0-9]+)?$")

    @classmethod
    def from_amount(cls, amount: Amount) -> "CoinModel":
        return cls(denom=amount.denom, amount=format(amount.to_decimal(), "f"))

    def to_amount(self) -> Amount:
        return Amount.of(self.denom, self.amount)


class ParamsModel(BaseModel):
    max_auction_duration: timedelta = DEFAULT_MAX_AUCTION_DURATION
    bid_duration: timedelta = DEFAULT_BID_DURATION
    increment_surplus: Decimal = DEFAULT_INCREMENT
    increment_debt: Decimal = DEFAULT_INCREMENT
    increment_collateral: Decimal = DEFAULT_INCREMENT

    @classmethod
    def from_params(cls, params: AuctionParams) -> "ParamsModel":
        return cls(
            max_auction_duration=params.max_auction_duration,
            bid_duration=params.bid_duration,
            increment_surplus=params.increment_surplus,
            increment_debt=params.increment_debt,
            increment_collateral=params.increment_collateral,
        )

    def to_params(self) -> AuctionParams:
        return AuctionParams(
            max_auction_duration=self.max_auction_duration,
            bid_duration=self.bid_duration,
            increment_surplus=self.increment_surplus,
            increment_debt=self.increment_debt,
            increment_collateral=self.increment_collateral,
        )


class LotReturnsModel(BaseModel):
    addresses: List[str]
    weights: List[int]

    @field_validator("addresses")
    @classmethod
    def addresses_are_hex(cls, v):
        return [_check_hex_address(a) for a in v]


class _AuctionModel(BaseModel):
    id: int = Field(ge=1)
    initiator: str
    lot: CoinModel
    bid: CoinModel
    bidder: Optional[str] = None
    has_received_bids: bool = False
    end_time: AwareDatetime
    max_end_time: AwareDatetime

    @field_validator("bidder")
    @classmethod
    def bidder_is_hex(cls, v):
        if v is None:
            return v
        return _check_hex_address(v)

    def _common(self) -> dict:
        return {
            "id": self.id,
            "initiator": self.initiator,
            "lot": self.lot.to_amount(),
            "bid": self.bid.to_amount(),
            "bidder": hex_to_bytes(self.bidder) if self.bidder else None,
            "has_received_bids": self.has_received_bids,
            "end_time": self.end_time,
            "max_end_time": self.max_end_time,
        }


class SurplusAuctionModel(_AuctionModel):
    type: Literal["surplus"] = "surplus"

    def to_record(self) -> SurplusAuction:
        return SurplusAuction(**self._common())


class DebtAuctionModel(_AuctionModel):
    type: Literal["debt"] = "debt"
    corresponding_debt: CoinModel

    def to_record(self) -> DebtAuction:
        return DebtAuction(**self._common(), corresponding_debt=self.corresponding_debt.to_amount())


class CollateralAuctionModel(_AuctionModel):
    type: Literal["collateral"] = "collateral"
    corresponding_debt: CoinModel
    max_bid: CoinModel
    lot_returns: LotReturnsModel
    initial_lot: Optional[CoinModel] = None

    def to_record(self) -> CollateralAuction:
        return CollateralAuction(
            **self._common(),
            corresponding_debt=self.corresponding_debt.to_amount(),
            max_bid=self.max_bid.to_amount(),
            lot_returns=WeightedAddresses(
                addresses=[hex_to_bytes(a) for a in self.lot_returns.addresses],
                weights=list(self.lot_returns.weights),
            ),
            initial_lot=self.initial_lot.to_amount() if self.initial_lot else None,
        )


AuctionModel = Annotated[
    Union[SurplusAuctionModel, DebtAuctionModel, CollateralAuctionModel],
    Field(discriminator="type"),
]


class GenesisState(BaseModel):
    """Complete persisted state of the auction engine."""
    next_auction_id: int = Field(default=DEFAULT_NEXT_AUCTION_ID, ge=1)
    params: ParamsModel = Field(default_factory=ParamsModel)
    auctions: List[AuctionModel] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(indent=indent)


# =============================================================================
# Conversion
# =============================================================================


def auction_to_model(auction: BaseAuction):
    """Serialize one auction record."""
    common = {
        "id": auction.id,
        "initiator": auction.initiator,
        "lot": CoinModel.from_amount(auction.lot),
        "bid": CoinModel.from_amount(auction.bid),
        "bidder": bytes_to_hex(auction.bidder) if auction.bidder else None,
        "has_received_bids": auction.has_received_bids,
        "end_time": auction.end_time,
        "max_end_time": auction.max_end_time,
    }

    if isinstance(auction, SurplusAuction):
        return SurplusAuctionModel(**common)
    if isinstance(auction, DebtAuction):
        return DebtAuctionModel(
            **common,
            corresponding_debt=CoinModel.from_amount(auction.corresponding_debt),
        )
    if isinstance(auction, CollateralAuction):
        return CollateralAuctionModel(
            **common,
            corresponding_debt=CoinModel.from_amount(auction.corresponding_debt),
            max_bid=CoinModel.from_amount(auction.max_bid),
            lot_returns=LotReturnsModel(
                addresses=[bytes_to_hex(a) for a in auction.lot_returns.addresses],
                weights=list(auction.lot_returns.weights),
            ),
            initial_lot=CoinModel.from_amount(auction.initial_lot),
        )
    raise TypeError(f"unrecognized auction type: {type(auction).__name__}")


def validate_genesis(state: GenesisState) -> Tuple[AuctionParams, List[BaseAuction]]:
    """
    Check a parsed snapshot and build its params and records.

    Raises:
        GenesisError: invalid params, invalid record, duplicate ID or an
            ID at or above next_auction_id
    """
    params = state.params.to_params()
    valid, err = params.validate()
    if not valid:
        raise GenesisError(f"invalid params: {err}")

    auctions: List[BaseAuction] = []
    seen = set()
    for model in state.auctions:
        if model.id in seen:
            raise GenesisError(f"found duplicate auction ID ({model.id})")
        seen.add(model.id)

        if model.id >= state.next_auction_id:
            raise GenesisError(
                f"found auction ID >= the nextAuctionID ({model.id} >= {state.next_auction_id})"
            )

        try:
            auction = model.to_record()
        except ValueError as exc:
            raise GenesisError(f"auction {model.id}: {exc}") from exc

        valid, err = auction.validate()
        if not valid:
            raise GenesisError(f"auction {model.id}: {err}")
        auctions.append(auction)

    return params, auctions


def load_genesis(data: Union[dict, str, bytes, GenesisState]) -> GenesisState:
    """
    Parse and validate a snapshot.

    Args:
        data: Decoded JSON dict, JSON text, or an existing GenesisState

    Raises:
        GenesisError: malformed or invalid snapshot
    """
    try:
        if isinstance(data, GenesisState):
            state = data
        elif isinstance(data, (str, bytes)):
            state = GenesisState.model_validate_json(data)
        else:
            state = GenesisState.model_validate(data)
    except ValidationError as exc:
        raise GenesisError(f"malformed genesis state: {exc}") from exc

    validate_genesis(state)
    return state


def export_genesis(registry: AuctionRegistry, params: AuctionParams) -> GenesisState:
    """Capture the registry and parameters as a snapshot."""
    state = GenesisState(
        next_auction_id=registry.peek_next_id(),
        params=ParamsModel.from_params(params),
        auctions=[auction_to_model(auction) for _, auction in registry.iterate_all()],
    )
    logger.info(f"Exported genesis: {len(state.auctions)} auctions, next id {state.next_auction_id}")
    return state


def init_genesis(
    registry: AuctionRegistry,
    param_store: ParamStore,
    state: GenesisState,
    custody: Optional[Custody] = None,
    module_address: Optional[bytes] = None,
) -> None:
    """
    Load a snapshot into an empty registry and a parameter store.

    When ``custody`` is given, the engine account's balance must equal the
    total of every auction's ``module_account_coins()`` in each denomination
    the auctions hold.

    Raises:
        GenesisError: invalid snapshot, non-empty registry, or custody
            balance mismatch
    """
    params, auctions = validate_genesis(state)

    if len(registry):
        raise GenesisError(f"registry already holds {len(registry)} auctions")

    if custody is not None:
        address = module_address or derive_module_address(MODULE_NAME)
        expected = sum_coins([coin for auction in auctions for coin in auction.module_account_coins()])
        for denom, units in sorted(expected.items()):
            held = custody.balance(address, denom)
            if held.units != units:
                raise GenesisError(
                    f"auction module account holds {held}, auctions require {Amount(denom, units)}"
                )

    param_store.update(params)
    registry.set_next_id(state.next_auction_id)
    for auction in auctions:
        registry.put(auction)

    logger.info(f"Loaded genesis: {len(auctions)} auctions, next id {state.next_auction_id}")


def default_genesis() -> GenesisState:
    return GenesisState()


# =============================================================================
# Files
# =============================================================================


def write_genesis(state: GenesisState, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.to_json())
    return path


def read_genesis(path: Union[str, Path]) -> GenesisState:
    """
    Read and validate a snapshot file.

    Raises:
        GenesisError: missing file, invalid JSON or invalid snapshot
    """
    path = Path(path)
    if not path.exists():
        raise GenesisError(f"genesis file not found: {path}")
    try:
        data: Any = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise GenesisError(f"invalid JSON in {path}: {exc}") from exc
    return load_genesis(data)


__all__ = [
    "GenesisState",
    "CoinModel",
    "ParamsModel",
    "LotReturnsModel",
    "SurplusAuctionModel",
    "DebtAuctionModel",
    "CollateralAuctionModel",
    "auction_to_model",
    "validate_genesis",
    "load_genesis",
    "export_genesis",
    "init_genesis",
    "default_genesis",
    "write_genesis",
    "read_genesis",
]
