"""
Auction parameters for the engine.

Defines the governance-controlled timing and increment rules, their
validation, and a hot-reloadable store that the engine reads once per call.
"""

import os
from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from auctioneer.utils.logger import get_logger

logger = get_logger("config")


# Defaults
DEFAULT_MAX_AUCTION_DURATION = timedelta(days=2)    # max length of auction
DEFAULT_BID_DURATION = timedelta(hours=1)           # extension granted by each bid
DEFAULT_INCREMENT = Decimal("0.05")                 # smallest relative change of a new bid
DEFAULT_NEXT_AUCTION_ID = 1

ENV_PREFIX = "AUCTION_"


class InvalidParams(ValueError):
    """Parameter set failed validation."""


class ParamChangeNotAllowed(ValueError):
    """A parameter update touched a field the caller may not change."""


@dataclass(frozen=True)
class AuctionParams:
    """Governance parameters for the auction engine"""

    max_auction_duration: timedelta = DEFAULT_MAX_AUCTION_DURATION
    bid_duration: timedelta = DEFAULT_BID_DURATION  # capped by max_end_time
    increment_surplus: Decimal = DEFAULT_INCREMENT  # relative to auction bid
    increment_debt: Decimal = DEFAULT_INCREMENT  # relative to auction lot
    increment_collateral: Decimal = DEFAULT_INCREMENT  # bid or lot, by phase

    def validate(self) -> Tuple[bool, str]:
        """
        Check that the parameters have valid values.

        Returns:
            (is_valid, error_message)
        """
        for name in ("bid_duration", "max_auction_duration"):
            value = getattr(self, name)
            if not isinstance(value, timedelta):
                return False, f"invalid parameter type for {name}: {type(value).__name__}"
            if value < timedelta(0):
                return False, f"{name.replace('_', ' ')} cannot be negative {value}"

        if self.bid_duration > self.max_auction_duration:
            return False, "bid duration param cannot be larger than max auction duration"

        for name in ("increment_surplus", "increment_debt", "increment_collateral"):
            value = getattr(self, name)
            kind = name.split("_", 1)[1]
            if value is None:
                return False, f"{kind} auction increment cannot be nil or empty"
            if not isinstance(value, Decimal) or not value.is_finite():
                return False, f"invalid parameter type for {name}: {type(value).__name__}"
            if value < 0:
                return False, f"{kind} auction increment cannot be less than zero {value}"

        return True, ""

    def with_changes(self, **changes) -> "AuctionParams":
        return replace(self, **changes)


def default_params() -> AuctionParams:
    return AuctionParams()


# =============================================================================
# Loading
# =============================================================================


def _parse_seconds(raw: str, name: str) -> timedelta:
    try:
        return timedelta(seconds=int(raw))
    except ValueError:
        raise InvalidParams(f"{name} must be an integer number of seconds, got {raw!r}") from None


def _parse_decimal(raw: str, name: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise InvalidParams(f"{name} must be a decimal, got {raw!r}") from None


def params_from_mapping(values: Dict[str, Optional[str]], base: Optional[AuctionParams] = None) -> AuctionParams:
    """
    Build params from ``AUCTION_*`` keys; missing keys keep the base values.

    Durations are whole seconds, increments decimal strings.
    """
    params = base or AuctionParams()
    changes = {}

    for field_name in ("max_auction_duration", "bid_duration"):
        raw = values.get(ENV_PREFIX + field_name.upper())
        if raw:
            changes[field_name] = _parse_seconds(raw, field_name)

    for field_name in ("increment_surplus", "increment_debt", "increment_collateral"):
        raw = values.get(ENV_PREFIX + field_name.upper())
        if raw:
            changes[field_name] = _parse_decimal(raw, field_name)

    params = params.with_changes(**changes)
    valid, err = params.validate()
    if not valid:
        raise InvalidParams(err)
    return params


def load_params(env_file: Optional[str] = None) -> AuctionParams:
    """
    Load parameters from an optional .env file and the process environment.

    Process environment variables take precedence over the file.

    Args:
        env_file: Optional path to a dotenv file

    Returns:
        Validated AuctionParams
    """
    values: Dict[str, Optional[str]] = {}
    if env_file:
        path = Path(env_file)
        if not path.exists():
            raise InvalidParams(f"env file not found: {env_file}")
        values.update(dotenv_values(path))

    values.update({k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)})
    return params_from_mapping(values)


# =============================================================================
# Parameter Store
# =============================================================================


class ParamStore:
    """
    Holds the current parameter set.

    Parameters may change between engine calls; the engine takes one
    ``current()`` snapshot per call, so they never change within one.
    """

    def __init__(self, params: Optional[AuctionParams] = None, env_file: Optional[str] = None):
        self.env_file = env_file
        self._params = params or AuctionParams()
        valid, err = self._params.validate()
        if not valid:
            raise InvalidParams(err)

    def current(self) -> AuctionParams:
        return self._params

    def update(self, incoming: AuctionParams, allowed=None) -> AuctionParams:
        """
        Replace the parameters.

        Args:
            incoming: New parameter set
            allowed: Optional AllowedAuctionParams; when given, only the
                fields it permits may differ from the current set

        Raises:
            InvalidParams: incoming fails validation
            ParamChangeNotAllowed: incoming changes a forbidden field
        """
        valid, err = incoming.validate()
        if not valid:
            raise InvalidParams(err)

        if allowed is not None and not allowed.allows(self._params, incoming):
            raise ParamChangeNotAllowed("parameter change touches fields that are not allowed")

        self._params = incoming
        logger.info(f"Auction params updated: {incoming}")
        return incoming

    def reload(self) -> AuctionParams:
        """Re-read the environment (and env file, if configured)."""
        return self.update(load_params(self.env_file))
