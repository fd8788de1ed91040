"""Pydantic models for event records emitted by pairs and tokens.

Each record carries the emitting contract address and an ``event_type``
discriminator, so a list of raw dicts round-trips through ``Event``.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter

from pairswap.models.types import Address, Uint256


class EventBase(BaseModel):
    """Fields shared by every record."""

    contract: Address = Field(description="Address of the emitting contract")

    model_config = {"frozen": True}


class Approval(EventBase):
    """Allowance set by approve, permit or transfer_from."""

    event_type: Literal["approve"] = "approve"
    owner: Address
    spender: Address
    value: Uint256


class Transfer(EventBase):
    """Balance movement. The zero address marks issuance and redemption."""

    event_type: Literal["transfer"] = "transfer"
    sender: Address = Field(alias="from")
    to: Address
    value: Uint256

    model_config = {"frozen": True, "populate_by_name": True}


class Mint(EventBase):
    """Liquidity added to a pair."""

    event_type: Literal["mint"] = "mint"
    sender: Address
    amount0: Uint256
    amount1: Uint256


class Burn(EventBase):
    """Liquidity removed from a pair."""

    event_type: Literal["burn"] = "burn"
    sender: Address
    amount0: Uint256
    amount1: Uint256
    to: Address


class Swap(EventBase):
    """Settled swap (flash or plain)."""

    event_type: Literal["swap"] = "swap"
    sender: Address
    amount0_in: Uint256 = Field(alias="amount0In")
    amount1_in: Uint256 = Field(alias="amount1In")
    amount0_out: Uint256 = Field(alias="amount0Out")
    amount1_out: Uint256 = Field(alias="amount1Out")
    to: Address

    model_config = {"frozen": True, "populate_by_name": True}


class Sync(EventBase):
    """Reserves resynchronized with balances."""

    event_type: Literal["sync"] = "sync"
    reserve0: Uint256
    reserve1: Uint256


class Deposit(EventBase):
    """Native currency wrapped."""

    event_type: Literal["deposit"] = "deposit"
    owner: Address
    value: Uint256


class Withdrawal(EventBase):
    """Wrapped native currency unwrapped."""

    event_type: Literal["withdrawal"] = "withdrawal"
    owner: Address
    value: Uint256


def _get_event_type(v: dict[str, Any] | EventBase) -> str:
    """Discriminator function for the Event union."""
    if isinstance(v, dict):
        return str(v.get("event_type", ""))
    return str(getattr(v, "event_type", ""))


Event = Annotated[
    Annotated[Approval, Tag("approve")]
    | Annotated[Transfer, Tag("transfer")]
    | Annotated[Mint, Tag("mint")]
    | Annotated[Burn, Tag("burn")]
    | Annotated[Swap, Tag("swap")]
    | Annotated[Sync, Tag("sync")]
    | Annotated[Deposit, Tag("deposit")]
    | Annotated[Withdrawal, Tag("withdrawal")],
    Discriminator(_get_event_type),
]

event_adapter: TypeAdapter[Any] = TypeAdapter(Event)
