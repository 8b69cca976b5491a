"""
Action schemas - one pydantic model per exchange action kind.

The wire form of an action is its declared field order, dumped by alias.
A caller's dict is always re-validated through these models, so the order in
which keys were inserted never reaches the encoder.
"""
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, ClassVar, List, Literal, Mapping, Optional, Union

from eth_utils import is_hex_address, remove_0x_prefix
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from hlsigner.errors import MalformedInputError

UINT64_MAX = 2**64 - 1


def to_wire_decimal(x: Union[str, int, float, Decimal]) -> str:
    """Trim numeric values to the minimal decimal string sent on the wire."""
    if isinstance(x, bool):
        raise ValueError("boolean is not a decimal amount")
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x).strip())
    except InvalidOperation:
        raise ValueError(f"not a decimal amount: {x!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite amount: {x!r}")
    s = format(d.normalize(), "f")
    return "0" if s == "-0" else s


def canon_addr(addr: str) -> str:
    """Lowercase 0x-prefixed form of a 20-byte hex address."""
    if not isinstance(addr, str) or not is_hex_address(addr):
        raise ValueError(f"not a 20-byte hex address: {addr!r}")
    return "0x" + remove_0x_prefix(addr).lower()


def _check_cloid(value: str) -> str:
    body = remove_0x_prefix(value)
    if len(body) != 32:
        raise ValueError("cloid must be 16 bytes of hex")
    try:
        bytes.fromhex(body)
    except ValueError:
        raise ValueError("cloid must be 16 bytes of hex")
    return "0x" + body.lower()


WireDecimal = Annotated[str, BeforeValidator(to_wire_decimal)]
Address = Annotated[StrictStr, AfterValidator(canon_addr)]
Cloid = Annotated[StrictStr, AfterValidator(_check_cloid)]
Nonce = Annotated[StrictInt, Field(ge=0, le=UINT64_MAX)]
NonNegInt = Annotated[StrictInt, Field(ge=0)]


class WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Order building blocks
# ---------------------------------------------------------------------------

class LimitOrderType(WireModel):
    tif: Literal["Alo", "Ioc", "Gtc"] = "Gtc"


class TriggerOrderType(WireModel):
    # wire order: isMarket, triggerPx, tpsl
    is_market: StrictBool = Field(alias="isMarket")
    trigger_px: WireDecimal = Field(alias="triggerPx")
    tpsl: Literal["tp", "sl"]


class OrderType(WireModel):
    limit: Optional[LimitOrderType] = None
    trigger: Optional[TriggerOrderType] = None

    @model_validator(mode="after")
    def _exactly_one_variant(self):
        if (self.limit is None) == (self.trigger is None):
            raise ValueError("order type needs exactly one of limit or trigger")
        return self


class OrderWire(WireModel):
    """Single order; wire fields a, b, p, s, r, t, c."""

    asset: NonNegInt = Field(alias="a")
    is_buy: StrictBool = Field(alias="b")
    limit_px: WireDecimal = Field(alias="p")
    sz: WireDecimal = Field(alias="s")
    reduce_only: StrictBool = Field(default=False, alias="r")
    order_type: OrderType = Field(alias="t")
    cloid: Optional[Cloid] = Field(default=None, alias="c")

    @classmethod
    def limit(cls, asset: int, is_buy: bool, limit_px, sz, *, tif: str = "Gtc",
              reduce_only: bool = False, cloid: Optional[str] = None) -> "OrderWire":
        return cls(asset=asset, is_buy=is_buy, limit_px=limit_px, sz=sz, reduce_only=reduce_only,
                   order_type=OrderType(limit=LimitOrderType(tif=tif)), cloid=cloid)

    @classmethod
    def trigger(cls, asset: int, is_buy: bool, limit_px, sz, *, trigger_px, tpsl: str,
                is_market: bool = True, reduce_only: bool = True,
                cloid: Optional[str] = None) -> "OrderWire":
        return cls(asset=asset, is_buy=is_buy, limit_px=limit_px, sz=sz, reduce_only=reduce_only,
                   order_type=OrderType(trigger=TriggerOrderType(
                       is_market=is_market, trigger_px=trigger_px, tpsl=tpsl)),
                   cloid=cloid)


class BuilderFee(WireModel):
    builder: Address = Field(alias="b")
    # tenths of a basis point
    fee: NonNegInt = Field(alias="f")


class CancelWire(WireModel):
    asset: NonNegInt = Field(alias="a")
    oid: StrictInt = Field(alias="o")


class CancelByCloidWire(WireModel):
    asset: NonNegInt
    cloid: Cloid


class ModifyWire(WireModel):
    oid: Union[StrictInt, Cloid]
    order: OrderWire


class TwapWire(WireModel):
    asset: NonNegInt = Field(alias="a")
    is_buy: StrictBool = Field(alias="b")
    sz: WireDecimal = Field(alias="s")
    reduce_only: StrictBool = Field(default=False, alias="r")
    minutes: StrictInt = Field(alias="m", ge=5, le=1440)
    randomize: StrictBool = Field(default=False, alias="t")


class SpotDustingToggle(WireModel):
    opt_out: StrictBool = Field(alias="optOut")


# ---------------------------------------------------------------------------
# L1 actions (hashed into a connectionId, signed under the Agent domain)
# ---------------------------------------------------------------------------

class L1ActionModel(WireModel):
    pass


class Order(L1ActionModel):
    type: Literal["order"] = "order"
    orders: List[OrderWire] = Field(min_length=1)
    grouping: Literal["na", "normalTpsl", "positionTpsl"] = "na"
    builder: Optional[BuilderFee] = None


class Cancel(L1ActionModel):
    type: Literal["cancel"] = "cancel"
    cancels: List[CancelWire] = Field(min_length=1)


class CancelByCloid(L1ActionModel):
    type: Literal["cancelByCloid"] = "cancelByCloid"
    cancels: List[CancelByCloidWire] = Field(min_length=1)


class Modify(L1ActionModel):
    type: Literal["modify"] = "modify"
    oid: Union[StrictInt, Cloid]
    order: OrderWire


class BatchModify(L1ActionModel):
    type: Literal["batchModify"] = "batchModify"
    modifies: List[ModifyWire] = Field(min_length=1)


class UpdateLeverage(L1ActionModel):
    type: Literal["updateLeverage"] = "updateLeverage"
    asset: NonNegInt
    is_cross: StrictBool = Field(alias="isCross")
    leverage: StrictInt = Field(ge=1)


class UpdateIsolatedMargin(L1ActionModel):
    type: Literal["updateIsolatedMargin"] = "updateIsolatedMargin"
    asset: NonNegInt
    is_buy: StrictBool = Field(alias="isBuy")
    # USDC micro-units, negative removes margin
    ntli: StrictInt


class ScheduleCancel(L1ActionModel):
    type: Literal["scheduleCancel"] = "scheduleCancel"
    time: Optional[Nonce] = None


class TwapOrder(L1ActionModel):
    type: Literal["twapOrder"] = "twapOrder"
    twap: TwapWire


class TwapCancel(L1ActionModel):
    type: Literal["twapCancel"] = "twapCancel"
    asset: NonNegInt = Field(alias="a")
    twap_id: StrictInt = Field(alias="t")


class SpotUser(L1ActionModel):
    type: Literal["spotUser"] = "spotUser"
    toggle_spot_dusting: SpotDustingToggle = Field(alias="toggleSpotDusting")


class SubAccountTransfer(L1ActionModel):
    type: Literal["subAccountTransfer"] = "subAccountTransfer"
    sub_account_user: Address = Field(alias="subAccountUser")
    is_deposit: StrictBool = Field(alias="isDeposit")
    usd: StrictInt = Field(ge=0)


class SubAccountSpotTransfer(L1ActionModel):
    type: Literal["subAccountSpotTransfer"] = "subAccountSpotTransfer"
    sub_account_user: Address = Field(alias="subAccountUser")
    is_deposit: StrictBool = Field(alias="isDeposit")
    token: StrictStr
    amount: WireDecimal


class VaultTransfer(L1ActionModel):
    type: Literal["vaultTransfer"] = "vaultTransfer"
    vault_address: Address = Field(alias="vaultAddress")
    is_deposit: StrictBool = Field(alias="isDeposit")
    usd: StrictInt = Field(ge=0)


L1Action = Annotated[
    Union[
        Order, Cancel, CancelByCloid, Modify, BatchModify, UpdateLeverage,
        UpdateIsolatedMargin, ScheduleCancel, TwapOrder, TwapCancel, SpotUser,
        SubAccountTransfer, SubAccountSpotTransfer, VaultTransfer,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# User-signed actions (signed directly as human-readable EIP-712 messages)
# ---------------------------------------------------------------------------

class UserSignedModel(WireModel):
    # field carrying the envelope nonce
    nonce_field: ClassVar[str] = "nonce"

    @property
    def envelope_nonce(self) -> int:
        return getattr(self, self.nonce_field)


class ApproveBuilderFee(UserSignedModel):
    type: Literal["approveBuilderFee"] = "approveBuilderFee"
    max_fee_rate: StrictStr = Field(alias="maxFeeRate")
    builder: Address
    nonce: Nonce


class UsdClassTransfer(UserSignedModel):
    type: Literal["usdClassTransfer"] = "usdClassTransfer"
    amount: WireDecimal
    to_perp: StrictBool = Field(alias="toPerp")
    nonce: Nonce


class UsdSend(UserSignedModel):
    nonce_field: ClassVar[str] = "time"

    type: Literal["usdSend"] = "usdSend"
    destination: Address
    amount: WireDecimal
    time: Nonce


class SpotSend(UserSignedModel):
    nonce_field: ClassVar[str] = "time"

    type: Literal["spotSend"] = "spotSend"
    destination: Address
    token: StrictStr
    amount: WireDecimal
    time: Nonce


class SendAsset(UserSignedModel):
    type: Literal["sendAsset"] = "sendAsset"
    destination: Address
    source_dex: StrictStr = Field(alias="sourceDex")
    destination_dex: StrictStr = Field(alias="destinationDex")
    token: StrictStr
    amount: WireDecimal
    # typed as string in the signed message, so it is not case-folded
    from_sub_account: StrictStr = Field(default="", alias="fromSubAccount")
    nonce: Nonce


class Withdraw(UserSignedModel):
    nonce_field: ClassVar[str] = "time"

    type: Literal["withdraw3"] = "withdraw3"
    destination: Address
    amount: WireDecimal
    time: Nonce


UserSignedAction = Annotated[
    Union[ApproveBuilderFee, UsdClassTransfer, UsdSend, SpotSend, SendAsset, Withdraw],
    Field(discriminator="type"),
]

_L1_ADAPTER = TypeAdapter(L1Action)
_USER_SIGNED_ADAPTER = TypeAdapter(UserSignedAction)

L1_KINDS = frozenset(
    m.model_fields["type"].default for m in L1ActionModel.__subclasses__()
)
USER_SIGNED_KINDS = frozenset(
    m.model_fields["type"].default for m in UserSignedModel.__subclasses__()
)
USER_SIGNED_NONCE_FIELDS = {
    m.model_fields["type"].default: m.nonce_field for m in UserSignedModel.__subclasses__()
}


def _malformed(kind: str, exc: ValidationError) -> MalformedInputError:
    errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
    return MalformedInputError(f"invalid {kind}: {exc.error_count()} error(s)", {"errors": errors})


def action_kind(action: Any) -> str:
    """Return the `type` tag of a model or raw action mapping."""
    if isinstance(action, WireModel):
        return action.type
    if isinstance(action, Mapping) and isinstance(action.get("type"), str):
        return action["type"]
    raise MalformedInputError("action has no type tag", {"action_type": type(action).__name__})


def parse_l1_action(raw: Union[L1ActionModel, Mapping[str, Any]]) -> L1ActionModel:
    if isinstance(raw, L1ActionModel):
        return raw
    try:
        return _L1_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise _malformed("L1 action", e)


def parse_user_signed_action(raw: Union[UserSignedModel, Mapping[str, Any]]) -> UserSignedModel:
    if isinstance(raw, UserSignedModel):
        return raw
    try:
        return _USER_SIGNED_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise _malformed("user-signed action", e)
