"""Resale flows built on the pipeline orchestrator.

Listing a ticket is approve(market, tokenId) on the NFT followed by
listTicket on the market. Buying pays either in the native asset (one
payable call) or in a stablecoin (ERC20 approve, then buyTicket).
"""

import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field
from web3 import Web3

from eventbase.core.config import Settings, get_settings
from eventbase.core.errors import InvalidInputError
from eventbase.infrastructure.blockchain.contracts import ContractRef
from eventbase.infrastructure.blockchain.gateway import ChainGateway
from eventbase.services.pipeline.orchestrator import PipelineOrchestrator
from eventbase.services.pipeline.schemas import PaymentStatus, PipelineRun, StepSpec

logger = logging.getLogger(__name__)


class NativeAsset(BaseModel):
    """Chain native currency. Paid as msg.value, no allowance needed."""

    kind: Literal["native"] = "native"
    symbol: str = Field(default="BASE", description="Display symbol")
    decimals: int = Field(default=18, description="Decimals")

    def needs_approval(self) -> bool:
        return False

    def to_base_units(self, amount: Decimal) -> int:
        return int(Web3.to_wei(amount, "ether"))

    def approve_step(self, spender: str, amount: int) -> StepSpec | None:
        return None

    async def balance_of(self, gateway: ChainGateway, owner: str) -> int:
        return await gateway.native_balance(owner)

    async def allowance(self, gateway: ChainGateway, owner: str, spender: str) -> int | None:
        return None


class TokenAsset(BaseModel):
    """ERC20 payment token (USDC, USDT)."""

    kind: Literal["token"] = "token"
    address: str = Field(..., description="Token contract address")
    decimals: int = Field(..., ge=0, description="Token decimals")
    symbol: str = Field(..., description="Display symbol")

    def needs_approval(self) -> bool:
        return True

    def to_base_units(self, amount: Decimal) -> int:
        scaled = amount * (Decimal(10) ** self.decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))

    def approve_step(self, spender: str, amount: int) -> StepSpec:
        return StepSpec(
            name=f"Approve {self.symbol}",
            contract=ContractRef.ERC20,
            method="approve",
            args=[spender, amount],
            address=self.address,
        )

    async def balance_of(self, gateway: ChainGateway, owner: str) -> int:
        return int(await gateway.read(ContractRef.ERC20, "balanceOf", [owner], address=self.address))

    async def allowance(self, gateway: ChainGateway, owner: str, spender: str) -> int:
        return int(
            await gateway.read(
                ContractRef.ERC20, "allowance", [owner, spender], address=self.address
            )
        )


PaymentAsset = Annotated[Union[NativeAsset, TokenAsset], Field(discriminator="kind")]


def resolve_payment_asset(
    payment_token: str = "NATIVE",
    settings: Settings | None = None,
) -> NativeAsset | TokenAsset:
    """Map a payment token symbol to its asset descriptor.

    Args:
        payment_token: NATIVE, USDC or USDT (case-insensitive)
        settings: Settings override

    Raises:
        InvalidInputError: Unknown symbol
    """
    settings = settings or get_settings()
    symbol = (payment_token or "NATIVE").upper()

    if symbol in ("NATIVE", "ETH", settings.native_symbol.upper()):
        return NativeAsset(symbol=settings.native_symbol)
    if symbol == "USDC":
        return TokenAsset(address=settings.usdc_address, decimals=settings.stablecoin_decimals, symbol="USDC")
    if symbol == "USDT":
        return TokenAsset(address=settings.usdt_address, decimals=settings.stablecoin_decimals, symbol="USDT")

    raise InvalidInputError(f"Unsupported payment token: {payment_token}")


def build_list_steps(
    token_id: int,
    price_wei: int,
    settings: Settings | None = None,
) -> list[StepSpec]:
    """Approve the resale market for the NFT, then list it."""
    settings = settings or get_settings()
    market = settings.active_resale_market_address
    return [
        StepSpec(
            name="Approve marketplace",
            contract=ContractRef.TICKET_NFT,
            method="approve",
            args=[market, token_id],
        ),
        StepSpec(
            name="List ticket",
            contract=ContractRef.RESALE_MARKET,
            method="listTicket",
            args=[token_id, price_wei],
        ),
    ]


def build_buy_steps(
    token_id: int,
    price: Decimal,
    asset: NativeAsset | TokenAsset,
    settings: Settings | None = None,
) -> list[StepSpec]:
    """Steps for buying a listed ticket with the given asset."""
    settings = settings or get_settings()
    amount = asset.to_base_units(price)

    if not asset.needs_approval():
        return [
            StepSpec(
                name="Buy ticket",
                contract=ContractRef.RESALE_MARKET,
                method="buyTicket",
                args=[token_id],
                value=amount,
            )
        ]

    return [
        asset.approve_step(settings.active_resale_market_address, amount),
        StepSpec(
            name="Buy ticket",
            contract=ContractRef.RESALE_MARKET,
            method="buyTicket",
            args=[token_id],
        ),
    ]


def _parse_token_id(token_id: str | int) -> int:
    try:
        value = int(str(token_id).strip())
    except ValueError:
        raise InvalidInputError(f"Invalid token ID: {token_id}")
    if value < 0:
        raise InvalidInputError(f"Invalid token ID: {token_id}")
    return value


def _parse_price(price: str | Decimal | float) -> Decimal:
    try:
        value = Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInputError("Please enter a valid price")
    if not value.is_finite() or value <= 0:
        raise InvalidInputError("Please enter a valid price")
    return value


class ResaleService:
    """Secondary-market actions for the signer's tickets."""

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        settings: Settings | None = None,
        check_balance: bool = True,
    ):
        """Initialize resale service.

        Args:
            orchestrator: Pipeline runner shared by all resale actions
            settings: Settings override
            check_balance: Refuse purchases the signer cannot afford
        """
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()
        self.check_balance = check_balance

    @property
    def gateway(self) -> ChainGateway:
        return self.orchestrator.gateway

    async def list_ticket(self, token_id: str | int, price: str | Decimal) -> PipelineRun:
        """List an owned ticket NFT at ``price`` (in ether)."""
        token = _parse_token_id(token_id)
        price_wei = int(Web3.to_wei(_parse_price(price), "ether"))

        logger.info(f"Listing token {token} at {price_wei} wei")
        steps = build_list_steps(token, price_wei, self.settings)
        return await self.orchestrator.start(steps, name="List ticket", entity_id=str(token))

    async def buy_ticket(
        self,
        token_id: str | int,
        price: str | Decimal,
        payment_token: str = "NATIVE",
    ) -> PipelineRun:
        """Buy a listed ticket, paying ``price`` in ``payment_token``."""
        token = _parse_token_id(token_id)
        amount = _parse_price(price)
        asset = resolve_payment_asset(payment_token, self.settings)

        if self.check_balance and self.gateway.signer_address:
            balance = await asset.balance_of(self.gateway, self.gateway.signer_address)
            if balance < asset.to_base_units(amount):
                raise InvalidInputError(f"Insufficient {asset.symbol} balance")

        logger.info(f"Buying token {token} for {amount} {asset.symbol}")
        steps = build_buy_steps(token, amount, asset, self.settings)
        return await self.orchestrator.start(steps, name="Buy ticket", entity_id=str(token))

    async def payment_status(self, payment_token: str = "NATIVE") -> PaymentStatus:
        """Signer balance and resale market allowance in ``payment_token``.

        Raises:
            InvalidInputError: Unknown symbol or no signer configured
        """
        asset = resolve_payment_asset(payment_token, self.settings)
        owner = self.gateway.signer_address
        if not owner:
            raise InvalidInputError("No signer configured")
        spender = self.settings.active_resale_market_address

        return PaymentStatus(
            symbol=asset.symbol,
            owner=owner,
            spender=spender,
            balance=await asset.balance_of(self.gateway, owner),
            allowance=await asset.allowance(self.gateway, owner, spender),
        )


def get_resale_service() -> ResaleService:
    """Resale service bound to the shared orchestrator."""
    from eventbase.services.pipeline.orchestrator import get_pipeline_orchestrator

    return ResaleService(get_pipeline_orchestrator())
