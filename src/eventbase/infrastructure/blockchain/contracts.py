"""Contract registry and ABI encode/decode helpers."""

import logging
from enum import Enum
from typing import Any

from eth_abi import decode
from web3 import Web3
from web3.types import TxParams

from eventbase.core.config import Settings, get_settings
from eventbase.infrastructure.blockchain.abis import (
    ERC20_ABI,
    EVENT_TICKETING_ABI,
    RESALE_MARKET_ABI,
    TICKET_NFT_ABI,
)
from eventbase.infrastructure.blockchain.client import ChainClient

logger = logging.getLogger(__name__)


class ContractRef(str, Enum):
    """Contracts this service talks to."""

    EVENT_TICKETING = "EventTicketing"
    TICKET_NFT = "TicketNft"
    RESALE_MARKET = "TicketResaleMarket"
    ERC20 = "ERC20"  # Address supplied per call


CONTRACT_ABIS: dict[ContractRef, list[dict]] = {
    ContractRef.EVENT_TICKETING: EVENT_TICKETING_ABI,
    ContractRef.TICKET_NFT: TICKET_NFT_ABI,
    ContractRef.RESALE_MARKET: RESALE_MARKET_ABI,
    ContractRef.ERC20: ERC20_ABI,
}


def resolve_address(
    contract: ContractRef,
    address: str | None = None,
    settings: Settings | None = None,
) -> str:
    """Resolve the deployed address of a contract on the active network.

    Args:
        contract: Contract reference
        address: Explicit address, required for ERC20 tokens
        settings: Settings override

    Returns:
        Checksummed contract address
    """
    if address:
        return Web3.to_checksum_address(address)

    settings = settings or get_settings()
    addresses = {
        ContractRef.EVENT_TICKETING: settings.active_event_ticketing_address,
        ContractRef.TICKET_NFT: settings.active_ticket_nft_address,
        ContractRef.RESALE_MARKET: settings.active_resale_market_address,
    }
    if contract not in addresses:
        raise ValueError(f"Contract {contract.value} requires an explicit address")
    return Web3.to_checksum_address(addresses[contract])


def _abi_type(param: dict) -> str:
    """Canonical ABI type string, expanding tuple components."""
    param_type = param["type"]
    if param_type.startswith("tuple"):
        inner = ",".join(_abi_type(c) for c in param.get("components", []))
        return f"({inner}){param_type[len('tuple'):]}"
    return param_type


def _name_value(param: dict, value: Any) -> Any:
    """Map decoded tuples to dicts keyed by component name."""
    param_type = param["type"]
    components = param.get("components", [])
    if param_type == "tuple":
        return {
            c["name"]: _name_value(c, v) for c, v in zip(components, value)
        }
    if param_type.startswith("tuple["):
        element = {**param, "type": "tuple"}
        return [_name_value(element, v) for v in value]
    return value


class ContractManager:
    """Encodes calls and decodes results for the registered contracts."""

    def __init__(self, client: ChainClient, settings: Settings | None = None):
        """Initialize contract manager.

        Args:
            client: Blockchain client for RPC calls
            settings: Settings override (defaults to cached settings)
        """
        self.client = client
        self.settings = settings or get_settings()
        self.w3 = Web3()  # For encoding/decoding only

    def get_abi(self, contract: ContractRef) -> list[dict]:
        """Get ABI for a contract reference."""
        return CONTRACT_ABIS[contract]

    def encode_function_call(
        self, abi: list[dict], function_name: str, args: list[Any] | None = None
    ) -> bytes:
        """Encode function call data.

        Args:
            abi: Contract ABI
            function_name: Name of the function to call
            args: Function arguments

        Returns:
            Encoded function call data
        """
        dummy_address = "0x0000000000000000000000000000000000000000"
        contract = self.w3.eth.contract(address=dummy_address, abi=abi)
        func = contract.get_function_by_name(function_name)
        data = func(*args if args else [])._encode_transaction_data()
        return Web3.to_bytes(hexstr=data) if isinstance(data, str) else data

    def decode_function_result(
        self, abi: list[dict], function_name: str, data: bytes
    ) -> Any:
        """Decode function result.

        Struct outputs come back as dicts keyed by component name. Functions
        with several named outputs (public mapping getters) come back as a
        dict keyed by output name.

        Args:
            abi: Contract ABI
            function_name: Name of the function
            data: Raw result data

        Returns:
            Decoded result
        """
        func_abi = None
        for item in abi:
            if item.get("type") == "function" and item.get("name") == function_name:
                func_abi = item
                break

        if not func_abi:
            raise ValueError(f"Function {function_name} not found in ABI")

        outputs = func_abi.get("outputs", [])
        if not outputs:
            return None

        decoded = decode([_abi_type(o) for o in outputs], data)
        values = [_name_value(o, v) for o, v in zip(outputs, decoded)]

        if len(values) == 1:
            return values[0]
        if all(o.get("name") for o in outputs):
            return {o["name"]: v for o, v in zip(outputs, values)}
        return tuple(values)

    async def call_contract(
        self,
        contract: ContractRef,
        function_name: str,
        args: list[Any] | None = None,
        address: str | None = None,
    ) -> Any:
        """Call contract function (read-only).

        Args:
            contract: Contract reference
            function_name: Function name
            args: Function arguments
            address: Explicit address (ERC20 tokens)

        Returns:
            Decoded function result
        """
        abi = self.get_abi(contract)
        checksum_address = resolve_address(contract, address, self.settings)
        data = self.encode_function_call(abi, function_name, args)
        tx_params: TxParams = {"to": checksum_address, "data": data}
        result = await self.client.eth_call(tx_params)
        return self.decode_function_result(abi, function_name, result)
