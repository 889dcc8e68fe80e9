"""Blockchain infrastructure module."""

from eventbase.infrastructure.blockchain.client import BaseChainClient, ChainClient
from eventbase.infrastructure.blockchain.contracts import (
    ContractManager,
    ContractRef,
    resolve_address,
)
from eventbase.infrastructure.blockchain.gateway import (
    ChainGateway,
    Receipt,
    Web3ChainGateway,
    get_chain_gateway,
)
from eventbase.infrastructure.blockchain.transaction import (
    TransactionResult,
    TransactionService,
    TransactionStatus,
    get_transaction_service,
)

__all__ = [
    # Client
    "ChainClient",
    "BaseChainClient",
    # Contracts
    "ContractManager",
    "ContractRef",
    "resolve_address",
    # Gateway
    "ChainGateway",
    "Receipt",
    "Web3ChainGateway",
    "get_chain_gateway",
    # Transactions
    "TransactionService",
    "TransactionResult",
    "TransactionStatus",
    "get_transaction_service",
]
