"""Minimal ABIs for the EventBase contracts and ERC20 stablecoins.

Only the functions this service reads or writes are included.
"""

TICKET_STRUCT_COMPONENTS = [
    {"name": "id", "type": "uint256"},
    {"name": "creator", "type": "address"},
    {"name": "price", "type": "uint256"},
    {"name": "eventName", "type": "string"},
    {"name": "description", "type": "string"},
    {"name": "eventTimestamp", "type": "uint256"},
    {"name": "location", "type": "string"},
    {"name": "closed", "type": "bool"},
    {"name": "canceled", "type": "bool"},
    {"name": "metadata", "type": "string"},
    {"name": "maxSupply", "type": "uint256"},
    {"name": "sold", "type": "uint256"},
    {"name": "totalCollected", "type": "uint256"},
    {"name": "totalRefunded", "type": "uint256"},
    {"name": "proceedsWithdrawn", "type": "bool"},
]

TICKET_METADATA_COMPONENTS = [
    {"name": "ticketId", "type": "uint256"},
    {"name": "eventName", "type": "string"},
    {"name": "eventTimestamp", "type": "uint256"},
    {"name": "location", "type": "string"},
]


def _fn(
    name: str,
    inputs: list[dict],
    outputs: list[dict],
    state_mutability: str = "view",
) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
        "stateMutability": state_mutability,
    }


EVENT_TICKETING_ABI: list[dict] = [
    # Public mapping getter: struct members are returned flattened
    _fn(
        "tickets",
        [{"name": "", "type": "uint256"}],
        [dict(c) for c in TICKET_STRUCT_COMPONENTS],
    ),
    _fn(
        "getRecentTickets",
        [],
        [{"name": "", "type": "tuple[]", "components": TICKET_STRUCT_COMPONENTS}],
    ),
    _fn("getTotalTickets", [], [{"name": "", "type": "uint256"}]),
    _fn(
        "isRegistered",
        [{"name": "ticketId", "type": "uint256"}, {"name": "user", "type": "address"}],
        [{"name": "", "type": "bool"}],
    ),
    _fn(
        "paidAmount",
        [{"name": "ticketId", "type": "uint256"}, {"name": "user", "type": "address"}],
        [{"name": "", "type": "uint256"}],
    ),
    _fn("claimRefund", [{"name": "ticketId", "type": "uint256"}], [], "nonpayable"),
]

TICKET_NFT_ABI: list[dict] = [
    _fn(
        "ownerOf",
        [{"name": "tokenId", "type": "uint256"}],
        [{"name": "", "type": "address"}],
    ),
    _fn(
        "getTicketMetadata",
        [{"name": "tokenId", "type": "uint256"}],
        [{"name": "", "type": "tuple", "components": TICKET_METADATA_COMPONENTS}],
    ),
    _fn(
        "balanceOf",
        [{"name": "owner", "type": "address"}],
        [{"name": "", "type": "uint256"}],
    ),
    _fn(
        "approve",
        [{"name": "to", "type": "address"}, {"name": "tokenId", "type": "uint256"}],
        [],
        "nonpayable",
    ),
]

RESALE_MARKET_ABI: list[dict] = [
    _fn(
        "listTicket",
        [{"name": "tokenId", "type": "uint256"}, {"name": "price", "type": "uint256"}],
        [],
        "nonpayable",
    ),
    _fn("buyTicket", [{"name": "tokenId", "type": "uint256"}], [], "payable"),
    _fn("cancelListing", [{"name": "tokenId", "type": "uint256"}], [], "nonpayable"),
    _fn(
        "listings",
        [{"name": "", "type": "uint256"}],
        [
            {"name": "seller", "type": "address"},
            {"name": "price", "type": "uint256"},
            {"name": "active", "type": "bool"},
        ],
    ),
]

ERC20_ABI: list[dict] = [
    _fn(
        "approve",
        [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
        [{"name": "", "type": "bool"}],
        "nonpayable",
    ),
    _fn(
        "balanceOf",
        [{"name": "account", "type": "address"}],
        [{"name": "", "type": "uint256"}],
    ),
    _fn(
        "allowance",
        [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
        [{"name": "", "type": "uint256"}],
    ),
]
