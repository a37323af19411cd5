"""
Static network and token tables.

Both tables are plain module data built at import time and exposed read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Mapping

from .errors import TokenUnavailableOnNetwork, UnknownNetwork, UnknownToken

__all__ = [
    "NATIVE_TOKEN_ADDRESS",
    "NETWORKS",
    "TOKENS",
    "NetworkDescriptor",
    "explorer_url",
    "format_address",
    "format_amount",
    "resolve_network",
    "resolve_token",
]

NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class NetworkDescriptor:
    key: str
    name: str
    chain_id: int
    rpc_url: str
    block_explorer: str


NETWORKS: Mapping[str, NetworkDescriptor] = MappingProxyType(
    {
        "base": NetworkDescriptor(
            key="base",
            name="Base",
            chain_id=8453,
            rpc_url="https://mainnet.base.org",
            block_explorer="https://basescan.org",
        ),
        "base-sepolia": NetworkDescriptor(
            key="base-sepolia",
            name="Base Sepolia",
            chain_id=84532,
            rpc_url="https://sepolia.base.org",
            block_explorer="https://sepolia.basescan.org",
        ),
        "ethereum": NetworkDescriptor(
            key="ethereum",
            name="Ethereum",
            chain_id=1,
            rpc_url="https://eth.llamarpc.com",
            block_explorer="https://etherscan.io",
        ),
        "optimism": NetworkDescriptor(
            key="optimism",
            name="Optimism",
            chain_id=10,
            rpc_url="https://mainnet.optimism.io",
            block_explorer="https://optimistic.etherscan.io",
        ),
        "arbitrum": NetworkDescriptor(
            key="arbitrum",
            name="Arbitrum",
            chain_id=42161,
            rpc_url="https://arb1.arbitrum.io/rpc",
            block_explorer="https://arbiscan.io",
        ),
    }
)

# Alternate spellings some settlement providers send back.
_NETWORK_ALIASES: Mapping[str, str] = MappingProxyType({"base-mainnet": "base"})

TOKENS: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        "USDC": MappingProxyType(
            {
                "base": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                "base-sepolia": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
                "ethereum": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                "optimism": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
                "arbitrum": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            }
        ),
        "DAI": MappingProxyType(
            {
                "base": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
                "ethereum": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
                "optimism": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
                "arbitrum": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
            }
        ),
        "ETH": MappingProxyType(
            {
                "base": NATIVE_TOKEN_ADDRESS,
                "base-sepolia": NATIVE_TOKEN_ADDRESS,
                "ethereum": NATIVE_TOKEN_ADDRESS,
                "optimism": NATIVE_TOKEN_ADDRESS,
                "arbitrum": NATIVE_TOKEN_ADDRESS,
            }
        ),
    }
)


def resolve_network(key: str) -> NetworkDescriptor:
    """Return the descriptor for ``key``, accepting known aliases."""
    descriptor = NETWORKS.get(_NETWORK_ALIASES.get(key, key))
    if descriptor is None:
        raise UnknownNetwork(key)
    return descriptor


def resolve_token(symbol: str, network: str) -> str:
    """
    Return the contract address of ``symbol`` on ``network``.

    :class:`UnknownToken` means the symbol is not listed anywhere, while
    :class:`TokenUnavailableOnNetwork` means it is listed for other networks.
    """
    addresses = TOKENS.get(symbol.upper())
    if addresses is None:
        raise UnknownToken(symbol)
    address = addresses.get(_NETWORK_ALIASES.get(network, network))
    if address is None:
        raise TokenUnavailableOnNetwork(symbol, network)
    return address


def explorer_url(network: str, tx_hash: str) -> str:
    return f"{resolve_network(network).block_explorer}/tx/{tx_hash}"


def format_address(address: str, chars: int = 4) -> str:
    """Shorten ``address`` to ``0x1234...abcd`` for display."""
    if not address:
        return ""
    if len(address) < chars * 2 + 2:
        return address
    return f"{address[:chars + 2]}...{address[-chars:]}"


def format_amount(amount: str | int | Decimal, decimals: int = 2) -> str:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Amount {amount!r} is not a number") from exc
    return f"{value:,.{decimals}f}"
