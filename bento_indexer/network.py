"""Networks a node can belong to and where to reach them."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

_INVALID = "Invalid network type"


class NetworkType(Enum):
    """The kind of a network, independent of where its node lives."""

    DEVNET = "devnet"
    TESTNET = "testnet"
    MAINNET = "mainnet"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_str(cls, value: str) -> NetworkType:
        """Parse ``devnet``, ``testnet`` or ``mainnet``."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(_INVALID) from None


_URL_SETTINGS = {
    NetworkType.DEVNET: ("DEV_NODE_URL", "http://127.0.0.1:12973"),
    NetworkType.TESTNET: ("TESTNET_NODE_URL", "https://node.testnet.alephium.org"),
    NetworkType.MAINNET: ("MAINNET_NODE_URL", "https://node.mainnet.alephium.org"),
}

_ENVIRONMENTS = {
    "development": NetworkType.DEVNET,
    "testnet": NetworkType.TESTNET,
    "mainnet": NetworkType.MAINNET,
}


@dataclass(frozen=True)
class Network:
    """A well-known network, or a custom node URL of a given network type."""

    network_type: NetworkType
    url: str | None = None

    DEVNET: ClassVar[Network]
    TESTNET: ClassVar[Network]
    MAINNET: ClassVar[Network]

    @property
    def is_custom(self) -> bool:
        return self.url is not None

    def base_url(self) -> str:
        """The node URL, taken from the environment for well-known networks."""
        if self.url is not None:
            return self.url
        variable, default = _URL_SETTINGS[self.network_type]
        return os.environ.get(variable, default)

    def identifier(self) -> str:
        return str(self.network_type)

    @classmethod
    def custom(cls, url: str, network_type: NetworkType) -> Network:
        return cls(network_type=network_type, url=url)

    @classmethod
    def default(cls) -> Network:
        """The network named by ``ENVIRONMENT``, mainnet when unset or unknown."""
        environment = os.environ.get("ENVIRONMENT")
        return cls(_ENVIRONMENTS.get(environment or "", NetworkType.MAINNET))

    @classmethod
    def from_str(cls, value: str) -> Network:
        return cls(NetworkType.from_str(value))

    def __str__(self) -> str:
        return self.identifier()

    def __repr__(self) -> str:
        name = self.network_type.value.capitalize()
        if self.url is None:
            return f"Network.{name}"
        return f"Network.Custom({self.url!r}, {name})"


Network.DEVNET = Network(NetworkType.DEVNET)
Network.TESTNET = Network(NetworkType.TESTNET)
Network.MAINNET = Network(NetworkType.MAINNET)

__all__ = ["Network", "NetworkType"]