import copy

import pytest

from bento_indexer.network import Network, NetworkType

_VARS = ("DEV_NODE_URL", "TESTNET_NODE_URL", "MAINNET_NODE_URL", "ENVIRONMENT")


@pytest.fixture
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_base_url_with_env_vars(clean_env):
    clean_env.setenv("DEV_NODE_URL", "http://custom-dev.example.com")
    clean_env.setenv("TESTNET_NODE_URL", "http://custom-testnet.example.com")
    clean_env.setenv("MAINNET_NODE_URL", "http://custom-mainnet.example.com")
    assert Network.DEVNET.base_url() == "http://custom-dev.example.com"
    assert Network.TESTNET.base_url() == "http://custom-testnet.example.com"
    assert Network.MAINNET.base_url() == "http://custom-mainnet.example.com"


def test_base_url_defaults(clean_env):
    assert Network.DEVNET.base_url() == "http://127.0.0.1:12973"
    assert Network.TESTNET.base_url() == "https://node.testnet.alephium.org"
    assert Network.MAINNET.base_url() == "https://node.mainnet.alephium.org"


def test_custom_base_url_ignores_env(clean_env):
    clean_env.setenv("DEV_NODE_URL", "http://custom-dev.example.com")
    network = Network.custom("http://example.com", NetworkType.DEVNET)
    assert network.base_url() == "http://example.com"


def test_identifier():
    assert Network.DEVNET.identifier() == "devnet"
    assert Network.TESTNET.identifier() == "testnet"
    assert Network.MAINNET.identifier() == "mainnet"
    custom = Network.custom("http://example.com", NetworkType.DEVNET)
    assert custom.identifier() == "devnet"


def test_custom_network_creation():
    url = "http://custom.example.com"
    network = Network.custom(url, NetworkType.TESTNET)
    assert network.is_custom
    assert network.url == url
    assert network.network_type is NetworkType.TESTNET


@pytest.mark.parametrize("name", ["devnet", "testnet", "mainnet"])
def test_network_type_to_string(name):
    assert str(NetworkType.from_str(name)) == name


@pytest.mark.parametrize(
    "environment, expected",
    [
        (None, Network.MAINNET),
        ("development", Network.DEVNET),
        ("testnet", Network.TESTNET),
        ("mainnet", Network.MAINNET),
        ("unknown", Network.MAINNET),
    ],
)
def test_network_default(clean_env, environment, expected):
    if environment is not None:
        clean_env.setenv("ENVIRONMENT", environment)
    assert Network.default() == expected


def test_network_to_string_conversion():
    assert str(Network.DEVNET) == "devnet"
    assert str(Network.TESTNET) == "testnet"
    assert str(Network.MAINNET) == "mainnet"
    custom = Network.custom("http://example.com", NetworkType.TESTNET)
    assert str(custom) == "testnet"


def test_string_to_network_conversion():
    assert Network.from_str("devnet") == Network.DEVNET
    assert Network.from_str("testnet") == Network.TESTNET
    assert Network.from_str("mainnet") == Network.MAINNET
    assert not Network.from_str("mainnet").is_custom


def test_invalid_string_to_network_conversion():
    with pytest.raises(ValueError, match="Invalid network type"):
        Network.from_str("invalid")


def test_string_to_network_type_conversion():
    assert NetworkType.from_str("devnet") is NetworkType.DEVNET
    assert NetworkType.from_str("testnet") is NetworkType.TESTNET
    assert NetworkType.from_str("mainnet") is NetworkType.MAINNET


def test_invalid_string_to_network_type_conversion():
    with pytest.raises(ValueError, match="Invalid network type"):
        NetworkType.from_str("invalid")


def test_clone():
    network = Network.from_str("testnet")
    cloned = copy.copy(network)
    assert cloned == Network.TESTNET
    assert cloned.identifier() == "testnet"
    network_type = NetworkType.from_str("devnet")
    assert copy.deepcopy(network_type) is NetworkType.DEVNET


def test_debug():
    assert "Mainnet" in repr(Network.MAINNET)
    custom = Network.custom("http://example.com", NetworkType.TESTNET)
    assert "Testnet" in repr(custom)