"""Shared fixtures and signet reference vectors."""

import pytest
from bitcoinutils.hdwallet import HDWallet
from bitcoinutils.keys import PrivateKey
from bitcoinutils.setup import setup

from mcp_ordinals.envelope import Inscription, parse_internal_key
from mcp_ordinals.signer import PrivateKeyBackend
from mcp_ordinals.transactions import Unspent

# Published signet test key (extended private key, depth 0)
SIGNET_TPRV = (
    "tprv8ku1y3SPM9kB9aM3RHQ9io5nzHTTWPGXEkgZPL4UC43nJWPrVUJnFBGKGa3pLLZC7W9Zrx"
    "JKU7E7Vk62KPFZ4gcQALkZXD8HHso2usVeGNA"
)
SIGNET_INTERNAL_KEY = "608c570af85df858abb7fd6ac1dd7a91cc1321f2a7f6e7325350956eb97844d5"

# Transfer inscription of {"p":"","op":"transfer","tick":"sats","amt":"20"}
SIGNET_ENVELOPE_HEX = (
    "0063036f7264010118746578742f706c61696e3b636861727365743d7574662d3800317b22"
    "70223a22222c226f70223a227472616e73666572222c227469636b223a2273617473222c22"
    "616d74223a223230227d68"
)
SIGNET_PAYLOAD = b'{"p":"","op":"transfer","tick":"sats","amt":"20"}'
SIGNET_MIME = b"text/plain;charset=utf-8"
SIGNET_CONTROL_BLOCK = "c0" + SIGNET_INTERNAL_KEY
SIGNET_COMMIT_OUTPUT_KEY = "9dd086517f25d5ee5062aae53a06054ad88ef06b19995399ca3263cde527205f"
SIGNET_KEY_PATH_OUTPUT_KEY = "3924d7b277700a36a751a518250495b91f883360a1767a4c25d0725a8c73af51"

SIGNET_FUNDING_TXID = "9c7236ecc2dc45c8ba7e1e7bf8198b07e7a0b95b9fe972177e79835149f7f9e4"
SIGNET_FUNDING_VOUT = 1
SIGNET_FUNDING_VALUE = 701871

SIGNET_COMMIT_TXID = "a7babed711f5caf527bfdd798aba3a8baa712f34db352a6373bc1539f0998388"
SIGNET_COMMIT_HEX = (
    "02000000000101e4f9f7495183797e1772e99f5bb9a0e7078b19f87b1e7ebac845dcc2ec3672"
    "9c0100000000fdffffff02ea020000000000002251209dd086517f25d5ee5062aae53a06054a"
    "d88ef06b19995399ca3263cde527205ffdb10a00000000002251203924d7b277700a36a751a5"
    "18250495b91f883360a1767a4c25d0725a8c73af510140e811da903c3e6ff1a8e3d0ae72af81"
    "62b8d3ad590efac1e5ac5cfa7f47fd1c8a8252706ceef3ef071c4a7fd5296d10c887ac46de08"
    "e6a934e518f6eb575613ea00000000"
)

SIGNET_REVEAL_TXID = "0b9e5385023b27363033459dc5a33eb9199a758f45a055726705790811bf72b0"
SIGNET_REVEAL_HEX = (
    "02000000000101888399f03915bc73632a35db342f71aa8b3aba8a79ddbf27f5caf511d7beba"
    "a70000000000fdffffff0122020000000000002251203924d7b277700a36a751a518250495b9"
    "1f883360a1767a4c25d0725a8c73af510340631a1a547967b8119c16fb2f31dc7ee61d13c43f"
    "b6a4ca1e2c44ace613d086c5a8a68303c63b8d4e1da1f51665bfd0d3e1cecee6f3dd1ba521d8"
    "5f463604909d55" + SIGNET_ENVELOPE_HEX + "21" + SIGNET_CONTROL_BLOCK + "00000000"
)

@pytest.fixture(autouse=True)
def bitcoinutils_network():
    """Render addresses with testnet (and signet) parameters."""
    setup("testnet")


@pytest.fixture
def signet_backend():
    """Signer for the published signet test key."""
    return PrivateKeyBackend(HDWallet.from_xprivate_key(SIGNET_TPRV, "m").get_private_key())


@pytest.fixture
def backend():
    """Signer for an arbitrary fixed test key."""
    return PrivateKeyBackend(PrivateKey(secret_exponent=0x1F2E3D4C5B6A79880123456789ABCDEF))


@pytest.fixture
def signet_key():
    return parse_internal_key(SIGNET_INTERNAL_KEY)


@pytest.fixture
def signet_inscription(signet_key):
    """The transfer inscription revealed on signet."""
    return Inscription(SIGNET_MIME, SIGNET_PAYLOAD, signet_key)


@pytest.fixture
def signet_unspent():
    return Unspent(
        txid=SIGNET_FUNDING_TXID,
        vout=SIGNET_FUNDING_VOUT,
        value=SIGNET_FUNDING_VALUE,
    )
