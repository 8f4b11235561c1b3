import hashlib
import hmac

import pytest

from multisig_hmac.algorithms import (
    Algorithm,
    get_profile,
    parse_algorithm,
    supported_algorithms,
)
from multisig_hmac.errors import ConfigurationError, UnsupportedAlgorithmError


@pytest.mark.parametrize("alg, key_bytes, tag_bytes", [
    (Algorithm.SHA256, 64, 32),
    (Algorithm.SHA512, 128, 64),
    (Algorithm.SHA384, 128, 48),
])
def test_profile_sizes(alg, key_bytes, tag_bytes):
    profile = get_profile(alg)
    assert profile.key_bytes == key_bytes
    assert profile.tag_bytes == tag_bytes
    assert profile.algorithm is alg


@pytest.mark.parametrize("name, expected", [
    ("sha256", Algorithm.SHA256),
    ("SHA512", Algorithm.SHA512),
    ("HmacSHA384", Algorithm.SHA384),
    ("sha-256", Algorithm.SHA256),
    (" sha384 ", Algorithm.SHA384),
])
def test_parse_algorithm_names(name, expected):
    assert parse_algorithm(name) is expected


@pytest.mark.parametrize("selector", ["md5", "sha1", "", None, 256])
def test_unsupported_algorithm(selector):
    with pytest.raises(UnsupportedAlgorithmError) as e:
        get_profile(selector)
    assert isinstance(e.value, ConfigurationError)
    assert e.value.code == "MULTISIG_E001"


@pytest.mark.parametrize("alg, digest", [
    (Algorithm.SHA256, hashlib.sha256),
    (Algorithm.SHA512, hashlib.sha512),
    (Algorithm.SHA384, hashlib.sha384),
])
def test_mac_matches_stdlib_hmac(alg, digest):
    profile = get_profile(alg)
    key = bytes(range(profile.key_bytes))
    expected = hmac.new(key, b"hello world", digest).digest()
    assert profile.mac(key, b"hello world") == expected
    # parts are concatenated
    assert profile.mac(key, b"hello", b" ", b"world") == expected
    assert len(expected) == profile.tag_bytes


def test_supported_algorithms():
    assert supported_algorithms() == ["sha256", "sha512", "sha384"]


def test_every_algorithm_has_a_profile():
    for alg in Algorithm:
        profile = get_profile(alg)
        assert profile.algorithm is alg
        assert profile.key_bytes >= profile.tag_bytes
