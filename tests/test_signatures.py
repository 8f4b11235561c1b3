import hashlib
import hmac
import itertools

import pytest

from multisig_hmac import Scheme
from multisig_hmac.errors import EncodingError, IndexRangeError, KeyLengthError, SignatureLengthError
from multisig_hmac.keys import Key
from multisig_hmac.signatures import (
    CombinedSignature,
    PartialSignature,
    key_indexes,
    popcount,
    xor_bytes,
)


@pytest.fixture(params=["sha256", "sha512", "sha384"])
def scheme(request):
    return Scheme(request.param)


# ---------------------------------------------------------------------------
# Bitfield helpers
# ---------------------------------------------------------------------------

def test_popcount():
    assert popcount(0) == 0
    assert popcount(0b101) == 2
    assert popcount(0xFFFFFFFF) == 32


def test_key_indexes():
    assert key_indexes(0) == []
    assert key_indexes(0b101) == [0, 2]
    assert key_indexes(1 << 31) == [31]
    assert key_indexes(0xFFFFFFFF) == list(range(32))


def test_xor_bytes():
    assert xor_bytes(b"\x0f\xf0", b"\xff\xff", 2) == b"\xf0\x0f"
    assert xor_bytes(b"\xaa" * 48, b"\xaa" * 48, 48) == bytes(48)


@pytest.mark.parametrize("a, b", [(b"\x00" * 31, b"\x00" * 32), (b"\x00" * 32, b"\x00" * 33)])
def test_xor_bytes_length_mismatch(a, b):
    with pytest.raises(SignatureLengthError):
        xor_bytes(a, b, 32)


def test_xor_bytes_keeps_long_tags():
    # 64-byte tags must not be cut down to 32 bytes
    a = bytes(range(64))
    assert xor_bytes(a, bytes(64), 64) == a


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

def test_sign_lengths_for_message_classes(scheme):
    key = scheme.generate_key(0)
    for message in (b"", b"hello world", b"hello world" * 100):
        partial = scheme.sign(key, message)
        assert len(partial.tag) == scheme.tag_bytes
        assert partial.bitmask == 1


def test_sign_bitmask_is_index_bit(scheme):
    for index in (0, 5, 31):
        partial = scheme.sign(scheme.generate_key(index), b"x")
        assert partial.bitmask == 1 << index
        assert partial.signers == [index]


def test_sign_deterministic(scheme):
    key = scheme.generate_key(2)
    assert scheme.sign(key, b"hello world") == scheme.sign(key, b"hello world")


def test_sign_is_hmac_of_message():
    scheme = Scheme("sha256")
    key = scheme.generate_key(0)
    expected = hmac.new(key.material, b"hello world", hashlib.sha256).digest()
    assert scheme.sign(key, b"hello world").tag == expected


def test_sign_rejects_wrong_key_length():
    scheme = Scheme("sha256")
    with pytest.raises(KeyLengthError):
        scheme.sign(Key(0, b"\x00" * 32), b"msg")


def test_sign_rejects_bad_index():
    scheme = Scheme("sha256")
    with pytest.raises(IndexRangeError):
        scheme.sign(Key(32, b"\x00" * 64), b"msg")


def test_partial_signature_is_immutable():
    partial = PartialSignature(1, bytes(32))
    with pytest.raises(AttributeError):
        partial.tag = b""


# ---------------------------------------------------------------------------
# Combining
# ---------------------------------------------------------------------------

def test_combine_single(scheme):
    partial = scheme.sign(scheme.generate_key(0), b"")
    combined = scheme.combine([partial])
    assert combined == CombinedSignature(partial.bitmask, partial.tag)
    assert len(combined.tag) == scheme.tag_bytes


def test_combine_empty(scheme):
    assert scheme.combine([]) == CombinedSignature(0, bytes(scheme.tag_bytes))


def test_combine_order_independent(scheme):
    keys = [scheme.generate_key(i) for i in range(3)]
    partials = [scheme.sign(k, b"hello world") for k in keys]
    results = {scheme.combine(p) for p in itertools.permutations(partials)}
    assert len(results) == 1


def test_combine_bitmask_and_tag(scheme):
    k0, k2 = scheme.generate_key(0), scheme.generate_key(2)
    s0, s2 = scheme.sign(k0, b"m"), scheme.sign(k2, b"m")
    combined = scheme.combine([s0, s2])
    assert combined.bitmask == 0b101
    assert combined.signers == [0, 2]
    assert combined.tag == xor_bytes(s0.tag, s2.tag, scheme.tag_bytes)


def test_combine_same_partial_twice_cancels(scheme):
    partial = scheme.sign(scheme.generate_key(4), b"hello world")
    assert scheme.combine([partial, partial]) == CombinedSignature(0, bytes(scheme.tag_bytes))


def test_combine_accepts_generator(scheme):
    keys = [scheme.generate_key(i) for i in range(2)]
    combined = scheme.combine(scheme.sign(k, b"m") for k in keys)
    assert combined.bitmask == 0b11


def test_combine_rejects_wrong_tag_length():
    scheme = Scheme("sha512")
    with pytest.raises(SignatureLengthError):
        scheme.combine([PartialSignature(1, bytes(32))])


def test_combine_is_associative(scheme):
    keys = [scheme.generate_key(i) for i in range(4)]
    partials = [scheme.sign(k, b"m") for k in keys]
    left = scheme.combine([scheme.combine(partials[:2]), scheme.combine(partials[2:])])
    assert left == scheme.combine(partials)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def test_wire_format_layout():
    combined = CombinedSignature(0b101, bytes(range(32)))
    wire = combined.to_bytes()
    assert wire[:4] == b"\x05\x00\x00\x00"
    assert wire[4:] == bytes(range(32))
    assert CombinedSignature.from_bytes(wire, 32) == combined


def test_wire_format_high_bit():
    wire = CombinedSignature(1 << 31, bytes(48)).to_bytes()
    assert wire[:4] == b"\x00\x00\x00\x80"


def test_from_bytes_rejects_wrong_length():
    with pytest.raises(SignatureLengthError):
        CombinedSignature.from_bytes(b"\x01\x00\x00\x00" + bytes(31), 32)


def test_scheme_signature_from_bytes(scheme):
    keys = [scheme.generate_key(i) for i in range(2)]
    combined = scheme.combine(scheme.sign(k, b"m") for k in keys)
    assert scheme.signature_from_bytes(combined.to_bytes()) == combined


def test_to_dict_fields():
    d = CombinedSignature(0b110, b"\x00" * 32).to_dict()
    assert d["bitmask"] == 6
    assert d["signers"] == [1, 2]
    assert CombinedSignature.from_dict(d) == CombinedSignature(0b110, b"\x00" * 32)


@pytest.mark.parametrize("entry", [
    {},
    {"bitmask": 1},
    {"bitmask": 1, "signature_b64": "%%%"},
    {"bitmask": -1, "signature_b64": "AAAA"},
    {"bitmask": 1 << 32, "signature_b64": "AAAA"},
    {"bitmask": "1", "signature_b64": "AAAA"},
])
def test_from_dict_rejects_malformed(entry):
    with pytest.raises(EncodingError):
        CombinedSignature.from_dict(entry)
