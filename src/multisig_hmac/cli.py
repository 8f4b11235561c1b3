#!/usr/bin/env python3
"""
cli.py — multisig-hmac command line

Commands:
  keygen         Generate a stored signer key
  master-keygen  Generate a master secret for derived keys
  derive         Derive a signer key from a master secret
  sign           Produce a partial signature over a message
  combine        XOR-combine partial signatures
  verify         Verify a combined signature against a threshold
  demo           Walk through stored and derived signing

Keys and signatures are JSON files with base64-encoded byte fields.
"""

from __future__ import annotations
import argparse
import base64
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import Scheme
from .algorithms import parse_algorithm, supported_algorithms
from .errors import MultisigError
from .keys import Key, decode_b64
from .signatures import CombinedSignature, PartialSignature

logger = logging.getLogger(__name__)

ALGORITHM_ENV = "MULTISIG_HMAC_ALGORITHM"


def _fail_with_error(err: MultisigError) -> None:
    """Print a structured error message from a ``MultisigError`` and exit.

    Args:
        err: Structured validation/configuration error.

    Returns:
        None: This function terminates the process.
    """
    context = f" Context: {err.context}." if err.context else ""
    print(f"ERROR: {err.code}. {err.message}{context}")
    sys.exit(1)


def _cli_error(what: str, why: str, fix: str) -> None:
    """Print a CLI usage error and exit."""
    print(f"ERROR: {what}. {why}. Fix: {fix}.")
    sys.exit(1)


def _load_json(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.is_file():
        _cli_error(
            f"File not found: {p}",
            "the command needs an existing key or signature file",
            "pass the path of a file written by this tool",
        )
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        _cli_error(f"Invalid JSON in {p}", str(exc), "regenerate the file")
    if not isinstance(data, dict):
        _cli_error(f"Invalid file {p}", "top-level JSON value must be an object", "regenerate the file")
    return data


def _write_json(data: Dict[str, Any], out: Optional[str]) -> None:
    text = json.dumps(data, indent=2)
    if out:
        Path(out).write_text(text + "\n", encoding="utf-8")
        print(f"Written to: {out}")
    else:
        print(text)


def _read_message(value: str) -> bytes:
    """``@path`` reads the message from a file, anything else is UTF-8 text."""
    if value.startswith("@"):
        p = Path(value[1:])
        try:
            return p.read_bytes()
        except OSError as exc:
            _cli_error(
                f"Cannot read message file {p}",
                exc.strerror or str(exc),
                "pass an existing readable file after @, or the message text itself",
            )
    return value.encode("utf-8")


def _scheme_for(args: argparse.Namespace, data: Optional[Dict[str, Any]] = None) -> Scheme:
    """Pick the algorithm: --algorithm, else the file's, else $MULTISIG_HMAC_ALGORITHM, else sha256."""
    recorded = (data or {}).get("algorithm")
    scheme = Scheme(args.algorithm or recorded or os.environ.get(ALGORITHM_ENV, "sha256"))
    if recorded is not None and Scheme(recorded).algorithm != scheme.algorithm:
        _cli_error(
            f"Algorithm mismatch: file uses {recorded}, command uses {scheme.profile.name}",
            "keys and signatures only verify under the algorithm they were made with",
            f"pass --algorithm {recorded}",
        )
    return scheme


def _key_entry(scheme: Scheme, key: Key) -> Dict[str, Any]:
    entry = {"algorithm": scheme.profile.name}
    entry.update(key.to_dict())
    return entry


def _signature_entry(scheme: Scheme, sig: Any) -> Dict[str, Any]:
    entry = {"algorithm": scheme.profile.name}
    entry.update(sig.to_dict())
    return entry


def cmd_keygen(args: argparse.Namespace) -> None:
    scheme = _scheme_for(args)
    key = scheme.generate_key(args.index)
    _write_json(_key_entry(scheme, key), args.out)


def cmd_master_keygen(args: argparse.Namespace) -> None:
    scheme = _scheme_for(args)
    secret = scheme.generate_master_secret()
    _write_json(
        {
            "algorithm": scheme.profile.name,
            "master_secret_b64": base64.b64encode(secret).decode("ascii"),
        },
        args.out,
    )


def _load_master(args: argparse.Namespace) -> Tuple[Scheme, bytes]:
    data = _load_json(args.master)
    scheme = _scheme_for(args, data)
    if "master_secret_b64" not in data:
        _cli_error(
            f"Missing master_secret_b64 in {args.master}",
            "the file is not a master secret file",
            "create one with `multisig-hmac master-keygen`",
        )
    return scheme, decode_b64(data["master_secret_b64"])


def cmd_derive(args: argparse.Namespace) -> None:
    scheme, master = _load_master(args)
    key = scheme.derive_key(master, args.index)
    _write_json(_key_entry(scheme, key), args.out)


def cmd_sign(args: argparse.Namespace) -> None:
    data = _load_json(args.key)
    scheme = _scheme_for(args, data)
    key = Key.from_dict(data)
    partial = scheme.sign(key, _read_message(args.message))
    _write_json(_signature_entry(scheme, partial), args.out)


def cmd_combine(args: argparse.Namespace) -> None:
    partials: List[PartialSignature] = []
    seen = 0
    for path in args.signatures:
        data = _load_json(path)
        scheme = _scheme_for(args, data)
        # every later file must match the first one
        args.algorithm = scheme.profile.name
        partial = PartialSignature.from_dict(data)
        if seen & partial.bitmask:
            _cli_error(
                f"Signer repeated in {path}",
                "combining the same signer twice cancels its contribution",
                "pass each signer's partial signature once",
            )
        seen |= partial.bitmask
        partials.append(partial)
    combined = scheme.combine(partials)
    _write_json(_signature_entry(scheme, combined), args.out)


def _load_pool(args: argparse.Namespace) -> List[Key]:
    keys = []
    for path in args.keys:
        data = _load_json(path)
        _scheme_for(args, data)
        keys.append(Key.from_dict(data))
    keys.sort(key=lambda k: k.index)
    if [k.index for k in keys] != list(range(len(keys))):
        _cli_error(
            "Stored key pool has gaps",
            f"got indexes {[k.index for k in keys]}, the pool must hold signers 0..n-1",
            "pass every stored key file from index 0 up to the highest signer",
        )
    return keys


def cmd_verify(args: argparse.Namespace) -> None:
    data = _load_json(args.signature)
    scheme = _scheme_for(args, data)
    args.algorithm = scheme.profile.name
    combined = CombinedSignature.from_dict(data)
    message = _read_message(args.message)

    if args.master:
        _, master = _load_master(args)
        ok = scheme.verify_derived(master, combined, message, args.threshold)
    else:
        pool = _load_pool(args)
        ok = scheme.verify_stored(pool, combined, message, args.threshold)

    signers = ", ".join(str(i) for i in combined.signers) or "none"
    if ok:
        print(f"VALID: {len(combined.signers)} signer(s) [{signers}], threshold {args.threshold}")
    else:
        print(f"INVALID: signers [{signers}], threshold {args.threshold}")
        sys.exit(2)


def cmd_demo(args: argparse.Namespace) -> None:
    scheme = _scheme_for(args)
    message = _read_message(args.message)
    print(f"Scheme: {scheme.profile.name} (KEYBYTES={scheme.key_bytes}, BYTES={scheme.tag_bytes})")

    # Stored keys: 0 and 2 sign, 1 abstains
    k0, k1, k2 = (scheme.generate_key(i) for i in range(3))
    combined = scheme.combine([scheme.sign(k0, message), scheme.sign(k2, message)])
    print(f"Stored keys, signers {combined.signers}: "
          f"{scheme.verify_stored([k0, k1, k2], combined, message, 2)}")

    # Derived keys from one master secret
    seed = scheme.generate_master_secret()
    d0, d2 = scheme.derive_key(seed, 0), scheme.derive_key(seed, 2)
    combined = scheme.combine([scheme.sign(d0, message), scheme.sign(d2, message)])
    print(f"Derived keys, signers {combined.signers}: "
          f"{scheme.verify_derived(seed, combined, message, 2)}")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="multisig-hmac",
        description="multisig-hmac CLI: threshold multisignatures over HMAC",
    )
    parser.add_argument(
        "--algorithm",
        default=None,
        help=f"HMAC algorithm ({', '.join(supported_algorithms())}); "
             f"defaults to ${ALGORITHM_ENV} or sha256",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_kg = sub.add_parser("keygen", help="Generate a stored signer key")
    p_kg.add_argument("--index", type=int, required=True, help="Signer index (0-31)")
    p_kg.add_argument("--out", help="Output file (default: stdout)")

    p_mk = sub.add_parser("master-keygen", help="Generate a master secret")
    p_mk.add_argument("--out", help="Output file (default: stdout)")

    p_dr = sub.add_parser("derive", help="Derive a signer key from a master secret")
    p_dr.add_argument("--master", required=True, help="Master secret file")
    p_dr.add_argument("--index", type=int, required=True, help="Signer index (0-31)")
    p_dr.add_argument("--out", help="Output file (default: stdout)")

    p_sg = sub.add_parser("sign", help="Sign a message with one key")
    p_sg.add_argument("--key", required=True, help="Signer key file")
    p_sg.add_argument("--message", required=True, help="Message text or @file")
    p_sg.add_argument("--out", help="Output file (default: stdout)")

    p_cb = sub.add_parser("combine", help="Combine partial signatures")
    p_cb.add_argument("signatures", nargs="+", help="Partial signature files")
    p_cb.add_argument("--out", help="Output file (default: stdout)")

    p_vf = sub.add_parser("verify", help="Verify a combined signature")
    p_vf.add_argument("--signature", required=True, help="Combined signature file")
    p_vf.add_argument("--message", required=True, help="Message text or @file")
    p_vf.add_argument("--threshold", type=int, required=True, help="Minimum number of signers")
    src = p_vf.add_mutually_exclusive_group(required=True)
    src.add_argument("--keys", nargs="+", help="Stored key files")
    src.add_argument("--master", help="Master secret file (derived keys)")

    p_demo = sub.add_parser("demo", help="Stored and derived signing walk-through")
    p_demo.add_argument("--message", default="hello world", help="Message text or @file")

    args = parser.parse_args()
    _configure_logging(args.verbose)
    logger.debug("command %s with algorithm %s", args.command, args.algorithm)

    try:
        if args.algorithm:
            parse_algorithm(args.algorithm)
        if args.command == "keygen": cmd_keygen(args)
        elif args.command == "master-keygen": cmd_master_keygen(args)
        elif args.command == "derive": cmd_derive(args)
        elif args.command == "sign": cmd_sign(args)
        elif args.command == "combine": cmd_combine(args)
        elif args.command == "verify": cmd_verify(args)
        elif args.command == "demo": cmd_demo(args)
    except MultisigError as err:
        _fail_with_error(err)

if __name__ == "__main__":
    main()
