from __future__ import annotations
from .classes import Script
from .errors import tert, vert, UnsupportedOpcode
from .functions import (
    CURVE,
    evaluate,
    get_opcode,
    get_tokens,
    hash160,
    opcode_aliases,
    opcodes,
    run_auth_script,
    run_script,
)
from .interfaces import ScriptProtocol
from .parsing import get_symbols
from .values import is_opcode
from ecdsa import SigningKey
from ecdsa.util import sigencode_der
from hashlib import sha256
from typing import Callable, Iterable
import inspect
import textwrap


class TxInputInterpreter:
    """Builds an evaluation request for a transaction input from its
        locking script, its unlocking script, and the signed bytes.
    """
    lock_script: Script|None
    unlock_script: Script|None
    signed_bytes: bytes

    def __init__(self) -> None:
        self.lock_script = None
        self.unlock_script = None
        self.signed_bytes = b''

    def with_lock_script(self, lock_script: str|Iterable[str]|ScriptProtocol) -> TxInputInterpreter:
        """Set the locking script (pubkey script)."""
        self.lock_script = Script(get_tokens(lock_script))
        return self

    def with_unlock_script(self, unlock_script: str|Iterable[str]|ScriptProtocol) -> TxInputInterpreter:
        """Set the unlocking script (signature script)."""
        self.unlock_script = Script(get_tokens(unlock_script))
        return self

    def with_signed_bytes(self, signed_bytes: bytes) -> TxInputInterpreter:
        """Set the bytes used for signature verification. The bytes are
            copied.
        """
        tert(type(signed_bytes) in (bytes, bytearray), 'signed_bytes must be bytes')
        self.signed_bytes = bytes(signed_bytes)
        return self

    def _require_scripts(self) -> None:
        vert(self.lock_script is not None, 'lock script must be set')
        vert(self.unlock_script is not None, 'unlock script must be set')

    def validate(self) -> TxInputInterpreter:
        """Check the request without evaluating it. Raises ValueError if
            a script is missing or names an unregistered opcode. Returns
            the interpreter so it can be evaluated.
        """
        self._require_scripts()

        for token in self.unlock_script + self.lock_script:
            if not is_opcode(token):
                continue
            try:
                get_opcode(token)
            except UnsupportedOpcode as e:
                raise ValueError(str(e)) from e

        return self

    def evaluate(self) -> bool:
        """Evaluate the scripts and return the verdict. Raises ValueError
            only if a script is missing; an unregistered opcode rejects
            the spend like any other script failure.
        """
        self._require_scripts()
        return run_auth_script(
            self.unlock_script, self.lock_script, self.signed_bytes
        )

    def explain(self):
        """Evaluate the scripts and return the full Verdict."""
        self._require_scripts()
        return evaluate(self.unlock_script, self.lock_script, self.signed_bytes)


def make_signature(prvkey: bytes, signed_bytes: bytes) -> bytes:
    """Sign the signed bytes with a 32-byte secp256k1 private key.
        Returns the deterministic (RFC 6979) DER-encoded signature.
    """
    tert(type(prvkey) is bytes, 'prvkey must be bytes')
    tert(type(signed_bytes) is bytes, 'signed_bytes must be bytes')
    vert(len(signed_bytes) > 0, 'signed_bytes must not be empty')
    skey = SigningKey.from_string(prvkey, curve=CURVE)
    return skey.sign_digest_deterministic(
        signed_bytes, hashfunc=sha256, sigencode=sigencode_der,
        allow_truncate=True
    )

def derive_pubkey(prvkey: bytes, compressed: bool = True) -> bytes:
    """Derive the encoded public key for a private key."""
    tert(type(prvkey) is bytes, 'prvkey must be bytes')
    vkey = SigningKey.from_string(prvkey, curve=CURVE).get_verifying_key()
    return vkey.to_string('compressed' if compressed else 'uncompressed')

def make_p2pk_lock(pubkey: bytes) -> Script:
    """Make a locking Script that requires a valid signature from a
        single key to unlock.
    """
    tert(type(pubkey) is bytes, 'pubkey must be bytes')
    return Script.from_src(f'{pubkey.hex()} OP_CHECKSIG')

def make_p2pk_unlock(sig: bytes) -> Script:
    """Make an unlocking Script for `make_p2pk_lock`."""
    tert(type(sig) is bytes, 'sig must be bytes')
    return Script.from_src(sig.hex())

def make_p2pkh_lock(pubkey_hash: bytes) -> Script:
    """Make a locking Script that commits to the hash160 of a public
        key and requires the key and a valid signature from it.
    """
    tert(type(pubkey_hash) is bytes, 'pubkey_hash must be bytes')
    vert(len(pubkey_hash) == 20, 'pubkey_hash must be 20 bytes')
    return Script.from_src(
        f'OP_DUP OP_HASH160 {pubkey_hash.hex()} OP_EQUALVERIFY OP_CHECKSIG'
    )

def make_p2pkh_unlock(sig: bytes, pubkey: bytes) -> Script:
    """Make an unlocking Script for `make_p2pkh_lock`: pushes the
        signature, then the public key.
    """
    tert(type(sig) is bytes, 'sig must be bytes')
    tert(type(pubkey) is bytes, 'pubkey must be bytes')
    return Script.from_src(f'{sig.hex()} {pubkey.hex()}')

def make_single_sig_witness(prvkey: bytes, signed_bytes: bytes) -> Script:
    """Make an unlocking Script for `make_p2pk_lock` by signing."""
    return make_p2pk_unlock(make_signature(prvkey, signed_bytes))

def make_multisig_lock(quorum_size: int, pubkeys: list[bytes]) -> Script:
    """Make a locking Script that requires quorum_size signatures, each
        valid under at least one of the pubkeys. Can be unlocked with
        `make_multisig_unlock`. The quorum_size is committed in the lock
        so that the spender cannot lower it.
    """
    tert(type(quorum_size) is int, 'quorum_size must be int')
    tert(all(type(pk) is bytes for pk in pubkeys), 'each pubkey must be bytes')
    vert(0 < quorum_size <= len(pubkeys),
         'quorum_size must be between 1 and the number of pubkeys')
    keys = ' '.join(pk.hex() for pk in pubkeys)
    return Script.from_src(f'{quorum_size} {keys} {len(pubkeys)} OP_CHECKMULTISIG')

def make_multisig_unlock(sigs: list[bytes]) -> Script:
    """Make an unlocking Script for `make_multisig_lock` that pushes
        the signatures in the given order.
    """
    tert(all(type(sig) is bytes for sig in sigs), 'each sig must be bytes')
    return Script(tuple(sig.hex() for sig in sigs))

def make_hashlock(digest: bytes) -> Script:
    """Make a locking Script that requires the sha256 preimage of the
        digest.
    """
    tert(type(digest) is bytes, 'digest must be bytes')
    vert(len(digest) == 32, 'digest must be 32 bytes')
    return Script.from_src(f'OP_SHA256 {digest.hex()} OP_EQUAL')

def make_hashlock_unlock(preimage: bytes) -> Script:
    """Make an unlocking Script for `make_hashlock`."""
    tert(type(preimage) is bytes, 'preimage must be bytes')
    vert(len(preimage) > 0, 'preimage must not be empty')
    return Script.from_src(preimage.hex())

def hash_pubkey(pubkey: bytes) -> bytes:
    """The hash160 committed to by `make_p2pkh_lock`."""
    return hash160(pubkey)


def _wrap_doc(docstring: str|None) -> str:
    """Collapse the docstring whitespace and wrap it at 80 columns.
        Tokens longer than a line are kept whole.
    """
    return textwrap.fill(
        ' '.join((docstring or '').split()), width=80,
        break_long_words=False, break_on_hyphens=False
    )

def _format_function_doc(function: Callable) -> str:
    """Documents a function with a header, its signature, and its
        docstring.
    """
    return f'\n\n## `{function.__name__}{inspect.signature(function)}`' + \
        f'\n\n{_wrap_doc(function.__doc__)}'

def _get_op_aliases() -> dict[str, list[str]]:
    """Find and return all aliases for all ops."""
    aliases = {opname: [] for opname in opcodes}
    for alias, opname in opcode_aliases.items():
        aliases[opname].append(alias)
    return aliases

def generate_docs() -> list[str]:
    """Generates the opcode reference as a list of Markdown paragraphs
        using the registry and the op docstrings.
    """
    aliases = _get_op_aliases()
    paragraphs = [
        '# OPs\n\n'
        'Any token longer than three characters that starts with `OP_` is\n'
        'an opcode; every other token is pushed onto the stack as-is.\n\n'
        'All `OP_` functions have the following signature:\n\n'
        '```python\n'
        'def OP_WHATEVER(stack: Stack) -> None:\n'
        '    ...\n```\n'
    ]

    categories: dict[str, list] = {}
    for op in opcodes.values():
        categories.setdefault(op.category, []).append(op)

    for category, ops in categories.items():
        paragraphs.append(f'\n# {category.title()}\n')
        for op in ops:
            line = f'\n## {op.name}\n\n' + _wrap_doc(op.function.__doc__)
            if aliases[op.name]:
                line += '\n\nAliases:\n- ' + '\n- '.join(aliases[op.name])
            paragraphs.append(line + '\n')

    paragraphs.append('\n\n# Interpreter functions')
    paragraphs.append(_format_function_doc(run_script))
    paragraphs.append(_format_function_doc(evaluate))
    paragraphs.append(_format_function_doc(run_auth_script))
    paragraphs.append(_format_function_doc(get_symbols))
    paragraphs.append('\n\n# Tools')
    paragraphs.append(_format_function_doc(make_p2pk_lock))
    paragraphs.append(_format_function_doc(make_p2pkh_lock))
    paragraphs.append(_format_function_doc(make_multisig_lock))
    paragraphs.append(_format_function_doc(make_hashlock))
    paragraphs.append(_format_function_doc(generate_docs) + '\n')

    return paragraphs
