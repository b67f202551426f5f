from __future__ import annotations
from .classes import Stack, Script
from .errors import (
    tert,
    sert,
    ScriptExecutionError,
    MalformedCryptoInput,
    UnsupportedOpcode,
    VerificationFailed,
    IntentionalHalt,
)
from .interfaces import ScriptProtocol
from .parsing import get_symbols
from .values import (
    FALSE,
    TRUE,
    bool_value,
    format_hex,
    format_int,
    is_opcode,
    is_true,
    parse_hex,
)
from dataclasses import dataclass, field
from Crypto.Hash import RIPEMD160
from ecdsa import SECP256k1, VerifyingKey
from ecdsa.der import UnexpectedDER
from ecdsa.ecdsa import Signature
from ecdsa.keys import MalformedPointError
from ecdsa.util import MalformedSignature, sigdecode_der
from enum import Enum
from hashlib import sha1, sha256
from types import MappingProxyType
from typing import Callable, Iterable, NamedTuple
import logging


logger = logging.getLogger('spendscript')

CURVE = SECP256k1


def ripemd160(data: bytes) -> bytes:
    """The RIPEMD-160 digest of the data."""
    return RIPEMD160.new(data).digest()

def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of the SHA-256 digest of the data."""
    return ripemd160(sha256(data).digest())

def hash256(data: bytes) -> bytes:
    """SHA-256 applied twice."""
    return sha256(sha256(data).digest()).digest()

def digest_to_int(digest: bytes) -> int:
    """Convert signed bytes to the int used by ECDSA verification,
        keeping only the leftmost bits up to the bit length of the
        curve order.
    """
    number = int.from_bytes(digest, 'big')
    excess = len(digest) * 8 - CURVE.order.bit_length()
    return number >> excess if excess > 0 else number

def parse_public_key(value: str) -> VerifyingKey:
    """Decode a hex Stack value into a secp256k1 public key. Accepts
        compressed, uncompressed and raw point encodings. Raises
        InvalidEncoding for bad hex and MalformedCryptoInput for bytes
        that are not a point on the curve.
    """
    data = parse_hex(value)
    try:
        return VerifyingKey.from_string(data, curve=CURVE)
    except (MalformedPointError, ValueError) as e:
        raise MalformedCryptoInput(f'could not parse public key: {e}') from e

def parse_signature(value: str) -> Signature:
    """Decode a hex Stack value into a DER-encoded ECDSA signature.
        Raises InvalidEncoding for bad hex and MalformedCryptoInput for
        bytes that are not a DER signature.
    """
    data = parse_hex(value)
    try:
        r, s = sigdecode_der(data, CURVE.order)
    except (UnexpectedDER, MalformedSignature) as e:
        raise MalformedCryptoInput(f'could not parse signature: {e}') from e
    return Signature(r, s)

def verify_signature(vkey: VerifyingKey, sig: Signature, message: bytes) -> bool:
    """Check a parsed signature against the message digest."""
    return vkey.pubkey.verifies(digest_to_int(message), sig)


def OP_TRUE(stack: Stack) -> None:
    """Puts TRUE ("1") onto the stack."""
    stack.push(TRUE)

def OP_FALSE(stack: Stack) -> None:
    """Puts FALSE ("0") onto the stack."""
    stack.push(FALSE)

def OP_VERIFY(stack: Stack) -> None:
    """Pull a value from the stack; raise VerificationFailed unless it
        is TRUE.
    """
    stack.require(1, 'OP_VERIFY')
    sert(is_true(stack.pop()), 'OP_VERIFY check failed', VerificationFailed)

def OP_RETURN(stack: Stack) -> None:
    """Ends the script by raising IntentionalHalt."""
    raise IntentionalHalt('OP_RETURN halts execution')

def OP_DUP(stack: Stack) -> None:
    """Put a copy of the top value onto the stack. Does nothing if the
        stack is empty.
    """
    if stack.empty():
        return
    item = stack.pop()
    stack.push(item)
    stack.push(item)

def OP_DROP(stack: Stack) -> None:
    """Remove the top value from the stack. Does nothing if the stack
        is empty.
    """
    if not stack.empty():
        stack.pop()

def OP_EQUAL(stack: Stack) -> None:
    """Pull 2 values from the stack; compare them as text; put the bool
        result onto the stack.
    """
    stack.require(2, 'OP_EQUAL')
    item1, item2 = stack.pop(), stack.pop()
    stack.push(bool_value(item1 == item2))

def OP_EQUALVERIFY(stack: Stack) -> None:
    """Pull 2 values from the stack; raise VerificationFailed if they
        differ.
    """
    stack.require(2, 'OP_EQUALVERIFY')
    item1, item2 = stack.pop(), stack.pop()
    sert(item1 == item2, 'OP_EQUALVERIFY check failed', VerificationFailed)

def OP_ADD(stack: Stack) -> None:
    """Pull 2 values from the stack, interpreting them as signed 64-bit
        ints; put their sum onto the stack. Raises NotANumber on overflow.
    """
    stack.require(2, 'OP_ADD')
    first = stack.pop_int()
    second = stack.pop_int()
    stack.push(format_int(second + first))

def OP_SUB(stack: Stack) -> None:
    """Pull 2 values from the stack, interpreting them as signed 64-bit
        ints; subtract the first pulled from the second pulled; put the
        result onto the stack. `5 3 OP_SUB` leaves 2. Raises NotANumber
        on overflow.
    """
    stack.require(2, 'OP_SUB')
    first = stack.pop_int()
    second = stack.pop_int()
    stack.push(format_int(second - first))

def OP_NOT(stack: Stack) -> None:
    """Pull a value from the stack; put TRUE onto the stack if it was
        exactly FALSE, otherwise put FALSE.
    """
    stack.require(1, 'OP_NOT')
    stack.push(bool_value(stack.pop() == FALSE))

def OP_BOOLAND(stack: Stack) -> None:
    """Pull 2 values from the stack; put TRUE onto the stack if both
        were TRUE, otherwise put FALSE.
    """
    stack.require(2, 'OP_BOOLAND')
    item1, item2 = stack.pop(), stack.pop()
    stack.push(bool_value(is_true(item1) and is_true(item2)))

def OP_BOOLOR(stack: Stack) -> None:
    """Pull 2 values from the stack; put TRUE onto the stack if either
        was TRUE, otherwise put FALSE.
    """
    stack.require(2, 'OP_BOOLOR')
    item1, item2 = stack.pop(), stack.pop()
    stack.push(bool_value(is_true(item1) or is_true(item2)))

def _hash_op(opname: str, stack: Stack, hashfunc: Callable[[bytes], bytes]) -> None:
    stack.require(1, opname)
    stack.push(format_hex(hashfunc(parse_hex(stack.pop()))))

def OP_RIPEMD160(stack: Stack) -> None:
    """Pull a hex value from the stack; put its ripemd160 hash back onto
        the stack as hex.
    """
    _hash_op('OP_RIPEMD160', stack, ripemd160)

def OP_SHA1(stack: Stack) -> None:
    """Pull a hex value from the stack; put its sha1 hash back onto the
        stack as hex.
    """
    _hash_op('OP_SHA1', stack, lambda data: sha1(data).digest())

def OP_SHA256(stack: Stack) -> None:
    """Pull a hex value from the stack; put its sha256 hash back onto
        the stack as hex.
    """
    _hash_op('OP_SHA256', stack, lambda data: sha256(data).digest())

def OP_HASH160(stack: Stack) -> None:
    """Pull a hex value from the stack; put ripemd160(sha256(value))
        back onto the stack as hex.
    """
    _hash_op('OP_HASH160', stack, hash160)

def OP_HASH256(stack: Stack) -> None:
    """Pull a hex value from the stack; put sha256(sha256(value)) back
        onto the stack as hex.
    """
    _hash_op('OP_HASH256', stack, hash256)

def _check_sig(stack: Stack) -> bool:
    vkey = parse_public_key(stack.pop())
    sig = parse_signature(stack.pop())
    return verify_signature(vkey, sig, stack.signed_bytes)

def OP_CHECKSIG(stack: Stack) -> None:
    """Pull a hex value from the stack, interpreting as a public key;
        pull a hex value from the stack, interpreting as a DER
        signature; put TRUE onto the stack if the signature is valid for
        the signed bytes of the run, otherwise put FALSE. Raises
        MalformedCryptoInput if the key or signature cannot be parsed.
    """
    stack.require(2, 'OP_CHECKSIG')
    stack.push(bool_value(_check_sig(stack)))

def OP_CHECKSIGVERIFY(stack: Stack) -> None:
    """Same as OP_CHECKSIG, but raises VerificationFailed instead of
        putting FALSE onto the stack; puts nothing on success.
    """
    stack.require(2, 'OP_CHECKSIGVERIFY')
    sert(_check_sig(stack), 'OP_CHECKSIGVERIFY invalid signature',
        VerificationFailed)

def _check_multisig(stack: Stack, opname: str) -> bool:
    stack.require(1, opname)
    n = stack.pop_int()
    sert(n >= 0, f'{opname} key count must not be negative')
    stack.require(n, opname)
    vkeys = [parse_public_key(stack.pop()) for _ in range(n)]

    stack.require(1, opname)
    m = stack.pop_int()
    sert(m >= 0, f'{opname} signature count must not be negative')
    stack.require(m, opname)
    sigs = [parse_signature(stack.pop()) for _ in range(m)]

    # a single key may satisfy more than one signature
    for sig in sigs:
        if not any(verify_signature(vkey, sig, stack.signed_bytes) for vkey in vkeys):
            return False

    return True

def OP_CHECKMULTISIG(stack: Stack) -> None:
    """Pull an int n from the stack; pull n public keys; pull an int m;
        pull m signatures; put TRUE onto the stack if every signature is
        valid under at least one of the keys, otherwise put FALSE.
        Raises StackUnderflow if fewer than n keys or m signatures are
        on the stack and MalformedCryptoInput if any key or signature
        cannot be parsed.
    """
    stack.push(bool_value(_check_multisig(stack, 'OP_CHECKMULTISIG')))

def OP_CHECKMULTISIGVERIFY(stack: Stack) -> None:
    """Same as OP_CHECKMULTISIG, but raises VerificationFailed instead
        of putting FALSE onto the stack; puts nothing on success.
    """
    sert(_check_multisig(stack, 'OP_CHECKMULTISIGVERIFY'),
        'OP_CHECKMULTISIGVERIFY invalid signature', VerificationFailed)


class Opcode(NamedTuple):
    name: str
    function: Callable[[Stack], None]
    category: str


_opcodes = [
    Opcode('OP_TRUE', OP_TRUE, 'constants'),
    Opcode('OP_FALSE', OP_FALSE, 'constants'),
    Opcode('OP_VERIFY', OP_VERIFY, 'flow control'),
    Opcode('OP_RETURN', OP_RETURN, 'flow control'),
    Opcode('OP_DUP', OP_DUP, 'stack'),
    Opcode('OP_DROP', OP_DROP, 'stack'),
    Opcode('OP_EQUAL', OP_EQUAL, 'comparison'),
    Opcode('OP_EQUALVERIFY', OP_EQUALVERIFY, 'comparison'),
    Opcode('OP_ADD', OP_ADD, 'arithmetic'),
    Opcode('OP_SUB', OP_SUB, 'arithmetic'),
    Opcode('OP_NOT', OP_NOT, 'logic'),
    Opcode('OP_BOOLAND', OP_BOOLAND, 'logic'),
    Opcode('OP_BOOLOR', OP_BOOLOR, 'logic'),
    Opcode('OP_RIPEMD160', OP_RIPEMD160, 'crypto'),
    Opcode('OP_SHA1', OP_SHA1, 'crypto'),
    Opcode('OP_SHA256', OP_SHA256, 'crypto'),
    Opcode('OP_HASH160', OP_HASH160, 'crypto'),
    Opcode('OP_HASH256', OP_HASH256, 'crypto'),
    Opcode('OP_CHECKSIG', OP_CHECKSIG, 'crypto'),
    Opcode('OP_CHECKSIGVERIFY', OP_CHECKSIGVERIFY, 'crypto'),
    Opcode('OP_CHECKMULTISIG', OP_CHECKMULTISIG, 'crypto'),
    Opcode('OP_CHECKMULTISIGVERIFY', OP_CHECKMULTISIGVERIFY, 'crypto'),
]

# the registry is built once at import and is read-only afterwards
opcodes: MappingProxyType[str, Opcode] = MappingProxyType({
    op.name: op for op in _opcodes
})

opcode_aliases: MappingProxyType[str, str] = MappingProxyType({
    'OP_0': 'OP_FALSE',
    'OP_1': 'OP_TRUE',
})


def get_opcode(token: str) -> Opcode:
    """Look up an opcode by name or alias. Raises UnsupportedOpcode if
        the token is not registered.
    """
    name = opcode_aliases.get(token, token)
    sert(name in opcodes, f'unsupported opcode: {token}', UnsupportedOpcode)
    return opcodes[name]

def get_tokens(script: str|Iterable[str]|ScriptProtocol) -> tuple[str, ...]:
    """Normalize a script given as source text, a Script, or a sequence
        of tokens into a tuple of tokens.
    """
    if type(script) is str:
        return tuple(get_symbols(script))
    tert(isinstance(script, (Script, ScriptProtocol, list, tuple)),
         'script must be str, Script, or a sequence of str tokens')
    tokens = tuple(script)
    for token in tokens:
        tert(type(token) is str, 'each token must be str')
    return tokens

def run_tokens(tokens: Iterable[str], stack: Stack) -> Stack:
    """Run the tokens in order against the stack: opcode-shaped tokens
        are dispatched through the registry, everything else is pushed
        as a literal. The first error halts execution and is raised.
    """
    for token in tokens:
        if not is_opcode(token):
            stack.push(token)
            continue

        try:
            op = get_opcode(token)
            op.function(stack)
        except ScriptExecutionError as e:
            logger.debug('%s failed: %s', token, e)
            raise

    return stack

def run_script(script: str|Iterable[str]|ScriptProtocol,
               signed_bytes: bytes = b'',
               stack: Stack|None = None) -> Stack:
    """Run the given script on the given stack, or on a fresh stack
        holding the signed bytes. Returns the stack; raises the first
        ScriptExecutionError encountered.
    """
    stack = Stack(signed_bytes) if stack is None else stack
    return run_tokens(get_tokens(script), stack)

def execute(stack: Stack, script: str|Iterable[str]|ScriptProtocol) -> bool:
    """Run a locking script on the stack. Returns True iff no error was
        raised and a single value other than FALSE remains.
    """
    try:
        run_script(script, stack=stack)
    except ScriptExecutionError:
        return False

    return len(stack) == 1 and stack.peek() != FALSE

def execute_unlock(stack: Stack, script: str|Iterable[str]|ScriptProtocol) -> bool:
    """Run an unlocking script on the stack. Returns True iff no error
        was raised, the stack is not empty, and no opcode-shaped value
        remains on it.
    """
    try:
        run_script(script, stack=stack)
    except ScriptExecutionError:
        return False

    if any(is_opcode(item) for item in stack.deque):
        return False

    return not stack.empty()


class EvaluationState(Enum):
    START = 'start'
    UNLOCK_EXECUTED = 'unlock executed'
    LOCK_EXECUTED = 'lock executed'
    AUTHORIZED = 'authorized'
    REJECTED = 'rejected'


@dataclass(frozen=True)
class Verdict:
    """The outcome of a two-phase evaluation. `state` is AUTHORIZED or
        REJECTED; `phase` is the last state reached before that; `error`
        holds the ScriptExecutionError that halted a script, if any.
    """
    authorized: bool
    state: EvaluationState
    phase: EvaluationState
    reason: str = field(default='')
    error: ScriptExecutionError|None = field(default=None)
    stack: tuple[str, ...]|None = field(default=None)

    def __bool__(self) -> bool:
        return self.authorized


def _reject(stack: Stack, phase: EvaluationState, reason: str,
            error: ScriptExecutionError|None = None) -> Verdict:
    logger.debug('rejected after %s: %s', phase.value, reason)
    return Verdict(
        authorized=False,
        state=EvaluationState.REJECTED,
        phase=phase,
        reason=reason,
        error=error,
        stack=stack.snapshot(),
    )

def evaluate(unlock_script: str|Iterable[str]|ScriptProtocol,
             lock_script: str|Iterable[str]|ScriptProtocol,
             signed_bytes: bytes = b'') -> Verdict:
    """Run the unlocking script on a fresh stack, then the locking
        script on the same stack. Returns a Verdict; script failures of
        any kind produce a rejected Verdict rather than an exception.
    """
    unlock_tokens = get_tokens(unlock_script)
    lock_tokens = get_tokens(lock_script)
    stack = Stack(signed_bytes)
    phase = EvaluationState.START

    try:
        run_tokens(unlock_tokens, stack)
    except ScriptExecutionError as e:
        return _reject(stack, phase, f'unlocking script failed: {e}', e)

    if stack.empty():
        return _reject(stack, phase, 'unlocking script left an empty stack')

    if any(is_opcode(item) for item in stack.deque):
        return _reject(stack, phase, 'unlocking script left an opcode on the stack')

    phase = EvaluationState.UNLOCK_EXECUTED

    try:
        run_tokens(lock_tokens, stack)
    except ScriptExecutionError as e:
        return _reject(stack, phase, f'locking script failed: {e}', e)

    phase = EvaluationState.LOCK_EXECUTED

    if len(stack) != 1:
        return _reject(stack, phase, f'{len(stack)} values left on the stack')

    if stack.peek() == FALSE:
        return _reject(stack, phase, 'locking script evaluated to false')

    return Verdict(
        authorized=True,
        state=EvaluationState.AUTHORIZED,
        phase=phase,
        stack=stack.snapshot(),
    )

def run_auth_script(unlock_script: str|Iterable[str]|ScriptProtocol,
                    lock_script: str|Iterable[str]|ScriptProtocol,
                    signed_bytes: bytes = b'') -> bool:
    """Run the unlocking and locking scripts. Returns True iff the
        spend is authorized; otherwise, returns False.
    """
    return evaluate(unlock_script, lock_script, signed_bytes).authorized
