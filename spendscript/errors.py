from __future__ import annotations


class ScriptExecutionError(Exception):
    """Error raised when an error is encountered during script execution."""
    ...

class StackUnderflow(ScriptExecutionError):
    """Raised when an op needs more items than the Stack holds."""
    ...

class NotANumber(ScriptExecutionError):
    """Raised when a value consumed as an int does not parse as one."""
    ...

class InvalidEncoding(ScriptExecutionError):
    """Raised when a value consumed as bytes is not valid hex."""
    ...

class MalformedCryptoInput(ScriptExecutionError):
    """Raised when a public key or signature cannot be parsed."""
    ...

class UnsupportedOpcode(ScriptExecutionError):
    """Raised when an opcode-shaped token is not in the registry."""
    ...

class VerificationFailed(ScriptExecutionError):
    """Raised by the *VERIFY ops when their check does not pass."""
    ...

class IntentionalHalt(ScriptExecutionError):
    """Raised by OP_RETURN."""
    ...

class ScriptSyntaxError(Exception):
    """Error raised by the tokenizer when it is given unusable input."""
    ...


def vert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises ValueError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise ValueError(message)

def tert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises TypeError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise TypeError(message)

def sert(condition: bool, message: str = '',
         error: type[ScriptExecutionError] = ScriptExecutionError) -> None:
    """Replacement for assert preconditions. Raises ScriptExecutionError
        (or the given subclass) with the given message if the condition
        check fails.
    """
    if condition:
        return
    raise error(message)

def yert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises ScriptSyntaxError
        with the given message if the condition check fails.
    """
    if condition:
        return
    raise ScriptSyntaxError(message)
