from .classes import Stack, Script
from .errors import (
    ScriptExecutionError,
    StackUnderflow,
    NotANumber,
    InvalidEncoding,
    MalformedCryptoInput,
    UnsupportedOpcode,
    VerificationFailed,
    IntentionalHalt,
    ScriptSyntaxError,
)
from .functions import (
    EvaluationState,
    Verdict,
    evaluate,
    execute,
    execute_unlock,
    run_auth_script,
    run_script,
)
from .interfaces import Interpreter
from .parsing import get_symbols
from .tools import (
    TxInputInterpreter,
    generate_docs,
)
