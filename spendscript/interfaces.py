from __future__ import annotations
from typing import Iterator, Protocol, runtime_checkable


@runtime_checkable
class StackProtocol(Protocol):
    @property
    def signed_bytes(self) -> bytes:
        """The message digest used by the signature ops."""
        ...

    def push(self, item: str) -> None:
        """Put an item onto the stack."""
        ...

    def pop(self) -> str:
        """Remove and return the top item of the stack."""
        ...

    def pop_int(self) -> int:
        """Pop the top item and parse it as a signed int."""
        ...

    def size(self) -> int:
        """Return the current number of items in the stack."""
        ...

    def snapshot(self) -> tuple[str, ...]|None:
        """Return the stack items, bottom first, or None if empty."""
        ...


@runtime_checkable
class ScriptProtocol(Protocol):
    """Represent a script as an ordered sequence of tokens."""
    tokens: tuple[str, ...]

    @classmethod
    def from_src(cls, src: str) -> ScriptProtocol:
        """Create an instance from source text."""
        ...

    def __iter__(self) -> Iterator[str]:
        """Iterate over the tokens in execution order."""
        ...

    def __str__(self) -> str:
        """Return the source text."""
        ...


@runtime_checkable
class Interpreter(Protocol):
    def evaluate(self) -> bool:
        """Evaluate the scripts and return the verdict."""
        ...
