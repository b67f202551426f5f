from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator
from .errors import sert, tert, StackUnderflow
from .parsing import get_symbols, tokens_to_src
from .values import parse_int


class Stack:
    """Class to implement a Stack of str values. Each instance belongs
        to exactly one execution run and carries the signed bytes that
        the signature ops of that run verify against.
    """
    deque: deque[str]
    _signed_bytes: bytes

    def __init__(self, signed_bytes: bytes = b'') -> None:
        """Initialize an empty Stack. The signed bytes are copied."""
        tert(type(signed_bytes) in (bytes, bytearray),
            'signed_bytes must be bytes')
        self._signed_bytes = bytes(signed_bytes)
        self.deque = deque()

    @property
    def signed_bytes(self) -> bytes:
        """The message digest used by the signature ops."""
        return self._signed_bytes

    def push(self, item: str) -> None:
        """Put an item onto the Stack. Raises TypeError if the item is
            not str.
        """
        tert(type(item) is str, 'Stack item must be str')
        self.deque.append(item)

    def pop(self) -> str:
        """Remove and return the top item of the Stack. Raises
            StackUnderflow if the Stack is empty.
        """
        sert(len(self.deque) > 0, 'cannot pop from empty Stack', StackUnderflow)
        return self.deque.pop()

    def pop_int(self) -> int:
        """Pop the top item and parse it as a signed int. The item is
            consumed even when parsing fails with NotANumber.
        """
        return parse_int(self.pop())

    def require(self, count: int, opname: str) -> None:
        """Raise StackUnderflow unless at least count items are on the
            Stack.
        """
        sert(len(self.deque) >= count,
            f'{opname} requires {count} value{"s" if count != 1 else ""} on the stack',
            StackUnderflow)

    def size(self) -> int:
        """Return the current number of items in the Stack."""
        return len(self.deque)

    def __len__(self) -> int:
        """Return the current number of items in the Stack."""
        return len(self.deque)

    def empty(self) -> bool:
        """Return True if there are no items on the Stack. Otherwise,
            return False.
        """
        return len(self) == 0

    def peek(self, index: int = 0) -> str:
        """Returns the item of the stack at the given depth without
            removing it.
        """
        sert(0 <= index < len(self), 'cannot peek that deep', StackUnderflow)
        return self.deque[len(self) - index - 1]

    def snapshot(self) -> tuple[str, ...]|None:
        """Returns a tuple of the Stack items, bottom first, or None if
            the Stack is empty.
        """
        if self.empty():
            return None
        return tuple(self.deque)


@dataclass
class Script:
    """An ordered sequence of tokens: literals and opcode names."""
    tokens: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.tokens = tuple(self.tokens)
        for token in self.tokens:
            tert(type(token) is str, 'each token must be str')

    @classmethod
    def from_src(cls, src: str) -> Script:
        """Create an instance from whitespace-separated source text."""
        return cls(tuple(get_symbols(src)))

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __str__(self) -> str:
        """Return the source text."""
        return tokens_to_src(self.tokens)

    def __add__(self, other: Script) -> Script:
        """Concatenate two scripts."""
        tert(isinstance(other, Script), 'cannot add Script to non-Script')
        return Script(self.tokens + other.tokens)
