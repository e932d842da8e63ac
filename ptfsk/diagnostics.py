"""ptfsk: decode result types and the source error."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


class AudioSourceError(RuntimeError):
    """The audio source could not be opened or read; nothing was decoded."""


def is_printable(value: int) -> bool:
    return 32 <= value < 127


@dataclass(frozen=True)
class BitMatch:
    """Outcome of classifying one table position."""

    position:  int
    frequency: Optional[float]   # matched tone in Hz, None if nothing within tolerance
    value:     int

    @property
    def detected(self) -> bool:
        return self.frequency is not None

    def describe(self) -> str:
        freq = f'{self.frequency:.1f} Hz' if self.detected else 'no frequency detected'
        return f'bit {self.position}: {freq} -> {self.value}'


@dataclass
class DecodedSymbol:
    """One window's worth of classified bits.

    ``value`` packs ``bits[0]`` into the most significant bit, so for the
    8-entry table it is the decoded byte.
    """

    value:   int
    bits:    list[BitMatch] = field(default_factory=list)
    samples: int            = 0      # frames actually read for this window

    @property
    def width(self) -> int:
        return len(self.bits)

    @property
    def missing(self) -> int:
        """Positions that fell back to 0 because no tone was found."""
        return sum(1 for b in self.bits if not b.detected)

    @property
    def printable(self) -> bool:
        return self.width == 8 and is_printable(self.value)

    def binary(self) -> str:
        return format(self.value, f'0{self.width}b')

    def char(self) -> Optional[str]:
        """ASCII rendering, or None when the byte is not printable."""
        return chr(self.value) if self.printable else None


@dataclass
class Message:
    """Append-only decode result owned by the session loop.

    ``data`` holds the raw bytes exactly as decoded, printable or not;
    :meth:`text` is the human-readable rendering.
    """

    symbols: list[DecodedSymbol] = field(default_factory=list)
    data:    bytearray           = field(default_factory=bytearray)
    dropped: list[int]           = field(default_factory=list)   # sample counts of dropped windows
    sample_rate: int = 0
    _pending: list[int] = field(default_factory=list, repr=False)

    def append(self, symbol: DecodedSymbol) -> None:
        """Add one window's symbol; complete bytes are packed MSB first."""
        self.symbols.append(symbol)
        self._pending.extend(b.value for b in symbol.bits)
        while len(self._pending) >= 8:
            byte = 0
            for bit in self._pending[:8]:
                byte = (byte << 1) | bit
            self.data.append(byte)
            del self._pending[:8]

    @property
    def bits(self) -> list[int]:
        return [b.value for s in self.symbols for b in s.bits]

    @property
    def undetected_bits(self) -> int:
        return sum(s.missing for s in self.symbols)

    def text(self, placeholder: str = '?') -> str:
        return ''.join(chr(b) if is_printable(b) else placeholder for b in self.data)

    def summary(self) -> str:
        dropped = f'  dropped={len(self.dropped)}' if self.dropped else ''
        return (
            f'[OK] {len(self.data)} bytes from {len(self.symbols)} windows  '
            f'undetected_bits={self.undetected_bits}{dropped}'
        )

    def __len__(self) -> int:
        return len(self.data)

    def __bytes__(self) -> bytes:
        return bytes(self.data)
