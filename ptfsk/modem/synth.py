"""ptfsk: multi-tone waveform synthesizer.

Every symbol window sounds one tone per table position at once: the low
tone for a 0 bit, the high tone for a 1.  The tones are averaged, scaled to
the requested dBFS level and truncated to 16-bit PCM.

With the 8-entry table a symbol is one byte, so ``symbol_rate`` is the
number of bytes per second.
"""

from __future__ import annotations

import warnings
from typing import Iterable

import numpy as np
from numpy.typing import NDArray

from ..profiles import BitFrequencyTable, PCM_SCALE, symbol_boundary


def dbfs_to_amplitude(level_dbfs: float) -> float:
    return float(10.0 ** (level_dbfs / 20.0))


def parse_bits(text: str) -> bytes:
    """Binary-digit string → bytes, MSB first.

    Characters other than ``0``/``1`` are skipped with a warning.  A trailing
    group shorter than 8 bits is zero-padded on the right, also with a
    warning.
    """
    bits = []
    bad  = []
    for i, ch in enumerate(text):
        if ch in '01':
            bits.append(int(ch))
        elif not ch.isspace():
            bad.append((i, ch))

    if bad:
        shown = ', '.join(f'{ch!r}@{i}' for i, ch in bad[:8])
        more  = f' (+{len(bad) - 8} more)' if len(bad) > 8 else ''
        warnings.warn(f'ignoring non-binary characters in message: {shown}{more}',
                      stacklevel=2)

    if len(bits) % 8:
        pad = 8 - len(bits) % 8
        warnings.warn(f'message is {len(bits)} bits, not a multiple of 8; '
                      f'padding {pad} zero bit(s)', stacklevel=2)
        bits.extend([0] * pad)

    return bits_to_bytes(bits)


def bits_to_bytes(bits: Iterable[int]) -> bytes:
    """Pack bits MSB first; a trailing incomplete byte is discarded."""
    out = bytearray()
    acc, n = 0, 0
    for b in bits:
        acc = (acc << 1) | (1 if b else 0)
        n += 1
        if n == 8:
            out.append(acc)
            acc, n = 0, 0
    return bytes(out)


def bytes_to_bits(data: bytes) -> NDArray[np.uint8]:
    """Unpack bytes MSB first → uint8 array of 0/1."""
    return np.unpackbits(np.frombuffer(bytes(data), dtype=np.uint8))


def _symbols(data: bytes, width: int) -> NDArray[np.int64]:
    """Split the MSB-first bit stream into *width*-bit symbol values."""
    if width == 8:
        return np.frombuffer(bytes(data), dtype=np.uint8).astype(np.int64)
    bits    = bytes_to_bits(data).astype(np.int64)
    groups  = bits.reshape(-1, width)
    weights = 1 << np.arange(width - 1, -1, -1, dtype=np.int64)
    return groups @ weights


def synthesize(message: bytes, symbol_rate: float, level_dbfs: float,
               sample_rate: float, table: BitFrequencyTable | None = None) -> NDArray[np.int16]:
    """Render *message* as mono int16 PCM.

    Args:
        message:     Payload bytes.
        symbol_rate: Symbol windows per second (bytes/s for the 8-tone table).
        level_dbfs:  Output level; amplitude = 10**(level_dbfs/20).
        sample_rate: Output rate in Hz.
        table:       Bit-frequency table (default: 8-tone parallel table).

    Returns:
        int16 array of ``round(symbols * sample_rate / symbol_rate)`` samples.
        Symbol *i* occupies samples ``symbol_boundary(i)`` up to
        ``symbol_boundary(i + 1)``, the same cuts the decoder reads.
    """
    if symbol_rate <= 0:
        raise ValueError(f'symbol_rate must be positive, got {symbol_rate}')
    if sample_rate <= 0:
        raise ValueError(f'sample_rate must be positive, got {sample_rate}')
    table = table if table is not None else BitFrequencyTable()

    symbols = _symbols(bytes(message), table.width)
    n_sym   = len(symbols)
    if n_sym == 0:
        return np.zeros(0, dtype=np.int16)

    amplitude = dbfs_to_amplitude(level_dbfs)
    bounds    = np.array([symbol_boundary(i, sample_rate, symbol_rate)
                          for i in range(n_sym + 1)], dtype=np.int64)
    n_samples = int(bounds[-1])

    t       = np.arange(n_samples, dtype=np.float64) / sample_rate
    current = np.repeat(symbols, np.diff(bounds))

    wave = np.zeros(n_samples, dtype=np.float64)
    for position, (low, high) in enumerate(table):
        bit  = (current >> (table.width - 1 - position)) & 1
        freq = np.where(bit == 1, high, low)
        wave += np.sin(2.0 * np.pi * freq * t)

    wave = wave / table.width * amplitude * PCM_SCALE
    # Levels above 0 dBFS saturate; astype then truncates toward zero.
    return np.clip(wave, -32768.0, 32767.0).astype(np.int16)
