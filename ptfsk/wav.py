"""
wav.py: WAV container I/O for the tone modem.

Reading goes through soundfile so any PCM WAV (mono or multi-channel, any
rate) can be pulled block by block.  Writing packs the canonical 44-byte
RIFF/WAVE header by hand: mono, 16-bit PCM, sizes computed from the sample
count.
"""
from __future__ import annotations

import itertools
import struct
from typing import Iterable, Iterator

import numpy as np
import soundfile as sf

from .diagnostics import AudioSourceError

# RIFF header, little-endian:
#   'RIFF' wav_size 'WAVE'
#   'fmt ' 16 format channels sample_rate byte_rate block_align bit_depth
#   'data' data_bytes
_HEADER = struct.Struct('<4sI4s4sIHHIIHH4sI')
assert _HEADER.size == 44, f'WAV header size mismatch: {_HEADER.size}'

BIT_DEPTH = 16


def build_header(n_samples: int, sample_rate: int, channels: int = 1) -> bytes:
    """44-byte PCM header for *n_samples* frames of 16-bit audio."""
    block_align = channels * (BIT_DEPTH // 8)
    data_bytes  = n_samples * block_align
    return _HEADER.pack(
        b'RIFF', 36 + data_bytes, b'WAVE',
        b'fmt ', 16, 1, channels,
        int(sample_rate), int(sample_rate) * block_align, block_align, BIT_DEPTH,
        b'data', data_bytes,
    )


def write_wav(path: str, pcm: np.ndarray, sample_rate: int) -> None:
    """Write mono int16 samples (floats are clipped to ±1 and scaled)."""
    pcm = np.asarray(pcm)
    if pcm.dtype != np.int16:
        pcm = (np.clip(pcm, -1.0, 1.0) * 32767).astype(np.int16)
    pcm_bytes = pcm.astype('<i2').tobytes()

    with open(path, 'wb') as f:
        f.write(build_header(len(pcm), sample_rate))
        f.write(pcm_bytes)


def open_source(path: str) -> sf.SoundFile:
    """Open *path* for block reading.

    Raises:
        AudioSourceError: when the file is missing or not a readable audio file.
    """
    try:
        return sf.SoundFile(path, mode='r')
    except (RuntimeError, OSError) as exc:
        raise AudioSourceError(f'Failed to open {path!r}: {exc}') from exc


def iter_blocks(source: sf.SoundFile, frames: int | Iterable[int]) -> Iterator[np.ndarray]:
    """Successive ``(n, channels)`` float64 blocks in file order.

    *frames* is either a fixed block size or one size per block.  Reading
    stops at the first short block; that last block may be shorter.
    """
    sizes = itertools.repeat(frames) if isinstance(frames, int) else frames
    for size in sizes:
        block = source.read(size, dtype='float64', always_2d=True)
        if not len(block):
            return
        yield block
        if len(block) < size:
            return
