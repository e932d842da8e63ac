"""ptfsk: chunked encode / decode sessions.

Decode loop
===========
  for each window cut at the encoder's symbol boundaries:
    Read       → block (frames × channels), last one possibly short
    Normalize  → down-mix to mono (per-sample mean)
               → fewer than ``min_samples`` frames: drop the window
               → shorter than its window: zero-pad
    Decode     → transform → top-k peaks → classify → Message.append

Windows are demodulated independently; the only state carried from one
window to the next is the Message being built.  This is correct only
because symbol *i* starts at sample ``round(i * sample_rate / symbol_rate)``
on both sides.  When that spacing is not a whole number of samples the
window lengths alternate between its floor and ceiling.

Encode
======
  message bytes → synthesize (int16 PCM) → write_wav
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .diagnostics import DecodedSymbol, Message
from .modem.classify import classify
from .modem.fft import transform
from .modem.peaks import extract_peaks
from .modem.synth import synthesize
from .profiles import CodecConfig, get_profile
from .wav import iter_blocks, open_source, write_wav


def downmix(block: ArrayLike) -> NDArray[np.float64]:
    """Average channels sample by sample; 1-D input is returned as float64."""
    block = np.asarray(block, dtype=np.float64)
    if block.ndim == 1:
        return block
    if block.shape[1] == 1:
        return block[:, 0]
    return block.mean(axis=1)


def normalize_window(block: ArrayLike, window_length: int,
                     min_samples: int) -> Optional[NDArray[np.float64]]:
    """Mono window of exactly *window_length* samples, or None to drop it.

    Blocks longer than the window are cut to it.
    """
    mono = downmix(block)
    if len(mono) < min_samples:
        return None
    if len(mono) < window_length:
        mono = np.pad(mono, (0, window_length - len(mono)))
    return mono[:window_length]


def decode_window(window: ArrayLike, sample_rate: int, config: CodecConfig,
                  samples: int | None = None) -> DecodedSymbol:
    """Transform → peaks → classify for one normalised window."""
    window   = np.asarray(window, dtype=np.float64)
    n        = len(window)
    spectrum = transform(window)
    freqs    = extract_peaks(spectrum, n, sample_rate, k=config.peak_count)
    return classify(freqs, config.table, config.tolerance,
                    samples=n if samples is None else samples)


def decode_windows(blocks: Iterable[ArrayLike], sample_rate: int,
                   config: CodecConfig | None = None) -> Message:
    """Run the decode loop over an iterable of sample blocks.

    Args:
        blocks:      1-D mono or ``(frames, channels)`` arrays in time order,
                     block *i* at most as long as window *i* of
                     ``config.window_lengths(sample_rate)``.
        sample_rate: Rate the blocks were recorded at.
        config:      Codec settings (default: parallel profile).

    Returns:
        :class:`Message` with one symbol per decoded window and the sample
        counts of any dropped tail windows.

    Raises:
        ValueError: if *sample_rate* leaves windows empty or shorter than
                    ``min_samples``.
    """
    config      = config if config is not None else get_profile()
    config.check_sample_rate(sample_rate)
    min_samples = config.min_window_samples(sample_rate)

    message = Message(sample_rate=sample_rate)
    for block, window_length in zip(blocks, config.window_lengths(sample_rate)):
        read   = len(block)
        window = normalize_window(block, window_length, min_samples)
        if window is None:
            message.dropped.append(read)
            continue
        message.append(decode_window(window, sample_rate, config, samples=read))
    return message


def decode_file(path: str, config: CodecConfig | None = None) -> Message:
    """Decode a WAV file window by window.

    Raises:
        AudioSourceError: if *path* cannot be opened.
        ValueError:       if the file's sample rate cannot hold a window.
    """
    config = config if config is not None else get_profile()
    with open_source(path) as source:
        sample_rate = int(source.samplerate)
        blocks = iter_blocks(source, config.window_lengths(sample_rate))
        return decode_windows(blocks, sample_rate, config)


def encode(message: bytes, config: CodecConfig | None = None) -> NDArray[np.int16]:
    config = config if config is not None else get_profile()
    return synthesize(message, config.symbol_rate, config.level_dbfs,
                      config.sample_rate, config.table)


def encode_file(path: str, message: bytes, config: CodecConfig | None = None) -> int:
    """Synthesize *message* into a mono 16-bit WAV. Returns the sample count."""
    config = config if config is not None else get_profile()
    pcm = encode(message, config)
    write_wav(path, pcm, config.sample_rate)
    return len(pcm)
