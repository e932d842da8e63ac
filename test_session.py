"""
test_session.py: chunked decode loop, WAV container and end-to-end scenarios.
"""
from __future__ import annotations
import itertools, os, sys, struct
sys.path.insert(0, os.path.dirname(__file__))

import numpy as np
import pytest
import soundfile as sf

from ptfsk import (
    AudioSourceError, decode_file, decode_windows, encode, encode_file, get_profile,
)
from ptfsk.diagnostics import Message
from ptfsk.modem.synth import synthesize
from ptfsk.session import downmix, normalize_window
from ptfsk.wav import build_header, write_wav

SR = 8192


@pytest.fixture
def cfg():
    return get_profile(sample_rate=SR)


def _blocks(pcm: np.ndarray, size: int):
    return [pcm[i:i + size] for i in range(0, len(pcm), size)]


def _cut(pcm: np.ndarray, config, sample_rate: int):
    """Slice *pcm* at the window boundaries *config* decodes with."""
    blocks, start = [], 0
    for n in config.window_lengths(sample_rate):
        if start >= len(pcm):
            return blocks
        blocks.append(pcm[start:start + n])
        start += n


# ─────────────────────────────────────────────────────────────────────────────
# Normalisation
# ─────────────────────────────────────────────────────────────────────────────

class TestNormalize:

    def test_downmix_identical_channels_is_lossless(self):
        ch = np.random.default_rng(3).uniform(-1, 1, 1000)
        stereo = np.column_stack([ch, ch])
        assert np.array_equal(downmix(stereo), ch)

    def test_downmix_averages(self):
        block = np.array([[1.0, 0.0, 0.5], [0.3, 0.3, 0.3]])
        np.testing.assert_allclose(downmix(block), [0.5, 0.3])

    def test_short_block_below_threshold_is_dropped(self):
        assert normalize_window(np.ones(99), 200, 100) is None

    def test_short_block_is_zero_padded(self):
        w = normalize_window(np.ones(150), 200, 100)
        assert len(w) == 200
        assert w[:150].tolist() == [1.0] * 150
        assert not w[150:].any()


# ─────────────────────────────────────────────────────────────────────────────
# Decode loop
# ─────────────────────────────────────────────────────────────────────────────

class TestDecodeWindows:

    def test_one_byte_per_window(self, cfg):
        pcm = encode(b'Hi!', cfg)
        message = decode_windows(_blocks(pcm, SR), SR, cfg)
        assert bytes(message) == b'Hi!'
        assert len(message.symbols) == 3
        assert message.dropped == []
        assert [s.samples for s in message.symbols] == [SR, SR, SR]

    def test_tail_below_threshold_never_contributes(self, cfg):
        pcm   = encode(b'AB', cfg)
        short = cfg.min_window_samples(SR) - 1
        blocks = [pcm[:SR], pcm[SR:SR + short]]
        message = decode_windows(blocks, SR, cfg)
        assert bytes(message) == b'A'
        assert message.dropped == [short]

    def test_tail_at_threshold_is_padded_and_decoded(self, cfg):
        pcm  = encode(b'AB', cfg)
        fill = cfg.min_window_samples(SR)
        message = decode_windows([pcm[:SR], pcm[SR:SR + fill]], SR, cfg)
        assert bytes(message) == b'AB'
        assert message.symbols[1].samples == fill

    def test_padded_window_still_yields_one_symbol(self, cfg):
        # Half a window of silence: every position reports "no frequency".
        relaxed = cfg.with_overrides(min_samples=SR // 4)
        message = decode_windows([np.zeros(SR // 2)], SR, relaxed)
        assert len(message.symbols) == 1
        assert message.data == bytearray(b'\x00')
        assert message.undetected_bits == 8

    def test_stereo_blocks(self, cfg):
        pcm = encode(b'Z', cfg).astype(np.float64) / 32768.0
        stereo = np.column_stack([pcm, pcm])
        assert bytes(decode_windows([stereo], SR, cfg)) == b'Z'

    def test_windows_are_independent(self, cfg):
        pcm = encode(b'QRS', cfg)
        full = decode_windows(_blocks(pcm, SR), SR, cfg)
        last = decode_windows([pcm[2 * SR:]], SR, cfg)
        assert full.symbols[2].value == last.symbols[0].value == ord('S')

    def test_serial_profile_packs_bits(self):
        cfg = get_profile('serial', sample_rate=SR)
        pcm = encode(b'Ok', cfg)
        message = decode_windows(_blocks(pcm, SR), SR, cfg)
        assert len(message.symbols) == 16
        assert bytes(message) == b'Ok'

    def test_fractional_window_keeps_last_byte(self):
        # 8192 / 3 is not a whole number of samples per window.
        cfg = get_profile(symbol_rate=3.0, sample_rate=SR)
        payload = bytes(range(65, 85))
        message = decode_windows(_cut(encode(payload, cfg), cfg, SR), SR, cfg)
        assert bytes(message) == payload
        assert message.dropped == []
        assert {s.samples for s in message.symbols} == {2730, 2731}

    def test_min_samples_beyond_window_at_file_rate(self):
        cfg = get_profile(sample_rate=SR, min_samples=SR)
        with pytest.raises(ValueError, match='exceeds'):
            decode_windows([np.zeros(SR // 2)], SR // 2, cfg)

    def test_message_text_placeholder(self):
        message = Message(data=bytearray(b'A\x01B'))
        assert message.text() == 'A?B'
        assert bytes(message) == b'A\x01B'


# ─────────────────────────────────────────────────────────────────────────────
# WAV container
# ─────────────────────────────────────────────────────────────────────────────

class TestWav:

    def test_header_fields(self):
        header = build_header(100, 44100)
        assert len(header) == 44
        fields = struct.unpack('<4sI4s4sIHHIIHH4sI', header)
        assert fields == (
            b'RIFF', 236, b'WAVE', b'fmt ', 16, 1, 1,
            44100, 88200, 2, 16, b'data', 200,
        )

    def test_write_then_read(self, tmp_path):
        path = str(tmp_path / 'x.wav')
        pcm = np.array([0, 1, -1, 32767, -32768], dtype=np.int16)
        write_wav(path, pcm, 8000)
        data, sr = sf.read(path, dtype='int16')
        assert sr == 8000
        assert data.tolist() == pcm.tolist()
        assert os.path.getsize(path) == 44 + 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(AudioSourceError):
            decode_file(str(tmp_path / 'nope.wav'))


# ─────────────────────────────────────────────────────────────────────────────
# End to end through files
# ─────────────────────────────────────────────────────────────────────────────

class TestEndToEnd:

    def test_letter_a_at_cd_rate(self, tmp_path):
        """01000001 at 1 byte/s, -3 dBFS, 44.1 kHz decodes to 'A'."""
        path = str(tmp_path / 'sine_message_1.wav')
        cfg  = get_profile(symbol_rate=1.0, level_dbfs=-3.0, sample_rate=44100)
        n = encode_file(path, b'\x41', cfg)
        assert n == 44100

        message = decode_file(path, cfg)
        assert len(message.symbols) == 1
        symbol = message.symbols[0]
        assert [b.value for b in symbol.bits] == [0, 1, 0, 0, 0, 0, 0, 1]
        assert [b.frequency for b in symbol.bits] == [
            300.0, 900.0, 1100.0, 1500.0, 1900.0, 2300.0, 2700.0, 3300.0,
        ]
        assert symbol.value == 0x41
        assert message.text() == 'A'

    def test_stereo_file(self, tmp_path):
        path = str(tmp_path / 'stereo.wav')
        pcm = synthesize(b'ok', 1.0, -3.0, SR)
        sf.write(path, np.column_stack([pcm, pcm]), SR, subtype='PCM_16')
        message = decode_file(path, get_profile(sample_rate=SR))
        assert bytes(message) == b'ok'

    def test_truncated_file_drops_tail(self, tmp_path):
        path = str(tmp_path / 'cut.wav')
        pcm = synthesize(b'xy', 1.0, -3.0, SR)
        write_wav(path, pcm[:SR + SR // 2], SR)
        message = decode_file(path, get_profile(sample_rate=SR))
        assert bytes(message) == b'x'
        assert message.dropped == [SR // 2]

    def test_faster_symbol_rate(self, tmp_path):
        path = str(tmp_path / 'fast.wav')
        cfg = get_profile(symbol_rate=2.0, sample_rate=2 * SR)
        encode_file(path, b'go', cfg)
        assert bytes(decode_file(path, cfg)) == b'go'

    def test_fractional_rate_at_cd_rate(self, tmp_path):
        """29 bytes/s at 44.1 kHz: windows of 1520 or 1521 samples, no drift."""
        path = str(tmp_path / 'frac.wav')
        cfg = get_profile(symbol_rate=29.0, sample_rate=44100)
        payload = b'HELLO WORLD 12345678'
        n = encode_file(path, payload, cfg)
        assert n == sum(itertools.islice(cfg.window_lengths(), len(payload)))

        message = decode_file(path, cfg)
        assert bytes(message) == payload
        assert message.dropped == []
