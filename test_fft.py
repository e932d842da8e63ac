"""
test_fft.py: transform engine checks against an independent reference.

scipy.fft is used only as the yardstick here; the codec itself never calls it.
"""
from __future__ import annotations
import os, sys
sys.path.insert(0, os.path.dirname(__file__))

import numpy as np
import pytest
import scipy.fft

from ptfsk.modem.fft import (
    fft_radix2, ifft_radix2, transform,
    is_power_of_two, next_power_of_two,
)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _signal(n: int, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.standard_normal(n) + 1j * rng.standard_normal(n)


# ─────────────────────────────────────────────────────────────────────────────
# Power-of-two helpers
# ─────────────────────────────────────────────────────────────────────────────

class TestPowerOfTwo:

    def test_is_power_of_two(self):
        assert [n for n in range(0, 70) if is_power_of_two(n)] == [1, 2, 4, 8, 16, 32, 64]

    def test_next_power_of_two(self):
        assert next_power_of_two(0) == 1
        assert next_power_of_two(1) == 1
        assert next_power_of_two(5) == 8
        assert next_power_of_two(1024) == 1024
        assert next_power_of_two(2 * 44100 - 1) == 131072


# ─────────────────────────────────────────────────────────────────────────────
# Radix-2
# ─────────────────────────────────────────────────────────────────────────────

class TestRadix2:

    @pytest.mark.parametrize('n', [2, 4, 8, 64, 1024, 8192])
    def test_matches_reference(self, n):
        x = _signal(n)
        np.testing.assert_allclose(fft_radix2(x), scipy.fft.fft(x), rtol=1e-9, atol=1e-9)

    def test_base_case_returns_input(self):
        assert fft_radix2([3.5]).tolist() == [3.5 + 0j]
        assert fft_radix2([]).shape == (0,)

    @pytest.mark.parametrize('n', [3, 6, 1000, 44100])
    def test_rejects_non_power_of_two(self, n):
        with pytest.raises(ValueError, match='power-of-two'):
            fft_radix2(np.zeros(n))

    def test_inverse(self):
        x = _signal(512)
        np.testing.assert_allclose(ifft_radix2(fft_radix2(x)), x, atol=1e-12)

    def test_does_not_mutate_input(self):
        x = _signal(16)
        before = x.copy()
        fft_radix2(x)
        assert np.array_equal(x, before)

    def test_real_input_is_conjugate_symmetric(self):
        n = 256
        X = fft_radix2(np.random.default_rng(1).standard_normal(n))
        k = np.arange(1, n)
        np.testing.assert_allclose(X[k], np.conj(X[n - k]), atol=1e-9)


# ─────────────────────────────────────────────────────────────────────────────
# Any-length transform (Bluestein for non powers of two)
# ─────────────────────────────────────────────────────────────────────────────

class TestTransform:

    @pytest.mark.parametrize('n', [3, 5, 12, 100, 1000, 4410])
    def test_matches_reference(self, n):
        x = _signal(n)
        np.testing.assert_allclose(transform(x), scipy.fft.fft(x), rtol=1e-8, atol=1e-7)

    def test_power_of_two_uses_same_result_as_radix2(self):
        x = _signal(2048)
        np.testing.assert_array_equal(transform(x), fft_radix2(x))

    def test_one_second_window_puts_integer_tones_on_their_bin(self):
        sr = 44100
        t = np.arange(sr) / sr
        x = np.sin(2 * np.pi * 300 * t) + 0.5 * np.sin(2 * np.pi * 3300 * t)
        mag = np.abs(transform(x))[: sr // 2]
        assert int(np.argmax(mag)) == 300
        assert mag[3300] == pytest.approx(0.5 * sr / 2, rel=1e-6)
        # Everything off the two tones is numerical noise.
        mag[[300, 3300]] = 0.0
        assert mag.max() < 1e-4 * sr

    def test_length_one(self):
        assert transform([2.0]).tolist() == [2.0 + 0j]
