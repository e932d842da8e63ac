"""ptfsk: transform engine (radix-2 Cooley-Tukey + Bluestein).

Why two algorithms
------------------
The symbol window is one second of audio, i.e. ``sample_rate`` samples, and
44100 is not a power of two.  Halving an odd-length array truncates it, so a
plain radix-2 FFT over that window silently computes the wrong thing.

``fft_radix2`` therefore checks its precondition and refuses other lengths.
``transform`` keeps the window length (and with it the ``sr / N`` = 1 Hz bin
grid the tone table is laid out on) and evaluates non power-of-two lengths
exactly with Bluestein's chirp-z identity, whose convolution runs on
radix-2 transforms of length ``next_power_of_two(2N - 1)``.

Decomposition
-------------
Decimation in time, evaluated level by level: row ``r`` of the working
matrix at level ``L`` holds bin ``r`` of every length-``L`` sub-transform,
column ``c`` the sub-sequence starting at ``c`` with stride ``N / L``.
Combining columns ``c`` and ``c + cols/2`` with the twiddle
``exp(-2πi·k / 2L)`` yields bins ``k`` and ``k + L`` of the length-``2L``
sub-transform, exactly the even/odd butterfly of the recursive form.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    return 1 if n <= 1 else 1 << (int(n) - 1).bit_length()


def fft_radix2(samples: ArrayLike) -> NDArray[np.complex128]:
    """Radix-2 Cooley-Tukey DFT.

    Args:
        samples: 1-D real or complex sequence whose length is a power of two.

    Returns:
        complex128 array of the same length.

    Raises:
        ValueError: if the length is not a power of two.
    """
    x = np.asarray(samples, dtype=np.complex128).ravel()
    n = x.shape[0]
    if n <= 1:
        return x.copy()
    if not is_power_of_two(n):
        raise ValueError(f'radix-2 FFT needs a power-of-two length, got {n}')

    # Level 1: every column is a single-sample DFT (identity).
    X = x.reshape(1, n)
    while X.shape[0] < n:
        half  = X.shape[1] // 2
        even  = X[:, :half]
        odd   = X[:, half:]
        size  = X.shape[0]
        twiddle = np.exp(-1j * np.pi * np.arange(size) / size)[:, np.newaxis]
        t = twiddle * odd
        X = np.vstack([even + t, even - t])
    return X.ravel()


def ifft_radix2(spectrum: ArrayLike) -> NDArray[np.complex128]:
    """Inverse of :func:`fft_radix2` via the conjugation identity."""
    X = np.asarray(spectrum, dtype=np.complex128).ravel()
    n = X.shape[0]
    if n == 0:
        return X.copy()
    return np.conj(fft_radix2(np.conj(X))) / n


def _bluestein(x: NDArray[np.complex128]) -> NDArray[np.complex128]:
    n = x.shape[0]
    m = next_power_of_two(2 * n - 1)

    # Chirp w[k] = exp(-iπ k²/n); k² taken mod 2n keeps the phase small.
    k = np.arange(n, dtype=np.int64)
    chirp = np.exp(-1j * np.pi * ((k * k) % (2 * n)) / n)

    a = np.zeros(m, dtype=np.complex128)
    a[:n] = x * chirp

    b = np.zeros(m, dtype=np.complex128)
    b[:n] = np.conj(chirp)
    b[m - n + 1:] = np.conj(chirp[1:][::-1])

    conv = ifft_radix2(fft_radix2(a) * fft_radix2(b))
    return chirp * conv[:n]


def transform(samples: ArrayLike) -> NDArray[np.complex128]:
    """DFT of *samples* for any length.

    Power-of-two lengths use :func:`fft_radix2` directly; all other lengths
    use Bluestein's algorithm so bin ``k`` always sits at
    ``k * sample_rate / len(samples)``.  The input is not modified.
    """
    x = np.asarray(samples, dtype=np.complex128).ravel()
    n = x.shape[0]
    if n <= 1:
        return x.copy()
    if is_power_of_two(n):
        return fft_radix2(x)
    return _bluestein(x)
