"""ptfsk modem: transform, peak extraction, classification, synthesis."""

from .classify import classify
from .fft import fft_radix2, ifft_radix2, transform
from .peaks import extract_peaks, peak_bins
from .synth import synthesize, parse_bits

__all__ = [
    "classify",
    "fft_radix2", "ifft_radix2", "transform",
    "extract_peaks", "peak_bins",
    "synthesize", "parse_bits",
]
