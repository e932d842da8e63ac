"""ptfsk: all codec constants and protocol profiles, keyed in one place.

Change a value here and it propagates to the synthesizer, the peak
extractor, the classifier and the session loop.  Tests build alternate
tables and tolerances through :class:`CodecConfig` instead of patching
module constants.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterator

# ── Audio defaults ────────────────────────────────────────────────────────────
SAMPLE_RATE   = 44_100      # Hz
SYMBOL_RATE   = 1.0         # symbol windows per second (parallel: bytes/s)
LEVEL_DBFS    = -3.0        # output level
PCM_SCALE     = 32767.0     # float → int16 full scale

# ── Classification ────────────────────────────────────────────────────────────
TOLERANCE_HZ  = 50.0        # strict: |f - tone| must be < TOLERANCE_HZ
GUARD_BAND_HZ = 150.0       # minimum spacing between any two candidate tones

# Windows shorter than this share of the nominal length are dropped.
# 44000 of 44100 samples at the default rate.
MIN_FILL_RATIO = 44_000 / 44_100

# ── Frequency tables ──────────────────────────────────────────────────────────
# (low, high) per table position: low encodes bit 0, high encodes bit 1.
# Position 0 carries the most significant bit of the symbol.
PARALLEL_TABLE = (
    (300.0, 500.0),
    (700.0, 900.0),
    (1100.0, 1300.0),
    (1500.0, 1700.0),
    (1900.0, 2100.0),
    (2300.0, 2500.0),
    (2700.0, 2900.0),
    (3100.0, 3300.0),
)

# One tone per window; the dominant frequency must fall strictly between 900
# and 1000 Hz for a 0 and strictly between 1900 and 2000 Hz for a 1.  The
# range edges themselves decode as "no frequency".
SERIAL_TABLE = (
    (950.0, 1950.0),
)


def symbol_boundary(index: int, sample_rate: float, symbol_rate: float) -> int:
    """First sample of symbol *index*; with *index* = symbol count, the total length."""
    return int(round(index * sample_rate / symbol_rate))


@dataclass(frozen=True)
class BitFrequencyTable:
    """Ordered ``(low_hz, high_hz)`` pairs, one per bit position.

    Raises:
        ValueError: if the table is empty, its width does not divide 8, or
                    two candidate tones sit closer than ``guard_band``.
    """

    pairs:      tuple[tuple[float, float], ...] = PARALLEL_TABLE
    guard_band: float = GUARD_BAND_HZ

    def __post_init__(self):
        pairs = tuple((float(lo), float(hi)) for lo, hi in self.pairs)
        object.__setattr__(self, 'pairs', pairs)

        if not pairs:
            raise ValueError('frequency table must have at least one entry')
        if 8 % len(pairs) != 0:
            raise ValueError(
                f'table width must divide 8 so symbols pack into bytes, got {len(pairs)}'
            )
        tones = sorted(f for pair in pairs for f in pair)
        if any(f <= 0.0 for f in tones):
            raise ValueError('table frequencies must be positive')
        for a, b in zip(tones, tones[1:]):
            if b - a < self.guard_band:
                raise ValueError(
                    f'tones {a:g} Hz and {b:g} Hz are closer than the '
                    f'{self.guard_band:g} Hz guard band'
                )

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self):
        return iter(self.pairs)

    def __getitem__(self, position: int) -> tuple[float, float]:
        return self.pairs[position]

    @property
    def width(self) -> int:
        """Bits carried by one symbol window."""
        return len(self.pairs)

    def tone(self, position: int, bit: int) -> float:
        return self.pairs[position][1 if bit else 0]


@dataclass(frozen=True)
class CodecConfig:
    """Everything the modem needs to agree on between encoder and decoder."""

    table:          BitFrequencyTable = field(default_factory=BitFrequencyTable)
    tolerance:      float = TOLERANCE_HZ
    sample_rate:    int   = SAMPLE_RATE
    symbol_rate:    float = SYMBOL_RATE
    level_dbfs:     float = LEVEL_DBFS
    min_fill_ratio: float = MIN_FILL_RATIO
    min_samples:    int | None = None    # overrides min_fill_ratio when set

    def __post_init__(self):
        if self.tolerance <= 0:
            raise ValueError(f'tolerance must be positive, got {self.tolerance}')
        if self.sample_rate <= 0:
            raise ValueError(f'sample_rate must be positive, got {self.sample_rate}')
        if self.symbol_rate <= 0:
            raise ValueError(f'symbol_rate must be positive, got {self.symbol_rate}')
        if not 0.0 <= self.min_fill_ratio <= 1.0:
            raise ValueError(f'min_fill_ratio must lie in [0, 1], got {self.min_fill_ratio}')
        if self.min_samples is not None and self.min_samples < 0:
            raise ValueError(f'min_samples must not be negative, got {self.min_samples}')
        self.check_sample_rate(self.sample_rate)

    def check_sample_rate(self, sample_rate: int) -> None:
        """Reject rates at which windows would be empty or always dropped.

        Raises:
            ValueError: if a symbol window is shorter than one sample, or if
                        ``min_samples`` exceeds the shortest window.
        """
        shortest = self.shortest_window(sample_rate)
        if shortest < 1:
            raise ValueError(
                f'symbol_rate {self.symbol_rate:g}/s leaves no samples per window '
                f'at {sample_rate} Hz'
            )
        if self.min_samples is not None and self.min_samples > shortest:
            raise ValueError(
                f'min_samples {self.min_samples} exceeds the {shortest}-sample '
                f'window at {sample_rate} Hz; every window would be dropped'
            )

    # ── derived helpers ───────────────────────────────────────────────────────

    @property
    def peak_count(self) -> int:
        """Peaks kept per window: one per simultaneous tone."""
        return self.table.width

    @property
    def symbol_duration(self) -> float:
        return 1.0 / self.symbol_rate

    def window_length(self, sample_rate: int | None = None) -> int:
        """Nominal samples per symbol window at *sample_rate* (default: config rate)."""
        sr = self.sample_rate if sample_rate is None else sample_rate
        return max(1, int(round(sr * self.symbol_duration)))

    def shortest_window(self, sample_rate: int | None = None) -> int:
        """Windows are this long or one sample longer."""
        sr = self.sample_rate if sample_rate is None else sample_rate
        return int(sr / self.symbol_rate)

    def window_lengths(self, sample_rate: int | None = None) -> Iterator[int]:
        """Endless per-window sample counts, cut where the encoder starts symbols.

        When ``sample_rate / symbol_rate`` is not a whole number the lengths
        alternate between the two neighbouring integers and never drift.
        """
        sr = self.sample_rate if sample_rate is None else sample_rate
        index, start = 0, 0
        while True:
            index += 1
            stop = symbol_boundary(index, sr, self.symbol_rate)
            yield stop - start
            start = stop

    def min_window_samples(self, sample_rate: int | None = None) -> int:
        if self.min_samples is not None:
            return self.min_samples
        return int(round(self.shortest_window(sample_rate) * self.min_fill_ratio))

    def with_overrides(self, **kwargs) -> 'CodecConfig':
        """Copy with any non-None keyword replaced (CLI flags map here)."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        if 'table' in changes and not isinstance(changes['table'], BitFrequencyTable):
            changes['table'] = BitFrequencyTable(tuple(changes['table']))
        return replace(self, **changes)


# ── Named protocol variants ───────────────────────────────────────────────────
# parallel: eight simultaneous tones, one byte per window.
# serial:   one tone per window, one bit per window.
PROFILES: dict[str, CodecConfig] = {
    'parallel': CodecConfig(table=BitFrequencyTable(PARALLEL_TABLE)),
    'serial':   CodecConfig(table=BitFrequencyTable(SERIAL_TABLE)),
}
DEFAULT_PROFILE = 'parallel'


def get_profile(name: str = DEFAULT_PROFILE, **overrides) -> CodecConfig:
    """Look up a named profile, optionally overriding fields."""
    if name not in PROFILES:
        raise ValueError(f"Unknown profile '{name}': choose from {list(PROFILES)}")
    return PROFILES[name].with_overrides(**overrides)
