#!/usr/bin/env python3
"""
tonemodem.py: parallel-tone FSK modem CLI entry point.

Commands:
  encode  -m <bits>   Render a binary message as a multi-tone WAV
  decode  <wav>       Recover the message from a WAV, window by window
  table               Print the bit-frequency table of a profile

Run `python3 tonemodem.py --help` for full usage.
"""
from __future__ import annotations

import argparse
import os
import sys
import warnings

from ptfsk import AudioSourceError, decode_file, encode_file, get_profile
from ptfsk.diagnostics import Message
from ptfsk.modem.synth import parse_bits
from ptfsk.profiles import DEFAULT_PROFILE, LEVEL_DBFS, PROFILES, SAMPLE_RATE, SYMBOL_RATE


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _parse_settings(text: str) -> tuple[float | None, float | None, float | None]:
    """'-s "<rate> <dbfs> <khz>"' → up to three floats; missing ones are None.

    Parsing stops at the first token that is not a number; it and every
    later setting keep their defaults, with a warning.
    """
    names  = ('rate', 'dbfs', 'khz')
    tokens = text.split()
    values: list[float | None] = []
    for tok in tokens[:len(names)]:
        try:
            values.append(float(tok))
        except ValueError:
            skipped = ', '.join(names[len(values):])
            print(f'⚠  -s: {tok!r} is not a number; using defaults for {skipped}',
                  file=sys.stderr)
            break
    extra = tokens[len(names):]
    if extra:
        print(f'⚠  -s: ignoring extra settings {" ".join(extra)!r}', file=sys.stderr)
    values += [None] * (3 - len(values))
    return values[0], values[1], values[2]


def _trace_window(index: int, symbol) -> None:
    print(f'Window {index}: read {symbol.samples} samples')
    for match in symbol.bits:
        print(f'  {match.describe()}')
    if symbol.width == 8:
        char = symbol.char()
        shown = repr(char) if char is not None else '(non-printable)'
        print(f'  byte: {symbol.binary()}  0x{symbol.value:02X}  {shown}')
    else:
        print(f'  symbol: {symbol.binary()}')


def _print_message(message: Message, quiet: bool) -> None:
    if not quiet:
        for i, symbol in enumerate(message.symbols):
            _trace_window(i, symbol)
        for read in message.dropped:
            print(f'→ Dropped short window ({read} samples)', file=sys.stderr)
        print('Message bits: ' + ''.join(str(b) for b in message.bits))
        print('Message: ', end='')
    print(message.text())


# ─────────────────────────────────────────────────────────────────────────────
# Sub-command handlers
# ─────────────────────────────────────────────────────────────────────────────

def cmd_encode(args: argparse.Namespace):
    rate, level, khz = _parse_settings(args.settings) if args.settings else (None, None, None)
    rate  = args.rate if args.rate is not None else rate
    level = args.level if args.level is not None else level
    khz   = args.sample_rate_khz if args.sample_rate_khz is not None else khz

    sample_rate = int(round(khz * 1000.0)) if khz is not None else None
    config = get_profile(args.profile, symbol_rate=rate, level_dbfs=level,
                         sample_rate=sample_rate)

    if args.text is not None:
        if args.message:
            print('⚠  both --text and -m given; encoding --text and ignoring -m',
                  file=sys.stderr)
        payload = args.text.encode('latin-1', errors='replace')
    else:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            payload = parse_bits(args.message)
        for w in caught:
            print(f'⚠  {w.message}', file=sys.stderr)

    if not payload:
        print('✗ Error: message is empty (-m <bits> or --text is required).',
              file=sys.stderr)
        sys.exit(1)

    n_symbols = len(payload) * 8 // config.table.width
    duration  = n_symbols * config.symbol_duration
    out_path  = args.output or f'sine_message_{int(duration)}.wav'

    print(f'→ Encode  profile={args.profile}  rate={config.symbol_rate:g}/s  '
          f'level={config.level_dbfs:g} dBFS  sr={config.sample_rate} Hz',
          file=sys.stderr)
    n = encode_file(out_path, payload, config)
    size_kb = os.path.getsize(out_path) / 1024
    print(f'✓ Generated WAV file: {out_path}  ({n / config.sample_rate:.2f}s  '
          f'{size_kb:.1f} KB, {len(payload)} bytes)')


def cmd_decode(args: argparse.Namespace):
    config = get_profile(args.profile, symbol_rate=args.rate, tolerance=args.tolerance)
    try:
        message = decode_file(args.audio, config)
    except AudioSourceError as exc:
        print(f'✗ {exc}', file=sys.stderr)
        sys.exit(1)

    _print_message(message, args.quiet)
    print(f'→ {message.summary()}', file=sys.stderr)


def cmd_table(args: argparse.Namespace):
    config = get_profile(args.profile)
    width  = config.table.width
    print(f'profile={args.profile}  tolerance=±{config.tolerance:g} Hz (exclusive)')
    for position, (low, high) in enumerate(config.table):
        weight = 1 << (width - 1 - position)
        print(f'  position {position}  (weight {weight:>3})  0 → {low:>7.1f} Hz   '
              f'1 → {high:>7.1f} Hz')


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='tonemodem',
        description='Parallel-tone FSK modem: hide bytes in multi-tone audio and read them back.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 tonemodem.py encode -m 01000001                       # → sine_message_1.wav
  python3 tonemodem.py encode -m 01000001 -s "1 -3 44.1" -o a.wav
  python3 tonemodem.py encode --text "HI" --rate 2 -o hi.wav
  python3 tonemodem.py decode a.wav
  python3 tonemodem.py decode serial.wav --profile serial --quiet
  python3 tonemodem.py table
""",
    )
    sub = p.add_subparsers(dest='command', required=True)

    # ── encode ────────────────────────────────────────────────────────────────
    enc = sub.add_parser(
        'encode',
        help='Render a binary message as a multi-tone WAV.',
        description=(
            'Each symbol window sounds one tone per table position at once. '
            'With the parallel profile one window carries one byte.'
        ),
    )
    enc.add_argument('-m', '--message', default='', metavar='BITS',
                     help='Message as 0/1 digits, a multiple of 8 long (e.g. 01000001)')
    enc.add_argument('--text', default=None, metavar='TEXT',
                     help='Encode TEXT as Latin-1 bytes instead of -m')
    enc.add_argument('-s', '--settings', default=None, metavar='"RATE DBFS KHZ"',
                     help='Symbol rate, level in dBFS and sample rate in kHz as one '
                          f'quoted string (default: "{SYMBOL_RATE:g} {LEVEL_DBFS:g} '
                          f'{SAMPLE_RATE / 1000:g}")')
    enc.add_argument('--rate', type=float, default=None, metavar='PER_S',
                     help='Symbol windows per second; bytes/s for the parallel profile')
    enc.add_argument('--level', type=float, default=None, metavar='DBFS',
                     help=f'Output level in dBFS (default: {LEVEL_DBFS:g})')
    enc.add_argument('--sample-rate-khz', type=float, default=None, metavar='KHZ',
                     help=f'Sample rate in kHz (default: {SAMPLE_RATE / 1000:g})')
    enc.add_argument('--profile', default=DEFAULT_PROFILE, choices=list(PROFILES),
                     help=f'Protocol variant (default: {DEFAULT_PROFILE})')
    enc.add_argument('-o', '--output', default=None,
                     help='Output WAV path (default: sine_message_<seconds>.wav)')
    enc.set_defaults(func=cmd_encode)

    # ── decode ────────────────────────────────────────────────────────────────
    dec = sub.add_parser(
        'decode',
        help='Decode a WAV back to bytes.',
        description=(
            'Reads the file one symbol window at a time, finds the strongest '
            'tones and maps them through the bit-frequency table.'
        ),
    )
    dec.add_argument('audio', help='Input WAV file')
    dec.add_argument('--profile', default=DEFAULT_PROFILE, choices=list(PROFILES),
                     help=f'Protocol variant (default: {DEFAULT_PROFILE})')
    dec.add_argument('--rate', type=float, default=None, metavar='PER_S',
                     help='Symbol windows per second used when encoding (default: 1)')
    dec.add_argument('--tolerance', type=float, default=None, metavar='HZ',
                     help='Match tolerance in Hz, exclusive (default: 50)')
    dec.add_argument('--quiet', '-q', action='store_true',
                     help='Only print the decoded message')
    dec.set_defaults(func=cmd_decode)

    # ── table ─────────────────────────────────────────────────────────────────
    tab = sub.add_parser('table', help='Print the bit-frequency table.')
    tab.add_argument('--profile', default=DEFAULT_PROFILE, choices=list(PROFILES))
    tab.set_defaults(func=cmd_table)

    return p


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None):
    parser = build_parser()
    args   = parser.parse_args(argv)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print('\n⚠ Interrupted.', file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f'✗ Error: {e}', file=sys.stderr)
        if os.environ.get('TONEMODEM_DEBUG'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
