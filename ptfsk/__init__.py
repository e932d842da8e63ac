"""ptfsk: parallel-tone FSK audio codec.

Public API:
    encode(message, config=None)             -> np.ndarray (int16 PCM)
    encode_file(path, message, config=None)  -> int (samples written)
    decode_windows(blocks, sample_rate, config=None) -> Message
    decode_file(path, config=None)           -> Message
    get_profile(name="parallel", **overrides) -> CodecConfig
"""

from .diagnostics import AudioSourceError, BitMatch, DecodedSymbol, Message
from .profiles import BitFrequencyTable, CodecConfig, PROFILES, get_profile
from .session import decode_file, decode_windows, encode, encode_file

__version__ = "0.1.0"
__all__ = [
    "encode", "encode_file", "decode_windows", "decode_file",
    "get_profile", "CodecConfig", "BitFrequencyTable", "PROFILES",
    "Message", "DecodedSymbol", "BitMatch", "AudioSourceError",
]
