"""WAV header inspection and the format gate.

Reads only the RIFF chunk headers and the `fmt ` chunk; sample data is
never loaded. Headers are decoded with `struct` because `wave` cannot
open IEEE float or extensible files, which must be skipped, not fatal.
"""

import struct
from dataclasses import dataclass
from typing import BinaryIO

from wav_denoise.utils.errors import HeaderError

SAMPLE_RATE = 16000
BITS_PER_SAMPLE = 16
NUM_CHANNELS = 1

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_IEEE_FLOAT = 0x0003
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

SAMPLE_FORMAT_INT = "int"
SAMPLE_FORMAT_FLOAT = "float"

_SAMPLE_FORMATS = {
    WAVE_FORMAT_PCM: SAMPLE_FORMAT_INT,
    WAVE_FORMAT_IEEE_FLOAT: SAMPLE_FORMAT_FLOAT,
}

_CHUNK_HEADER = struct.Struct("<4sI")
_FMT_BASE = struct.Struct("<HHIIHH")
# cbSize, wValidBitsPerSample, dwChannelMask, SubFormat GUID
_FMT_EXTENSION = struct.Struct("<HHI16s")


@dataclass(frozen=True)
class AudioSpec:
    """Format descriptor of a WAV file."""

    channels: int
    sample_rate: int
    bits_per_sample: int
    sample_format: str = SAMPLE_FORMAT_INT

    @property
    def is_accepted(self) -> bool:
        """True for 16kHz mono 16-bit integer PCM."""
        return (
            self.channels == NUM_CHANNELS
            and self.sample_rate == SAMPLE_RATE
            and self.bits_per_sample == BITS_PER_SAMPLE
            and self.sample_format == SAMPLE_FORMAT_INT
        )


def _read_exact(stream: BinaryIO, size: int, wav_path: str, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise HeaderError(f"Truncated WAV header while reading {what}", path=wav_path)
    return data


def _parse_fmt_chunk(body: bytes, wav_path: str) -> AudioSpec:
    """Decode the body of a `fmt ` chunk into an AudioSpec."""
    if len(body) < _FMT_BASE.size:
        raise HeaderError(
            f"fmt chunk too short: {len(body)} bytes", path=wav_path
        )

    format_tag, channels, sample_rate, _byte_rate, _block_align, bits = (
        _FMT_BASE.unpack_from(body)
    )

    if format_tag == WAVE_FORMAT_EXTENSIBLE:
        if len(body) < _FMT_BASE.size + _FMT_EXTENSION.size:
            raise HeaderError(
                "WAVE_FORMAT_EXTENSIBLE fmt chunk too short", path=wav_path
            )
        _cb_size, valid_bits, _mask, sub_format = _FMT_EXTENSION.unpack_from(
            body, _FMT_BASE.size
        )
        # First two bytes of the sub-format GUID carry the format code
        format_tag = struct.unpack_from("<H", sub_format)[0]
        if valid_bits:
            bits = valid_bits

    sample_format = _SAMPLE_FORMATS.get(format_tag)
    if sample_format is None:
        raise HeaderError(
            f"Unsupported WAV format tag: 0x{format_tag:04x}",
            path=wav_path,
            detail="compressed or unknown encoding",
        )
    if channels == 0:
        raise HeaderError("WAV header declares zero channels", path=wav_path)

    return AudioSpec(
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits,
        sample_format=sample_format,
    )


def read_wav_spec(wav_path: str) -> AudioSpec:
    """Read the format descriptor of a WAV file.

    Walks the RIFF chunk list until the `data` chunk is reached; the
    `fmt ` chunk must precede it.

    Args:
        wav_path: Path to the WAV file.

    Returns:
        AudioSpec parsed from the `fmt ` chunk.

    Raises:
        HeaderError: If the file cannot be opened or is not a parseable WAV.
    """
    try:
        with open(wav_path, "rb") as stream:
            riff_id, _riff_size = _CHUNK_HEADER.unpack(
                _read_exact(stream, _CHUNK_HEADER.size, wav_path, "RIFF header")
            )
            wave_id = _read_exact(stream, 4, wav_path, "WAVE id")
            if riff_id != b"RIFF" or wave_id != b"WAVE":
                raise HeaderError("Not a RIFF/WAVE file", path=wav_path)

            spec: AudioSpec | None = None
            while True:
                chunk_id, chunk_size = _CHUNK_HEADER.unpack(
                    _read_exact(stream, _CHUNK_HEADER.size, wav_path, "chunk header")
                )
                if chunk_id == b"fmt ":
                    body = _read_exact(stream, chunk_size, wav_path, "fmt chunk")
                    spec = _parse_fmt_chunk(body, wav_path)
                    if chunk_size % 2:
                        stream.seek(1, 1)
                elif chunk_id == b"data":
                    if spec is None:
                        raise HeaderError(
                            "data chunk found before fmt chunk", path=wav_path
                        )
                    return spec
                else:
                    # Chunks are word-aligned
                    stream.seek(chunk_size + (chunk_size % 2), 1)
    except OSError as exc:
        raise HeaderError(
            f"Failed to open WAV file: {exc.strerror or exc}",
            path=wav_path,
            detail=str(exc),
        ) from exc


def validate_wav(wav_path: str) -> bool:
    """Check a WAV file against the fixed 16kHz mono 16-bit PCM format.

    Args:
        wav_path: Path to the candidate WAV file.

    Returns:
        True when the file is accepted, False when it parses but has a
        different format.

    Raises:
        HeaderError: If the header cannot be read or parsed.
    """
    return read_wav_spec(wav_path).is_accepted
