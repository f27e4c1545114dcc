"""Reading and writing 16-bit PCM WAV files."""

from __future__ import annotations

import os
import sys
import wave
from array import array
from collections.abc import Iterable
from dataclasses import dataclass


class WavError(Exception):
    """A WAV file could not be read or written."""


@dataclass(frozen=True)
class ReadWavResult:
    """Samples read from a WAV file, interleaved if multichannel."""

    samples: tuple[int, ...]
    num_channels: int
    sample_rate_hz: int


def read_16bit_wav(file_name: str | os.PathLike[str]) -> ReadWavResult:
    """Read a 16-bit PCM WAV file."""
    path = os.fspath(file_name)
    try:
        with wave.open(path, "rb") as reader:
            if reader.getsampwidth() != 2:
                raise WavError(
                    f"Failed to read from wav at path: {path}: "
                    f"sample width is {8 * reader.getsampwidth()} bits, not 16"
                )
            num_channels = reader.getnchannels()
            sample_rate_hz = reader.getframerate()
            raw = reader.readframes(reader.getnframes())
    except WavError:
        raise
    except (OSError, EOFError, wave.Error) as error:
        raise WavError(f"Failed to read from wav at path: {path}") from error

    samples = array("h")
    samples.frombytes(raw[: len(raw) - len(raw) % 2])
    if sys.byteorder == "big":
        samples.byteswap()
    return ReadWavResult(tuple(samples), num_channels, sample_rate_hz)


def write_16bit_wav(
    file_name: str | os.PathLike[str],
    num_channels: int,
    sample_rate_hz: int,
    samples: Iterable[int],
) -> None:
    """Write 16-bit samples, interleaved if multichannel, to a WAV file."""
    path = os.fspath(file_name)
    try:
        data = array("h", samples)
    except (OverflowError, TypeError) as error:
        raise WavError(f"Failed to write to wav file at: {path}") from error
    if sys.byteorder == "big":
        data.byteswap()
    try:
        with wave.open(path, "wb") as writer:
            writer.setnchannels(num_channels)
            writer.setsampwidth(2)
            writer.setframerate(sample_rate_hz)
            writer.writeframes(data.tobytes())
    except (OSError, wave.Error) as error:
        raise WavError(f"Failed to write to wav file at: {path}") from error