"""Building blocks of a low-bitrate neural speech codec: WAV I/O, vector quantization and dilated convolution layers."""

__version__ = "0.1.0"

__all__ = [
    "wav_util",
    "vector_quantizer",
    "layer_base",
    "dilated",
]