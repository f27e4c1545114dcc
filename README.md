# lyracodec

Building blocks for a low-bitrate neural speech codec, in Python and NumPy:

- **`lyracodec.wav_util`**: reads and writes 16-bit PCM WAV files.
- **`lyracodec.vector_quantizer`**: a KLT-projected, split vector quantizer. It turns
  a feature vector into a bit string and decodes that bit string back to lossy features.
- **`lyracodec.layer_base`**: a dense linear layer (`SparseLinearLayer`), the
  parameter types that describe a layer (`LayerParams`, `LayerType`, `FromArrays`,
  `FromConstant`), `load_and_check_layer`, and the abstract `LayerWrapper` base class.
- **`lyracodec.dilated`**: `DilatedConvolutionalLayerWrapper`, a streaming dilated
  causal convolution layer with an optional skip connection. It keeps its own input
  history between calls.

## Installation

```
pip install .
```

To run the tests, install with the `test` extra and run `pytest`:

```
pip install ".[test]"
pytest
```

## WAV files

```python
from lyracodec.wav_util import read_16bit_wav, write_16bit_wav, WavError

write_16bit_wav("out.wav", 1, 16000, [6, 496, 496, 8128])
result = read_16bit_wav("out.wav")
print(result.num_channels, result.sample_rate_hz, list(result.samples))
```

`read_16bit_wav` returns a frozen `ReadWavResult` with `samples` (a tuple,
interleaved for multichannel files), `num_channels` and `sample_rate_hz`. Both
functions raise `WavError` when a file cannot be read or written; reading also
raises it when the file's samples are not 16 bits wide.

## Vector quantization

```python
from lyracodec.vector_quantizer import VectorQuantizer

quantizer = VectorQuantizer.create(
    num_features=4,
    num_bits=120,
    mean_vector=[0.1, 0.5, 0.3, -0.2],
    transformation_matrix=[
        [-0.2, 0.6, -0.8, -0.5],
        [-0.7, -0.4, -0.8, 0.3],
        [0.4, 0.1, -0.5, 0.7],
        [0.2, -0.2, 0.9, -0.8],
    ],
    flattened_code_vectors=[0.5, 0.5, -0.5, -0.5,
                            0.25, -0.25, -0.25, 0.25, -0.25, -0.25, 0.25, 0.25],
    codebook_dimensions=[2, 2, 4, 2],
)
bits = quantizer.quantize([0.9083545, -0.63350268, 0.9596105, -0.67812588])
features = quantizer.decode_to_lossy_features(bits)
```

`codebook_dimensions` holds one pair per codebook: the number of code vectors, then
their dimension. `quantize` subtracts the mean, projects the features with the
transformation matrix and, for each codebook, picks the nearest code vector. It
returns a string of `'0'` and `'1'` characters, `num_bits` long, with the chosen
indices packed from the most significant bit down. `decode_to_lossy_features` looks
the indices up again, multiplies by the inverse matrix and adds the mean back.

`QuantizerError` (a `ValueError`) is raised by `create` when the shapes are
inconsistent, when the transformation matrix is singular, when a codebook is empty,
or when `num_bits` is negative or above 200; by `quantize` when the number of
features is wrong; and by `decode_to_lossy_features` when the string holds other
characters than `'0'` and `'1'` or names a code vector that does not exist.

## Dilated convolution layers

A layer is described by `LayerParams`. Its weights come either from arrays
(`FromArrays`, with an optional bias) or from a constant fill of the expected shape
(`FromConstant`). A `num_input_channels` or `num_filters` of 0 lets the weights
decide that dimension.

```python
import numpy as np
from lyracodec.layer_base import LayerParams, LayerType, FromArrays
from lyracodec.dilated import DilatedConvolutionalLayerWrapper

params = LayerParams(
    num_input_channels=3, num_filters=2, length=1, kernel_size=2,
    dilation=2, stride=1, type=LayerType.DILATED,
    source=FromArrays(weights=np.ones((2, 6), dtype=np.float32)),
)
layer = DilatedConvolutionalLayerWrapper.create(params)
for step in range(4):
    layer.input_view_to_update()[:] = step
    output = layer.run()  # shape (2, 1)
```

On each step, write the newest input into `input_view_to_update()` and call
`run()`. It multiplies the current column of the input buffer (the newest input
stacked under the inputs `dilation`, `2 * dilation`, ... steps back), adds the bias,
applies a ReLU if `relu` is set, and returns the output. With `skip_connection` the
new input is passed through a ReLU before the product and added to the output
afterwards. The buffer is then shifted and the read head moves to the next column.
The whole history is available as `layer.input_buffer`, with
`kernel_size * num_input_channels` rows and `dilation` columns.

`create` raises `LayerError` (a `ValueError`) when `stride` or `length` is not 1,
when `kernel_size` or `dilation` is below 1, when the weights do not have the
expected shape, when the thread count is not usable, or when a skip connection is
asked for and the input and output sizes differ.

## What this package does not do

It holds no complete encoder or decoder, no feature extractor and no command-line
tool. Of the layer types named by `LayerType`, only dilated layers have a wrapper
here; there is no plain strided 1-D convolution or transpose convolution layer, and
no function that picks a wrapper from `params.type`. Weights are not loaded from
model files on disk: they are given as arrays or built from a constant. The
`num_threads` settings only check and split the work; computation runs on the
calling thread.