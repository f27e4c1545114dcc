"""Sparse linear layers and the base class of the layers built on them."""

from __future__ import annotations

import abc
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Union

import numpy as np

_LOG = logging.getLogger(__name__)


class LayerError(ValueError):
    """A layer could not be built from its parameters."""


class LayerType(enum.Enum):
    """Kind of convolutional layer to build."""

    CONV1D = "conv1d"
    DILATED = "dilated"
    TRANSPOSE = "transpose"


@dataclass(frozen=True)
class FromConstant:
    """Build the weights as a constant matrix of the expected shape.

    A ``sparsity`` above zero sets that fraction of the weights to zero,
    starting from the first entry in row-major order.
    """

    value: float
    sparsity: float = -1.0


@dataclass(frozen=True, eq=False)
class FromArrays:
    """Build the weights from an explicit matrix and an optional bias."""

    weights: Union[Sequence[Sequence[float]], np.ndarray]
    bias: Union[Sequence[float], np.ndarray, None] = None


LayerSource = Union[FromConstant, FromArrays]


@dataclass(frozen=True, kw_only=True)
class LayerParams:
    """Hyperparameters of one convolutional layer.

    A ``num_input_channels`` or ``num_filters`` of 0 lets the weights
    decide that dimension.
    """

    num_input_channels: int
    num_filters: int
    source: LayerSource
    length: int = 1
    kernel_size: int = 1
    dilation: int = 1
    stride: int = 1
    relu: bool = False
    skip_connection: bool = False
    type: LayerType = LayerType.CONV1D
    num_threads: int = 1
    per_column_barrier: bool = False
    prefix: str = field(default="")


class SparseLinearLayer:
    """Computes ``weights @ rhs + bias``, optionally followed by a ReLU."""

    def __init__(
        self,
        weights: Union[Sequence[Sequence[float]], np.ndarray],
        bias: Union[Sequence[float], np.ndarray, None] = None,
    ) -> None:
        matrix = np.array(weights, dtype=np.float32)
        if matrix.ndim != 2:
            raise LayerError(
                f"Weights must be a two-dimensional matrix, got {matrix.ndim} dimensions."
            )
        if bias is None:
            bias_vector = np.zeros(matrix.shape[0], dtype=np.float32)
        else:
            bias_vector = np.array(bias, dtype=np.float32).reshape(-1)
        if bias_vector.size != matrix.shape[0]:
            raise LayerError(
                f"Bias has {bias_vector.size} elements but the weights have "
                f"{matrix.shape[0]} rows."
            )
        self._weights = matrix
        self._bias = bias_vector

    def multiply(self, rhs: Union[Sequence[float], np.ndarray], relu: bool = False) -> np.ndarray:
        """Multiply by ``rhs`` (a vector or a matrix of columns) and add the bias."""
        right = np.asarray(rhs, dtype=np.float32)
        if right.ndim not in (1, 2) or right.shape[0] != self.cols:
            raise LayerError(
                f"Right-hand side of shape {right.shape} does not match a "
                f"[{self.rows}, {self.cols}] weight matrix."
            )
        bias = self._bias if right.ndim == 1 else self._bias[:, np.newaxis]
        result = self._weights @ right + bias
        if relu:
            result = np.maximum(result, 0.0)
        return result.astype(np.float32, copy=False)

    @property
    def rows(self) -> int:
        """Number of output rows."""
        return int(self._weights.shape[0])

    @property
    def cols(self) -> int:
        """Number of input rows consumed."""
        return int(self._weights.shape[1])

    @property
    def bytes(self) -> int:
        """Memory taken by the weights and the bias."""
        return int(self._weights.nbytes + self._bias.nbytes)

    @property
    def sparsity(self) -> float:
        """Fraction of the weights that are zero."""
        if self._weights.size == 0:
            return 0.0
        return float(np.count_nonzero(self._weights == 0)) / self._weights.size


def _constant_layer(rows: int, cols: int, sparsity: float, value: float) -> SparseLinearLayer:
    if rows < 0 or cols < 0:
        raise LayerError(f"Cannot build a constant layer of shape [{rows}, {cols}].")
    weights = np.full((rows, cols), value, dtype=np.float32)
    if sparsity > 0:
        num_zeros = round(min(sparsity, 1.0) * weights.size)
        weights.flat[:num_zeros] = 0.0
    return SparseLinearLayer(weights)


def _supported_threads(layer: SparseLinearLayer, num_threads: int) -> int:
    """Number of threads the layer's rows can be split among, at most ``num_threads``."""
    if num_threads < 1:
        return 0
    return min(num_threads, max(layer.rows, 1))


def load_and_check_layer(
    source: LayerSource,
    layer_prompt: str,
    expected_rows: int,
    expected_cols: int,
    num_threads: int,
) -> SparseLinearLayer:
    """Build a layer from ``source`` and check its shape and thread count.

    An expected dimension of 0 or less accepts any size.
    """
    if isinstance(source, FromArrays):
        try:
            layer = SparseLinearLayer(source.weights, source.bias)
        except LayerError as error:
            raise LayerError(f"{layer_prompt} loading failed: {error}") from error
    elif isinstance(source, FromConstant):
        layer = _constant_layer(expected_rows, expected_cols, source.sparsity, source.value)
    else:
        raise LayerError(f"{layer_prompt}Unrecognized layer source {source!r}.")

    _LOG.info(
        "%s Shape: [%d, %d]. Sparsity: %s",
        layer_prompt,
        layer.rows,
        layer.cols,
        layer.sparsity,
    )

    if (expected_rows > 0 and layer.rows != expected_rows) or (
        expected_cols > 0 and layer.cols != expected_cols
    ):
        raise LayerError(
            f"{layer_prompt}Incompatible layer shape: expecting "
            f"[{expected_rows}, {expected_cols}], but is [{layer.rows}, {layer.cols}]."
        )

    if num_threads < 1 or _supported_threads(layer, num_threads) != num_threads:
        raise LayerError(f"{layer_prompt}Could not prepare for {num_threads} threads.")
    return layer


class LayerWrapper(abc.ABC):
    """A sparse linear layer together with the input buffer that feeds it.

    The product is ``y = W x + b`` where ``y`` has ``output_rows`` rows and
    ``length`` columns and ``x`` has ``input_buffer_rows`` rows. The input
    buffer may hold more columns than take part in one product, so that past
    inputs can be reused.
    """

    def __init__(
        self,
        num_input_channels: int,
        output_rows: int,
        length: int,
        input_buffer_rows: int,
        input_buffer_cols: int,
        relu: bool,
        per_column_barrier: bool,
        layer: SparseLinearLayer,
    ) -> None:
        self.num_input_channels = num_input_channels
        self.output_rows = output_rows
        self.length = length
        self.input_buffer_rows = input_buffer_rows
        self.input_buffer_cols = input_buffer_cols
        self.relu = relu
        self.per_column_barrier = per_column_barrier
        self._layer = layer
        self._input_buffer = np.zeros((input_buffer_rows, input_buffer_cols), dtype=np.float32)

    @abc.abstractmethod
    def run(self) -> np.ndarray:
        """Run the layer on the input buffer and return the output."""

    @abc.abstractmethod
    def input_view_to_update(self) -> np.ndarray:
        """Writable view of the part of the input buffer the previous layer fills."""

    @abc.abstractmethod
    def reset(self) -> None:
        """Shift the input buffer after a run."""

    def prepare_for_threads(self, num_threads: int) -> int:
        """Return how many threads the layer can be split among."""
        return _supported_threads(self._layer, num_threads)

    @property
    def rows(self) -> int:
        """Rows of the weight matrix."""
        return self._layer.rows

    @property
    def cols(self) -> int:
        """Columns of the weight matrix."""
        return self._layer.cols

    @property
    def bytes(self) -> int:
        """Memory taken by the weights."""
        return self._layer.bytes

    @property
    def input_buffer(self) -> np.ndarray:
        """The whole input buffer, ``input_buffer_rows`` by ``input_buffer_cols``."""
        return self._input_buffer