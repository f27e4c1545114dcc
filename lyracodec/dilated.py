"""Dilated causal convolutional layers with optional skip connections."""

from __future__ import annotations

import numpy as np

from lyracodec.layer_base import (
    LayerError,
    LayerParams,
    LayerWrapper,
    SparseLinearLayer,
    load_and_check_layer,
)


class DilatedConvolutionalLayerWrapper(LayerWrapper):
    """A causal convolution whose kernel taps are ``dilation`` steps apart.

    The input buffer has ``kernel_size * num_input_channels`` rows and
    ``dilation`` columns. Each column stacks the inputs that one step needs:
    the current input at the bottom and older inputs above it. After a run
    the current column is shifted up by one input and the read head moves to
    the next column, cycling through all of them.
    """

    def __init__(
        self,
        num_input_channels: int,
        output_rows: int,
        input_buffer_rows: int,
        input_buffer_cols: int,
        relu: bool,
        per_column_barrier: bool,
        skip_connection: bool,
        num_threads: int,
        layer: SparseLinearLayer,
    ) -> None:
        super().__init__(
            num_input_channels,
            output_rows,
            1,
            input_buffer_rows,
            input_buffer_cols,
            relu,
            per_column_barrier,
            layer,
        )
        if num_threads < 1:
            raise LayerError(f"Number of threads must be > 0, got {num_threads}.")
        self.skip_connection = skip_connection
        self._num_resets = 0
        self._num_threads = num_threads
        self._num_elements_per_thread = output_rows // num_threads
        self._skip_connection_buffer = np.zeros(output_rows, dtype=np.float32)

    @classmethod
    def create(cls, params: LayerParams) -> DilatedConvolutionalLayerWrapper:
        """Build a layer from ``params``; raise LayerError if they are unsupported."""
        layer_prompt = f"|{params.prefix}| layer: "
        if params.stride != 1:
            raise LayerError(
                f"{layer_prompt}Dilated convolutional layer with stride != 1 "
                "is not supported."
            )
        if params.length != 1:
            raise LayerError(
                f"{layer_prompt}Dilated convolutional layer with length != 1 "
                "is not supported."
            )
        if params.kernel_size < 1:
            raise LayerError(f"{layer_prompt}Kernel size must be > 0.")
        if params.dilation < 1:
            raise LayerError(f"{layer_prompt}Dilation must be > 0.")

        layer = load_and_check_layer(
            params.source,
            layer_prompt,
            params.num_filters,
            params.kernel_size * params.num_input_channels,
            params.num_threads,
        )
        input_buffer_rows = layer.cols
        num_input_channels = input_buffer_rows // params.kernel_size
        output_rows = layer.rows

        if params.skip_connection and num_input_channels != output_rows:
            raise LayerError(
                f"{layer_prompt}Skip connection can only be performed if the "
                "input and output have the same dimensions: "
                f"{params.num_input_channels} vs {output_rows}"
            )

        return cls(
            num_input_channels,
            output_rows,
            input_buffer_rows,
            params.dilation,
            params.relu,
            params.per_column_barrier,
            params.skip_connection,
            params.num_threads,
            layer,
        )

    @property
    def _column(self) -> int:
        return self._num_resets % self.input_buffer_cols

    @property
    def _covered_elements(self) -> int:
        return self._num_elements_per_thread * self._num_threads

    def run(self) -> np.ndarray:
        """Multiply the current column, add the bias and any skip input, then shift.

        With a skip connection the new input is saved, passed through a ReLU
        in place before the product, and the saved input is added to the
        output afterwards.
        """
        covered = self._covered_elements
        if self.skip_connection:
            view = self.input_view_to_update()
            self._skip_connection_buffer[:] = view[: self.output_rows, 0]
            view[:covered, 0] = np.maximum(view[:covered, 0], 0.0)

        column = self._input_buffer[:, self._column]
        output = self._layer.multiply(column, self.relu)[:, np.newaxis].copy()

        if self.skip_connection:
            output[:covered, 0] += self._skip_connection_buffer[:covered]

        self.reset()
        return output

    def input_view_to_update(self) -> np.ndarray:
        """The bottom ``num_input_channels`` rows of the current column."""
        column = self._column
        start = self.input_buffer_rows - self.num_input_channels
        return self._input_buffer[start:, column : column + 1]

    def reset(self) -> None:
        """Shift the current column up by one input and advance to the next column."""
        column = self._input_buffer[:, self._column]
        shift = self.num_input_channels
        column[: self.input_buffer_rows - shift] = column[shift:].copy()
        self._num_resets = (self._num_resets + 1) % self.input_buffer_cols

    def prepare_for_threads(self, num_threads: int) -> int:
        """Split the element-wise work among ``num_threads`` and return the count."""
        if num_threads < 1:
            raise LayerError(f"Number of threads must be > 0, got {num_threads}.")
        self._num_threads = num_threads
        self._num_elements_per_thread = self.output_rows // num_threads
        return super().prepare_for_threads(num_threads)