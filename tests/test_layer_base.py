import numpy as np
import pytest

from lyracodec.layer_base import (
    FromArrays,
    FromConstant,
    LayerError,
    LayerWrapper,
    SparseLinearLayer,
    load_and_check_layer,
)


class _Passthrough(LayerWrapper):
    def run(self):
        return self._layer.multiply(self._input_buffer, self.relu)

    def input_view_to_update(self):
        return self._input_buffer

    def reset(self):
        self._input_buffer[:] = 0


def test_multiply_identity_returns_input():
    layer = SparseLinearLayer(np.eye(3))
    x = np.array([1.5, -2.0, 3.0], dtype=np.float32)
    np.testing.assert_allclose(layer.multiply(x), x)


def test_multiply_matrix_of_columns():
    layer = SparseLinearLayer(np.eye(2))
    x = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32)
    np.testing.assert_allclose(layer.multiply(x), x)


def test_multiply_adds_bias():
    bias = [4.0, 5.0]
    layer = SparseLinearLayer(np.zeros((2, 3)), bias)
    np.testing.assert_allclose(layer.multiply([1.0, 2.0, 3.0]), bias)


def test_multiply_relu_clamps_negatives():
    layer = SparseLinearLayer(np.eye(3))
    x = np.array([-1.0, 2.0, -3.0], dtype=np.float32)
    result = layer.multiply(x, relu=True)
    assert np.all(result >= 0)
    assert result[1] == x[1]
    assert np.all(result[x < 0] == 0)


def test_multiply_rejects_wrong_shape():
    layer = SparseLinearLayer(np.eye(3))
    with pytest.raises(LayerError):
        layer.multiply([1.0, 2.0])


def test_bias_length_mismatch_raises():
    with pytest.raises(LayerError):
        SparseLinearLayer(np.eye(3), [1.0, 2.0])


def test_weights_must_be_matrix():
    with pytest.raises(LayerError):
        SparseLinearLayer([1.0, 2.0, 3.0])


def test_shape_and_bytes():
    layer = SparseLinearLayer(np.ones((2, 3)))
    assert (layer.rows, layer.cols) == (2, 3)
    assert layer.bytes > 0


def test_sparsity_counts_zeros():
    assert SparseLinearLayer([[0.0, 1.0], [1.0, 1.0]]).sparsity == 0.25
    assert SparseLinearLayer(np.ones((2, 2))).sparsity == 0.0


def test_load_constant_layer_has_expected_shape_and_value():
    layer = load_and_check_layer(FromConstant(value=0.5), "|c| layer: ", 4, 6, 1)
    assert (layer.rows, layer.cols) == (4, 6)
    one_hot = np.zeros(6, dtype=np.float32)
    one_hot[0] = 1.0
    np.testing.assert_allclose(layer.multiply(one_hot), np.full(4, 0.5))


def test_constant_layer_dense_when_sparsity_negative():
    layer = load_and_check_layer(FromConstant(value=0.5, sparsity=-1.0), "", 4, 6, 1)
    assert layer.sparsity == 0.0


def test_constant_layer_sparsity_applied():
    layer = load_and_check_layer(FromConstant(value=0.5, sparsity=0.5), "", 4, 6, 1)
    assert layer.sparsity == pytest.approx(0.5)


def test_load_arrays_shape_mismatch_raises():
    source = FromArrays(np.ones((3, 4)))
    with pytest.raises(LayerError):
        load_and_check_layer(source, "", 5, 4, 1)
    with pytest.raises(LayerError):
        load_and_check_layer(source, "", 3, 5, 1)


def test_load_arrays_dynamic_dimensions():
    layer = load_and_check_layer(FromArrays(np.ones((3, 4))), "", 0, 0, 1)
    assert (layer.rows, layer.cols) == (3, 4)


def test_load_rejects_bad_thread_counts():
    source = FromArrays(np.ones((3, 4)))
    with pytest.raises(LayerError):
        load_and_check_layer(source, "", 3, 4, 0)
    with pytest.raises(LayerError):
        load_and_check_layer(source, "", 3, 4, 5)


def test_load_rejects_unknown_source():
    with pytest.raises(LayerError):
        load_and_check_layer("weights.gz", "", 3, 4, 1)


def test_wrapper_delegates_to_layer():
    layer = SparseLinearLayer(np.eye(3))
    wrapper = _Passthrough(3, 3, 1, 3, 2, False, False, layer)
    assert wrapper.input_buffer.shape == (3, 2)
    assert not wrapper.input_buffer.any()
    assert (wrapper.rows, wrapper.cols) == (layer.rows, layer.cols)
    assert wrapper.bytes == layer.bytes
    assert wrapper.prepare_for_threads(2) == 2


def test_wrapper_run_uses_input_buffer():
    wrapper = _Passthrough(2, 2, 1, 2, 1, True, False, SparseLinearLayer(np.eye(2)))
    wrapper.input_view_to_update()[:, 0] = [3.0, -1.0]
    output = wrapper.run()
    assert output[0, 0] == 3.0
    assert output[1, 0] == 0.0


def test_wrapper_is_abstract():
    with pytest.raises(TypeError):
        LayerWrapper(1, 1, 1, 1, 1, False, False, SparseLinearLayer(np.eye(1)))