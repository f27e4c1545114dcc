"""Vector quantization of feature vectors in a KLT-projected space."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

MAX_NUM_QUANTIZED_BITS = 200
_BIT_MASK = (1 << MAX_NUM_QUANTIZED_BITS) - 1


class QuantizerError(ValueError):
    """A quantizer could not be built or could not process its input."""


def _bits_for(codebook: np.ndarray) -> int:
    """Number of bits needed to index every code vector of ``codebook``."""
    return math.ceil(math.log2(len(codebook)))


def _build_codebooks(
    flattened_code_vectors: np.ndarray, codebook_dimensions: Sequence[int]
) -> list[np.ndarray]:
    """Split the flat code vector array into one matrix per codebook."""
    if len(codebook_dimensions) % 2:
        raise QuantizerError(
            "Codebook dimensions must hold a (count, dimensionality) pair "
            "for every codebook."
        )
    pairs = list(zip(codebook_dimensions[::2], codebook_dimensions[1::2]))
    needed = sum(count * dim for count, dim in pairs if count > 0 and dim > 0)
    if any(count < 0 or dim < 0 for count, dim in pairs):
        raise QuantizerError("Codebook dimensions must not be negative.")
    if needed > len(flattened_code_vectors):
        raise QuantizerError(
            f"Codebooks need {needed} code vector components but only "
            f"{len(flattened_code_vectors)} were given."
        )

    codebooks = []
    offset = 0
    for count, dim in pairs:
        size = count * dim
        block = flattened_code_vectors[offset : offset + size]
        codebooks.append(block.reshape(count, dim))
        offset += size
    return codebooks


class VectorQuantizer:
    """Quantizes features by projecting them and looking up nearest code vectors."""

    def __init__(
        self,
        num_features: int,
        num_bits: int,
        mean_vector: np.ndarray,
        transformation_matrix: np.ndarray,
        codebooks: list[np.ndarray],
    ) -> None:
        self.num_features = num_features
        self.num_bits = num_bits
        self._mean_vector = mean_vector
        self._transformation_matrix = transformation_matrix
        self._inverse_transformation_matrix = np.linalg.inv(transformation_matrix)
        self._codebooks = codebooks

    @classmethod
    def create(
        cls,
        num_features: int,
        num_bits: int,
        mean_vector: Sequence[float],
        transformation_matrix: Sequence[Sequence[float]],
        flattened_code_vectors: Sequence[float],
        codebook_dimensions: Sequence[int],
    ) -> VectorQuantizer:
        """Validate the parameters and build a quantizer.

        Raises QuantizerError if the dimensions of the mean vector and the
        transformation matrix do not match ``num_features``, if the matrix is
        not invertible, or if the codebooks are inconsistent.
        """
        if num_bits > MAX_NUM_QUANTIZED_BITS:
            raise QuantizerError(
                f"Specified number of bits {num_bits} exceeds the maximum "
                f"{MAX_NUM_QUANTIZED_BITS}"
            )
        if num_bits < 0:
            raise QuantizerError(f"Number of bits must not be negative: {num_bits}")

        mean = np.asarray(mean_vector, dtype=np.float64).reshape(-1)
        if mean.size != num_features:
            raise QuantizerError(
                f"Expected mean vector to be length {num_features} "
                f"but was of size {mean.size}"
            )

        matrix = np.asarray(transformation_matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] == 0 or matrix.shape[0] != matrix.shape[1]:
            shape = "x".join(str(d) for d in matrix.shape)
            raise QuantizerError(
                "Expected transformation matrix to be square with size "
                f"{num_features}x{num_features} but was {shape}"
            )
        if mean.size != matrix.shape[1]:
            raise QuantizerError(
                f"Rows of mean vector {mean.size} do not match "
                f"{matrix.shape[1]} columns of transformation matrix."
            )
        if np.linalg.matrix_rank(matrix) != matrix.shape[0]:
            raise QuantizerError("Transformation Matrix is not invertible.")

        dims = [int(d) for d in codebook_dimensions]
        total_dimensionality = sum(dims[1::2])
        if total_dimensionality != num_features:
            raise QuantizerError(
                "Codebook must have the same dimensionality as the feature "
                f"space ({total_dimensionality} vs {num_features})."
            )

        flat = np.asarray(flattened_code_vectors, dtype=np.float64).reshape(-1)
        codebooks = _build_codebooks(flat, dims)
        if any(len(codebook) == 0 for codebook in codebooks):
            raise QuantizerError("Codebook did not have any code vectors in it.")

        return cls(num_features, num_bits, mean, matrix, codebooks)

    def quantize(self, features: Sequence[float]) -> str:
        """Quantize ``features`` into a string of ``num_bits`` '0'/'1' characters."""
        values = np.asarray(features, dtype=np.float64).reshape(-1)
        if values.size != self.num_features:
            raise QuantizerError(
                f"There were {values.size} features to be quantized but "
                f"expected {self.num_features}"
            )
        projected = (values - self._mean_vector) @ self._transformation_matrix

        quantized = 0
        bit_shift_amount = 0
        start = 0
        for codebook in self._codebooks:
            current_num_bits = _bits_for(codebook)
            if current_num_bits == 0:
                break
            bit_shift_amount += current_num_bits
            dimensionality = codebook.shape[1]
            sub_projected = projected[start : start + dimensionality]
            start += dimensionality
            chosen_index = self._find_nearest(sub_projected, codebook)

            # Indices are packed from the most significant bit downwards.
            shift = MAX_NUM_QUANTIZED_BITS - bit_shift_amount
            if shift >= 0:
                quantized |= (chosen_index << shift) & _BIT_MASK

        return format(quantized, f"0{MAX_NUM_QUANTIZED_BITS}b")[: self.num_bits]

    def decode_to_lossy_features(self, quantized_features: str) -> list[float]:
        """Look up the code vectors named by the bits and project them back."""
        if any(char not in "01" for char in quantized_features):
            raise QuantizerError(
                "Quantized features must contain only '0' and '1' characters."
            )
        quantized = int(quantized_features[:MAX_NUM_QUANTIZED_BITS] or "0", 2)

        components: list[np.ndarray] = []
        bit_shift_amount = self.num_bits
        for codebook in self._codebooks:
            current_num_bits = _bits_for(codebook)
            if bit_shift_amount < current_num_bits:
                raise QuantizerError(
                    f"Not enough bits left ({bit_shift_amount}) to decode a "
                    f"codebook needing {current_num_bits}."
                )
            bit_shift_amount -= current_num_bits
            index = (quantized >> bit_shift_amount) & ((1 << current_num_bits) - 1)
            if index >= len(codebook):
                raise QuantizerError(
                    f"Code vector index {index} is out of range for a codebook "
                    f"of {len(codebook)} vectors."
                )
            components.append(codebook[index])

        klt_features = np.concatenate(components)
        features = klt_features @ self._inverse_transformation_matrix + self._mean_vector
        return [float(value) for value in features]

    @staticmethod
    def _find_nearest(sub_projected: np.ndarray, codebook: np.ndarray) -> int:
        """Index of the code vector closest (L2) to ``sub_projected``."""
        distances = np.sum((codebook - sub_projected) ** 2, axis=1)
        distances = np.where(np.isnan(distances), np.inf, distances)
        return int(np.argmin(distances))