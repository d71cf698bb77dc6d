import numpy as np
import pytest

from mriquant.zspec_b1 import correct_volume, correct_voxel


RMS = np.array([1.0, 2.0, 3.0])


def test_voxel_spectra_proportional_to_rms_unchanged_at_unit_b1():
    spectra = np.column_stack([RMS, RMS])
    out = correct_voxel(spectra, 1.0, RMS)
    np.testing.assert_allclose(out, spectra)


def test_voxel_output_proportional_to_rms():
    spectra = np.array([[0.9, 0.5], [0.7, 0.4], [0.2, 0.8]])
    out = correct_voxel(spectra, 1.1, RMS)
    ratios = out / RMS[:, None]
    np.testing.assert_allclose(ratios, ratios[0:1, :].repeat(3, axis=0))


def test_voxel_linear_in_b1_and_inverse_in_scale():
    spectra = np.array([[0.9, 0.5], [0.7, 0.4], [0.2, 0.8]])
    base = correct_voxel(spectra, 1.0, RMS)
    np.testing.assert_allclose(correct_voxel(spectra, 2.0, RMS), 2.0 * base)
    np.testing.assert_allclose(correct_voxel(spectra * 4.0, 1.0, RMS), base / 4.0)


def test_voxel_rms_length_mismatch():
    with pytest.raises(ValueError, match="number of B1 RMS"):
        correct_voxel(np.ones((3, 4)), 1.0, [1.0, 2.0])


def test_volume_matches_voxel_and_mask():
    rng = np.random.default_rng(1)
    inputs = [rng.uniform(0.1, 1.0, size=(2, 2, 5)) for _ in RMS]
    b1_map = np.array([[0.9, 1.0], [1.1, 1.2]])
    mask = np.array([[1, 0], [1, 1]])
    outs = correct_volume(inputs, b1_map, RMS, mask)
    assert len(outs) == 3
    voxel = correct_voxel([inp[1, 0] for inp in inputs], b1_map[1, 0], RMS)
    for level in range(3):
        np.testing.assert_allclose(outs[level][1, 0], voxel[level])
        np.testing.assert_array_equal(outs[level][0, 1], np.zeros(5))


def test_volume_different_lengths_rejected():
    inputs = [np.ones((2, 2, 5)), np.ones((2, 2, 4))]
    with pytest.raises(ValueError, match="same length"):
        correct_volume(inputs, np.ones((2, 2)), [1.0, 2.0])


def test_volume_rms_count_rejected():
    inputs = [np.ones((2, 2, 5)), np.ones((2, 2, 5))]
    with pytest.raises(ValueError, match="number of B1 RMS"):
        correct_volume(inputs, np.ones((2, 2)), [1.0, 2.0, 3.0])