import math

import numpy as np
import pytest

from mriquant.asl import CASLProtocol, cbf_scales, compute_cbf


def _pairs(label, control, shape=(2, 2, 3)):
    vols = []
    for lab, con in zip(label, control):
        vols.extend([lab, con])
    return np.broadcast_to(np.array(vols, dtype=float), shape + (len(vols),)).copy()


def test_scale_worked_example():
    protocol = CASLProtocol(tr=4.0, label_time=math.log(2.0), post_label_delay=[0.0])
    assert cbf_scales(protocol, t1_blood=1.0, alpha=0.9, lam=0.9)[0] == pytest.approx(6000.0)


def test_scale_increases_with_delay():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=[1.0, 1.5, 2.0])
    scales = cbf_scales(protocol)
    np.testing.assert_array_less(0.0, np.diff(scales))


def test_single_pair_cbf():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    series = _pairs([99.0], [100.0])
    cbf = compute_cbf(series, protocol)
    assert cbf.shape == (2, 2, 3, 1)
    np.testing.assert_allclose(cbf, cbf_scales(protocol)[0] * 1.0 / 100.0)


def test_average_is_mean_of_pairs():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    series = _pairs([99.0, 98.0, 97.5], [100.0, 100.5, 99.0])
    full = compute_cbf(series, protocol)
    avg = compute_cbf(series, protocol, average=True)
    assert full.shape[-1] == 3
    np.testing.assert_allclose(avg[..., 0], full.mean(axis=-1))


def test_dummies_are_discarded():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    clean = _pairs([99.0, 98.0], [100.0, 100.0])
    noisy = _pairs([5.0, 99.0, 98.0], [500.0, 100.0, 100.0])
    np.testing.assert_allclose(
        compute_cbf(noisy, protocol, dummies=1), compute_cbf(clean, protocol)
    )


def test_pd_image_used_when_given():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    series = _pairs([99.0], [100.0])
    with_pd = compute_cbf(series, protocol, pd=np.full((2, 2, 3), 50.0))
    without = compute_cbf(series, protocol)
    np.testing.assert_allclose(with_pd, 2.0 * without)


def test_tissue_t1_correction_reduces_pd():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    series = _pairs([99.0], [100.0])
    t1 = np.full((2, 2, 3), 1.0)
    corrected = compute_cbf(series, protocol, t1_tissue=t1)
    plain = compute_cbf(series, protocol)
    np.testing.assert_allclose(corrected, plain * (1.0 - math.exp(-4.0)))


def test_per_slice_delays():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=[1.0, 1.2, 1.4])
    series = _pairs([99.0], [100.0])
    cbf = compute_cbf(series, protocol)
    scales = cbf_scales(protocol)
    for z in range(3):
        np.testing.assert_allclose(cbf[:, :, z, 0], scales[z] / 100.0)


def test_mask_zeroes_outside():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    series = _pairs([99.0], [100.0])
    mask = np.zeros((2, 2, 3))
    mask[0, 0, 0] = 1
    cbf = compute_cbf(series, protocol, mask=mask)
    assert cbf[0, 0, 0, 0] > 0
    assert np.count_nonzero(cbf) == 1


def test_delay_slice_mismatch_raises():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=[1.0, 1.2])
    with pytest.raises(ValueError):
        compute_cbf(_pairs([99.0], [100.0]), protocol)


def test_no_pairs_raises():
    protocol = CASLProtocol(tr=4.0, label_time=1.8, post_label_delay=1.8)
    with pytest.raises(ValueError):
        compute_cbf(_pairs([99.0], [100.0]), protocol, dummies=1)