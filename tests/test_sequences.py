import math

import numpy as np
import pytest

from mriquant.sequences import MTSequence, RUFISSequence, SequenceError, SSSequence


def _mt_json(**overrides):
    data = {
        "TR": 0.002,
        "Trf": 0.00002,
        "Tramp": 0.01,
        "Tspoil": 0.05,
        "SPS": 256,
        "MT_pulse": {"B1x": [1.0, 2.0], "B1y": [0.0, 0.0], "FA": 600.0, "width": 0.01},
        "MT_pulsewidth": 0.01,
        "RUFIS_FA": [2.0, 2.0, 4.0],
        "MT_FA": [0.0, 360.0, 720.0],
        "MT_offsets": [0.0, 1000.0, 2000.0],
    }
    data.update(overrides)
    return data


def _ss_json(**overrides):
    data = {
        "TR": 0.003,
        "Trf": 0.00002,
        "Tramp": 0.01,
        "spokes_per_seg": 128,
        "FA": [2.0, 4.0, 6.0],
        "prep_p1": 0.5,
        "prep_p2": 0.4,
        "prep_Trf": 0.002,
        "prep_FA": 180.0,
        "prep_df": [0.0, 500.0, 1000.0],
    }
    data.update(overrides)
    return data


def _rufis_json(**overrides):
    data = {
        "TR": 0.002,
        "Tramp": 0.01,
        "spokes_per_seg": 512,
        "FA": [2.0, 2.0],
        "Trf": [20.0, 40.0],
        "groups_per_seg": [1, 2],
        "prep_pulses": {
            "inv": {"FAeff": 180.0, "int_b1_sq": 1.0, "T_long": 0.01, "T_trans": 0.0},
            "none": {"FAeff": 0.0, "int_b1_sq": 0.0, "T_long": 0.0, "T_trans": 0.0},
        },
        "prep": ["inv", "none"],
    }
    data.update(overrides)
    return data


def test_mt_sequence_reads_angles_in_radians():
    seq = MTSequence.from_json(_mt_json())
    np.testing.assert_allclose(seq.mt_fa, [0.0, 2 * math.pi, 4 * math.pi])
    assert seq.size() == 3
    assert seq.sps == 256
    assert seq.mt_pulse.fa == pytest.approx(600.0 * math.pi / 180.0)


def test_mt_sequence_round_trip():
    data = _mt_json()
    out = MTSequence.from_json(data).to_json()
    np.testing.assert_allclose(out["RUFIS_FA"], data["RUFIS_FA"])
    np.testing.assert_allclose(out["MT_FA"], data["MT_FA"])
    assert out["MT_offsets"] == data["MT_offsets"]
    assert out["MT_pulse"]["FA"] == pytest.approx(data["MT_pulse"]["FA"])
    assert (out["TR"], out["Trf"], out["Tramp"], out["Tspoil"], out["SPS"]) == (
        data["TR"],
        data["Trf"],
        data["Tramp"],
        data["Tspoil"],
        data["SPS"],
    )


def test_mt_sequence_fa_count_mismatch():
    with pytest.raises(SequenceError, match="does not match"):
        MTSequence.from_json(_mt_json(MT_FA=[0.0, 360.0]))


def test_mt_sequence_missing_field():
    data = _mt_json()
    del data["Tspoil"]
    with pytest.raises(SequenceError):
        MTSequence.from_json(data)


def test_ss_sequence_broadcasts_scalar_prep_fa():
    seq = SSSequence.from_json(_ss_json())
    assert seq.size() == 3
    np.testing.assert_allclose(seq.prep_fa, [math.pi] * 3)
    np.testing.assert_allclose(seq.fa, np.deg2rad([2.0, 4.0, 6.0]))
    np.testing.assert_array_equal(seq.prep_df, [0.0, 500.0, 1000.0])


def test_ss_sequence_prep_length_mismatch():
    with pytest.raises(SequenceError):
        SSSequence.from_json(_ss_json(prep_df=[0.0, 1.0]))


def test_ss_sequence_missing_field():
    data = _ss_json()
    del data["prep_p2"]
    with pytest.raises(SequenceError):
        SSSequence.from_json(data)


def test_rufis_sequence_reads_fields():
    seq = RUFISSequence.from_json(_rufis_json())
    assert seq.size() == 2
    np.testing.assert_allclose(seq.trf, [20.0e-6, 40.0e-6])
    np.testing.assert_array_equal(seq.groups_per_seg, [1, 2])
    assert seq.groups_per_seg.dtype.kind == "i"
    assert seq.prep == ["inv", "none"]
    assert seq.prep_pulses["inv"].fa_eff == pytest.approx(math.pi)


def test_rufis_sequence_prep_count_mismatch():
    with pytest.raises(SequenceError, match="Number preps"):
        RUFISSequence.from_json(_rufis_json(prep=["inv"]))


def test_rufis_sequence_missing_prep_pulses():
    data = _rufis_json()
    del data["prep_pulses"]
    with pytest.raises(SequenceError):
        RUFISSequence.from_json(data)