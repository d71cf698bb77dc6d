# mriquant

Signal models, sequence descriptions and voxel-wise processing for
quantitative MRI: magnetization transfer, steady-state and transient
relaxometry, Z-spectra, arterial spin labelling, ASE oxygen extraction
and z-shim combination. Everything works on NumPy arrays and plain
JSON-style dictionaries.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Library overview

- `mriquant.polynomial`: `choose` and `Polynomial`, a multivariate
  polynomial whose terms are listed by `terms`, evaluated by `value` and
  described by `term_names`.
- `mriquant.region_contraction`: `RegionContraction`, a stochastic
  region-contraction optimiser, with `RCStatus`, `RegionContractionError`
  and `index_partial_sort`. `optimise` returns the best parameters found
  and raises `RegionContractionError` on invalid bounds, unsatisfiable
  constraints or a non-finite objective.
- `mriquant.steady_state`: `solve_steady_state` and `geometric_avg` for
  augmented Bloch matrices.
- `mriquant.pulses`: `RFPulse`, `MTPulse` and `PrepPulse`, each with
  `from_json` and `to_json`.
- `mriquant.sequences`: `MTSequence`, `SSSequence` and `RUFISSequence`,
  read with `from_json`; inconsistent descriptions raise `SequenceError`.
- `mriquant.ss_models`: `SST1Model` and `SST1T2Model`.
- `mriquant.transient_models`: `MUPAModel`, `MUPAB1Model` and
  `MUPAMTModel` (with `derived` giving the bound-pool fraction in percent).
- `mriquant.mtsat`: `MTSatProtocol` and `MTSatModel`, with `signals` and
  the closed-form `fit`.
- `mriquant.lorentzian`: `LorentzPool` and `LorentzModel`, a sum of one to
  three Lorentzians for Z-spectra.
- `mriquant.mtr`: `MTContrast`, `default_contrasts`, `contrasts_from_json`
  and `compute_contrasts` for MT ratio maps.
- `mriquant.zspec_b1`: `correct_voxel` and `correct_volume` for B1
  correction of Z-spectra acquired at several saturation powers.
- `mriquant.ssfp_emt`: `SSFPMTProtocol`, `EMTModel`, `saturation_rate`,
  `t2_free_from_a`, `fit_emt` and `EMTFitResult`.
- `mriquant.ase`: `fc_integrand`, `ASEModel` and `ASEFixDBVModel`.
- `mriquant.asl`: `CASLProtocol`, `cbf_scales` and `compute_cbf`.
- `mriquant.zshim`: `NoiseStats`, `noise_statistics` and `combine_zshims`.

## Example

```python
import numpy as np
from mriquant.sequences import RUFISSequence
from mriquant.transient_models import MUPAModel

sequence = RUFISSequence.from_json({
    "TR": 2e-3,
    "Tramp": 10e-3,
    "spokes_per_seg": 512,
    "FA": [2, 2],
    "Trf": [12, 12],
    "groups_per_seg": [1, 1],
    "prep_pulses": {
        "inv": {"FAeff": 180, "int_b1_sq": 1e5, "T_long": 5e-3, "T_trans": 5e-3},
        "none": {"FAeff": 0, "int_b1_sq": 0, "T_long": 0, "T_trans": 0},
    },
    "prep": ["inv", "none"],
})
model = MUPAModel(sequence)
print(model.signal(np.array([30.0, 1.0, 0.1])))
```

## What the package does not do

- It has no command-line programs; everything is called from Python.
- It does not read or write image files. Volumes, masks and maps are
  passed in and returned as NumPy arrays, and sequence descriptions as
  dictionaries already loaded from JSON.
- It does not simulate RF pulse waveforms to derive preparation-pulse
  parameters; `PrepPulse` values must be supplied.
- Apart from `fit_emt` and the closed-form `MTSatModel.fit`, it provides
  signal models but no voxel-wise fitting or simulation pipeline for them.