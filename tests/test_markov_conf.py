"""
Tests for elevation bucket resolution and Markov configuration validation.
"""
import numpy as np
import pytest

from sat_fading_lab.errors import ConfigurationError
from sat_fading_lab.fader_conf import LooConf, RayleighConf
from sat_fading_lab.markov_conf import BucketSelection, ElevationBucket, MarkovConf

from conftest import IDENTITY_3, CYCLE_3


class TestBucketSelection:

    def test_clamps_below_lowest(self, default_markov_conf):
        sel = default_markov_conf.select(5.0)
        assert sel == BucketSelection(0, 0, 0.0)
        assert sel.nearest == 0

    def test_clamps_above_highest(self, default_markov_conf):
        sel = default_markov_conf.select(89.0)
        assert sel == BucketSelection(3, 3, 0.0)
        assert sel.nearest == 3

    def test_exact_bucket(self, default_markov_conf):
        sel = default_markov_conf.select(45.0)
        assert sel.lower == 1
        assert sel.weight == pytest.approx(0.0)
        assert sel.nearest == 1

    def test_interpolation_weight(self, default_markov_conf):
        sel = default_markov_conf.select(50.0)
        assert (sel.lower, sel.upper) == (1, 2)
        assert sel.weight == pytest.approx(1.0 / 3.0)
        assert sel.nearest == 1
        assert default_markov_conf.select(56.0).nearest == 2

    def test_nan_elevation_rejected(self, default_markov_conf):
        with pytest.raises(ConfigurationError):
            default_markov_conf.select(float("nan"))


class TestInterpolation:

    def test_transition_row_is_linear_blend(self):
        buckets = [
            ElevationBucket(30.0, IDENTITY_3, (10.0, 10.0, 10.0)),
            ElevationBucket(60.0, CYCLE_3, (20.0, 40.0, 60.0)),
        ]
        conf = MarkovConf(buckets, RayleighConf([[(1, 1.0)] * 3] * 2))
        sel = conf.select(45.0)
        np.testing.assert_allclose(conf.transition_row(sel, 0), [0.5, 0.5, 0.0])
        np.testing.assert_allclose(conf.transition_row(sel, 2), [0.5, 0.0, 0.5])
        assert conf.mean_dwell_distance_m(sel, 1) == pytest.approx(25.0)

    def test_default_rows_sum_to_one_everywhere(self, default_markov_conf):
        for elevation in np.linspace(0.0, 90.0, 37):
            sel = default_markov_conf.select(float(elevation))
            for state in range(default_markov_conf.state_count):
                row = default_markov_conf.transition_row(sel, state)
                assert row.sum() == pytest.approx(1.0)
                assert np.all(row >= 0.0)

    def test_fader_parameters_follow_bucket(self, default_markov_conf):
        loo = LooConf.default()
        assert default_markov_conf.fader_parameters(3, 2) == loo.get_parameters(3)[2]


class TestValidation:

    def test_rows_must_sum_to_one(self):
        with pytest.raises(ConfigurationError, match="sum to 1"):
            ElevationBucket(30.0, ((0.5, 0.4), (0.0, 1.0)), (1.0, 1.0))

    def test_matrix_must_be_square(self):
        with pytest.raises(ConfigurationError, match="square"):
            ElevationBucket(30.0, ((0.5, 0.5, 0.0), (0.0, 1.0, 0.0)), (1.0, 1.0))

    def test_negative_probability(self):
        with pytest.raises(ConfigurationError):
            ElevationBucket(30.0, ((1.5, -0.5), (0.0, 1.0)), (1.0, 1.0))

    def test_dwell_length_and_sign(self):
        with pytest.raises(ConfigurationError, match="dwell distances"):
            ElevationBucket(30.0, IDENTITY_3, (1.0, 1.0))
        with pytest.raises(ConfigurationError, match="> 0"):
            ElevationBucket(30.0, IDENTITY_3, (1.0, 0.0, 1.0))

    def test_elevation_range(self):
        with pytest.raises(ConfigurationError):
            ElevationBucket(95.0, IDENTITY_3, (1.0, 1.0, 1.0))

    def test_buckets_must_ascend(self):
        buckets = [
            ElevationBucket(60.0, IDENTITY_3, (1.0, 1.0, 1.0)),
            ElevationBucket(30.0, IDENTITY_3, (1.0, 1.0, 1.0)),
        ]
        with pytest.raises(ConfigurationError, match="ascending"):
            MarkovConf(buckets, RayleighConf([[(1, 1.0)] * 3] * 2))

    def test_bucket_state_count_mismatch(self):
        buckets = [
            ElevationBucket(30.0, IDENTITY_3, (1.0, 1.0, 1.0)),
            ElevationBucket(60.0, ((1.0, 0.0), (0.0, 1.0)), (1.0, 1.0)),
        ]
        with pytest.raises(ConfigurationError, match="states"):
            MarkovConf(buckets, RayleighConf([[(1, 1.0)] * 3] * 2))

    def test_fader_table_must_cover_every_bucket(self):
        buckets = [
            ElevationBucket(30.0, IDENTITY_3, (1.0, 1.0, 1.0)),
            ElevationBucket(60.0, IDENTITY_3, (1.0, 1.0, 1.0)),
        ]
        with pytest.raises(ConfigurationError, match="elevation sets"):
            MarkovConf(buckets, RayleighConf([[(1, 1.0)] * 3] * 3))
        with pytest.raises(ConfigurationError, match="states"):
            MarkovConf(buckets, RayleighConf([[(1, 1.0)] * 2] * 2))

    def test_velocity_floor_and_initial_state(self):
        buckets = [ElevationBucket(30.0, IDENTITY_3, (1.0, 1.0, 1.0))]
        fader = RayleighConf([[(1, 1.0)] * 3])
        with pytest.raises(ConfigurationError, match="velocity_floor_mps"):
            MarkovConf(buckets, fader, velocity_floor_mps=0.0)
        with pytest.raises(ConfigurationError, match="initial_state"):
            MarkovConf(buckets, fader, initial_state=3)
        assert MarkovConf(buckets, fader, initial_state=2).initial_state == 2

    def test_unknown_default_family(self):
        with pytest.raises(ConfigurationError):
            MarkovConf.default(fader="rician")


class TestFromDict:

    def test_empty_dict_is_default(self):
        conf = MarkovConf.from_dict({})
        assert conf.state_count == 3
        assert conf.elevations == (30.0, 45.0, 60.0, 75.0)
        assert isinstance(conf.fader_conf, LooConf)

    def test_explicit_buckets(self):
        conf = MarkovConf.from_dict({
            "velocity_floor_mps": 1.5,
            "initial_state": 1,
            "buckets": [
                {"elevation_deg": 20, "transition_probabilities": [[0.9, 0.1], [0.2, 0.8]],
                 "mean_dwell_distance_m": [5, 3]},
                {"elevation_deg": 70, "transition_probabilities": [[0.95, 0.05], [0.3, 0.7]],
                 "mean_dwell_distance_m": [8, 2]},
            ],
            "fader": {"family": "rayleigh", "parameters": [[[8, 20.0], [8, 40.0]], [[8, 20.0], [8, 40.0]]]},
        })
        assert conf.state_count == 2
        assert conf.velocity_floor_mps == 1.5
        assert conf.initial_state == 1
        assert isinstance(conf.fader_conf, RayleighConf)

    def test_state_count_mismatch(self):
        with pytest.raises(ConfigurationError, match="state_count"):
            MarkovConf.from_dict({}, state_count=4)

    def test_missing_bucket_field(self):
        with pytest.raises(ConfigurationError, match="mean_dwell_distance_m"):
            MarkovConf.from_dict({
                "buckets": [{"elevation_deg": 20, "transition_probabilities": [[1.0]]}],
                "fader": {"family": "rayleigh", "parameters": [[[1, 1.0]]]},
            })
