"""Pytest configuration and shared fixtures for sat-fading-lab tests."""
import pytest
import numpy as np
from sat_fading_lab.bbframe_conf import BbFrameConf, BbFrameEntry
from sat_fading_lab.enums import ChannelType, FrameType, LinkKey, ModCod
from sat_fading_lab.fader_conf import LooConf, RayleighConf
from sat_fading_lab.markov_conf import ElevationBucket, MarkovConf
from sat_fading_lab.timeline import Timeline


# ============================================================================
# NUMPY FIXTURES
# ============================================================================

@pytest.fixture
def rng_seed():
    """Fixed random seed for reproducible tests."""
    return 42


@pytest.fixture
def np_rng(rng_seed):
    """NumPy random generator with fixed seed."""
    return np.random.default_rng(rng_seed)


# ============================================================================
# LINK FIXTURES
# ============================================================================

@pytest.fixture
def fwd_key():
    """Forward user link of the first terminal."""
    return LinkKey("00:00:00:00:00:01", ChannelType.FORWARD_USER_CH)


@pytest.fixture
def rtn_key():
    """Return user link of the first terminal."""
    return LinkKey("00:00:00:00:00:01", ChannelType.RETURN_USER_CH)


@pytest.fixture
def timeline():
    """Empty timeline at t = 0."""
    return Timeline()


# ============================================================================
# MARKOV FIXTURES
# ============================================================================

IDENTITY_3 = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))
CYCLE_3 = ((0.0, 1.0, 0.0), (0.0, 0.0, 1.0), (1.0, 0.0, 0.0))


def deterministic_loo_conf(levels_db):
    """
    Loo table whose states sit at fixed levels.

    ``levels_db[bucket][state]`` is the direct-signal mean; the standard
    deviation is zero and multipath is negligible, so samples equal the level
    to well under 0.01 dB.
    """
    return LooConf([
        [(level, 0.0, -120.0, 4, 4, 1.0, 30.0) for level in bucket]
        for bucket in levels_db
    ])


@pytest.fixture
def default_markov_conf():
    """Default 3-state Loo chain."""
    return MarkovConf.default()


@pytest.fixture
def rayleigh_markov_conf():
    """Default 3-state Rayleigh chain."""
    return MarkovConf.default(fader="rayleigh")


@pytest.fixture
def frozen_markov_conf():
    """
    Chain that never leaves its state, with one distinct level per bucket.

    Bucket levels: 30 deg -> -30 dB, 45 deg -> -20 dB, 60 deg -> -10 dB, 75 deg -> 0 dB.
    """
    levels = [[-30.0] * 3, [-20.0] * 3, [-10.0] * 3, [0.0] * 3]
    buckets = [
        ElevationBucket(elevation, IDENTITY_3, (10.0, 10.0, 10.0))
        for elevation in (30.0, 45.0, 60.0, 75.0)
    ]
    return MarkovConf(buckets, deterministic_loo_conf(levels))


@pytest.fixture
def cycling_markov_conf():
    """
    Chain that cycles 0 -> 1 -> 2 -> 0 with state levels 0, -10 and -20 dB.
    """
    levels = [[0.0, -10.0, -20.0]] * 2
    buckets = [
        ElevationBucket(elevation, CYCLE_3, (1.0, 1.0, 1.0))
        for elevation in (30.0, 60.0)
    ]
    return MarkovConf(buckets, deterministic_loo_conf(levels), velocity_floor_mps=0.5)


@pytest.fixture
def single_oscillator_rayleigh_conf():
    """Rayleigh table with one oscillator per state (constant 0 dB envelope)."""
    return RayleighConf([[(1, 30.0)] * 3] * 4)


# ============================================================================
# BBFRAME FIXTURES
# ============================================================================

@pytest.fixture
def dvbs2_conf():
    """DVB-S2 table at 27.5 MBaud with pilots."""
    return BbFrameConf.dvbs2()


@pytest.fixture
def small_bbframe_conf():
    """Table where QPSK 3/4 short frames hold exactly 1000 bytes."""
    return BbFrameConf(
        {
            (ModCod.QPSK_3_TO_4, FrameType.SHORT_FRAME): BbFrameEntry(payload_bits=8000, duration_s=3.0e-4),
            (ModCod.QPSK_3_TO_4, FrameType.NORMAL_FRAME): BbFrameEntry(payload_bits=32000, duration_s=1.2e-3),
        },
        dummy_frame_duration_s=1.2e-4,
    )


# ============================================================================
# TRACE FIXTURES
# ============================================================================

def write_trace(root, subdir, key, rows, header=None):
    """Write a whitespace-separated trace file for ``key`` under ``root/subdir``."""
    directory = root / subdir
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{key.filename_stem}.dat"
    lines = []
    if header:
        lines.append(f"# {header}")
    lines.extend(" ".join(repr(float(v)) for v in row) for row in rows)
    path.write_text("\n".join(lines) + "\n")
    return path
