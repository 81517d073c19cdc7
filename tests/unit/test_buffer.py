"""
Unit tests for the motion sample type and sliding-window buffer.
"""

import pytest

from activity_sense.sensing.buffer import CHANNELS, MotionSample, SampleBuffer


def make_sample(i: int) -> MotionSample:
    return MotionSample(
        timestamp=float(i),
        acc_x=float(i), acc_y=9.8, acc_z=0.0,
        gyro_alpha=0.0, gyro_beta=0.0, gyro_gamma=float(-i),
    )


class TestMotionSample:
    def test_channels_order(self):
        s = MotionSample(1.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0)
        assert s.channels() == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)
        assert len(s.channels()) == len(CHANNELS)

    def test_missing_channels_default_to_zero(self):
        s = MotionSample(timestamp=0.0, acc_y=9.8)
        assert s.channels() == (0.0, 9.8, 0.0, 0.0, 0.0, 0.0)

    def test_sample_is_immutable(self):
        s = make_sample(1)
        with pytest.raises(AttributeError):
            s.acc_x = 5.0


class TestSampleBuffer:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            SampleBuffer(0)

    def test_append_below_capacity(self):
        buf = SampleBuffer(capacity=10)
        for i in range(3):
            buf.append(make_sample(i))
        assert len(buf) == 3
        assert [s.timestamp for s in buf.snapshot()] == [0.0, 1.0, 2.0]

    def test_overflow_evicts_oldest_first(self):
        buf = SampleBuffer(capacity=100)
        for i in range(101):
            buf.append(make_sample(i))
        samples = buf.snapshot()
        assert len(samples) == 100
        assert samples[0].timestamp == 1.0
        assert samples[-1].timestamp == 100.0

    @pytest.mark.parametrize("n_appended", [0, 1, 5, 6, 17])
    def test_length_is_min_of_appended_and_capacity(self, n_appended):
        buf = SampleBuffer(capacity=6)
        for i in range(n_appended):
            buf.append(make_sample(i))
        assert len(buf) == min(n_appended, 6)
        expected = list(range(max(0, n_appended - 6), n_appended))
        assert [int(s.timestamp) for s in buf.snapshot()] == expected

    def test_snapshot_is_a_copy(self):
        buf = SampleBuffer(capacity=5)
        buf.append(make_sample(0))
        snap = buf.snapshot()
        buf.append(make_sample(1))
        assert len(snap) == 1
        assert len(buf) == 2

    def test_latest(self):
        buf = SampleBuffer(capacity=10)
        for i in range(7):
            buf.append(make_sample(i))
        last_3 = buf.latest(3)
        assert [s.timestamp for s in last_3] == [4.0, 5.0, 6.0]
        assert len(buf.latest(50)) == 7
        assert buf.latest(0) == []

    def test_reset(self):
        buf = SampleBuffer(capacity=10)
        for i in range(5):
            buf.append(make_sample(i))
        buf.reset()
        assert len(buf) == 0
        assert buf.snapshot() == []
        assert buf.capacity == 10
