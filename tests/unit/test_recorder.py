"""
Unit tests for labeled feature recording and export.
"""

import asyncio
import json

import pytest

from activity_sense.sensing.buffer import MotionSample
from activity_sense.sensing.classifier import HeuristicClassifier
from activity_sense.sensing.recorder import LabeledFeatureRecorder
from activity_sense.sensing.session import ActivitySession


def fill(session: ActivitySession, n: int) -> None:
    for i in range(n):
        session.ingest(MotionSample(timestamp=float(i), acc_x=float(i % 3), acc_y=9.8))


def make_session() -> ActivitySession:
    return ActivitySession(HeuristicClassifier(), capacity=100, tick_interval=60.0)


class TestCapture:
    @pytest.mark.asyncio
    async def test_capture_waits_for_enough_data(self):
        session = make_session()
        await session.start()
        recorder = LabeledFeatureRecorder(session)

        fill(session, 20)
        assert recorder.capture("Walking") is None
        assert recorder.waiting_for_data
        assert recorder.records == []

        fill(session, 20)
        record = recorder.capture("Walking")
        assert record.label == "Walking"
        assert record.features.n_samples == 40
        assert not recorder.waiting_for_data
        await session.stop()

    def test_capture_requires_label(self):
        recorder = LabeledFeatureRecorder(make_session())
        with pytest.raises(ValueError):
            recorder.capture()

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            LabeledFeatureRecorder(make_session(), interval=0)


class TestRecordingLoop:
    @pytest.mark.asyncio
    async def test_records_at_interval(self):
        session = make_session()
        await session.start()
        fill(session, 50)
        recorder = LabeledFeatureRecorder(session, interval=0.02)

        await recorder.start("Running")
        assert recorder.is_recording
        await asyncio.sleep(0.15)
        await recorder.stop()

        assert not recorder.is_recording
        assert len(recorder.records) >= 2
        assert {r.label for r in recorder.records} == {"Running"}
        await session.stop()

    @pytest.mark.asyncio
    async def test_start_requires_label(self):
        recorder = LabeledFeatureRecorder(make_session())
        with pytest.raises(ValueError):
            await recorder.start("")


class TestExport:
    @pytest.mark.asyncio
    async def test_export_format(self, tmp_path):
        session = make_session()
        await session.start()
        fill(session, 40)
        recorder = LabeledFeatureRecorder(session)
        recorder.capture("Sitting")
        recorder.capture("Standing")
        await session.stop()

        path = recorder.export(tmp_path / "out" / "data.json")
        data = json.loads(path.read_text(encoding="utf-8"))

        assert [row["label"] for row in data] == ["Sitting", "Standing"]
        row = data[0]
        assert "timestamp" in row
        assert row["acc_y_mean"] == pytest.approx(9.8)
        assert "n_samples" not in row
        assert len([k for k in row if k.endswith(("_mean", "_std"))]) == 12

    def test_export_empty(self, tmp_path):
        recorder = LabeledFeatureRecorder(make_session())
        path = recorder.export(tmp_path / "empty.json")
        assert json.loads(path.read_text()) == []

    @pytest.mark.asyncio
    async def test_clear(self):
        session = make_session()
        await session.start()
        fill(session, 40)
        recorder = LabeledFeatureRecorder(session)
        recorder.capture("Idle")
        recorder.clear()
        assert recorder.records == []
        await session.stop()
