import json
import logging
import math

import numpy as np
import pytest

from zone_alignment.alignment.drift import DriftState
from zone_alignment.audit.payload import METHOD_MANUAL, METHOD_MARKER, AlignmentPayload
from zone_alignment.logging_utils import add_file_handler, setup_logger
from zone_alignment.sinks import LoggingSink, NullSink
from zone_alignment.spatial import Pose3D, Quaternion, Vector3


def _pose():
    return Pose3D(
        Vector3(1.0, 2.0, 3.0),
        Quaternion.from_axis_angle(Vector3(0.0, 0.0, 1.0), math.radians(90.0)),
    )


def test_marker_payload_from_pose():
    payload = AlignmentPayload.from_pose(METHOD_MARKER, _pose(), 1234, marker_ids=["M1"], alignment_score=0.9)
    data = payload.as_dict()

    assert data["method"] == "marker"
    assert data["markerIds"] == ["M1"]
    assert data["timestamp"] == 1234
    assert data["alignmentScore"] == 0.9
    assert data["worldPosition"] == {"x": 1.0, "y": 2.0, "z": 3.0}
    assert data["worldRotationEuler"]["z"] == pytest.approx(90.0)
    assert "numPoints" not in data


def test_manual_payload_counts_points():
    data = AlignmentPayload.from_pose(METHOD_MANUAL, _pose(), 1, num_points=4).as_dict()

    assert data["method"] == "manual"
    assert data["markerIds"] == []
    assert data["numPoints"] == 4
    assert "alignmentScore" not in data


def test_logging_sink_writes_json(caplog):
    logger = logging.getLogger("zone_alignment.test_sink")
    sink = LoggingSink(logger)

    with caplog.at_level(logging.INFO, logger="zone_alignment.test_sink"):
        sink.write_alignment(AlignmentPayload.from_pose(METHOD_MARKER, _pose(), 5, marker_ids=["M9"]))
        sink.write_drift(DriftState(is_degraded=True, changed=True, average_score=np.float32(0.5)), 6)

    first, second = caplog.records[-2:]
    assert first.getMessage().startswith("AR_ALIGNMENT_SET ")
    assert json.loads(first.getMessage().split(" ", 1)[1])["markerIds"] == ["M9"]
    assert second.getMessage().startswith("alignment_drift ")
    body = json.loads(second.getMessage().split(" ", 1)[1])
    assert body == {"state": "degraded", "score": "0.500", "timestamp": 6}


def test_null_sink_accepts_events():
    sink = NullSink()
    sink.write_alignment(AlignmentPayload(method=METHOD_MARKER, timestamp_ms=0))
    sink.write_drift(DriftState(False, False, np.float32(1.0)), 0)
    sink.close()


def test_setup_logger_is_idempotent():
    logger = setup_logger("idempotent")
    again = setup_logger("idempotent")

    assert logger is again
    assert logger.name == "zone_alignment.idempotent"
    assert len(logger.handlers) == 1


def test_file_handler_includes_session_name(tmp_path):
    logger = setup_logger("filecheck")
    log_path = tmp_path / "session.log"
    add_file_handler(logger, "filecheck", str(log_path))

    logger.info("hello")
    file_handler = logger.handlers[-1]
    file_handler.close()
    logger.removeHandler(file_handler)

    assert "[filecheck] hello" in log_path.read_text(encoding="utf-8")


def test_setup_logger_with_log_path(tmp_path):
    log_path = tmp_path / "align.log"
    logger = setup_logger("withfile", log_path=str(log_path))

    logger.warning("drifting")
    assert len(logger.handlers) == 2
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    assert "WARNING [withfile] drifting" in log_path.read_text(encoding="utf-8")
