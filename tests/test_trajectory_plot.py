from __future__ import annotations

import logging

import matplotlib

matplotlib.use("Agg")

from datetime import datetime, timezone  # noqa: E402

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from padelmotion.analysis.trajectory import reconstruct  # noqa: E402
from padelmotion.core.models import Hand, Movement, MovementType, Sample, Session  # noqa: E402
from padelmotion.dataio.session_store import DirectorySessionStore  # noqa: E402
from padelmotion.sensors.motion import MotionReading, reading_to_json  # noqa: E402
from padelmotion.tools import trajectory_plot  # noqa: E402


def test_format_elapsed() -> None:
    assert trajectory_plot.format_elapsed(0.0) == "00:00:00.000"
    assert trajectory_plot.format_elapsed(1.2344) == "00:00:01.234"
    assert trajectory_plot.format_elapsed(3723.0456) == "01:02:03.046"


def test_samples_from_recording(tmp_path) -> None:
    path = tmp_path / "rec.jsonl"
    lines = [reading_to_json(MotionReading(timestamp=5.0 + i * 0.1)) for i in range(4)]
    path.write_text("\n".join(["garbage"] + lines) + "\n", encoding="utf-8")
    samples = trajectory_plot.samples_from_recording(path)
    assert [s.index for s in samples] == [0, 1, 2, 3]
    assert samples[0].relative_timestamp == 0.0


def test_pick_movement() -> None:
    session = Session()
    a = Movement(session_id=session.id)
    b = Movement(session_id=session.id)
    movements = (a, b)
    assert trajectory_plot.pick_movement(movements, None) is b
    assert trajectory_plot.pick_movement(movements, a.id) is a
    assert trajectory_plot.pick_movement(movements, "0") is a
    with pytest.raises(ValueError):
        trajectory_plot.pick_movement(movements, "7")
    with pytest.raises(ValueError):
        trajectory_plot.pick_movement((), None)


def test_build_figure_draws_one_segment_per_pair(tmp_path) -> None:
    samples = [
        Sample(
            movement_id="m",
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
            sensor_timestamp=i / 60.0,
            relative_timestamp=i / 60.0,
            index=i,
            user_acceleration_x=1.0,
        )
        for i in range(6)
    ]
    fig, ax = trajectory_plot.build_trajectory_figure(reconstruct(samples), "test")
    try:
        fig.canvas.draw()
        assert len(ax.collections) >= 1
        assert len(ax.collections[0].get_colors()) == 5
        assert "test" in ax.get_title()
    finally:
        plt.close(fig)


def test_main_saves_stored_movement(tmp_path) -> None:
    session = Session()
    movement = Movement(session_id=session.id, movement_type=MovementType.SERVE, hand=Hand.LEFT)
    movement.finalize(
        Sample(
            movement_id=movement.id,
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
            sensor_timestamp=i / 60.0,
            relative_timestamp=i / 60.0,
            index=i,
            user_acceleration_y=0.5,
        )
        for i in range(8)
    )
    session.add_movement(movement)
    session.end()
    store = DirectorySessionStore(tmp_path / "sessions")
    store.insert(session)
    store.save()

    out = tmp_path / "movement.png"
    code = trajectory_plot.main(
        ["--session", session.id, "--sessions-dir", str(tmp_path / "sessions"), "--output", str(out)]
    )
    plt.close("all")
    assert code == 0
    assert out.exists()


def test_main_times_reconstruction_in_debug_mode(tmp_path, monkeypatch, caplog) -> None:
    recording = tmp_path / "rec.jsonl"
    recording.write_text(
        "\n".join(reading_to_json(MotionReading(timestamp=i / 60.0)) for i in range(4)) + "\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PADELMOTION_DEBUG", "1")
    caplog.set_level(logging.DEBUG, logger="padelmotion.tools.trajectory_plot")

    code = trajectory_plot.main(["--file", str(recording), "--output", str(tmp_path / "rec.png")])
    plt.close("all")

    assert code == 0
    assert "Trajectory reconstruction of 4 samples took" in caplog.text
