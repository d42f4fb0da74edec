"""Tests for chunkscribe.domain.progress module."""

from __future__ import annotations

import pytest

from chunkscribe.domain.progress import (
    ASSEMBLING,
    ENGINE_LOAD,
    SPLITTING,
    TRANSCRIBING,
    Band,
    ProgressAggregator,
)


class TestBand:
    def test_phase_bands_cover_unit_range(self) -> None:
        assert ENGINE_LOAD.start == 0.0
        assert ENGINE_LOAD.end == SPLITTING.start
        assert SPLITTING.end == TRANSCRIBING.start
        assert TRANSCRIBING.end == ASSEMBLING.start
        assert ASSEMBLING.end == 1.0

    def test_at_maps_linearly(self) -> None:
        band = Band(0.2, 0.6)

        assert band.at(0.0) == pytest.approx(0.2)
        assert band.at(0.5) == pytest.approx(0.4)
        assert band.at(1.0) == pytest.approx(0.6)

    def test_at_clamps(self) -> None:
        band = Band(0.2, 0.6)

        assert band.at(-1.0) == pytest.approx(0.2)
        assert band.at(2.0) == pytest.approx(0.6)

    def test_sub(self) -> None:
        sub = Band(0.0, 0.5).sub(0.1, 0.3)

        assert sub.start == pytest.approx(0.05)
        assert sub.end == pytest.approx(0.15)

    def test_split_equal_slices(self) -> None:
        bands = TRANSCRIBING.split(3)

        assert len(bands) == 3
        assert bands[0].start == TRANSCRIBING.start
        assert bands[-1].end == TRANSCRIBING.end
        for left, right in zip(bands, bands[1:]):
            assert left.end == pytest.approx(right.start)
        assert all(b.width == pytest.approx(TRANSCRIBING.width / 3) for b in bands)

    def test_split_zero(self) -> None:
        assert Band(0.0, 1.0).split(0) == []


class TestProgressAggregator:
    def test_accepts_increasing_values(self) -> None:
        seen = []
        agg = ProgressAggregator(listener=lambda v, m: seen.append((v, m)))

        assert agg.update(0.1, "a") is True
        assert agg.update(0.5, "b") is True

        assert agg.value == 0.5
        assert seen == [(0.1, "a"), (0.5, "b")]

    def test_ignores_regression(self) -> None:
        seen = []
        agg = ProgressAggregator(listener=lambda v, m: seen.append(v))
        agg.update(0.6)

        assert agg.update(0.3) is False
        assert agg.value == 0.6
        assert seen == [0.6]

    def test_regression_message_kept_at_current_value(self) -> None:
        seen = []
        agg = ProgressAggregator(listener=lambda v, m: seen.append((v, m)))
        agg.update(0.6, "working")

        agg.update(0.2, "late news")

        assert seen[-1] == (0.6, "late news")
        assert agg.message == "late news"

    def test_clamps(self) -> None:
        agg = ProgressAggregator()

        agg.update(1.7)

        assert agg.value == 1.0

    def test_status_does_not_move_value(self) -> None:
        agg = ProgressAggregator()
        agg.update(0.4)

        agg.status("still going")

        assert agg.value == 0.4
        assert agg.message == "still going"

    def test_reporter_maps_into_band(self) -> None:
        agg = ProgressAggregator()
        report = agg.reporter(Band(0.5, 0.7))

        report(0.5, "half")

        assert agg.value == pytest.approx(0.6)
        assert agg.message == "half"

    def test_out_of_order_reporter_calls_never_decrease(self) -> None:
        seen = []
        agg = ProgressAggregator(listener=lambda v, m: seen.append(v))
        report = agg.reporter(TRANSCRIBING)

        for fraction in (0.1, 0.4, 0.2, 0.4, 0.9, 0.5, 1.0):
            report(fraction)

        assert seen == sorted(seen)
        assert agg.value == pytest.approx(TRANSCRIBING.end)
