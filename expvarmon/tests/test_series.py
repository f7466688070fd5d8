"""
Expvar Monitor - Delta/History Tests

Tests for display value computation, bounded history and target state.
"""

from datetime import datetime

import pytest

from expvarmon.errors import EndpointNotFoundError, FetchTimeoutError, NetworkError
from expvarmon.telemetry import SeriesState, Target, TargetStatus, build_aggregate
from expvarmon.variables import VarKind, parse_vars


class TestSeriesState:
    """Test the delta/history engine."""

    @pytest.mark.parametrize("kind", [VarKind.COUNTER, VarKind.DURATION])
    def test_delta_with_reset(self, kind):
        """Test deltas, including a counter reset clamped to zero."""
        state = SeriesState(capacity=10)

        values = [state.update(raw, kind) for raw in (100, 140, 130, 175)]

        assert values == [0, 40, 0, 45]
        assert list(state.history) == [0, 40, 0, 45]
        assert state.raw_previous == 175
        assert state.last_value == 45

    @pytest.mark.parametrize("kind", [VarKind.GAUGE, VarKind.MEMORY])
    def test_gauge_passthrough(self, kind):
        """Test that gauges are displayed as read."""
        state = SeriesState(capacity=10)

        values = [state.update(raw, kind) for raw in (100, 140, 130)]

        assert values == [100, 140, 130]
        assert state.raw_previous == 130

    def test_capacity(self):
        """Test that the oldest entries are dropped first."""
        state = SeriesState(capacity=3)

        for raw in (1, 2, 3, 4, 5):
            state.update(raw, VarKind.GAUGE)

        assert list(state.history) == [3, 4, 5]
        assert state.values == (3, 4, 5)

    def test_empty_state(self):
        state = SeriesState(capacity=5)

        assert state.last_value is None
        assert state.raw_previous is None
        assert state.max_value is None
        assert state.values == ()

    def test_max_value_tracks_window(self):
        """Test that the max follows values evicted from history."""
        state = SeriesState(capacity=2)

        for raw in (9, 1, 2):
            state.update(raw, VarKind.GAUGE)

        assert state.max_value == 2

    def test_float_deltas(self):
        state = SeriesState(capacity=5)

        state.update(1.5, VarKind.COUNTER)

        assert state.update(2.0, VarKind.COUNTER) == pytest.approx(0.5)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SeriesState(capacity=0)


class TestTarget:
    """Test Target state transitions."""

    def _target(self):
        return Target.create(
            "http://localhost:1234/debug/vars",
            parse_vars("mem:memstats.Alloc,counter:memstats.NumGC"),
            capacity=5,
        )

    def test_create(self):
        """Test that a series exists per variable from the start."""
        target = self._target()

        assert set(target.series) == {"memstats.Alloc", "memstats.NumGC"}
        assert target.status == TargetStatus.PENDING
        assert target.name == "localhost:1234"
        assert target.last_fetched_at is None

    def test_mark_online_uses_cmdline(self):
        """Test that the binary name replaces the address label."""
        target = self._target()
        now = datetime.now()

        target.mark_online(now, {"cmdline": ["/opt/bin/worker", "-v"]})

        assert target.status == TargetStatus.ONLINE
        assert target.name == "worker"
        assert target.last_fetched_at == now
        assert target.is_online is True

    def test_mark_online_without_cmdline(self):
        target = self._target()

        target.mark_online(datetime.now(), {"memstats": {}})

        assert target.name == "localhost:1234"

    def test_network_failure_is_offline(self):
        target = self._target()

        target.mark_failed(NetworkError(target.address, "connection refused"))

        assert target.status == TargetStatus.OFFLINE
        assert target.error == "connection refused"

    def test_timeout_is_offline(self):
        target = self._target()

        target.mark_failed(FetchTimeoutError(target.address, "Timed out after 3s"))

        assert target.status == TargetStatus.OFFLINE

    def test_missing_endpoint_is_error(self):
        target = self._target()

        target.mark_failed(EndpointNotFoundError(target.address, "Vars not found"))

        assert target.status == TargetStatus.ERROR
        assert target.error == "Vars not found"

    def test_to_dict(self):
        target = self._target()
        target.series["memstats.Alloc"].update(10, VarKind.MEMORY)

        data = target.to_dict()

        assert data["status"] == "pending"
        assert data["series"]["memstats.Alloc"]["history"] == [10]
        assert data["stale"] == []


class TestAggregate:
    """Test snapshot assembly."""

    def test_build_aggregate(self):
        variables = parse_vars("Goroutines")
        targets = [Target.create(f"http://localhost:{p}/debug/vars", variables, 5) for p in (1, 2)]
        now = datetime.now()

        aggregate = build_aggregate(targets, variables, now)

        assert aggregate.targets[0] is targets[0]
        assert aggregate.variables == tuple(variables)
        assert aggregate.timestamp == now
        assert aggregate.online_count == 0

    def test_aggregate_is_frozen(self):
        aggregate = build_aggregate([], [])

        with pytest.raises(Exception):
            aggregate.targets = ()

    def test_to_dict(self):
        variables = parse_vars("duration:Response.Mean Mean")
        aggregate = build_aggregate([], variables)

        data = aggregate.to_dict()

        assert data["timestamp"] is None
        assert data["variables"] == [{"name": "Mean", "kind": "duration", "path": "Response.Mean"}]
