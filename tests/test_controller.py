"""
Tests for the traffic controller session loop.
"""

from unittest.mock import Mock

import pytest

from atc_sim.aircraft import Aircraft
from atc_sim.airspace import Airspace
from atc_sim.config import create_default_config
from atc_sim.controller import TrafficController


class TestSessionStart:
    """Tests for initial traffic."""

    def test_start_spawns_initial_traffic(self, controller):
        """Test start seeds one random aircraft plus two departures."""
        controller.start()

        assert len(controller.aircraft) == 3
        departures = [ac for ac in controller.aircraft if not ac.is_arrival]
        assert len(departures) >= 2

    def test_departures_wait_at_thresholds(self, controller, airspace):
        controller.start()
        thresholds = {runway.threshold: runway.heading for runway in airspace.runways}

        for ac in controller.aircraft:
            if ac.is_arrival:
                continue
            assert ac.is_on_ground
            assert ac.speed == 0.0
            assert ac.altitude == 0.0
            assert thresholds[(ac.x, ac.y)] == ac.heading
            assert ac.callsign.startswith("AAL")

    def test_arrival_spawns_on_boundary(self, controller):
        """Test arrivals enter on the boundary heading for the center."""
        ac = controller.spawn_arrival()

        assert ac.is_arrival
        assert ac.callsign.startswith("UAL") and len(ac.callsign) == 6
        assert ac.distance_from_center() == pytest.approx(controller.boundary_radius)
        assert 50 <= ac.altitude <= 99
        assert ac.speed == 250.0

        ac.update(0.1)
        assert ac.distance_from_center() < controller.boundary_radius

    def test_callsigns_are_unique(self, controller):
        for _ in range(60):
            controller.spawn_arrival()

        callsigns = [ac.callsign for ac in controller.aircraft]
        assert len(callsigns) == len(set(callsigns)) == 60

    def test_same_seed_same_traffic(self, airspace, default_config):
        first = TrafficController(airspace, default_config, seed=7)
        second = TrafficController(airspace, default_config, seed=7)
        first.start()
        second.start()

        assert [ac.get_state() for ac in first.aircraft] == [ac.get_state() for ac in second.aircraft]

    def test_spawn_cap(self, airspace):
        config = create_default_config(max_aircraft=2)
        controller = TrafficController(airspace, config, seed=1)
        controller.start()

        assert len(controller.aircraft) == 2
        assert controller.spawn_arrival() is None


class TestTick:
    """Tests for tick ordering, scoring and spawning."""

    def test_tick_clamps_dt(self, controller):
        controller.tick(5.0)
        assert controller.time_elapsed == pytest.approx(0.1)

        controller.tick(-1.0)
        assert controller.time_elapsed == pytest.approx(0.1)

    @pytest.mark.parametrize("dt", [float("nan"), float("inf"), float("-inf")])
    def test_tick_ignores_non_finite_dt(self, controller, dt):
        controller.start()
        positions = [(ac.x, ac.y, ac.altitude) for ac in controller.aircraft]

        controller.tick(dt)

        assert controller.time_elapsed == 0.0
        assert [(ac.x, ac.y, ac.altitude) for ac in controller.aircraft] == positions
        assert controller.spawn_timer == controller.config.spawn.initial_delay

    def test_advance_splits_elapsed_time(self, controller):
        ticks = controller.advance(1.0)

        assert ticks == 10
        assert controller.time_elapsed == pytest.approx(1.0)
        assert controller.metrics.ticks == 10

    @pytest.mark.parametrize("elapsed", [float("nan"), float("inf"), 0.0, -3.0])
    def test_advance_without_usable_time_runs_no_ticks(self, controller, elapsed):
        assert controller.advance(elapsed) == 0
        assert controller.time_elapsed == 0.0

    def test_spawn_timer(self, controller):
        """Test the first spawn arrives after the initial delay and re-arms the timer."""
        controller.advance(1.9)
        assert controller.aircraft == []

        controller.advance(0.5)
        assert len(controller.aircraft) == 1
        assert 9.0 < controller.spawn_timer <= 20.0

    def test_landed_arrival_is_retired(self, controller, make_arrival):
        """Test a stopped arrival on the ground scores a landing."""
        removed = Mock()
        scores = Mock()
        controller.on_aircraft_removed = removed
        controller.on_score_updated = scores

        ac = make_arrival("UAL500", x=0.0, y=0.0, altitude=0.0, speed=0.0)
        ac.is_on_ground = True
        controller.add_aircraft(ac)

        controller.tick(0.1)

        assert controller.aircraft == []
        assert controller.score == pytest.approx(50.0)
        removed.assert_called_once_with(ac)
        scores.assert_called_with(50.0)
        assert controller.metrics.landings == 1

    def test_departure_exit_is_retired(self, controller, make_departure):
        """Test a departure leaving the boundary scores an exit."""
        ac = make_departure("AAL500", x=49.99, y=0.0, heading=90.0, altitude=50.0, speed=250.0)
        assert not ac.is_on_ground
        controller.add_aircraft(ac)

        controller.tick(0.1)

        assert controller.aircraft == []
        assert controller.score == pytest.approx(50.0)
        assert controller.metrics.departures_exited == 1

    def test_arrival_outside_boundary_is_kept(self, controller, make_arrival):
        ac = make_arrival("UAL500", x=60.0, y=0.0, heading=90.0)
        controller.add_aircraft(ac)

        controller.tick(0.1)
        assert controller.aircraft == [ac]
        assert controller.score == 0.0

    def test_separation_penalty(self, controller, make_arrival):
        """Test each violating pair drains the score every tick."""
        a = make_arrival("UAL101", x=20.0, y=0.0, heading=0.0, altitude=50.0)
        b = make_arrival("UAL102", x=21.0, y=0.0, heading=0.0, altitude=50.0)
        controller.add_aircraft(a)
        controller.add_aircraft(b)

        report = controller.tick(0.1)
        controller.tick(0.1)

        assert report.violation_count == 1
        assert a.violation and b.violation
        assert controller.score == pytest.approx(-0.2)
        assert controller.metrics.violation_pair_ticks == 2

    def test_reset(self, controller):
        controller.start()
        controller.advance(1.0)
        controller.execute(f"{controller.aircraft[0].callsign} C 40")

        controller.reset()

        assert controller.aircraft == []
        assert controller.score == 0.0
        assert controller.time_elapsed == 0.0
        assert list(controller.log_history) == []
        assert controller.metrics.ticks == 0


class TestOperatorSurface:
    """Tests for command routing, lookups and snapshots."""

    def test_execute_logs_to_history_and_callback(self, controller, make_arrival):
        on_log = Mock()
        controller.on_log = on_log
        controller.add_aircraft(make_arrival("UAL101"))

        lines = controller.execute("ual101 c 30")

        assert lines == ["> UAL101 C 30", "UAL101 altitude 3000"]
        assert list(controller.log_history) == lines
        assert on_log.call_count == 2
        assert controller.get_aircraft("UAL101").target_altitude == 30.0

    def test_log_history_is_bounded(self, controller):
        for i in range(250):
            controller.execute(f"NOPE{i} C 10")

        assert len(controller.log_history) == 200
        assert controller.log_history[-1] == "Unknown ID: NOPE249"

    def test_get_aircraft_is_case_insensitive(self, controller, make_arrival):
        ac = controller.add_aircraft(make_arrival("UAL101"))

        assert controller.get_aircraft("ual101") is ac
        assert controller.get_aircraft("UAL999") is None

    def test_duplicate_callsign_rejected(self, controller, make_arrival):
        controller.add_aircraft(make_arrival("UAL101"))
        with pytest.raises(ValueError):
            controller.add_aircraft(make_arrival("UAL101"))

    def test_added_callback(self, controller):
        added = Mock()
        controller.on_aircraft_added = added

        ac = controller.spawn_arrival()
        added.assert_called_once_with(ac)
        assert controller.metrics.arrivals_spawned == 1

    def test_remove_aircraft(self, controller, make_arrival):
        controller.add_aircraft(make_arrival("UAL101"))

        assert controller.remove_aircraft("UAL101") is True
        assert controller.remove_aircraft("UAL101") is False
        assert controller.score == 0.0

    def test_get_state(self, controller):
        controller.start()
        controller.tick(0.1)
        state = controller.get_state()

        assert set(state) == {"time", "score", "spawn_timer", "aircraft", "violations", "log"}
        assert len(state["aircraft"]) == 3
        assert {"id", "x", "y", "altitude", "trail"} <= set(state["aircraft"][0])

    def test_layout_radius_overrides_config(self, layout):
        layout["boundary_radius"] = 25.0
        controller = TrafficController(Airspace.from_dict(layout), seed=0)

        assert controller.boundary_radius == 25.0
        ac = controller.spawn_arrival()
        assert ac.distance_from_center() == pytest.approx(25.0)

    def test_full_session_runs(self, airspace):
        """Test a long unattended session keeps running and scores only penalties or credits."""
        controller = TrafficController(airspace, create_default_config(), seed=3)
        controller.start()
        controller.advance(120.0)

        assert controller.metrics.ticks == 1200
        assert controller.metrics.arrivals_spawned + controller.metrics.departures_spawned >= 4
        assert all(isinstance(ac, Aircraft) for ac in controller.aircraft)
