"""
Tests for command parsing and the command engine.
"""

import pytest

from atc_sim.airspace import Airspace, default_airspace
from atc_sim.commands import (
    CommandEngine,
    Instruction,
    TokenStream,
    classify_clearance,
    parse_command,
)
from atc_sim.constants import CommandType
from atc_sim.exceptions import CommandParseError


@pytest.fixture
def arrival(fleet, make_arrival):
    ac = make_arrival("UAL123", x=20.0, y=0.0, altitude=50.0)
    fleet[ac.callsign] = ac
    return ac


@pytest.fixture
def departure(fleet, make_departure):
    ac = make_departure("AAL456")
    fleet[ac.callsign] = ac
    return ac


class TestParsing:
    """Tests for tokenizing and classifying instructions."""

    @pytest.mark.parametrize("value,expected", [
        ("5", CommandType.ALTITUDE),
        ("99", CommandType.ALTITUDE),
        ("050", CommandType.HEADING),
        ("100", CommandType.HEADING),
        ("270", CommandType.HEADING),
        ("OBK", CommandType.DIRECT),
        ("27R", CommandType.DIRECT),
        ("5.5", CommandType.HEADING),
        ("-5", CommandType.ALTITUDE),
        ("+10", CommandType.HEADING),
        ("12.75", CommandType.ALTITUDE),
        ("NAN", CommandType.DIRECT),
        ("INF", CommandType.DIRECT),
    ])
    def test_classify_clearance(self, value, expected):
        assert classify_clearance(value) == expected

    def test_chain_is_parsed_in_order(self):
        parsed = parse_command("ual123 c 5 x c obk s 200")

        assert parsed.callsign == "UAL123"
        assert parsed.instructions == [
            Instruction(CommandType.ALTITUDE, 5, expedite=True),
            Instruction(CommandType.DIRECT, "OBK"),
            Instruction(CommandType.SPEED, 200),
        ]

    def test_turn_hint_after_clearance_is_consumed(self):
        """Test an L directly after a C value is a turn hint, not a landing."""
        parsed = parse_command("UAL123 C 270 L")

        assert parsed.instructions == [Instruction(CommandType.HEADING, 270, turn="L")]
        assert not parsed.truncated

    def test_signed_and_decimal_values_truncate(self):
        parsed = parse_command("UAL123 C 5.5 C -5 C +10 C 12.75 S 180.9")

        assert parsed.instructions == [
            Instruction(CommandType.HEADING, 5),
            Instruction(CommandType.ALTITUDE, -5),
            Instruction(CommandType.HEADING, 10),
            Instruction(CommandType.ALTITUDE, 12),
            Instruction(CommandType.SPEED, 180),
        ]

    def test_unknown_tokens_are_skipped(self):
        parsed = parse_command("UAL123 FOO C 50 BAR T")

        assert [i.command_type for i in parsed.instructions] == [CommandType.ALTITUDE, CommandType.TAKEOFF]
        assert parsed.skipped == ["FOO", "BAR"]

    def test_missing_argument_stops_chain(self):
        parsed = parse_command("UAL123 C 50 C")

        assert parsed.instructions == [Instruction(CommandType.ALTITUDE, 50)]
        assert parsed.truncated

    def test_short_lines_are_ignored(self):
        assert parse_command("UAL123") is None
        assert parse_command("   ") is None

    def test_speed_disabled(self):
        parsed = parse_command("UAL123 S 200", allow_speed_control=False)

        assert parsed.instructions == []
        assert parsed.skipped == ["S", "200"]

    def test_strict_mode_raises(self):
        with pytest.raises(CommandParseError):
            parse_command("UAL123 FOO", strict=True)
        with pytest.raises(CommandParseError):
            parse_command("UAL123 L", strict=True)
        with pytest.raises(CommandParseError):
            parse_command("UAL123", strict=True)

    def test_token_stream_lookahead(self):
        tokens = TokenStream(["C", "X"])

        assert tokens.peek() == "C"
        assert tokens.take_if(("X",)) is None
        assert tokens.take() == "C"
        assert tokens.take_if(("X",)) == "X"
        assert tokens.take() is None


class TestCommandEngine:
    """Tests for applying commands to aircraft."""

    def test_altitude_then_fix(self, engine, arrival, log_lines):
        """Test a chained altitude and direct-to clearance."""
        lines = engine.execute("UAL123 C 5 C OBK")

        assert lines == ["> UAL123 C 5 C OBK", "UAL123 altitude 500", "UAL123 cleared to OBK"]
        assert log_lines == lines
        assert arrival.target_altitude == 5.0
        assert arrival.nav_fix.name == "OBK"

    def test_unknown_fix_keeps_altitude(self, fleet, make_arrival, log_lines):
        """Test an unknown fix is reported after the altitude is applied."""
        airspace = Airspace.from_dict({"runways": [], "fixes": {"DPA": {"x": 1, "y": 1}}})
        engine = CommandEngine(airspace, fleet.get, emit=log_lines.append)
        ac = make_arrival("UAL123")
        fleet["UAL123"] = ac

        lines = engine.execute("UAL123 C 5 C OBK")

        assert lines[1:] == ["UAL123 altitude 500", "Unknown Fix: OBK"]
        assert ac.target_altitude == 5.0
        assert ac.nav_fix is None

    def test_numeric_values_are_not_fixes(self, engine, arrival):
        """Test signed and decimal clearances apply as numbers."""
        lines = engine.execute("UAL123 C 5.5 C -5 C +10")

        assert lines[1:] == ["UAL123 heading 5", "UAL123 altitude -500", "UAL123 heading 10"]
        assert arrival.target_heading == 10.0
        assert arrival.target_altitude == 0.0

    @pytest.mark.parametrize("command,heading", [
        ("UAL123 C 270", 270.0),
        ("UAL123 C 050", 50.0),
        ("ual123 c 180", 180.0),
    ])
    def test_heading_clearance(self, engine, arrival, command, heading):
        lines = engine.execute(command)

        assert arrival.target_heading == heading
        assert lines[-1] == f"UAL123 heading {int(heading)}"

    def test_heading_cancels_fix(self, engine, arrival):
        engine.execute("UAL123 C OBK")
        engine.execute("UAL123 C 090")

        assert arrival.nav_fix is None
        assert arrival.target_heading == 90.0

    def test_expedite(self, engine, arrival):
        lines = engine.execute("UAL123 C 20 X")

        assert lines[-1] == "UAL123 altitude 2000 EXPEDITE"
        assert arrival.expedite

    def test_unknown_callsign(self, engine, arrival, log_lines):
        lines = engine.execute("DAL1 C 50")

        assert lines == ["Unknown ID: DAL1"]
        assert arrival.target_altitude == 50.0

    def test_single_token_is_silent(self, engine, arrival, log_lines):
        assert engine.execute("UAL123") == []
        assert log_lines == []

    def test_takeoff_needs_altitude(self, engine, departure):
        """Test takeoff is refused before an altitude clearance."""
        lines = engine.execute("AAL456 T")

        assert lines[-1] == "AAL456 needs altitude clearance first"
        assert departure.is_on_ground
        assert not departure.is_taking_off

    def test_takeoff_after_altitude(self, engine, departure):
        lines = engine.execute("AAL456 C 50 T")

        assert lines[-1] == "AAL456 cleared for takeoff"
        assert departure.is_taking_off
        assert not departure.is_on_ground

    def test_takeoff_when_airborne(self, engine, arrival):
        lines = engine.execute("UAL123 T")
        assert lines[-1] == "UAL123 already airborne"

    def test_landing_refused_when_too_high(self, engine, arrival):
        """Test a high aircraft keeps its navigation when refused a landing."""
        engine.execute("UAL123 C OBK")
        lines = engine.execute("UAL123 L 27")

        assert lines[-1] == "UAL123 too high. Alt: 50.0, Elev: 0.0, AGL: 50.0"
        assert arrival.landing_runway is None
        assert arrival.nav_fix.name == "OBK"

    def test_landing_cleared(self, engine, arrival):
        arrival.altitude = 20.0
        lines = engine.execute("UAL123 L 27")

        assert lines[-1] == "UAL123 cleared to land 27"
        assert arrival.landing_runway.name == "27"
        assert arrival.nav_fix is None

    def test_landing_ceiling_uses_field_elevation(self, fleet, make_arrival):
        """Test the landing gate measures height above the field."""
        engine = CommandEngine(default_airspace(), fleet.get)
        low = make_arrival("UAL101", altitude=36.0)
        high = make_arrival("UAL102", altitude=37.0)
        fleet.update({"UAL101": low, "UAL102": high})

        assert engine.execute("UAL101 L 27R")[-1] == "UAL101 cleared to land 27R"
        assert engine.execute("UAL102 L 27R")[-1] == "UAL102 too high. Alt: 37.0, Elev: 6.7, AGL: 30.3"

    def test_unknown_runway(self, engine, arrival):
        arrival.altitude = 20.0
        lines = engine.execute("UAL123 L 99X")

        assert lines[-1] == "Unknown Runway: 99X"
        assert arrival.landing_runway is None

    def test_abort(self, engine, arrival):
        arrival.altitude = 20.0
        engine.execute("UAL123 L 27")
        lines = engine.execute("UAL123 A")

        assert lines[-1] == "UAL123 approach aborted"
        assert arrival.landing_runway is None

    def test_speed(self, engine, arrival):
        assert engine.execute("UAL123 S 200")[-1] == "UAL123 speed 200"
        assert arrival.target_speed == 200.0

        assert engine.execute("UAL123 S FAST")[-1] == "Invalid speed: FAST"
        assert arrival.target_speed == 200.0

    def test_hold(self, engine, arrival):
        assert engine.execute("UAL123 W")[-1] == "UAL123 hold position"

    def test_truncated_chain_keeps_applied_instructions(self, engine, arrival):
        lines = engine.execute("UAL123 C 40 C")

        assert lines == ["> UAL123 C 40 C", "UAL123 altitude 4000"]
        assert arrival.target_altitude == 40.0

    def test_metrics_recorded(self, engine, arrival, departure, metrics):
        engine.execute("UAL123 C 40 C OBK")
        engine.execute("AAL456 T")

        assert metrics.commands_issued == 2
        assert metrics.commands_rejected == 1
        assert metrics.commands_by_type["altitude"] == 1
        assert metrics.commands_by_type["direct"] == 1
