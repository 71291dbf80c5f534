"""
Command parsing and dispatch.

Operator input is one line of free text: a callsign followed by a chain of
instructions, e.g. ``UAL123 C 5 X C OBK S 200``. The parser turns the chain
into ``Instruction`` objects; the ``CommandEngine`` applies them in order to
the addressed aircraft and reports each one on the operator log.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union

from .aircraft import Aircraft
from .airspace import Airspace
from .constants import CommandType, HEADING_DIGITS, HEADING_MIN_VALUE
from .exceptions import CommandParseError


logger = logging.getLogger(__name__)


EXPEDITE_TOKENS = ("X", "EX")
TURN_TOKENS = ("L", "R")
NUMBER_PATTERN = re.compile(r"^[+-]?[0-9]+(\.[0-9]+)?$")


class TokenStream:
    """Iterator over command tokens with one-token lookahead."""

    def __init__(self, tokens: Iterable[str]):
        self._tokens = list(tokens)
        self._index = 0

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self._index >= len(self._tokens):
            raise StopIteration
        token = self._tokens[self._index]
        self._index += 1
        return token

    def peek(self) -> Optional[str]:
        """Return the next token without consuming it."""
        if self._index >= len(self._tokens):
            return None
        return self._tokens[self._index]

    def take(self) -> Optional[str]:
        """Consume and return the next token, or None when exhausted."""
        return next(self, None)

    def take_if(self, options: Iterable[str]) -> Optional[str]:
        """Consume the next token only if it is one of the options."""
        token = self.peek()
        if token is not None and token in options:
            self._index += 1
            return token
        return None


@dataclass(frozen=True)
class Instruction:
    """
    One parsed operator instruction.

    Attributes:
        command_type: Instruction kind
        value: Heading/altitude/speed number, or fix/runway name
        expedite: Expedite marker on an altitude clearance
        turn: Turn direction hint ("L"/"R"); accepted but not used
    """
    command_type: CommandType
    value: Optional[Union[int, str]] = None
    expedite: bool = False
    turn: Optional[str] = None


@dataclass
class ParsedCommand:
    """A tokenized operator line."""
    callsign: str
    instructions: List[Instruction] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    truncated: bool = False


def tokenize(text: str) -> List[str]:
    """Split on whitespace and upper-case."""
    return text.strip().upper().split()


def _is_number(value: str) -> bool:
    return NUMBER_PATTERN.match(value) is not None


def _to_int(value: str) -> int:
    """Integer part of a numeric token; fractions truncate toward zero."""
    return int(float(value))


def classify_clearance(value: str) -> CommandType:
    """
    Decide what a ``C`` argument refers to.

    Numbers written with three characters, or of 100 and above, are headings;
    shorter numbers are altitudes in hundreds of feet; anything else names a fix.
    """
    if not _is_number(value):
        return CommandType.DIRECT
    if _to_int(value) >= HEADING_MIN_VALUE or len(value) == HEADING_DIGITS:
        return CommandType.HEADING
    return CommandType.ALTITUDE


def _parse_clearance(tokens: TokenStream) -> Optional[Instruction]:
    value = tokens.take()
    if value is None:
        return None

    expedite = tokens.take_if(EXPEDITE_TOKENS) is not None
    turn = tokens.take_if(TURN_TOKENS)

    command_type = classify_clearance(value)
    if command_type == CommandType.DIRECT:
        return Instruction(command_type, value, turn=turn)
    return Instruction(command_type, _to_int(value), expedite=expedite, turn=turn)


def parse_instructions(tokens: TokenStream, allow_speed_control: bool = True,
                       strict: bool = False) -> ParsedCommand:
    """
    Consume an instruction chain left to right.

    Unknown tokens are skipped. An instruction missing its argument at the
    end of the line stops the chain; instructions already parsed are kept.

    Args:
        tokens: Tokens following the callsign
        allow_speed_control: Whether ``S <value>`` is recognized
        strict: Raise instead of skipping unknown or truncated input

    Raises:
        CommandParseError: In strict mode only
    """
    parsed = ParsedCommand(callsign="")

    for token in tokens:
        if token == "C":
            instruction = _parse_clearance(tokens)
        elif token == "L":
            runway = tokens.take()
            instruction = Instruction(CommandType.LAND, runway) if runway else None
        elif token == "S" and allow_speed_control:
            speed = tokens.take()
            if speed is None:
                instruction = None
            elif _is_number(speed):
                instruction = Instruction(CommandType.SPEED, _to_int(speed))
            else:
                instruction = Instruction(CommandType.SPEED, speed)
        elif token == "T":
            instruction = Instruction(CommandType.TAKEOFF)
        elif token == "A":
            instruction = Instruction(CommandType.ABORT)
        elif token == "W":
            instruction = Instruction(CommandType.HOLD)
        else:
            if strict:
                raise CommandParseError(f"Unknown instruction: {token}")
            parsed.skipped.append(token)
            continue

        if instruction is None:
            if strict:
                raise CommandParseError(f"Missing argument for {token}")
            parsed.truncated = True
            break

        parsed.instructions.append(instruction)

    return parsed


def parse_command(text: str, allow_speed_control: bool = True,
                  strict: bool = False) -> Optional[ParsedCommand]:
    """
    Parse a full operator line.

    Returns:
        ParsedCommand, or None when the line has no instruction tokens

    Raises:
        CommandParseError: In strict mode only
    """
    parts = tokenize(text)
    if len(parts) < 2:
        if strict:
            raise CommandParseError(f"Expected '<callsign> <instruction> ...', got {text!r}")
        return None

    tokens = TokenStream(parts[1:])
    parsed = parse_instructions(tokens, allow_speed_control=allow_speed_control, strict=strict)
    parsed.callsign = parts[0]
    return parsed


class CommandEngine:
    """
    Applies operator commands to live aircraft.

    Every recognized instruction and the echoed command line produce one
    operator log line. Nothing here raises for operator mistakes: unknown
    callsigns, fixes and runways, refused landings and takeoffs are logged
    and otherwise leave state unchanged.
    """

    def __init__(
        self,
        airspace: Airspace,
        aircraft_lookup: Callable[[str], Optional[Aircraft]],
        emit: Optional[Callable[[str], None]] = None,
        allow_speed_control: bool = True,
        landing_ceiling: float = 30.0,
        metrics=None,
    ):
        """
        Initialize the command engine.

        Args:
            airspace: Layout used for fix and runway lookups
            aircraft_lookup: Resolves a callsign to a live aircraft
            emit: Receives each operator log line
            allow_speed_control: Whether ``S <value>`` is accepted
            landing_ceiling: Highest height above field, in altitude units,
                at which a landing clearance is accepted
            metrics: Optional SessionMetrics to record commands into
        """
        self.airspace = airspace
        self.aircraft_lookup = aircraft_lookup
        self.emit = emit
        self.allow_speed_control = allow_speed_control
        self.landing_ceiling = landing_ceiling
        self.metrics = metrics

        self._handlers: Dict[CommandType, Callable[[Aircraft, Instruction], bool]] = {
            CommandType.HEADING: self._apply_heading,
            CommandType.ALTITUDE: self._apply_altitude,
            CommandType.DIRECT: self._apply_direct,
            CommandType.TAKEOFF: self._apply_takeoff,
            CommandType.LAND: self._apply_land,
            CommandType.ABORT: self._apply_abort,
            CommandType.SPEED: self._apply_speed,
            CommandType.HOLD: self._apply_hold,
        }
        self._lines: List[str] = []

    def execute(self, text: str) -> List[str]:
        """
        Parse and apply one operator line.

        Args:
            text: Raw operator input

        Returns:
            Operator log lines produced by this invocation
        """
        self._lines = []

        parsed = parse_command(text, allow_speed_control=self.allow_speed_control)
        if parsed is None:
            return []

        aircraft = self.aircraft_lookup(parsed.callsign)
        if aircraft is None:
            self._log(f"Unknown ID: {parsed.callsign}")
            logger.warning(f"Command for unknown aircraft: {parsed.callsign}")
            return self._lines

        self._log(f"> {text.strip().upper()}")

        for instruction in parsed.instructions:
            accepted = self._handlers[instruction.command_type](aircraft, instruction)
            if self.metrics is not None:
                if accepted:
                    self.metrics.record_command(instruction.command_type.value)
                else:
                    self.metrics.record_rejection()

        if parsed.skipped:
            logger.debug(f"Skipped tokens for {parsed.callsign}: {parsed.skipped}")
        if parsed.truncated:
            logger.debug(f"Command chain for {parsed.callsign} ended early: {text!r}")

        return self._lines

    def _log(self, message: str) -> None:
        self._lines.append(message)
        if self.emit is not None:
            self.emit(message)

    def _reject(self, message: str) -> bool:
        self._log(message)
        logger.warning(message)
        return False

    # Handlers return True when the instruction changed or acknowledged state

    def _apply_heading(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        aircraft.set_heading(instruction.value)
        self._log(f"{aircraft.callsign} heading {instruction.value}")
        return True

    def _apply_altitude(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        aircraft.set_altitude(instruction.value, instruction.expedite)
        suffix = " EXPEDITE" if instruction.expedite else ""
        self._log(f"{aircraft.callsign} altitude {instruction.value}00{suffix}")
        return True

    def _apply_direct(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        fix = self.airspace.get_fix(instruction.value)
        if fix is None:
            return self._reject(f"Unknown Fix: {instruction.value}")

        aircraft.set_fix_target(fix.name, fix)
        self._log(f"{aircraft.callsign} cleared to {fix.name}")
        return True

    def _apply_takeoff(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        if not aircraft.is_on_ground:
            return self._reject(f"{aircraft.callsign} already airborne")
        if aircraft.target_altitude <= 0:
            return self._reject(f"{aircraft.callsign} needs altitude clearance first")

        aircraft.takeoff()
        self._log(f"{aircraft.callsign} cleared for takeoff")
        return True

    def _apply_land(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        runway = self.airspace.get_runway(instruction.value)
        if runway is None:
            return self._reject(f"Unknown Runway: {instruction.value}")

        field_elevation = self.airspace.field_elevation
        height = aircraft.altitude - field_elevation
        if height > self.landing_ceiling:
            return self._reject(
                f"{aircraft.callsign} too high. Alt: {aircraft.altitude:.1f}, "
                f"Elev: {field_elevation:.1f}, AGL: {height:.1f}"
            )

        aircraft.set_landing_target(runway)
        self._log(f"{aircraft.callsign} cleared to land {runway.name}")
        return True

    def _apply_abort(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        aircraft.clear_navigation()
        self._log(f"{aircraft.callsign} approach aborted")
        return True

    def _apply_speed(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        if not isinstance(instruction.value, int):
            return self._reject(f"Invalid speed: {instruction.value}")

        aircraft.set_speed(instruction.value)
        self._log(f"{aircraft.callsign} speed {instruction.value}")
        return True

    def _apply_hold(self, aircraft: Aircraft, instruction: Instruction) -> bool:
        self._log(f"{aircraft.callsign} hold position")
        return True
