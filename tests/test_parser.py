"""Tests for inbound payload decoders."""

from withrottle_mcp.models.session import Direction, SpeedStepMode, TrackPower
from withrottle_mcp.protocol.parser import (
    parse_address_entry,
    parse_direction,
    parse_fast_time,
    parse_function_state,
    parse_heartbeat,
    parse_speed,
    parse_speed_steps,
    parse_track_power,
    parse_web_port,
    strip_action_address,
    to_float,
    to_int,
)


def test_to_int_lenient():
    """Leading digits are used, garbage reads as 0."""
    assert to_int("42") == 42
    assert to_int("-7") == -7
    assert to_int("12abc") == 12
    assert to_int(" 5") == 5
    assert to_int("abc") == 0
    assert to_int("") == 0


def test_to_float_lenient():
    assert to_float("2.0") == 2.0
    assert to_float("-1.5") == -1.5
    assert to_float(".25") == 0.25
    assert to_float("4x") == 4.0
    assert to_float("fast") == 0.0


def test_oversized_numbers_read_as_zero():
    """Numbers too large for the protocol never raise and read as 0."""
    huge = "9" * 400
    assert to_float("1e999") == 0.0
    assert to_float("-1e999") == 0.0
    assert parse_heartbeat(huge) == 0
    assert parse_heartbeat(str(24 * 3600 + 1)) == 0
    assert parse_heartbeat("10") == 10
    assert parse_web_port(huge) == 0
    assert parse_web_port("70000") == 0
    assert parse_web_port("8080") == 8080


def test_parse_fast_time_value_only():
    update = parse_fast_time("1700000000")
    assert update.value == 1700000000
    assert update.rate is None


def test_parse_fast_time_with_rate():
    update = parse_fast_time("120<;>2.0")
    assert update.value == 120
    assert update.rate == 2.0


def test_parse_fast_time_negative_and_paused_rates():
    assert parse_fast_time("100<;>-1.5").rate == -1.5
    assert parse_fast_time("100<;>0").rate == 0.0


def test_parse_fast_time_malformed():
    """Malformed numbers never raise."""
    update = parse_fast_time("soon<;>quick")
    assert update.value == 0
    assert update.rate == 0.0


def test_parse_fast_time_oversized():
    assert parse_fast_time("9" * 400).value == 0
    update = parse_fast_time("120<;>1e999")
    assert update.value == 120
    assert update.rate == 0.0


def test_parse_track_power():
    assert parse_track_power("0") == TrackPower.OFF
    assert parse_track_power("1") == TrackPower.ON
    assert parse_track_power("2") == TrackPower.UNKNOWN
    assert parse_track_power("x") == TrackPower.UNKNOWN


def test_parse_address_entry():
    entry = parse_address_entry("L8504<;>Big Boy")
    assert entry.address == "L8504"
    assert entry.detail == "Big Boy"
    assert parse_address_entry("S3").detail == ""


def test_strip_selected_or_wildcard():
    assert strip_action_address("S3<;>V10", "S3") == "V10"
    assert strip_action_address("*<;>V10", "S3") == "V10"
    assert strip_action_address("*<;>V10", "") == "V10"


def test_strip_other_address():
    """Lines for other locomotives are not applicable."""
    assert strip_action_address("XYZ<;>V50", "S3") is None
    assert strip_action_address("L12<;>V50", "") is None
    assert strip_action_address("<;>V50", "") is None


def test_parse_function_state():
    state = parse_function_state("128")
    assert state.function == 28
    assert state.pressed is True


def test_parse_function_leading_zero_state():
    """F028 is function 28 released, not a parse failure."""
    state = parse_function_state("028")
    assert state.function == 28
    assert state.pressed is False


def test_parse_function_zero():
    state = parse_function_state("10")
    assert state.function == 0
    assert state.pressed is True


def test_parse_function_rejects_garbage():
    """A non-numeric index reads as 0 and must be rejected."""
    assert parse_function_state("1x") is None
    assert parse_function_state("1") is None
    assert parse_function_state("129") is None
    assert parse_function_state("1-3") is None
    assert parse_function_state("1+3") is None


def test_parse_speed():
    assert parse_speed("50") == 50
    assert parse_speed("126") == 126
    assert parse_speed("127") == 0
    assert parse_speed("-1") == 0
    assert parse_speed("") is None


def test_parse_speed_steps():
    assert parse_speed_steps("1") == SpeedStepMode.STEPS_128
    assert parse_speed_steps("16") == SpeedStepMode.STEPS_28_MOTOROLA
    assert parse_speed_steps("3") is None
    assert parse_speed_steps("") is None


def test_parse_direction():
    assert parse_direction("0") == Direction.REVERSE
    assert parse_direction("1") == Direction.FORWARD
    assert parse_direction("7") == Direction.FORWARD
    assert parse_direction("") is None
    assert parse_direction("10") is None
