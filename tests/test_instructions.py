"""Tests for instruction formatting and per-step guidance synthesis."""

import copy

import pytest
from pydantic import ValidationError

from directions.core.exceptions import SynthesisFailure
from directions.services.routing.builder import WireFormat, builder_for
from directions.services.routing.instructions import (
    SSML_TEMPLATE,
    InstructionFormatter,
    compass_direction,
    ordinal,
    synthesize_step,
)


@pytest.fixture
def formatter():
    return InstructionFormatter(version="v5")


class TestInstructionFormatter:
    """Tests for English instruction rendering."""

    @pytest.mark.parametrize("maneuver_type,modifier,expected", [
        ("turn", "left", "Turn left onto Main St"),
        ("turn", "sharp right", "Turn sharp right onto Main St"),
        ("turn", "straight", "Go straight onto Main St"),
        ("turn", "uturn", "Make a U-turn onto Main St"),
        ("new name", "straight", "Continue onto Main St"),
        ("continue", "slight left", "Continue slight left onto Main St"),
        ("merge", "right", "Merge right onto Main St"),
        ("on ramp", "right", "Take the ramp on the right onto Main St"),
        ("off ramp", "left", "Take the exit on the left onto Main St"),
        ("fork", "slight left", "Keep slight left at the fork onto Main St"),
        ("end of road", "right", "Turn right at the end of the road onto Main St"),
        ("exit roundabout", None, "Exit the roundabout onto Main St"),
    ])
    def test_render(self, formatter, maneuver_type, modifier, expected):
        assert formatter.render(maneuver_type, modifier, name="Main St") == expected

    def test_depart_uses_compass_heading(self, formatter):
        assert formatter.render("depart", name="Main St", bearing_after=5) == "Head north on Main St"
        assert formatter.render("depart", bearing_after=270) == "Head west"

    def test_depart_without_bearing(self, formatter):
        assert formatter.render("depart", name="Main St") == "Depart onto Main St"

    def test_arrive(self, formatter):
        assert formatter.render("arrive") == "You have arrived at your destination"
        assert formatter.render("arrive", "right") == "You have arrived at your destination, on the right"

    def test_roundabout_exit_ordinal(self, formatter):
        text = formatter.render("roundabout", "right", name="Main St", exit_index=3)

        assert text == "Enter the roundabout and take the third exit onto Main St"

    def test_unnamed_road(self, formatter):
        assert formatter.render("turn", "left", name="") == "Turn left"

    def test_road_code_appended(self, formatter):
        assert formatter.render("turn", "right", name="Bayshore Fwy", code="US 101") == \
            "Turn right onto Bayshore Fwy (US 101)"

    def test_format_decoded_step(self, formatter, payloads):
        """The same text is rendered from a decoded step and from raw JSON."""
        step_json = payloads.step(name="Main St", maneuver_type="turn", modifier="left")
        step = builder_for(WireFormat.CURRENT).build_step(step_json)

        assert formatter.format(step) == formatter.format_json(step_json) == "Turn left onto Main St"

    def test_unsupported_version(self):
        with pytest.raises(ValueError, match="Unsupported instruction version"):
            InstructionFormatter(version="v4")

    def test_helpers(self):
        assert compass_direction(0) == "north"
        assert compass_direction(359) == "north"
        assert compass_direction(135) == "southeast"
        assert ordinal(1) == "first"
        assert ordinal(12) == "12th"
        assert ordinal(22) == "22nd"


class TestSynthesizeStep:
    """Tests for voice and banner synthesis."""

    @pytest.fixture
    def main_st(self, payloads):
        return payloads.step(name="Main St", maneuver_type="turn", modifier="left", distance=150.0)

    def test_banner_echoes_road_name(self, formatter, main_st):
        """Banner primary text and its single component are the road name."""
        synthesized = synthesize_step(main_st, formatter)

        primary = synthesized.banner["primary"]
        assert primary["text"] == "Main St"
        assert primary["components"] == [
            {"text": "Main St", "type": "text", "abbr": "Main St", "abbr_priority": 0}
        ]
        assert primary["type"] == "turn"
        assert primary["modifier"] == "left"
        assert synthesized.banner["secondary"] is None

    def test_voice_wraps_instruction_in_ssml(self, formatter, main_st):
        synthesized = synthesize_step(main_st, formatter)

        assert synthesized.instruction == "Turn left onto Main St"
        assert synthesized.voice["announcement"] == "Turn left onto Main St"
        assert synthesized.voice["ssmlAnnouncement"] == SSML_TEMPLATE.format(text="Turn left onto Main St")
        assert synthesized.voice["ssmlAnnouncement"].startswith(
            '<speak><amazon:effect name="drc"><prosody rate="1.08">'
        )
        assert synthesized.voice["ssmlAnnouncement"].endswith("</prosody></amazon:effect></speak>")

    def test_triggered_at_step_distance(self, formatter, main_st):
        synthesized = synthesize_step(main_st, formatter)

        assert synthesized.voice["distanceAlongGeometry"] == 150.0
        assert synthesized.banner["distanceAlongGeometry"] == 150.0

    def test_rebuilt_step_carries_instruction(self, formatter, main_st):
        """Decoding the rebuilt step sees the synthesized instruction."""
        synthesized = synthesize_step(main_st, formatter)

        step = builder_for(WireFormat.CURRENT).build_step(synthesized.step)

        assert step.instruction == "Turn left onto Main St"
        assert len(step.voice_instructions) == 1
        assert len(step.banner_instructions) == 1
        assert step.banner_instructions[0].primary.text == "Main St"
        assert step.geometry.coordinates

    def test_input_not_mutated(self, formatter, main_st):
        snapshot = copy.deepcopy(main_st)

        synthesize_step(main_st, formatter)

        assert main_st == snapshot
        assert "instruction" not in main_st["maneuver"]

    def test_ssml_escapes_markup(self, formatter, payloads):
        step = payloads.step(name="Fish & Chips Ln", maneuver_type="turn", modifier="right")

        synthesized = synthesize_step(step, formatter)

        assert "Fish &amp; Chips Ln" in synthesized.voice["ssmlAnnouncement"]
        assert synthesized.voice["announcement"] == "Turn right onto Fish & Chips Ln"

    def test_missing_modifier_allowed(self, formatter, payloads):
        """Depart and arrive steps have no modifier."""
        synthesized = synthesize_step(payloads.step(maneuver_type="arrive", modifier=None), formatter)

        assert synthesized.banner["primary"]["modifier"] is None

    @pytest.mark.parametrize("field", ["distance", "name"])
    def test_missing_required_field(self, formatter, main_st, field):
        del main_st[field]

        with pytest.raises(SynthesisFailure, match=field):
            synthesize_step(main_st, formatter)

    def test_missing_maneuver_type(self, formatter, main_st):
        del main_st["maneuver"]["type"]

        with pytest.raises(SynthesisFailure, match="type"):
            synthesize_step(main_st, formatter)


    @pytest.mark.parametrize("distance", [-1.0, float("nan")])
    def test_invalid_distance(self, formatter, main_st, distance):
        main_st["distance"] = distance

        with pytest.raises(SynthesisFailure, match="distance"):
            synthesize_step(main_st, formatter)

    def test_result_is_frozen(self, formatter, main_st):
        synthesized = synthesize_step(main_st, formatter)

        with pytest.raises(ValidationError):
            synthesized.instruction = "Go straight"
