"""
Instruction synthesis for steps that arrive without guidance.

The local engine returns bare OSRM steps. Each one gets a rendered
instruction, a single voice announcement and a single banner, all triggered
at the start of the step.
"""

import logging
import math
from typing import Any, Dict, Mapping, Optional
from xml.sax.saxutils import escape

from pydantic import BaseModel, ConfigDict

from directions.core.exceptions import SynthesisFailure
from directions.schemas.routing import RouteStep

logger = logging.getLogger(__name__)

SSML_TEMPLATE = (
    '<speak><amazon:effect name="drc"><prosody rate="1.08">'
    "{text}"
    "</prosody></amazon:effect></speak>"
)

COMPASS_DIRECTIONS = [
    "north", "northeast", "east", "southeast",
    "south", "southwest", "west", "northwest",
]

ORDINALS = [
    "first", "second", "third", "fourth", "fifth",
    "sixth", "seventh", "eighth", "ninth", "tenth",
]


def compass_direction(bearing: float) -> str:
    """Map a bearing in degrees to one of eight compass points."""
    return COMPASS_DIRECTIONS[int(((bearing % 360) + 22.5) // 45) % 8]


def ordinal(number: int) -> str:
    if 1 <= number <= len(ORDINALS):
        return ORDINALS[number - 1]
    suffix = "th" if 10 <= number % 100 <= 20 else {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


class InstructionFormatter:
    """Renders English turn instructions for OSRM v5 style maneuvers."""

    SUPPORTED_VERSIONS = ("v5",)

    def __init__(self, version: str = "v5"):
        if version not in self.SUPPORTED_VERSIONS:
            raise ValueError(f"Unsupported instruction version: {version}")
        self.version = version

    def format(self, step: RouteStep) -> str:
        """Instruction text for a decoded step."""
        maneuver = step.maneuver
        return self.render(
            maneuver_type=maneuver.type.value,
            modifier=maneuver.modifier.value if maneuver.modifier else None,
            name=step.name,
            code=step.code,
            exit_index=maneuver.exit_index,
            bearing_after=maneuver.bearing_after,
        )

    def format_json(self, step_json: Mapping[str, Any]) -> str:
        """Instruction text for a raw step object."""
        maneuver = step_json.get("maneuver") or {}
        exit_index = maneuver.get("exit")
        bearing_after = maneuver.get("bearing_after")
        return self.render(
            maneuver_type=maneuver.get("type") or "turn",
            modifier=maneuver.get("modifier"),
            name=step_json.get("name"),
            code=step_json.get("ref"),
            exit_index=exit_index if isinstance(exit_index, int) else None,
            bearing_after=bearing_after if isinstance(bearing_after, (int, float)) else None,
        )

    def render(
        self,
        maneuver_type: str,
        modifier: Optional[str] = None,
        name: Optional[str] = None,
        code: Optional[str] = None,
        exit_index: Optional[int] = None,
        bearing_after: Optional[float] = None,
    ) -> str:
        road = self._road(name, code)
        onto = f" onto {road}" if road else ""
        direction = self._direction(modifier)

        if maneuver_type == "depart":
            if bearing_after is not None:
                heading = compass_direction(bearing_after)
                return f"Head {heading} on {road}" if road else f"Head {heading}"
            return f"Depart{onto}"

        if maneuver_type == "arrive":
            if modifier in ("left", "right", "slight left", "slight right", "sharp left", "sharp right"):
                side = "left" if "left" in modifier else "right"
                return f"You have arrived at your destination, on the {side}"
            return "You have arrived at your destination"

        if maneuver_type in ("roundabout", "rotary"):
            kind = "roundabout" if maneuver_type == "roundabout" else "traffic circle"
            if exit_index:
                return f"Enter the {kind} and take the {ordinal(exit_index)} exit{onto}"
            return f"Enter the {kind} and exit onto {road}" if road else f"Enter the {kind}"

        if maneuver_type in ("exit roundabout", "exit rotary"):
            return f"Exit the roundabout{onto}"

        if maneuver_type == "roundabout turn":
            return f"At the roundabout, turn {direction}{onto}" if direction else f"At the roundabout, continue{onto}"

        if maneuver_type in ("continue", "new name"):
            if modifier in (None, "straight") or maneuver_type == "new name":
                return f"Continue{onto}"
            return f"Continue {direction}{onto}"

        if maneuver_type == "merge":
            return f"Merge {direction}{onto}" if direction else f"Merge{onto}"

        if maneuver_type == "on ramp":
            return f"Take the ramp on the {direction}{onto}" if direction else f"Take the ramp{onto}"

        if maneuver_type == "off ramp":
            return f"Take the exit on the {direction}{onto}" if direction else f"Take the exit{onto}"

        if maneuver_type == "fork":
            return f"Keep {direction} at the fork{onto}" if direction else f"Keep straight at the fork{onto}"

        if maneuver_type == "end of road":
            return f"Turn {direction} at the end of the road{onto}" if direction else f"At the end of the road, continue{onto}"

        if maneuver_type == "use lane":
            return f"Use the lane to continue {direction}" if direction else "Continue straight"

        # turn, notification and anything unknown
        if modifier == "uturn":
            return f"Make a U-turn{onto}"
        if modifier == "straight":
            return f"Go straight{onto}"
        if direction:
            return f"Turn {direction}{onto}"
        return f"Continue{onto}"

    @staticmethod
    def _road(name: Optional[str], code: Optional[str]) -> str:
        name = (name or "").strip()
        code = (code or "").strip()
        if name and code and code not in name:
            return f"{name} ({code})"
        return name or code

    @staticmethod
    def _direction(modifier: Optional[str]) -> str:
        if not modifier:
            return ""
        return "U-turn" if modifier == "uturn" else modifier


class SynthesizedStep(BaseModel):
    """Guidance generated for one step, plus the rebuilt step object."""

    model_config = ConfigDict(frozen=True)

    voice: Dict[str, Any]
    banner: Dict[str, Any]
    instruction: str
    step: Dict[str, Any]


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SynthesisFailure(message)


def synthesize_step(step_json: Mapping[str, Any], formatter: InstructionFormatter) -> SynthesizedStep:
    """
    Generate one voice and one banner instruction for a step.

    Returns new dicts; step_json and its maneuver are left untouched. The
    rebuilt step carries the rendered text in maneuver.instruction so that a
    later decode sees the synthesized instruction.
    """
    _require(isinstance(step_json, Mapping), "Step is not a JSON object")

    distance = step_json.get("distance")
    _require(
        isinstance(distance, (int, float)) and not isinstance(distance, bool)
        and math.isfinite(distance) and distance >= 0,
        "Step is missing a non-negative 'distance'",
    )
    name = step_json.get("name")
    _require(isinstance(name, str), "Step is missing 'name'")
    maneuver = step_json.get("maneuver")
    _require(isinstance(maneuver, Mapping), "Step is missing 'maneuver'")
    maneuver_type = maneuver.get("type")
    _require(isinstance(maneuver_type, str), "Step maneuver is missing 'type'")
    modifier = maneuver.get("modifier")

    instruction = formatter.format_json(step_json)

    voice = {
        "distanceAlongGeometry": distance,
        "announcement": instruction,
        "ssmlAnnouncement": SSML_TEMPLATE.format(text=escape(instruction)),
    }
    banner = {
        "distanceAlongGeometry": distance,
        "primary": {
            "text": name,
            "components": [
                {"text": name, "type": "text", "abbr": name, "abbr_priority": 0},
            ],
            "type": maneuver_type,
            "modifier": modifier,
        },
        "secondary": None,
    }

    step = dict(step_json)
    step["maneuver"] = {**maneuver, "instruction": instruction}
    step["voiceInstructions"] = [voice]
    step["bannerInstructions"] = [banner]

    return SynthesizedStep(voice=voice, banner=banner, instruction=instruction, step=step)
