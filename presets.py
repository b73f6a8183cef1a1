"""
Physics Preset System
Six named spring configurations, each setting stiffness, damping and
mouse influence together.
"""

from physics import PhysicsParameters

PRESETS = {
    "bouncy":   {"stiffness": 0.02, "damping": 0.85, "influence": 0.8},
    "stiff":    {"stiffness": 0.10, "damping": 0.95, "influence": 0.3},
    "fluid":    {"stiffness": 0.03, "damping": 0.90, "influence": 1.2},
    "magnetic": {"stiffness": 0.05, "damping": 0.92, "influence": 1.5},
    "heavy":    {"stiffness": 0.08, "damping": 0.98, "influence": 0.4},
    "light":    {"stiffness": 0.01, "damping": 0.80, "influence": 2.0},
}


class PhysicsPreset:
    """Lookup and application of the named presets."""

    @staticmethod
    def names() -> list:
        return list(PRESETS)

    @staticmethod
    def get(name: str) -> dict:
        """Return a copy of the preset values.

        Raises:
            KeyError: ``name`` is not a known preset.
        """
        return dict(PRESETS[name])

    @staticmethod
    def apply(params: PhysicsParameters, name: str) -> PhysicsParameters:
        """Write all three values of preset ``name`` onto ``params``.

        The lookup happens before any assignment, so an unknown name leaves
        ``params`` untouched.
        """
        values = PhysicsPreset.get(name)
        params.stiffness = values["stiffness"]
        params.damping = values["damping"]
        params.mouse_influence = values["influence"]
        return params
