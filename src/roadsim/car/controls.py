"""
Controls - Driving intent for a car.

Defines:
- ControlType: who supplies the intent (human, AI, nobody)
- Controls: the four boolean intent flags
- KeyBindings / ControlsInput: scoped keyboard subscription feeding
  one Controls object
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Sequence


class ControlType(Enum):
    """Source of a car's control intent."""
    HUMAN = "human"
    AI = "ai"
    NONE = "none"


@dataclass
class Controls:
    """Intent flags read by the car every tick."""
    forward: bool = False
    left: bool = False
    right: bool = False
    reverse: bool = False

    @classmethod
    def for_type(cls, control_type: ControlType) -> "Controls":
        """Default intent for a control type.

        AI cars drive straight ahead until a routing strategy says
        otherwise; human and fixed cars start idle.
        """
        return cls(forward=control_type == ControlType.AI)

    def reset(self) -> None:
        self.forward = False
        self.left = False
        self.right = False
        self.reverse = False

    def apply_outputs(self, outputs: Sequence[float]) -> None:
        """Apply a [forward, left, right, reverse] output vector."""
        if len(outputs) != 4:
            raise ValueError(f"expected 4 outputs, got {len(outputs)}")
        self.forward = outputs[0] == 1
        self.left = outputs[1] == 1
        self.right = outputs[2] == 1
        self.reverse = outputs[3] == 1

    def copy(self) -> "Controls":
        return Controls(self.forward, self.left, self.right, self.reverse)


def _default_bindings() -> Dict[str, str]:
    return {
        "arrowup": "forward",
        "w": "forward",
        "arrowleft": "left",
        "a": "left",
        "arrowright": "right",
        "d": "right",
        "arrowdown": "reverse",
        "s": "reverse",
    }


@dataclass
class KeyBindings:
    """Key name -> control flag mapping (case-insensitive)."""
    keys: Dict[str, str] = field(default_factory=_default_bindings)

    def action_for(self, key: str) -> str | None:
        return self.keys.get(key.lower())


class ControlsInput:
    """Keyboard subscription bound to a single Controls object.

    The subscription is owned by whoever created it (typically a
    Simulator session) instead of being a process-global handler.
    Once detached it ignores further events.
    """

    def __init__(self, controls: Controls, bindings: KeyBindings | None = None):
        self.controls = controls
        self.bindings = bindings or KeyBindings()
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    def handle_key(self, key: str, pressed: bool) -> bool:
        """Apply a key event.

        Returns:
            True if the key was bound and applied
        """
        if not self._active:
            return False
        action = self.bindings.action_for(key)
        if action is None:
            return False
        setattr(self.controls, action, pressed)
        return True

    def detach(self) -> None:
        """Stop listening and release any held keys."""
        if self._active:
            self.controls.reset()
        self._active = False
