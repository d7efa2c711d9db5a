import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from kmseg.camera import CameraState, WHEEL_SENSITIVITY, apply_wheel_event

ROTATE_SENSITIVITY = 0.01  # radians per pixel of single-pointer drag

Position = Tuple[float, float]


class PointerKind(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CANCEL = "cancel"


class GestureMode(Enum):
    IDLE = "idle"          # no active pointers
    ROTATING = "rotating"  # one pointer drags the cube around
    PINCHING = "pinching"  # two (or more) pointers zoom and pan

    @classmethod
    def for_count(cls, active_pointers: int) -> "GestureMode":
        if active_pointers <= 0:
            return cls.IDLE
        if active_pointers == 1:
            return cls.ROTATING
        return cls.PINCHING


@dataclass(frozen=True)
class PointerEvent:
    kind: PointerKind
    pointer_id: int
    x: float
    y: float

    @property
    def position(self) -> Position:
        return (self.x, self.y)


@dataclass(frozen=True)
class WheelEvent:
    delta_y: float


@dataclass
class GestureState:
    """
    Active pointers (id -> last position, in press order) and the cached
    baselines the incremental rotate/pinch updates are measured against.
    """
    pointers: Dict[int, Position] = field(default_factory=dict)
    last_single: Optional[Position] = None
    pinch_distance: Optional[float] = None
    pinch_mid: Optional[Position] = None

    @property
    def mode(self) -> GestureMode:
        return GestureMode.for_count(len(self.pointers))

    def first_two(self) -> Tuple[Position, Position]:
        positions = list(self.pointers.values())
        return positions[0], positions[1]

    def clear_baselines(self) -> None:
        self.last_single = None
        self.pinch_distance = None
        self.pinch_mid = None


def distance(a: Position, b: Position) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def midpoint(a: Position, b: Position) -> Position:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


class GestureController:
    """
    Finite-state machine turning pointer events into camera updates.

    The mode is derived from the number of active pointers. Each (mode, event
    kind) pair maps to one handler in _TRANSITIONS. Handlers return True when
    they changed the camera, so a caller knows when to redraw.
    """

    _TRANSITIONS = {
        (GestureMode.IDLE, PointerKind.DOWN): "_enter_rotating",
        (GestureMode.ROTATING, PointerKind.DOWN): "_enter_pinching",
        (GestureMode.PINCHING, PointerKind.DOWN): "_track_extra",
        (GestureMode.IDLE, PointerKind.MOVE): "_ignore",
        (GestureMode.ROTATING, PointerKind.MOVE): "_rotate",
        (GestureMode.PINCHING, PointerKind.MOVE): "_pinch",
        (GestureMode.IDLE, PointerKind.UP): "_release",
        (GestureMode.ROTATING, PointerKind.UP): "_release",
        (GestureMode.PINCHING, PointerKind.UP): "_release",
        (GestureMode.IDLE, PointerKind.CANCEL): "_release",
        (GestureMode.ROTATING, PointerKind.CANCEL): "_release",
        (GestureMode.PINCHING, PointerKind.CANCEL): "_release",
    }

    def __init__(
        self,
        camera: Optional[CameraState] = None,
        gesture: Optional[GestureState] = None,
        rotate_sensitivity: float = ROTATE_SENSITIVITY,
        wheel_sensitivity: float = WHEEL_SENSITIVITY,
    ):
        self.camera = camera if camera is not None else CameraState()
        self.gesture = gesture if gesture is not None else GestureState()
        self.rotate_sensitivity = rotate_sensitivity
        self.wheel_sensitivity = wheel_sensitivity

    @property
    def mode(self) -> GestureMode:
        return self.gesture.mode

    def handle(self, event: PointerEvent) -> bool:
        pointers = self.gesture.pointers
        if event.kind is PointerKind.MOVE and event.pointer_id not in pointers:
            return False

        if event.kind is PointerKind.DOWN and event.pointer_id in pointers:
            # A repeated press of a tracked pointer re-enters the current mode.
            mode = GestureMode.for_count(len(pointers) - 1)
        else:
            mode = self.gesture.mode
        handler = getattr(self, self._TRANSITIONS[(mode, event.kind)])
        return handler(event)

    def wheel(self, delta_y: float) -> bool:
        before = self.camera.zoom
        apply_wheel_event(self.camera, delta_y, self.wheel_sensitivity)
        return self.camera.zoom != before

    def replay(self, events: Iterable[Union[PointerEvent, WheelEvent]]) -> int:
        """Apply a sequence of events; returns how many changed the camera."""
        changes = 0
        for event in events:
            if isinstance(event, WheelEvent):
                changed = self.wheel(event.delta_y)
            else:
                changed = self.handle(event)
            changes += int(changed)
        return changes

    # --- transition handlers ---

    def _enter_rotating(self, event: PointerEvent) -> bool:
        self.gesture.pointers[event.pointer_id] = event.position
        self.gesture.last_single = event.position
        return False

    def _enter_pinching(self, event: PointerEvent) -> bool:
        self.gesture.pointers[event.pointer_id] = event.position
        a, b = self.gesture.first_two()
        self.gesture.pinch_distance = distance(a, b)
        self.gesture.pinch_mid = midpoint(a, b)
        return False

    def _track_extra(self, event: PointerEvent) -> bool:
        # Pointers beyond the first two are tracked but never steer the camera.
        self.gesture.pointers[event.pointer_id] = event.position
        return False

    def _ignore(self, event: PointerEvent) -> bool:
        return False

    def _rotate(self, event: PointerEvent) -> bool:
        gesture = self.gesture
        gesture.pointers[event.pointer_id] = event.position
        changed = False
        if gesture.last_single is not None:
            dx = event.x - gesture.last_single[0]
            dy = event.y - gesture.last_single[1]
            self.camera.rotate(dy * self.rotate_sensitivity, dx * self.rotate_sensitivity)
            changed = dx != 0 or dy != 0
        gesture.last_single = event.position
        return changed

    def _pinch(self, event: PointerEvent) -> bool:
        gesture = self.gesture
        gesture.pointers[event.pointer_id] = event.position
        a, b = gesture.first_two()
        current_distance = distance(a, b)
        current_mid = midpoint(a, b)

        changed = False
        if gesture.pinch_distance:  # None or 0 leaves zoom alone
            factor = current_distance / gesture.pinch_distance
            self.camera.scale_zoom(factor)
            changed = factor != 1
        if gesture.pinch_mid is not None:
            dx = current_mid[0] - gesture.pinch_mid[0]
            dy = current_mid[1] - gesture.pinch_mid[1]
            self.camera.pan_by(dx, dy)
            changed = changed or dx != 0 or dy != 0

        gesture.pinch_distance = current_distance
        gesture.pinch_mid = current_mid
        gesture.last_single = None
        return changed

    def _release(self, event: PointerEvent) -> bool:
        self.gesture.pointers.pop(event.pointer_id, None)
        self.gesture.clear_baselines()
        return False


def apply_pointer_event(
    gesture: GestureState, camera: CameraState, event: PointerEvent
) -> Tuple[GestureState, CameraState]:
    GestureController(camera, gesture).handle(event)
    return gesture, camera


def events_from_records(records: Iterable[dict]) -> Iterator[Union[PointerEvent, WheelEvent]]:
    """
    Build events from plain dicts, e.g. a recorded gesture script:

        {"type": "down", "id": 1, "x": 10, "y": 20}
        {"type": "wheel", "deltaY": -120}

    Raises:
        ValueError: On an unknown event type or a missing field.
    """
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValueError(f"Gesture record {index} is not an object: {record!r}")
        kind = str(record.get("type", "")).lower()
        try:
            if kind == "wheel":
                yield WheelEvent(delta_y=float(record["deltaY"]))
            else:
                yield PointerEvent(
                    kind=PointerKind(kind),
                    pointer_id=int(record.get("id", 0)),
                    x=float(record["x"]),
                    y=float(record["y"]),
                )
        except KeyError as e:
            raise ValueError(f"Gesture record {index} is missing field {e}.") from e
        except ValueError as e:
            raise ValueError(f"Gesture record {index} is invalid: {e}") from e
