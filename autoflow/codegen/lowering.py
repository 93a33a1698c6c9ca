# autoflow/codegen/lowering.py
"""
Graph-to-statement lowering shared by every backend.

Lowerer walks the graph from start: straight-line continuation is an
iterative loop, and only If / Loop / Parallel bodies recurse. Each body
gets its own copy of the visited set and of the tracked pose, so sibling
branches never see each other's state. A node id that recurs on the
current path emits a comment and stops that chain.

Backends subclass StatementEmitter and provide one handler per action
type (the handler name is Action.handler, e.g. lower_forward). A concrete
emitter missing any handler fails at class creation with TypeError.
"""
from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Optional

from ..devices import Drivetrain, default_device_name, java_identifier
from ..errors import NoRouteError
from ..nodes import ACTION, ACTION_TYPES, HANDLE_NEXT, MOVEMENT, RESTRICTED_HANDLES
from ..waypoints import Waypoint
from .source import SourceBuilder, fmt

logger = logging.getLogger(__name__)


class Branch:
    """The chain hanging off one handle of a branching node."""

    def __init__(self, lowerer: "Lowerer", handle: str, target: Optional[str],
                 visited: FrozenSet[str], emitter: "StatementEmitter"):
        self.lowerer = lowerer
        self.handle = handle
        self.target = target
        self.visited = visited
        self.emitter = emitter

    def __bool__(self) -> bool:
        return self.target is not None

    def using(self, emitter: "StatementEmitter") -> "Branch":
        return Branch(self.lowerer, self.handle, self.target, self.visited, emitter)

    @property
    def drives(self) -> bool:
        """True when the branch starts with a movement action."""
        return self.target is not None and self.lowerer.graph.get(self.target).category == MOVEMENT

    def __call__(self) -> None:
        if self.target is None:
            return
        emitter = self.emitter
        saved = emitter.pose
        emitter.depth += 1
        try:
            self.lowerer.lower_chain(self.target, set(self.visited), emitter)
        finally:
            emitter.depth -= 1
            emitter.pose = saved


class Lowerer:
    def __init__(self, graph):
        self.graph = graph

    def run(self, emitter: "StatementEmitter") -> None:
        if not self.graph.has_route():
            raise NoRouteError("No node is connected to the start node")
        self.lower_chain(self.graph.start_id, set(), emitter)

    def lower_chain(self, node_id: Optional[str], visited: set, emitter: "StatementEmitter") -> None:
        current = node_id
        while current is not None:
            if current in visited:
                logger.warning("Cycle detected at node %s; skipping the rest of the chain", current)
                emitter.cycle(current)
                return
            visited.add(current)
            node = self.graph.nodes.get(current)
            if node is None:
                return
            if node.kind == ACTION:
                self._lower_node(node, visited, emitter)
            current = self._follow(node)

    def _follow(self, node) -> Optional[str]:
        edges = self.graph.continuation_edges(node.id)
        if not edges:
            return None
        if len(edges) > 1:
            logger.warning("Node %s has %d continuation edges; generating code for %s only",
                           node.id, len(edges), edges[0].target)
        return edges[0].target

    def _lower_node(self, node, visited: set, emitter: "StatementEmitter") -> None:
        action = node.action
        handler = getattr(emitter, action.handler)
        handles = RESTRICTED_HANDLES.get(action.type)
        if handles is None:
            handler(node, action)
            return
        frozen = frozenset(visited)
        branches: Dict[str, Branch] = {}
        for handle in handles:
            if handle == HANDLE_NEXT:
                continue
            edges = self.graph.edges_from(node.id, handle)
            branches[handle] = Branch(self, handle, edges[0].target if edges else None,
                                      frozen, emitter)
        handler(node, action, branches)


def describe(action) -> str:
    """One-line human description used for generated comments."""
    t = action.type
    if t in ("moveToPosition", "splineTo"):
        verb = "Move to" if t == "moveToPosition" else "Spline to"
        text = f"{verb} ({fmt(action.target_x or 0)}, {fmt(action.target_y or 0)})"
        if action.target_heading is not None:
            text += f" facing {fmt(action.target_heading)} degrees"
        return text
    if t in ("forward", "backward"):
        return f"Move {t} {fmt(action.distance)} inches"
    if t in ("strafeLeft", "strafeRight"):
        return f"Strafe {t[6:].lower()} {fmt(action.distance)} inches"
    if t in ("turnLeft", "turnRight"):
        return f"Turn {t[4:].lower()} {fmt(action.angle)} degrees"
    if t == "turnToHeading":
        return f"Turn to heading {fmt(action.target_heading or 0)} degrees"
    if t == "pivotTurn":
        return f"Pivot {action.direction} {fmt(action.angle)} degrees"
    if t == "followPath":
        return f"Follow path through {len(action.points)} points"
    return t


class StatementEmitter:
    """Per-backend rendering of each action type."""

    abstract = True

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("abstract", False):
            return
        missing = sorted(a.handler for a in ACTION_TYPES.values()
                         if not callable(getattr(cls, a.handler, None)))
        if missing:
            raise TypeError(f"{cls.__name__} has no handler for: {', '.join(missing)}")

    def __init__(self, out: SourceBuilder, pose: Waypoint):
        self.out = out
        self.pose = pose
        self.depth = 0

    def cycle(self, node_id: str) -> None:
        self.out.comment(f"Cycle detected at {node_id}, skipping")

    def device(self, name: Optional[str], role: str) -> str:
        return java_identifier(default_device_name(name, role))


def _clamp(value: float, lo: float, hi: float, what: str, node_id: str) -> float:
    if lo <= value <= hi:
        return value
    clamped = max(lo, min(hi, value))
    logger.warning("%s %s on node %s clamped to %s", what, value, node_id, clamped)
    return clamped


class LinearOpModeEmitter(StatementEmitter):
    """
    Plain Java statements for mechanisms, sensors and control flow.
    Subclasses decide how movement runs by implementing move().
    """

    abstract = True
    idle_call = "idle();"
    active_guard = "opModeIsActive() && "

    def __init__(self, out: SourceBuilder, pose: Waypoint, drivetrain: Optional[Drivetrain] = None):
        super().__init__(out, pose)
        self.drivetrain = drivetrain or Drivetrain()
        self.loop_depth = 0
        self.elapsed_ms = 0

    # ---------------- hooks ----------------

    def move(self, node, action) -> None:
        raise NotImplementedError

    def sleep(self, ms: int) -> None:
        self.out.line(f"sleep({ms});")

    def wait_while_not(self, condition: str) -> None:
        with self.out.block(f"while ({self.active_guard}!({condition}))"):
            self.out.line(self.idle_call)

    # ---------------- movement ----------------

    def _movement(self, node, action) -> None:
        self.out.blank()
        self.out.comment(describe(action))
        self.secondary(node, action.secondary_action)
        self.move(node, action)

    lower_move_to_position = _movement
    lower_spline_to = _movement
    lower_forward = _movement
    lower_backward = _movement
    lower_strafe_left = _movement
    lower_strafe_right = _movement
    lower_turn_left = _movement
    lower_turn_right = _movement
    lower_turn_to_heading = _movement
    lower_pivot_turn = _movement
    lower_follow_path = _movement

    def secondary(self, node, sec) -> None:
        if sec is None:
            return
        self.out.comment("Combined action")
        if sec.kind == "servo":
            pos = _clamp(sec.servo_position, 0.0, 1.0, "Servo position", node.id)
            self.out.line(f"{self.device(sec.servo_name, 'servo')}.setPosition({fmt(pos)});")
        elif sec.kind == "motor":
            power = _clamp(sec.motor_power, -1.0, 1.0, "Motor power", node.id)
            self.out.line(f"{self.device(sec.motor_name, 'motor')}.setPower({fmt(power)});")
        else:
            self.out.line('telemetry.addData("Sensor", "Reading...");')
            self.out.line("telemetry.update();")

    # ---------------- mechanisms ----------------

    def lower_set_servo(self, node, action) -> None:
        var = self.device(action.servo_name, "servo")
        pos = _clamp(action.position, 0.0, 1.0, "Servo position", node.id)
        self.out.blank()
        self.out.comment(f"Set servo {var}")
        self.out.line(f"{var}.setPosition({fmt(pos)});")

    def lower_continuous_servo(self, node, action) -> None:
        var = self.device(action.servo_name, "crservo")
        power = _clamp(action.power, -1.0, 1.0, "Servo power", node.id)
        self.out.blank()
        self.out.comment(f"Spin continuous servo {var}")
        self.out.line(f"{var}.setPower({fmt(power)});")

    def lower_run_motor(self, node, action) -> None:
        var = self.device(action.motor_name, "motor")
        power = _clamp(action.power, -1.0, 1.0, "Motor power", node.id)
        self.out.blank()
        self.out.comment(f"Run motor {var}")
        self.out.line(f"{var}.setPower({fmt(power)});")

    def lower_stop_motor(self, node, action) -> None:
        var = self.device(action.motor_name, "motor")
        self.out.blank()
        self.out.comment(f"Stop motor {var}")
        self.out.line(f"{var}.setPower(0);")

    def lower_set_motor_power(self, node, action) -> None:
        var = self.device(action.motor_name, "motor")
        power = _clamp(action.power, -1.0, 1.0, "Motor power", node.id)
        self.out.blank()
        self.out.comment(f"Set motor power {var}")
        self.out.line(f"{var}.setPower({fmt(power)});")

    # ---------------- sensors ----------------

    def lower_read_imu(self, node, action) -> None:
        var = self.device(action.sensor_name, "imu")
        self.out.use("AngleUnit")
        self.out.blank()
        self.out.line(f'telemetry.addData("Heading", {var}.getRobotYawPitchRollAngles().getYaw(AngleUnit.DEGREES));')
        self.out.line("telemetry.update();")

    def lower_read_distance(self, node, action) -> None:
        var = self.device(action.sensor_name, "distance")
        self.out.use("DistanceUnit")
        self.out.blank()
        self.out.line(f'telemetry.addData("Distance (in)", {var}.getDistance(DistanceUnit.INCH));')
        self.out.line("telemetry.update();")

    def lower_read_color(self, node, action) -> None:
        var = self.device(action.sensor_name, "color")
        self.out.blank()
        for channel in ("red", "green", "blue"):
            self.out.line(f'telemetry.addData("{channel.capitalize()}", {var}.{channel}());')
        self.out.line("telemetry.update();")

    def lower_read_touch(self, node, action) -> None:
        var = self.device(action.sensor_name, "touch")
        self.out.blank()
        self.out.line(f'telemetry.addData("Touch", {var}.isPressed());')
        self.out.line("telemetry.update();")

    def lower_wait_for_sensor(self, node, action) -> None:
        self.out.blank()
        self.out.comment(f"Wait for {action.sensor_name or 'sensor'}: {action.condition}")
        self.wait_while_not(action.condition)

    # ---------------- control ----------------

    def lower_wait(self, node, action) -> None:
        ms = int(round(max(0.0, action.duration) * 1000))
        self.out.blank()
        self.out.comment(f"Wait {fmt(action.duration)} seconds")
        self.sleep(ms)
        self.elapsed_ms += ms

    def lower_wait_until(self, node, action) -> None:
        self.out.blank()
        self.out.comment(f"Wait until {action.condition}")
        self.wait_while_not(action.condition)

    def lower_loop(self, node, action, branches) -> None:
        var = "loopIndex" + (str(self.loop_depth) if self.loop_depth else "")
        count = max(0, action.loop_count)
        body = branches["loop"]
        self.out.blank()
        with self.out.block(f"for (int {var} = 0; {var} < {count}; {var}++)"):
            self.loop_depth += 1
            try:
                if body:
                    body()
                else:
                    self.out.comment("Loop body")
            finally:
                self.loop_depth -= 1

    def lower_if(self, node, action, branches) -> None:
        self.out.blank()
        self.out.line(f"if ({action.condition}) {{")
        with self.out.indent():
            if branches["true"]:
                branches["true"]()
            else:
                self.out.comment("True branch")
        if branches["false"]:
            self.out.line("} else {")
            with self.out.indent():
                branches["false"]()
        self.out.line("}")

    def lower_parallel(self, node, action, branches) -> None:
        self.out.blank()
        self.out.comment("Parallel actions (mechanisms start before the blocking drive)")
        # sort is stable, so handle order holds among mechanisms
        present = sorted((b for b in branches.values() if b), key=lambda b: b.drives)
        if not present:
            self.out.comment("No parallel actions connected")
        for branch in present:
            self.out.comment(f"{branch.handle}:")
            branch()

    def lower_everynode(self, node, action) -> None:
        it = action.iterator_variable
        self.out.blank()
        if action.collection_type == "range":
            header = f"for (int {it} = {action.start_range}; {it} < {action.end_range}; {it}++)"
            with self.out.block(header):
                self.out.line(f'telemetry.addData("Iterator", {it});')
                self.out.line("telemetry.update();")
        elif action.collection_type == "array":
            with self.out.block(f"for (Object {it} : {action.collection_name})"):
                self.out.line(f'telemetry.addData("Current Item", {it});')
                self.out.line("telemetry.update();")
        else:
            self.out.line('telemetry.addData("Info", "Processing waypoints");')
            self.out.line("telemetry.update();")

    def lower_custom(self, node, action) -> None:
        self.out.blank()
        self.out.comment("Custom code")
        if action.custom_code.strip():
            self.out.code(action.custom_code)
        else:
            self.out.comment("(empty)")
