"""
Per-joint spring-damper stress model.

Each controller turns the joint angle trajectory into a bounded stress score:

    velocity   = (angle - previous_angle) / dt
    muscle     = force_weight * sin(pi * normalized_angle)       (moment arm)
    restoring  = stiffness * distance outside [angle_min, angle_max]
    damping    = effective_damping * |velocity|
    chain      = chain_weight * upstream_stress
    torque     = clamp(muscle + restoring + damping + chain - friction, 0, max_torque)
    stress     = torque / (torque + reference_torque)

Friction is the static coefficient when the joint is (nearly) still and the
kinetic coefficient otherwise. When the upstream joint is highly stressed the
downstream damping is raised to at least ``safety_damping * upstream_stress``.
"""

import logging
import math
from collections import deque
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from .config import (
    CHAIN_SAFETY_THRESHOLD,
    DEFAULT_DT,
    EPSILON,
    MAX_DT,
    ROM_WINDOW,
    get_joint_config,
    load_joint_config,
)
from .keys import JOINT_ORDER, Joint, JointType, Side
from .utils import clamp, effective_dt, safe_divide, sanitize

logger = logging.getLogger(__name__)


class JointParameters(BaseModel):
    """Physical parameters of one joint controller (angles in radians)."""

    angle_min: float = Field(description="Lower bound of the working range (rad)")
    angle_max: float = Field(description="Upper bound of the working range (rad)")
    stiffness: float = Field(ge=0.0, description="Restoring torque per radian outside the range")
    damping: float = Field(ge=0.0, description="Damping torque per rad/s")
    static_friction: float = Field(default=0.0, ge=0.0)
    kinetic_friction: float = Field(default=0.0, ge=0.0)
    upstream: Optional[JointType] = Field(default=None, description="Kinetic-chain parent joint type")
    chain_weight: float = Field(default=0.0, ge=0.0, le=1.0)
    safety_damping: float = Field(default=0.0, ge=0.0)
    reference_torque: float = Field(default=1.0, gt=0.0)
    max_torque: float = Field(default=20.0, gt=0.0)

    @model_validator(mode="after")
    def _check_range(self) -> "JointParameters":
        if self.angle_max <= self.angle_min:
            raise ValueError(
                f"angle_max ({self.angle_max}) must exceed angle_min ({self.angle_min})"
            )
        return self

    @classmethod
    def from_degrees(cls, angle_min: float, angle_max: float, **kwargs) -> "JointParameters":
        return cls(angle_min=math.radians(angle_min), angle_max=math.radians(angle_max), **kwargs)


class JointController:
    """Stateful stress model for one joint of one analysis session."""

    def __init__(self, joint: Joint, params: JointParameters, rom_window: int = ROM_WINDOW):
        self.joint = joint
        self.params = params
        self.previous_angle: Optional[float] = None
        self._angles: deque[float] = deque(maxlen=rom_window)

    def reset(self) -> None:
        self.previous_angle = None
        self._angles.clear()

    def forget(self) -> None:
        """Drop the velocity reference after the joint went undetected.

        The ROM window is kept, only the next angular velocity restarts at zero.
        """
        self.previous_angle = None

    def angular_velocity(self, current_angle: float, dt: float,
                         previous_angle: Optional[float] = None) -> float:
        """Angular velocity (rad/s) against ``previous_angle`` or the stored one."""
        prev = self.previous_angle if previous_angle is None else previous_angle
        if prev is None:
            return 0.0
        return sanitize((current_angle - prev) / effective_dt(dt, DEFAULT_DT, MAX_DT))

    def moment_arm(self, current_angle: float) -> float:
        p = self.params
        t = clamp((current_angle - p.angle_min) / (p.angle_max - p.angle_min), 0.0, 1.0)
        return math.sin(math.pi * t)

    def step(
        self,
        current_angle: float,
        dt: float,
        muscle_force_weight: float = 0.0,
        upstream_stress: Optional[float] = None,
        previous_angle: Optional[float] = None,
    ) -> float:
        """Compute this frame's stress in [0, 1] and advance the stored angle.

        Args:
            current_angle: Joint angle in radians.
            dt: Seconds since the previous frame; invalid values fall back to
                ``DEFAULT_DT``.
            muscle_force_weight: Active muscle drive in [0, 1].
            upstream_stress: Stress of the kinetic-chain parent computed
                earlier in the same frame, if any.
            previous_angle: Overrides the stored previous angle.
        """
        p = self.params
        current_angle = sanitize(current_angle)
        velocity = self.angular_velocity(current_angle, dt, previous_angle)
        speed = abs(velocity)

        # 1. Restoring torque outside the working range
        if current_angle < p.angle_min:
            restoring = p.stiffness * (p.angle_min - current_angle)
        elif current_angle > p.angle_max:
            restoring = p.stiffness * (current_angle - p.angle_max)
        else:
            restoring = 0.0

        # 2. Damping, raised by a strongly loaded upstream joint
        upstream = clamp(upstream_stress, 0.0, 1.0) if upstream_stress is not None else 0.0
        damping = p.damping
        if upstream > CHAIN_SAFETY_THRESHOLD:
            damping = max(damping, p.safety_damping * upstream)
        damping_torque = damping * speed

        # 3. Friction
        friction = p.static_friction if speed < EPSILON else p.kinetic_friction

        # 4. Muscle drive and kinetic chain
        muscle = clamp(muscle_force_weight, 0.0, 1.0) * self.moment_arm(current_angle)
        chain = p.chain_weight * upstream

        torque = clamp(muscle + restoring + damping_torque + chain - friction, 0.0, p.max_torque)
        stress = clamp(safe_divide(torque, torque + p.reference_torque), 0.0, 1.0)

        self.track(current_angle)
        return stress

    def track(self, current_angle: float) -> None:
        """Record an angle without scoring it (keeps velocity and ROM continuous)."""
        self.previous_angle = sanitize(current_angle)
        self._angles.append(self.previous_angle)

    @property
    def range_of_motion(self) -> float:
        """Observed angle span over the ROM window, in radians."""
        if len(self._angles) < 2:
            return 0.0
        return max(self._angles) - min(self._angles)

    @property
    def rom_percent(self) -> float:
        """ROM as a percentage of the configured working range, in [0, 100]."""
        span = self.params.angle_max - self.params.angle_min
        return clamp(safe_divide(self.range_of_motion, span) * 100.0, 0.0, 100.0)


def build_joint_parameters(config: Optional[dict] = None) -> dict[JointType, JointParameters]:
    """Validate a joint config (degrees) into per-type :class:`JointParameters`.

    Raises:
        ValueError: If an entry is malformed or an upstream joint is not
            evaluated before the joint it feeds.
    """
    cfg = config if config is not None else get_joint_config()
    params: dict[JointType, JointParameters] = {}
    for joint_type in JOINT_ORDER:
        try:
            entry = dict(cfg["joints"][joint_type.value])
            entry.setdefault("reference_torque", cfg.get("reference_torque", 1.0))
            entry.setdefault("max_torque", cfg.get("max_torque", 20.0))
            params[joint_type] = JointParameters.from_degrees(
                entry.pop("angle_min"), entry.pop("angle_max"), **entry
            )
        except (KeyError, ValidationError) as e:
            raise ValueError(f"Invalid parameters for joint '{joint_type.value}': {e}") from e

        upstream = params[joint_type].upstream
        if upstream is not None and upstream not in params:
            raise ValueError(
                f"Joint '{joint_type.value}' has upstream '{upstream.value}' "
                "which is not evaluated before it"
            )
    return params


def build_joint_controllers(config_path: Optional[Path] = None) -> dict[Joint, JointController]:
    """Create one controller per joint, ordered upstream-first."""
    config = load_joint_config(config_path) if config_path is not None else None
    params = build_joint_parameters(config)
    controllers: dict[Joint, JointController] = {}
    for joint_type in JOINT_ORDER:
        for side in Side:
            joint = Joint.of(joint_type, side)
            controllers[joint] = JointController(joint, params[joint_type])
    return controllers
