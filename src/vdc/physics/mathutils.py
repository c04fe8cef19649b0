"""
Math helpers - Scalar shaping functions and quaternion algebra.

Provides:
- Scalar helpers (clamp, lerp, inverse lerp, remap, move towards, damp)
- Angle wrapping
- Quaternion product, rotation and conversion helpers

Quaternions are stored as numpy arrays in (x, y, z, w) order.
World frame is y-up; the vehicle body frame has +z forward, +x left, +y up.
"""

import math
import numpy as np


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a scalar into [low, high]."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between a and b."""
    return a + (b - a) * t


def inverse_lerp(a: float, b: float, value: float) -> float:
    """Position of value between a and b, clamped to [0, 1]."""
    if a == b:
        return 0.0
    return clamp((value - a) / (b - a), 0.0, 1.0)


def remap(value: float, in_low: float, in_high: float, out_low: float, out_high: float) -> float:
    """Map value from one range onto another, clamping at the ends."""
    return lerp(out_low, out_high, inverse_lerp(in_low, in_high, value))


def move_towards(current: float, target: float, max_delta: float) -> float:
    """Move current towards target by at most max_delta."""
    if abs(target - current) <= max_delta:
        return target
    return current + math.copysign(max_delta, target - current)


def damp(current: float, target: float, time_constant: float, dt: float) -> float:
    """Frame-rate independent exponential smoothing.

    Args:
        current: Current value
        target: Value being approached
        time_constant: Time constant in seconds (0 snaps to target)
        dt: Time step in seconds

    Returns:
        Smoothed value
    """
    if time_constant <= 0.0:
        return target
    return current + (target - current) * (1.0 - math.exp(-dt / time_constant))


def sign(value: float) -> float:
    """Sign of value with sign(0) == 0."""
    if value > 0.0:
        return 1.0
    if value < 0.0:
        return -1.0
    return 0.0


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians into (-pi, pi]."""
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


def quat_identity() -> np.ndarray:
    """Identity rotation."""
    return np.array([0.0, 0.0, 0.0, 1.0])


def quat_from_heading(heading: float) -> np.ndarray:
    """Rotation about the world up axis.

    Args:
        heading: Yaw angle in radians (positive turns +z towards +x)

    Returns:
        Unit quaternion (x, y, z, w)
    """
    half = 0.5 * heading
    return np.array([0.0, math.sin(half), 0.0, math.cos(half)])


def quat_multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product a * b."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array([
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    ])


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """Return q scaled to unit norm (identity if degenerate)."""
    norm = math.sqrt(float(np.dot(q, q)))
    if norm < 1e-12 or not math.isfinite(norm):
        return quat_identity()
    return q / norm


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    """Conjugate (inverse for unit quaternions)."""
    return np.array([-q[0], -q[1], -q[2], q[3]])


def quat_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate vector v by unit quaternion q."""
    u = q[:3]
    t = 2.0 * np.cross(u, v)
    return v + q[3] * t + np.cross(u, t)


def quat_to_matrix(q: np.ndarray) -> np.ndarray:
    """Rotation matrix equivalent to unit quaternion q."""
    x, y, z, w = q
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array([
        [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
        [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
        [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
    ])


def heading_of(q: np.ndarray) -> float:
    """Yaw of the body forward axis projected on the ground plane."""
    forward = quat_rotate(q, np.array([0.0, 0.0, 1.0]))
    return math.atan2(forward[0], forward[2])
