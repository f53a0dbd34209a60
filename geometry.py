import math
from typing import Tuple

Vec3 = Tuple[float, float, float]


def _to_xyz(lm) -> Vec3:
    return lm.x, lm.y, lm.z


def subtract(a, b) -> Vec3:
    ax, ay, az = _to_xyz(a)
    bx, by, bz = _to_xyz(b)
    return ax - bx, ay - by, az - bz


def cross(u: Vec3, v: Vec3) -> Vec3:
    return (
        u[1] * v[2] - u[2] * v[1],
        u[2] * v[0] - u[0] * v[2],
        u[0] * v[1] - u[1] * v[0],
    )


def norm(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def distance_3d(a, b) -> float:
    return norm(subtract(a, b))


def tilt_degrees(left, right) -> float:
    # Roll of the line from left to right in image coordinates, in (-180, 180].
    return math.degrees(math.atan2(right.y - left.y, right.x - left.x))
