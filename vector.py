import taichi as ti

vec3f = ti.types.vector(3, ti.f32)

Vector = vec3f

infinity = float("inf")

__all__ = ["vec3f", "Vector", "infinity"]
