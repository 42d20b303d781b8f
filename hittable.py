import math

import numpy as np

from aabb import AxisAlignedBoundingBox, Coverable

# hits closer than this are the surface the ray left from
T_MIN = 0.0001


class Sphere(Coverable):
    def __init__(self, center, radius, material=None):
        self.center = np.asarray(center, dtype=np.float64)
        self.radius = float(radius)
        self.material = material
        self.box_min = [
            self.center[0] - radius, self.center[1] - radius,
            self.center[2] - radius
        ]
        self.box_max = [
            self.center[0] + radius, self.center[1] + radius,
            self.center[2] + radius
        ]

    @property
    def bounding_box(self):
        return self.box_min, self.box_max

    def make_covering(self):
        return AxisAlignedBoundingBox.from_bounds(self.box_min, self.box_max,
                                                  payload=self)

    def intersect(self, ray):
        ''' Closest hit parameter beyond T_MIN, or None '''
        oc = ray.orig - self.center
        a = ray.dir @ ray.dir
        half_b = oc @ ray.dir
        c = oc @ oc - self.radius * self.radius
        discriminant = half_b * half_b - a * c
        if discriminant < 0.0:
            return None

        sqrtd = math.sqrt(discriminant)
        root = (-half_b - sqrtd) / a
        if root > T_MIN:
            return float(root)
        root = (-half_b + sqrtd) / a
        if root > T_MIN:
            return float(root)
        return None

    def normal_at(self, surface_pos):
        n = np.asarray(surface_pos) - self.center
        return n / np.linalg.norm(n)

    def __repr__(self):
        return 'Sphere(%s, %r)' % (list(self.center), self.radius)
