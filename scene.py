import logging

import numpy as np

from bvh import build, query, closest_hit
from hittable import Sphere

logger = logging.getLogger(__name__)


class Scene:
    def __init__(self):
        self.objects = []
        self.tree = None

    def add(self, object):
        self.objects.append(object)

    def commit(self):
        ''' Commit should be called after all objects added.
            Will build the covering tree. '''
        if not self.objects:
            raise ValueError("cannot commit a scene without objects")
        boxes = [obj.make_covering() for obj in self.objects]
        self.tree = build(boxes)
        logger.debug("committed scene with %d objects", len(self.objects))
        return self.tree

    def candidates(self, ray):
        ''' Objects whose box the ray passes through, with their exact hits '''
        if self.tree is None:
            raise RuntimeError("Scene.commit() must be called before tracing rays")
        return query(self.tree, ray, [])

    def hit(self, ray):
        ''' Closest (object, t) along the ray, or None '''
        return closest_hit(self.candidates(ray))

    def hit_linear(self, ray):
        ''' Same as hit, testing every object without the tree '''
        return closest_hit([(obj, obj.intersect(ray)) for obj in self.objects])


def debug_scene():
    scene = Scene()
    scene.add(Sphere([0.0, 0.0, 0.0], 5.0))
    scene.add(Sphere([0.0, 0.0, 2.0], 1.0))
    scene.add(Sphere([0.0, 2.0, 0.0], 1.0))
    scene.commit()
    return scene


def random_scene(seed=None, extent=11):
    ''' The classic ground + three big spheres + small sphere grid scene '''
    rng = np.random.default_rng(seed)
    scene = Scene()
    scene.add(Sphere([0.0, -1000.0, 0.0], 1000.0, material="ground"))
    scene.add(Sphere([0.0, 1.0, 0.0], 1.0, material="dielectric"))
    scene.add(Sphere([-4.0, 1.0, 0.0], 1.0, material="diffuse"))
    scene.add(Sphere([4.0, 1.0, 0.0], 1.0, material="metal"))

    # materials are plain tags, carried on each sphere for the renderer
    for x in range(-extent, extent):
        for z in range(-extent, extent):
            location = [x + 0.9 * rng.random(), 0.2, z + 0.9 * rng.random()]
            probability = rng.random()
            if probability < 0.8:
                material = "diffuse"
            elif probability < 0.95:
                material = "metal"
            else:
                material = "dielectric"
            scene.add(Sphere(location, 0.2, material=material))

    scene.commit()
    return scene
