import logging

import numpy as np
import taichi as ti

from aabb import ZERO_DIVISOR
from hittable import Sphere, T_MIN
from vector import *

logger = logging.getLogger(__name__)


@ti.data_oriented
class FlatBVH:
    ''' A covering tree compressed into taichi fields for kernel traversal.

    Nodes are numbered in preorder. Every node keeps the id of its leaf
    object (-1 for internal nodes), of both children and of the next node
    to walk once its subtree is done, so a ray walks the tree without a
    stack. Call after ti.init.
    '''

    def __init__(self, root):
        self.total_count = root.total
        self.objects = []

        obj_ids = np.full(self.total_count, -1, dtype=np.int32)
        left_ids = np.full(self.total_count, -1, dtype=np.int32)
        right_ids = np.full(self.total_count, -1, dtype=np.int32)
        next_ids = np.full(self.total_count, -1, dtype=np.int32)
        mins = np.zeros((self.total_count, 3), dtype=np.float32)
        maxs = np.zeros((self.total_count, 3), dtype=np.float32)

        # first walk tree and give ids
        def walk_bvh(node, node_id, next_id):
            mins[node_id], maxs[node_id] = node.bounding_box
            next_ids[node_id] = next_id
            if node.is_leaf:
                obj_ids[node_id] = len(self.objects)
                self.objects.append(node.cover.payload)
                return

            child_id = node_id + 1
            if node.left is not None:
                left_ids[node_id] = child_id
                right_id = child_id + node.left.total
                walk_bvh(node.left, child_id,
                         right_id if node.right is not None else next_id)
                child_id = right_id
            if node.right is not None:
                right_ids[node_id] = child_id
                walk_bvh(node.right, child_id, next_id)

        walk_bvh(root, 0, -1)

        self.bvh_obj_id = ti.field(ti.i32, shape=self.total_count)
        self.bvh_left_id = ti.field(ti.i32, shape=self.total_count)
        self.bvh_right_id = ti.field(ti.i32, shape=self.total_count)
        self.bvh_next_id = ti.field(ti.i32, shape=self.total_count)
        self.bvh_min = ti.Vector.field(3, dtype=ti.f32, shape=self.total_count)
        self.bvh_max = ti.Vector.field(3, dtype=ti.f32, shape=self.total_count)
        self.bvh_obj_id.from_numpy(obj_ids)
        self.bvh_left_id.from_numpy(left_ids)
        self.bvh_right_id.from_numpy(right_ids)
        self.bvh_next_id.from_numpy(next_ids)
        self.bvh_min.from_numpy(mins)
        self.bvh_max.from_numpy(maxs)

        self.has_spheres = all(isinstance(obj, Sphere) for obj in self.objects)
        n_obj = len(self.objects)
        self.sphere_center = ti.Vector.field(3, dtype=ti.f32, shape=n_obj)
        self.sphere_radius = ti.field(ti.f32, shape=n_obj)
        if self.has_spheres:
            self.sphere_center.from_numpy(np.array(
                [obj.center for obj in self.objects], dtype=np.float32))
            self.sphere_radius.from_numpy(np.array(
                [obj.radius for obj in self.objects], dtype=np.float32))

        logger.info("flattened %d nodes (%d leaves) into taichi fields",
                    self.total_count, n_obj)

    @ti.func
    def get_full_id(self, i):
        ''' Gets the obj id, left_id, right_id, next_id for a bvh node '''
        return self.bvh_obj_id[i], self.bvh_left_id[i], self.bvh_right_id[
            i], self.bvh_next_id[i]

    @ti.func
    def hit_aabb(self, bvh_id, ray_origin, ray_direction):
        ''' Use the slab method to do aabb test'''
        min_aabb = self.bvh_min[bvh_id]
        max_aabb = self.bvh_max[bvh_id]
        t_enter = -infinity
        t_exit = infinity

        for i in ti.static(range(3)):
            divisor = ray_direction[i]
            if divisor == 0.0:
                divisor = ZERO_DIVISOR
            i1 = (min_aabb[i] - ray_origin[i]) / divisor
            i2 = (max_aabb[i] - ray_origin[i]) / divisor
            t_enter = ti.max(t_enter, ti.min(i1, i2))
            t_exit = ti.min(t_exit, ti.max(i1, i2))

        return t_enter < t_exit

    @ti.func
    def hit_sphere(self, obj_id, ray_origin, ray_direction):
        center = self.sphere_center[obj_id]
        radius = self.sphere_radius[obj_id]
        oc = ray_origin - center
        a = ray_direction.norm_sqr()
        half_b = oc.dot(ray_direction)
        c = oc.norm_sqr() - radius * radius
        discriminant = half_b * half_b - a * c

        t = infinity
        if discriminant >= 0.0:
            sqrtd = ti.sqrt(discriminant)
            root = (-half_b - sqrtd) / a
            if root > T_MIN:
                t = root
            else:
                root = (-half_b + sqrtd) / a
                if root > T_MIN:
                    t = root
        return t

    @ti.func
    def step(self, hit, left_id, right_id, next_id):
        ''' Returns the next node to walk '''
        nxt = next_id
        if hit:
            if left_id != -1:
                nxt = left_id
            elif right_id != -1:
                nxt = right_id
        return nxt

    @ti.kernel
    def _count_candidates(self, origins: ti.types.ndarray(),
                          directions: ti.types.ndarray(),
                          counts: ti.types.ndarray()):
        for r in range(origins.shape[0]):
            ray_origin = Vector([origins[r, 0], origins[r, 1], origins[r, 2]])
            ray_direction = Vector(
                [directions[r, 0], directions[r, 1], directions[r, 2]])
            n = 0
            curr = 0
            while curr != -1:
                obj_id, left_id, right_id, next_id = self.get_full_id(curr)
                hit = self.hit_aabb(curr, ray_origin, ray_direction)
                if hit and obj_id != -1:
                    n += 1
                curr = self.step(hit, left_id, right_id, next_id)
            counts[r] = n

    @ti.kernel
    def _closest_hits(self, origins: ti.types.ndarray(),
                      directions: ti.types.ndarray(),
                      hit_ids: ti.types.ndarray(),
                      hit_ts: ti.types.ndarray()):
        for r in range(origins.shape[0]):
            ray_origin = Vector([origins[r, 0], origins[r, 1], origins[r, 2]])
            ray_direction = Vector(
                [directions[r, 0], directions[r, 1], directions[r, 2]])
            closest_so_far = infinity
            hit_index = -1
            curr = 0
            while curr != -1:
                obj_id, left_id, right_id, next_id = self.get_full_id(curr)
                hit = self.hit_aabb(curr, ray_origin, ray_direction)
                if hit and obj_id != -1:
                    t = self.hit_sphere(obj_id, ray_origin, ray_direction)
                    if t < closest_so_far:
                        closest_so_far = t
                        hit_index = obj_id
                curr = self.step(hit, left_id, right_id, next_id)
            hit_ids[r] = hit_index
            hit_ts[r] = closest_so_far

    def count_candidates(self, origins, directions):
        ''' Number of leaf boxes each ray of the batch passes through '''
        origins, directions = _as_ray_batch(origins, directions)
        counts = np.zeros(origins.shape[0], dtype=np.int32)
        if origins.shape[0] > 0:
            self._count_candidates(origins, directions, counts)
        return counts

    def closest_hits(self, origins, directions):
        ''' Closest sphere hit of each ray of the batch.

        Returns the index into self.objects and the hit parameter, -1 and
        inf where the ray hits nothing.
        '''
        if not self.has_spheres:
            raise TypeError("closest_hits needs every leaf object to be a Sphere")
        origins, directions = _as_ray_batch(origins, directions)
        hit_ids = np.full(origins.shape[0], -1, dtype=np.int32)
        hit_ts = np.full(origins.shape[0], infinity, dtype=np.float32)
        if origins.shape[0] > 0:
            self._closest_hits(origins, directions, hit_ids, hit_ts)
        return hit_ids, hit_ts


def _as_ray_batch(origins, directions):
    origins = np.ascontiguousarray(origins, dtype=np.float32)
    directions = np.ascontiguousarray(directions, dtype=np.float32)
    if origins.ndim != 2 or origins.shape[1] != 3:
        raise ValueError("ray origins must have shape (n, 3), got %s"
                         % (origins.shape,))
    if directions.shape != origins.shape:
        raise ValueError("ray directions must match origins %s, got %s"
                         % (origins.shape, directions.shape))
    return origins, directions
