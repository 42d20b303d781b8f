import taichi as ti
import numpy as np
from time import time
from flatbvh import FlatBVH
from ray import Ray
from scene import random_scene

# switch to cpu if needed
ti.init(arch=ti.gpu)


def camera_rays(lookfrom, lookat, width, height, vfov=20.0):
    ''' One pinhole ray per pixel centre, as (n, 3) origin and direction arrays '''
    lookfrom = np.asarray(lookfrom, dtype=np.float64)
    w = lookfrom - np.asarray(lookat, dtype=np.float64)
    w /= np.linalg.norm(w)
    u = np.cross([0.0, 1.0, 0.0], w)
    u /= np.linalg.norm(u)
    v = np.cross(w, u)

    half_height = np.tan(np.radians(vfov) / 2)
    half_width = half_height * width / height
    i, j = np.meshgrid(np.arange(width), np.arange(height), indexing='ij')
    s = ((i + 0.5) / width * 2 - 1) * half_width
    t = ((j + 0.5) / height * 2 - 1) * half_height
    directions = s[..., None] * u + t[..., None] * v - w
    directions = directions.reshape(-1, 3)
    directions /= np.linalg.norm(directions, axis=1)[:, None]
    origins = np.broadcast_to(lookfrom, directions.shape).copy()
    return origins, directions


if __name__ == '__main__':
   image_width = 256
   image_height = 256
   seed = 2023

   t = time()
   scene = random_scene(seed)
   print('built tree over %d objects, depth %d, in %.3fs'
         % (len(scene.objects), scene.tree.depth, time() - t))

   origins, directions = camera_rays([13.0, 2.0, 3.0], [0.0, 0.0, 0.0],
                                     image_width, image_height)

   t = time()
   flat = FlatBVH(scene.tree)
   hit_ids, hit_ts = flat.closest_hits(origins, directions)
   counts = flat.count_candidates(origins, directions)
   print('kernel traversal: %.3fs, %d of %d rays hit, %.1f candidates per ray'
         % (time() - t, np.count_nonzero(hit_ids >= 0), len(hit_ids),
            counts.mean()))

   # the cpu tree is slow in pure python, check a sample of the rays against it
   t = time()
   mismatches = 0
   sample = range(0, len(origins), 97)
   for k in sample:
      closest = scene.hit(Ray(origins[k], directions[k]))
      cpu_id = -1 if closest is None else flat.objects.index(closest[0])
      mismatches += int(cpu_id != hit_ids[k])
   print('cpu traversal of %d rays: %.3fs, %d disagree with the kernel'
         % (len(sample), time() - t, mismatches))
