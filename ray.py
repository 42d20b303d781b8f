import numpy as np


class Ray:
    ''' A half line orig + t * dir. dir does not have to be unit length '''

    __slots__ = ('orig', 'dir')

    def __init__(self, orig, dir):
        self.orig = np.asarray(orig, dtype=np.float64)
        self.dir = np.asarray(dir, dtype=np.float64)

    @classmethod
    def towards(cls, position, point_to):
        ''' A ray from position with a normalized direction along point_to '''
        direction = np.asarray(point_to, dtype=np.float64)
        return cls(position, direction / np.linalg.norm(direction))

    def position_at(self, t):
        return self.orig + t * self.dir

    def __repr__(self):
        return 'Ray(orig=%s, dir=%s)' % (list(self.orig), list(self.dir))
