from abc import ABC, abstractmethod

import numpy as np

from intervals import Interval, intersection, cover

# stands in for a zero ray direction component in the slab test
ZERO_DIVISOR = 1.0e-4


class AxisAlignedBoundingBox:
    ''' Three intervals, one per axis, optionally boxing a scene object.

    Leaf boxes carry the object they bound as ``payload``; boxes made by
    composing others never do. Equality only looks at the extents.
    '''

    __slots__ = ('dims', 'payload')

    def __init__(self, dims, payload=None):
        self.dims = tuple(dims)
        self.payload = payload

    @classmethod
    def empty(cls):
        ''' Zero size box at the origin, where folds with cover_of start '''
        return cls([Interval(0.0, 0.0) for _ in range(3)])

    @classmethod
    def from_bounds(cls, box_min, box_max, payload=None):
        return cls([Interval(box_min[i], box_max[i]) for i in range(3)],
                   payload)

    @property
    def bounding_box(self):
        return ([d.start for d in self.dims], [d.end for d in self.dims])

    def is_empty(self):
        return all(d.size() == 0.0 for d in self.dims)

    def dims_copy(self):
        return AxisAlignedBoundingBox(self.dims)

    def check_intersection(self, ray):
        ''' True if some t puts ray.orig + t * ray.dir inside all three slabs.

        This is a line test, t is not restricted to be positive.
        '''
        times = []
        for i in range(3):
            divisor = ray.dir[i]
            if divisor == 0.0:
                divisor = ZERO_DIVISOR
            start = (self.dims[i].start - ray.orig[i]) / divisor
            end = (self.dims[i].end - ray.orig[i]) / divisor
            # a negative direction swaps entry and exit
            times.append(Interval(start, end).normalized())

        xy = intersection(times[0], times[1])
        if xy is None:
            return False
        return intersection(xy, times[2]) is not None

    def longest_axis(self):
        sizes = [d.size() for d in self.dims]
        if sizes[0] > sizes[1] and sizes[0] > sizes[2]:
            return 0
        if sizes[1] > sizes[2]:
            return 1
        return 2

    def midpoint(self):
        return np.array([d.midpoint() for d in self.dims])

    def contains(self, point):
        return all(self.dims[i].contains(point[i]) for i in range(3))

    def compose_with(self, other):
        return cover_of(self, other)

    def __eq__(self, other):
        if not isinstance(other, AxisAlignedBoundingBox):
            return NotImplemented
        return self.dims == other.dims

    def __repr__(self):
        return 'AxisAlignedBoundingBox(%r)' % (list(self.dims),)


class Coverable(ABC):
    ''' Anything that can report a box containing its whole surface '''

    @abstractmethod
    def make_covering(self):
        ''' Returns an AxisAlignedBoundingBox with self as payload '''


def cover_of(bbox1, bbox2):
    ''' Calculates the surrounding box of two boxes '''
    return AxisAlignedBoundingBox(
        [cover(bbox1.dims[i], bbox2.dims[i]) for i in range(3)])


def make_all_covering(boxes):
    ''' Folds cover_of over boxes from the empty box, so the result always
    reaches the origin. No boxes gives the empty box back.
    '''
    acc = AxisAlignedBoundingBox.empty()
    for bbox in boxes:
        acc = acc.compose_with(bbox)
    return acc


def sort_on_axis(boxes, axis):
    ''' Sorts boxes in place by their midpoint along axis '''
    boxes.sort(key=lambda bbox: bbox.dims[axis].midpoint())


def split_on_covering(boxes):
    ''' Sort the boxes along the longest span of their cover and halve them '''
    halfway = len(boxes) // 2
    covering = make_all_covering(boxes)
    sort_on_axis(boxes, covering.longest_axis())
    return boxes[:halfway], boxes[halfway:]
