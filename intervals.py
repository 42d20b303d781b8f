class Interval:
    ''' A closed range [start, end] on the real line '''

    __slots__ = ('start', 'end')

    def __init__(self, start, end):
        self.start = float(start)
        self.end = float(end)

    def size(self):
        return self.end - self.start

    def midpoint(self):
        return 0.5 * (self.start + self.end)

    def normalized(self):
        ''' Returns the interval with its ends swapped if it is reversed '''
        if self.size() < 0.0:
            return Interval(self.end, self.start)
        return self

    def contains(self, value):
        return self.start <= value <= self.end

    def __eq__(self, other):
        if not isinstance(other, Interval):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __repr__(self):
        return 'Interval(%r, %r)' % (self.start, self.end)


def intersection(in1, in2):
    ''' Overlap of two intervals, None when empty.

    Intervals that only touch at a boundary do not intersect.
    '''
    start = max(in1.start, in2.start)
    end = min(in1.end, in2.end)
    if start >= end:
        return None
    return Interval(start, end)


def cover(in1, in2):
    ''' Smallest interval containing both '''
    return Interval(min(in1.start, in2.start), max(in1.end, in2.end))
