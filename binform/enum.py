import sys
from enum import Enum, auto


class Endianess(Enum):
    LITTLE_ENDIAN = auto()
    BIG_ENDIAN    = auto()
    NETWORK       = auto()
    NATIVE        = auto()

    def resolve(self):
        '''Return the concrete byte order, i.e. LITTLE_ENDIAN or BIG_ENDIAN.'''
        if self == Endianess.NETWORK:
            return Endianess.BIG_ENDIAN
        if self == Endianess.NATIVE:
            return Endianess.LITTLE_ENDIAN if sys.byteorder == 'little' else Endianess.BIG_ENDIAN

        return self

    @property
    def struct_prefix(self):
        return '<' if self.resolve() == Endianess.LITTLE_ENDIAN else '>'


class FieldPhase(Enum):
    '''Enum to state the actual phase of a field'''
    CLEAR    = 0
    ASSIGNED = auto()
    READING  = auto()
    READ     = auto()
