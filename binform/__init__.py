"""
# binform, declarative binary formats.

We can define a file format (or a wire protocol) as a way of describing
the binary representation of something, where each subcomponent, a field,
represents a specific aspect of it.

Two basic main operations are defined for each field:

 1. read(): the more straightforward, i.e., reading the binary data
    from a stream and build a high-level representation of that.
    The field itself knows how many bytes needs to read.

 2. write(): encode the high-level representation into binary data.

A field can depend on its siblings (the length of a string is the value
of the field before it, a checksum is computed over the other fields), so
its options can be deferred expressions evaluated when needed.

A field instance can be in one of the following phases

 1. CLEAR
 2. ASSIGNED
 3. READING
 4. READ

"""
from .core import Array, Choice, Struct
from .enum import Endianess, FieldPhase
from .exceptions import (
    BinformException,
    ConfigurationException,
    LookupException,
    ResolutionException,
    UnpackException,
    ValidityException,
)
from .fields import (
    Field,
    IntField,
    Int8, Uint8,
    Int16le, Int16be, Uint16le, Uint16be,
    Int32le, Int32be, Uint32le, Uint32be,
    Int64le, Int64be, Uint64le, Uint64be,
    FloatField,
    FloatLe, FloatBe, DoubleLe, DoubleBe,
    StringField,
    ZeroStringField,
)
from .properties import Constant, Context, Deferred, Dependency
from .registry import TypeRegistry, lookup, register, registry
from .streams import Stream, open_stream


__version__ = '0.1.0'
