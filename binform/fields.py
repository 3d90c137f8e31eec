"""
A Field is "fundamental" datatype from the format point of view, something directly
readable/writable from/to a stream.

Every field instance goes through the following phases

 1. CLEAR: nothing has been assigned or read, the value is the initial_value
    (if indicated) or a sensible default for the type
 2. ASSIGNED: a value has been set explicitly
 3. READING: the first half of a read, the value is what has been decoded
 4. READ: the read has been completed

A field can be configured with

 - value: the value is fixed, assignments are ignored and after a read the
   value reverts to it (during a read the decoded value is visible anyway)
 - initial_value: the value while in the CLEAR phase
 - check_value: checked at the end of each read, if it is a boolean it's
   the outcome of the check, otherwise it's the value expected

all of them can be constants or callables taking a Context.
"""
import logging
import struct
from enum import Enum

from bitstring import Bits

from .enum import Endianess, FieldPhase
from .exceptions import ConfigurationException, ValidityException
from .meta import FieldBase, hybridmethod
from .properties import CheckOutcome, Context, PropertyDescriptor, make_parameter
from .registry import register
from .streams import open_stream


class _Missing(Enum):
    token = 0


_MISSING = _Missing.token


class Field(FieldBase):
    """Base class to subclass from"""

    # attributes of the instance and of Context that can't be used as names for fields in a struct
    reserved_names = frozenset(('name', 'father', 'logger', 'field', 'parent', 'root'))
    # a Context looks through a transparent container to find the siblings by name
    transparent = False

    def __init__(self, *, value=None, initial_value=None, check_value=None, name=None, father=None):
        super().__init__()
        if value is not None and initial_value is not None:
            raise ConfigurationException(
                msg=f"{self.__class__.__name__}: 'value' and 'initial_value' are mutually exclusive")

        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self._value_param = make_parameter(value)
        self._initial_param = make_parameter(initial_value)
        self._check_param = make_parameter(check_value)

        self._phase = FieldPhase.CLEAR
        self._value = None
        self._cache = _MISSING

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.snapshot())

    def __str__(self):
        return str(self.value)

    def context(self, **bindings) -> Context:
        '''The view over the siblings of this field used to resolve its parameters.'''
        return Context(self.father, **bindings)

    def _resolve(self, parameter, **bindings):
        return parameter.resolve(self.context(**bindings))

    # the following methods are the ones a concrete type must implement

    def sensible_default(self):
        raise NotImplementedError(f"method {self.__class__.__name__}.sensible_default() not implemented")

    def num_bytes_for(self, value) -> int:
        return len(self.encode(value))

    def encode(self, value) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}.encode() not implemented")

    def decode(self, stream):
        raise NotImplementedError(f"method {self.__class__.__name__}.decode() not implemented")

    def values_equal(self, a, b) -> bool:
        return a == b

    def _normalize(self, value):
        '''Transform a stored value into the one visible from outside.'''
        return value

    def _initial_value(self):
        if self._cache is not _MISSING:
            return self._cache

        if self._initial_param is None:
            value = self.sensible_default()
        elif self._initial_param.is_constant:
            value = self._initial_param.value
        else:
            # a deferred initial value follows its siblings, no caching
            return self._resolve(self._initial_param)

        self._cache = value

        return value

    def _get_value(self):
        if self._phase == FieldPhase.READING:
            value = self._value
        elif self._value_param is not None:
            value = self._resolve(self._value_param)
        elif self._phase in (FieldPhase.ASSIGNED, FieldPhase.READ):
            value = self._value
        else:
            value = self._initial_value()

        return self._normalize(value)

    def _set_value(self, value) -> None:
        if self._value_param is not None:
            self.logger.debug("ignoring assignment of %r to %s with constant value", value, self._describe())
            return

        self._value = value
        self._phase = FieldPhase.ASSIGNED
        self._cache = _MISSING

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self._set_value(value))

    def _describe(self):
        return '%s%s' % (self.__class__.__name__, " '%s'" % self.name if self.name else '')

    def begin_read(self, stream) -> None:
        '''First half of a read: decode the value from the stream and keep it
        visible until end_read() is called.'''
        with open_stream(stream) as stream:
            value = self.decode(stream)
        self.logger.debug('read %r for %s', value, self._describe())

        self._value = value
        self._phase = FieldPhase.READING
        self._cache = _MISSING

    def end_read(self) -> None:
        if self._phase != FieldPhase.READING:
            return

        decoded = self._value
        self._phase = FieldPhase.READ

        if self._value_param is not None:
            self.logger.debug('discarding read value %r for %s with constant value', decoded, self._describe())
            self._value = None

        self._check_validity(decoded)

    def _check_validity(self, decoded) -> None:
        if self._check_param is None:
            return

        outcome = CheckOutcome.from_resolved(self._resolve(self._check_param, value=decoded))
        self.logger.debug('checking %r against %r for %s', decoded, outcome, self._describe())

        if outcome.passes(decoded, equals=self.values_equal):
            return

        expected = getattr(outcome, 'expected', None)
        if expected is not None:
            msg = f'value {decoded!r} read for {self._describe()} is not the expected {expected!r}'
        else:
            msg = f'value {decoded!r} read for {self._describe()} failed its check'

        raise ValidityException(msg=msg, expected=expected, actual=decoded)

    @hybridmethod
    def read(cls, stream, **params):
        '''Build an instance with params, read it from stream and return its value.'''
        instance = cls(**params)
        instance.read(stream)

        return instance.snapshot()

    @read.instancemethod
    def read(self, stream):
        self.begin_read(stream)
        self.end_read()

        return self

    def write(self, stream) -> int:
        data = self.to_bytes()
        self.logger.debug('writing %d bytes for %s', len(data), self._describe())
        with open_stream(stream, mode='wb') as stream:
            stream.write(data)

        return len(data)

    def to_bytes(self) -> bytes:
        return self.encode(self.value)

    def clear(self) -> None:
        self._phase = FieldPhase.CLEAR
        self._value = None
        self._cache = _MISSING

    def is_clear(self) -> bool:
        return self._phase == FieldPhase.CLEAR

    def in_read(self) -> bool:
        return self._phase == FieldPhase.READING

    def num_bytes(self) -> int:
        return self.num_bytes_for(self.value)

    def snapshot(self):
        return self.value

    def field_names(self):
        return []


class IntField(Field):
    """
    Integer of any width in bytes, signed or unsigned, little or big endian.

    The fixed width types (Uint32le & co.) are subclasses that set these
    as class attributes, otherwise pass them to the constructor

        uint24 = IntField(width=3, endianess=Endianess.BIG_ENDIAN)
    """
    width = None
    signed = False
    endianess = Endianess.LITTLE_ENDIAN

    def __init__(self, width=None, signed=None, endianess=None, **kw):
        if width is not None:
            self.width = width
        if signed is not None:
            self.signed = signed
        if endianess is not None:
            self.endianess = endianess

        if not isinstance(self.width, int) or self.width <= 0:
            raise ConfigurationException(msg=f'{self.__class__.__name__} needs a positive width, not {self.width!r}')

        super().__init__(**kw)

    def _get_interpretation(self):
        '''The bitstring's interpretation of the bytes, like "uintle".'''
        return '%s%s' % (
            'int' if self.signed else 'uint',
            'le' if self.endianess.resolve() == Endianess.LITTLE_ENDIAN else 'be',
        )

    def __str__(self):
        if self.signed:
            return str(self.value)
        width = self.width * 2  # we want to be as large as possible
        formatter = '0x%%0%dx' % width
        return formatter % self.value

    def sensible_default(self):
        return 0

    def num_bytes_for(self, value) -> int:
        return self.width

    def encode(self, value) -> bytes:
        try:
            bits = Bits(**{self._get_interpretation(): value, 'length': self.width * 8})
        except ValueError as e:
            raise ValueError(f'{value!r} can\'t be encoded by {self._describe()}: {e}') from e

        return bits.tobytes()

    def decode(self, stream):
        raw = stream.read_exactly(self.width)

        return getattr(Bits(raw), self._get_interpretation())


@register
class Int8(IntField):
    width, signed = 1, True


@register
class Uint8(IntField):
    width, signed = 1, False


@register
class Int16le(IntField):
    width, signed, endianess = 2, True, Endianess.LITTLE_ENDIAN


@register
class Int16be(IntField):
    width, signed, endianess = 2, True, Endianess.BIG_ENDIAN


@register
class Uint16le(IntField):
    width, signed, endianess = 2, False, Endianess.LITTLE_ENDIAN


@register
class Uint16be(IntField):
    width, signed, endianess = 2, False, Endianess.BIG_ENDIAN


@register
class Int32le(IntField):
    width, signed, endianess = 4, True, Endianess.LITTLE_ENDIAN


@register
class Int32be(IntField):
    width, signed, endianess = 4, True, Endianess.BIG_ENDIAN


@register
class Uint32le(IntField):
    width, signed, endianess = 4, False, Endianess.LITTLE_ENDIAN


@register
class Uint32be(IntField):
    width, signed, endianess = 4, False, Endianess.BIG_ENDIAN


@register
class Int64le(IntField):
    width, signed, endianess = 8, True, Endianess.LITTLE_ENDIAN


@register
class Int64be(IntField):
    width, signed, endianess = 8, True, Endianess.BIG_ENDIAN


@register
class Uint64le(IntField):
    width, signed, endianess = 8, False, Endianess.LITTLE_ENDIAN


@register
class Uint64be(IntField):
    width, signed, endianess = 8, False, Endianess.BIG_ENDIAN


class FloatField(Field):
    """
    Mimic the behaviour of the struct module packing/unpacking floating
    point numbers: fmt is 'e' (half), 'f' (single) or 'd' (double precision).
    """
    fmt = 'f'
    endianess = Endianess.LITTLE_ENDIAN

    def __init__(self, fmt=None, endianess=None, **kw):
        if fmt is not None:
            self.fmt = fmt
        if endianess is not None:
            self.endianess = endianess

        if self.fmt not in ('e', 'f', 'd'):
            raise ConfigurationException(msg=f'\'{self.fmt}\' is not a floating point format')

        super().__init__(**kw)

    def get_format(self):
        return '%s%s' % (self.endianess.struct_prefix, self.fmt)

    def sensible_default(self):
        return 0.0

    def num_bytes_for(self, value) -> int:
        return struct.calcsize(self.get_format())

    def encode(self, value) -> bytes:
        try:
            return struct.pack(self.get_format(), value)
        except (struct.error, OverflowError) as e:
            raise ValueError(f'{value!r} can\'t be encoded by {self._describe()}: {e}') from e

    def decode(self, stream):
        raw = stream.read_exactly(struct.calcsize(self.get_format()))

        return struct.unpack(self.get_format(), raw)[0]

    def values_equal(self, a, b) -> bool:
        '''Two floats are equal when they have the same representation.'''
        try:
            return self.encode(a) == self.encode(b)
        except ValueError:
            return False


@register
class FloatLe(FloatField):
    fmt, endianess = 'f', Endianess.LITTLE_ENDIAN


@register
class FloatBe(FloatField):
    fmt, endianess = 'f', Endianess.BIG_ENDIAN


@register
class DoubleLe(FloatField):
    fmt, endianess = 'd', Endianess.LITTLE_ENDIAN


@register
class DoubleBe(FloatField):
    fmt, endianess = 'd', Endianess.BIG_ENDIAN


@register('string')
class StringField(Field):
    """Represent a contiguous chunk of bytes.

    With "length" the value is always padded (with "pad_char") or truncated
    to that length, otherwise its length is the one of the value assigned;
    when reading, "length" bytes are read, or "initial_length" if only
    that is indicated. With "trim_value" the trailing padding is not part
    of the value.
    """

    length = PropertyDescriptor('length', int)
    initial_length = PropertyDescriptor('initial_length', int)
    pad_char = PropertyDescriptor('pad_char', bytes)

    def __init__(self, length=None, initial_length=None, pad_char=b'\x00', trim_value=False, **kw):
        if length is not None and initial_length is not None:
            raise ConfigurationException(msg="StringField: 'length' and 'initial_length' are mutually exclusive")

        if isinstance(pad_char, str):
            pad_char = pad_char.encode('latin1')
        if isinstance(pad_char, bytes) and len(pad_char) != 1:
            raise ConfigurationException(msg=f'pad_char must be a single byte, not {pad_char!r}')

        self.length = length
        self.initial_length = initial_length
        self.pad_char = pad_char
        self.trim_value = trim_value

        super().__init__(**kw)

    def __len__(self):
        return len(self.value)

    def sensible_default(self):
        return b''

    def _pad(self, value):
        value = bytes(value)
        length = self.length

        if length is None:
            return value

        return value[:length].ljust(length, self.pad_char)

    def _normalize(self, value):
        value = self._pad(value)

        if self.trim_value:
            value = value.rstrip(self.pad_char)

        return value

    def _set_value(self, value) -> None:
        length = self.__dict__.get('length')
        if length is not None and length.is_constant and len(value) > length.value:
            self.logger.warning('%r is longer than %d bytes and will be truncated', value, length.value)

        super()._set_value(value)

    def encode(self, value) -> bytes:
        return self._pad(value)

    def decode(self, stream):
        length = self.length
        if length is None:
            length = self.initial_length or 0

        return stream.read_exactly(length)


@register('stringz')
class ZeroStringField(Field):
    """A string terminated by a NUL byte; the value doesn't include the
    terminator. "max_length" bounds the whole encoding, terminator included."""

    max_length = PropertyDescriptor('max_length', int)

    def __init__(self, max_length=None, **kw):
        if isinstance(max_length, int) and max_length < 1:
            raise ConfigurationException(msg=f'max_length must be at least 1, not {max_length}')

        self.max_length = max_length

        super().__init__(**kw)

    def sensible_default(self):
        return b''

    def _normalize(self, value):
        value = bytes(value).split(b'\x00', 1)[0]
        max_length = self.max_length

        if max_length is not None:
            value = value[:max_length - 1]

        return value

    def encode(self, value) -> bytes:
        return self._normalize(value) + b'\x00'

    def decode(self, stream):
        max_length = self.max_length
        data = bytearray()

        while max_length is None or len(data) < max_length:
            ch = stream.read_exactly(1)
            if ch == b'\x00':
                break
            data += ch

        return self._normalize(data)
