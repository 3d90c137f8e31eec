"""
Core module for the aggregation of fields into a structure
"""
from enum import Enum, auto
from typing import Dict, List, Tuple

from .enum import FieldPhase
from .exceptions import BinformException, ConfigurationException, ResolutionException
from .fields import Field
from .meta import MetaStruct
from .properties import PropertyDescriptor, make_parameter
from .registry import lookup, register
from .streams import open_stream


def make_prototype(element) -> Field:
    '''The field described by element: a field instance, a field class,
    the name of a registered type or a couple (class or name, params).'''
    params = {}
    if isinstance(element, tuple):
        element, params = element

    if isinstance(element, Field):
        if params:
            raise ConfigurationException(msg=f'{element!r} is already an instance, it doesn\'t take parameters')
        return element

    if isinstance(element, str):
        element = lookup(element)

    if isinstance(element, type) and issubclass(element, Field):
        return element(**params)

    raise ConfigurationException(msg=f'{element!r} doesn\'t describe a field')


@register
class Struct(Field, metaclass=MetaStruct):
    """
    Together with Field is the main class that defines a format: the fields
    declared as class attributes are read and written in the order of
    declaration.

        class TLV(Struct):
            type   = Uint8()
            length = Uint16le(value=lambda ctx: len(ctx.data))
            data   = StringField(initial_length=Dependency('.length'))

    Accessing an attribute returns the field instance, assigning to it sets
    the value of the field. The parameters of each field are resolved
    against the values of its siblings.

    Passing some data (bytes, a path or a file object) to the constructor
    reads the structure from it.
    """

    def __init__(self, data=None, *, check_value=None, name=None, father=None):
        super().__init__(check_value=check_value, name=name, father=father)

        # now we have setup all the fields necessary and we can read if
        # some data is passed with the constructor
        if data is not None:
            self.logger.debug('reading \'%s\' from %r' % (self.__class__.__name__, data))
            self.read(data)

    def field_names(self) -> List[str]:
        return list(self._meta.fields)

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''It returns a list of couples (name, instance) for each field.'''
        return [(_, getattr(self, _)) for _ in self._meta.fields]

    def __repr__(self):
        msg = []
        for field_name, field in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(field)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, field in self.get_fields():
            msg += '%s: %s\n' % (field_name, str(field))
        return msg

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        '''Offset and size of each field, as they would be written now.'''
        result = {}
        offset = 0
        for name, field in self.get_fields():
            size = field.num_bytes()
            result[name] = (offset, size)
            offset += size

        return result

    def sensible_default(self):
        return {name: field.sensible_default() for name, field in self.get_fields()}

    def _get_value(self):
        return self.snapshot()

    def _set_value(self, value) -> None:
        for field_name, field_value in value.items():
            if field_name not in self._meta.fields:
                raise ConfigurationException(msg=f'{self.__class__.__name__} has no field named \'{field_name}\'')
            getattr(self, field_name).value = field_value

    def snapshot(self):
        return {name: field.snapshot() for name, field in self.get_fields()}

    def num_bytes_for(self, value) -> int:
        return len(self.encode(value))

    def num_bytes(self) -> int:
        return sum(field.num_bytes() for _, field in self.get_fields())

    def encode(self, value) -> bytes:
        return b''.join(field.encode(value[name]) for name, field in self.get_fields())

    def to_bytes(self) -> bytes:
        value = b''
        for field_name, field in self.get_fields():
            field_raw = field.to_bytes()
            self.logger.debug("field '%s' raw=%r", field_name, field_raw)
            value += field_raw

        return value

    def write(self, stream) -> int:
        size = 0
        with open_stream(stream, mode='wb') as stream:
            for field_name, field in self.get_fields():
                self.logger.debug('writing %s.%s' % (self.__class__.__name__, field_name))
                size += field.write(stream)

        return size

    def begin_read(self, stream) -> None:
        '''Each field starts its read in order of declaration: while the
        structure is in the middle of the read every field shows the value
        just decoded, also the ones with a constant value.'''
        with open_stream(stream) as stream:
            for field_name, field in self.get_fields():
                self.logger.debug('reading %s.%s' % (self.__class__.__name__, field_name))

                try:
                    field.begin_read(stream)
                except BinformException as e:
                    e.chain.append(field_name)
                    raise

        self._phase = FieldPhase.READING

    def end_read(self) -> None:
        if self._phase != FieldPhase.READING:
            return

        self._phase = FieldPhase.READ

        for field_name, field in self.get_fields():
            try:
                field.end_read()
            except BinformException as e:
                e.chain.append(field_name)
                raise

        self._check_validity(self.snapshot())

    def clear(self) -> None:
        super().clear()
        for _, field in self.get_fields():
            field.clear()

    def is_clear(self) -> bool:
        return all(field.is_clear() for _, field in self.get_fields())


@register
class Array(Field):
    """A sequence of fields of the same kind.

        class Polygon(Struct):
            count  = Uint8(value=lambda ctx: len(ctx.points))
            points = Array(Point, initial_length=Dependency('.count'))

    "initial_length" is the number of elements read; when it's a constant
    the array also starts with that many elements. With "read_until" the
    elements are read until it's true for the last one read; it's evaluated
    with the bindings "index", "element" and "array" (the values read so far).

    The elements see the siblings of the array as their own siblings.
    """
    transparent = True

    initial_length = PropertyDescriptor('initial_length', int)

    def __init__(self, element, initial_length=None, read_until=None, *, check_value=None, name=None, father=None):
        if initial_length is not None and read_until is not None:
            raise ConfigurationException(msg="Array: 'initial_length' and 'read_until' are mutually exclusive")

        self.initial_length = initial_length
        self._read_until = make_parameter(read_until)
        self._prototype = make_prototype(element)
        self._elements = None

        super().__init__(check_value=check_value, name=name, father=father)

    def _new_element(self, index: int) -> Field:
        element = self._prototype.create(father=self)
        element.name = str(index)

        return element

    @property
    def elements(self) -> List[Field]:
        if self._elements is None:
            parameter = self.__dict__['initial_length']
            # a deferred length follows what is read, there is nothing to start with
            length = self.initial_length if parameter is not None and parameter.is_constant else 0
            self._elements = [self._new_element(_) for _ in range(length)]

        return self._elements

    def __len__(self):
        return len(self.elements)

    def __getitem__(self, index) -> Field:
        return self.elements[index]

    def __iter__(self):
        return iter(self.elements)

    def append(self, value=None) -> Field:
        '''Add a new element at the end, with value if indicated, and return it.'''
        element = self._new_element(len(self.elements))
        if value is not None:
            element.value = value

        self.elements.append(element)
        self._phase = FieldPhase.ASSIGNED

        return element

    def sensible_default(self):
        return []

    def _get_value(self):
        return self.snapshot()

    def _set_value(self, value) -> None:
        self._elements = []
        for element_value in value:
            self.append(element_value)
        self._phase = FieldPhase.ASSIGNED

    def snapshot(self):
        return [element.snapshot() for element in self.elements]

    def num_bytes(self) -> int:
        return sum(element.num_bytes() for element in self.elements)

    def encode(self, value) -> bytes:
        return b''.join(self._prototype.encode(_) for _ in value)

    def to_bytes(self) -> bytes:
        return b''.join(element.to_bytes() for element in self.elements)

    def begin_read(self, stream) -> None:
        elements = []
        length = (self.initial_length or 0) if self._read_until is None else None

        with open_stream(stream) as stream:
            while length is None or len(elements) < length:
                element = self._new_element(len(elements))
                elements.append(element)

                try:
                    element.begin_read(stream)
                except BinformException as e:
                    e.chain.append(element.name)
                    raise

                if length is None and self._resolve(
                        self._read_until,
                        index=len(elements) - 1,
                        element=element.snapshot(),
                        array=[_.snapshot() for _ in elements]):
                    break

        self.logger.debug('read %d elements for %s', len(elements), self._describe())
        self._elements = elements
        self._phase = FieldPhase.READING

    def end_read(self) -> None:
        if self._phase != FieldPhase.READING:
            return

        self._phase = FieldPhase.READ

        for element in self.elements:
            try:
                element.end_read()
            except BinformException as e:
                e.chain.append(element.name)
                raise

        self._check_validity(self.snapshot())

    def clear(self) -> None:
        super().clear()
        self._elements = None

    def is_clear(self) -> bool:
        return self._phase == FieldPhase.CLEAR and all(_.is_clear() for _ in self._elements or [])


@register
class Choice(Field):
    """One field among many, the one indicated by "selection".

        class Message(Struct):
            kind = Uint8()
            body = Choice({
                1: Uint32le(),
                2: StringField(length=8),
                Choice.Key.DEFAULT: StringField(),
            }, selection=Dependency('.kind'))

    The choices are a dictionary or a list (indexed by position) of fields,
    field classes or names of registered types. Each choice keeps its own
    value, so changing the selection back and forth doesn't lose it.
    """
    transparent = True

    class Key(Enum):
        DEFAULT = auto()

    def __init__(self, choices, selection, *, check_value=None, name=None, father=None):
        if isinstance(choices, (list, tuple)):
            choices = dict(enumerate(choices))

        if not choices:
            raise ConfigurationException(msg='Choice needs at least one choice')

        if selection is None:
            raise ConfigurationException(msg='Choice needs a selection')

        self._prototypes = {key: make_prototype(_) for key, _ in choices.items()}
        self._selection = make_parameter(selection)
        self._fields = {}
        self._reading = None

        super().__init__(check_value=check_value, name=name, father=father)

    def selected_key(self):
        key = self._resolve(self._selection)

        if key in self._prototypes:
            return key

        if Choice.Key.DEFAULT in self._prototypes:
            return Choice.Key.DEFAULT

        raise ResolutionException(msg=f'{key!r} is not among the choices of {self._describe()}')

    def _field_for(self, key) -> Field:
        if key not in self._fields:
            self.logger.debug('create choice %r for %s', key, self._describe())
            field = self._prototypes[key].create(father=self)
            field.name = self.name
            self._fields[key] = field

        return self._fields[key]

    @property
    def selected(self) -> Field:
        '''The field actually selected, during a read the one being read.'''
        if self._phase == FieldPhase.READING:
            return self._reading

        return self._field_for(self.selected_key())

    def sensible_default(self):
        return self.selected.sensible_default()

    def _get_value(self):
        return self.selected.snapshot()

    def _set_value(self, value) -> None:
        self.selected.value = value

    def snapshot(self):
        return self.selected.snapshot()

    def field_names(self) -> List[str]:
        return []

    def num_bytes_for(self, value) -> int:
        return self.selected.num_bytes_for(value)

    def num_bytes(self) -> int:
        return self.selected.num_bytes()

    def encode(self, value) -> bytes:
        return self.selected.encode(value)

    def to_bytes(self) -> bytes:
        return self.selected.to_bytes()

    def begin_read(self, stream) -> None:
        field = self._field_for(self.selected_key())
        field.begin_read(stream)

        self._reading = field
        self._phase = FieldPhase.READING

    def end_read(self) -> None:
        if self._phase != FieldPhase.READING:
            return

        field, self._reading = self._reading, None
        self._phase = FieldPhase.READ

        field.end_read()
        self._check_validity(field.snapshot())

    def clear(self) -> None:
        super().clear()
        self._reading = None
        for field in self._fields.values():
            field.clear()

    def is_clear(self) -> bool:
        return all(field.is_clear() for field in self._fields.values())
