import io

import pytest

from binform.core import Array, Choice, Struct
from binform.exceptions import (
    ConfigurationException,
    ResolutionException,
    UnpackException,
    ValidityException,
)
from binform.fields import Uint8, Uint16le, Uint16be, Uint32le, Uint32be, StringField, ZeroStringField
from binform.meta import Meta
from binform.properties import Dependency
from binform.registry import lookup


class TLV(Struct):
    type   = Uint8()
    length = Uint16le(value=lambda ctx: len(ctx.data))
    data   = StringField(initial_length=Dependency('.length'))


def test_struct():
    """Check that building a Struct from fields behaves correctly."""
    class Dummy(Struct):
        a = Uint32le(initial_value=0xbad)
        b = StringField(length=0x10)
        c = Uint32le(initial_value=0xdeadbeef)

    dummy = Dummy()

    assert isinstance(Dummy._meta, Meta)
    assert dummy.field_names() == ['a', 'b', 'c']
    assert isinstance(dummy.a, Uint32le)
    assert dummy.a.father is dummy
    assert dummy.a.name == 'a'
    assert dummy.a.value == 0xbad
    assert dummy.b.value == b'\x00' * 0x10

    assert dummy.layout == {
        'a': (0x00, 4),
        'b': (0x04, 0x10),
        'c': (0x14, 4),
    }

    assert dummy.is_clear()
    assert dummy.num_bytes() == 0x18
    assert dummy.to_bytes() == (
        b'\xad\x0b\x00\x00' +
        b'\x00' * 0x10 +
        b'\xef\xbe\xad\xde'
    )


def test_struct_instances_are_independent():
    first, second = TLV(), TLV()
    first.type = 7

    assert first.type is not second.type
    assert second.type.value == 0
    assert TLV.type.father is None


def test_struct_read():
    stream = io.BytesIO(b'\x01\x03\x00abcEXTRA')
    tlv = TLV()
    tlv.read(stream)

    assert tlv.type.value == 1
    assert tlv.length.value == 3
    assert tlv.data.value == b'abc'
    assert stream.tell() == 6
    assert not tlv.is_clear()
    assert not tlv.in_read()


def test_struct_read_from_constructor():
    tlv = TLV(b'\x02\x05\x00hello')

    assert tlv.snapshot() == {
        'type': 2,
        'length': 5,
        'data': b'hello',
    }


def test_struct_read_from_type():
    assert TLV.read(b'\x02\x01\x00A') == {
        'type': 2,
        'length': 1,
        'data': b'A',
    }


def test_struct_write_follows_dependencies():
    tlv = TLV(b'\x01\x03\x00abc')

    tlv.data = b'hello'

    assert tlv.length.value == 5
    assert tlv.to_bytes() == b'\x01\x05\x00hello'

    stream = io.BytesIO()
    assert tlv.write(stream) == 8
    assert stream.getvalue() == b'\x01\x05\x00hello'


def test_struct_round_trip():
    tlv = TLV()
    tlv.value = {'type': 9, 'data': b'kebab'}

    assert TLV.read(tlv.to_bytes()) == tlv.snapshot()


def test_struct_set_unknown_field():
    tlv = TLV()

    with pytest.raises(ConfigurationException):
        tlv.value = {'miao': 1}


def test_struct_clear():
    class Dummy(Struct):
        a = Uint8(initial_value=5)
        b = ZeroStringField()

    dummy = Dummy(b'\x11abc\x00')

    assert dummy.snapshot() == {'a': 0x11, 'b': b'abc'}

    dummy.clear()

    assert dummy.is_clear()
    assert dummy.snapshot() == {'a': 5, 'b': b''}


def test_struct_constant_shows_read_value_during_read():
    """A constant field shows what has been read until the whole structure
    finished reading, so that the fields before it can check against it."""
    class Dummy(Struct):
        echo    = Uint8(check_value=lambda ctx: ctx.value == ctx.version)
        version = Uint8(value=9)

    dummy = Dummy()
    dummy.begin_read(b'\x05\x05')

    assert dummy.in_read()
    assert dummy.version.value == 5

    dummy.end_read()

    assert not dummy.in_read()
    assert dummy.echo.value == 5
    assert dummy.version.value == 9


def test_struct_deferred_length_from_constant():
    class Dummy(Struct):
        length = Uint8(value=3)
        data   = StringField(initial_length=Dependency('.length'))

    stream = io.BytesIO(b'\x02abc')
    dummy = Dummy(stream)

    assert dummy.data.value == b'ab'
    assert dummy.length.value == 3
    assert stream.tell() == 3


def test_struct_validity_failure_has_path():
    class Header(Struct):
        magic = Uint32be(check_value=0xcafebabe)

    class File(Struct):
        header = Header()
        size   = Uint32le()

    assert File(b'\xca\xfe\xba\xbe\x01\x00\x00\x00').size.value == 1

    with pytest.raises(ValidityException) as excinfo:
        File(b'\xde\xad\xbe\xef\x01\x00\x00\x00')

    assert excinfo.value.path == 'header.magic'
    assert excinfo.value.expected == 0xcafebabe
    assert excinfo.value.actual == 0xdeadbeef


def test_struct_short_read_has_path():
    with pytest.raises(UnpackException) as excinfo:
        TLV(b'\x01\x05\x00abc')

    assert excinfo.value.path == 'data'
    assert str(excinfo.value).startswith('data: ')


def test_struct_check_value():
    class Pair(Struct):
        a = Uint8()
        b = Uint8()

    assert Pair.read(b'\x01\x02', check_value=lambda ctx: ctx.value['a'] < ctx.value['b']) == {'a': 1, 'b': 2}

    with pytest.raises(ValidityException):
        Pair.read(b'\x02\x01', check_value=lambda ctx: ctx.value['a'] < ctx.value['b'])


def test_struct_inheritance():
    '''subclasses inherit fields'''
    class Father(Struct):
        field_a = StringField(length=0x10)
        field_b = Uint32le()

    class Son(Father):
        field_c = StringField(length=0x08)

    field_b_value = b'\x01\x02\x03\x04'
    field_c_value = b'ABCDEFGH'
    son = Son(b'A' * 16 + field_b_value + field_c_value)

    assert son.field_names() == ['field_a', 'field_b', 'field_c']
    assert Father().field_names() == ['field_a', 'field_b']
    assert son.field_b.value == 0x04030201
    assert son.field_c.value == field_c_value


def test_struct_nested_assignment():
    class Inner(Struct):
        x = Uint8()

    class Outer(Struct):
        inner = Inner()
        y = Uint8()

    outer = Outer()
    outer.inner = {'x': 3}
    outer.y = 4

    assert outer.inner.x.value == 3
    assert outer.to_bytes() == b'\x03\x04'


@pytest.mark.parametrize('name', ['value', 'read', 'clear', 'name', 'father', 'root', 'parent', 'field', '_private'])
def test_struct_reserved_names(name):
    with pytest.raises(ConfigurationException):
        type('Broken', (Struct,), {'__module__': __name__, name: Uint8()})


def test_struct_redeclared_field():
    class Father(Struct):
        a = Uint8()

    with pytest.raises(ConfigurationException):
        class Son(Father):
            a = Uint16le()


def test_struct_registered():
    assert lookup('struct') is Struct


def test_struct_without_fields_is_checked():
    class Empty(Struct):
        pass

    assert Empty.read(b'') == {}

    with pytest.raises(ValidityException):
        Empty.read(b'', check_value=False)


def test_struct_write_to_path(tmp_path):
    path = tmp_path / 'tlv.bin'
    tlv = TLV()
    tlv.value = {'type': 1, 'data': b'abc'}

    assert tlv.write(path) == 6
    assert path.read_bytes() == b'\x01\x03\x00abc'
    assert TLV(path).snapshot() == tlv.snapshot()


class Point(Struct):
    x = Uint8()
    y = Uint8()


class Polygon(Struct):
    count  = Uint8(value=lambda ctx: len(ctx.points))
    points = Array(Point, initial_length=Dependency('.count'))


def test_array_initial_length():
    field = Array(Uint8(initial_value=7), initial_length=3)

    assert field.is_clear()
    assert len(field) == 3
    assert field.value == [7, 7, 7]
    assert field.to_bytes() == b'\x07\x07\x07'

    field[1].value = 1

    assert field.value == [7, 1, 7]


def test_array_read():
    stream = io.BytesIO(b'\x02\x01\x02\x03\x04EXTRA')
    polygon = Polygon(stream)

    assert polygon.snapshot() == {
        'count': 2,
        'points': [{'x': 1, 'y': 2}, {'x': 3, 'y': 4}],
    }
    assert stream.tell() == 5
    assert not polygon.in_read()
    assert polygon.points[1].y.value == 4


def test_array_write_follows_dependencies():
    polygon = Polygon()

    assert polygon.points.value == []
    assert polygon.to_bytes() == b'\x00'

    polygon.points.append({'x': 5, 'y': 6})

    assert polygon.to_bytes() == b'\x01\x05\x06'

    polygon.points = [{'x': 1, 'y': 1}, {'x': 2, 'y': 2}, {'x': 3, 'y': 3}]

    assert polygon.count.value == 3
    assert Polygon.read(polygon.to_bytes()) == polygon.snapshot()

    polygon.clear()

    assert polygon.is_clear()
    assert polygon.points.value == []


def test_array_elements_see_the_array_siblings():
    class Table(Struct):
        width = Uint8()
        rows  = Array(StringField(initial_length=Dependency('.width')), initial_length=2)

    assert Table.read(b'\x02abcdEXTRA') == {'width': 2, 'rows': [b'ab', b'cd']}


def test_array_read_until():
    field = Array('uint8', read_until=lambda ctx: ctx.element == 0)
    stream = io.BytesIO(b'\x03\x02\x00\x09')
    field.read(stream)

    assert field.value == [3, 2, 0]
    assert stream.tell() == 3

    assert Array.read(b'\x01\x02\x03', element='uint8', read_until=lambda ctx: ctx.index == 1) == [1, 2]
    assert Array.read(b'\x01\x02\x03', element='uint8', read_until=lambda ctx: sum(ctx.array) >= 3) == [1, 2]


def test_array_element_failure_has_path():
    class Checked(Struct):
        items = Array(Uint8(check_value=lambda ctx: ctx.value < 0x10), initial_length=3)

    with pytest.raises(ValidityException) as excinfo:
        Checked(b'\x01\x02\x10')

    assert excinfo.value.path == 'items.2'

    with pytest.raises(UnpackException) as excinfo:
        Polygon(b'\x02\x01\x02\x03')

    assert excinfo.value.path == 'points.1.y'


def test_array_check_value():
    assert Array.read(b'\x01\x02', element=Uint8, initial_length=2, check_value=[1, 2]) == [1, 2]

    with pytest.raises(ValidityException):
        Array.read(b'\x02\x01', element=Uint8, initial_length=2, check_value=[1, 2])


def test_array_wrong_configuration():
    with pytest.raises(ConfigurationException):
        Array(Uint8(), initial_length=2, read_until=lambda ctx: True)

    with pytest.raises(ConfigurationException):
        Array(42)

    with pytest.raises(ConfigurationException):
        Array((Uint8(), {'initial_value': 1}))


class Message(Struct):
    kind = Uint8()
    body = Choice({
        1: Uint16le(),
        2: StringField(length=4),
        Choice.Key.DEFAULT: ZeroStringField(),
    }, selection=Dependency('.kind'))


@pytest.mark.parametrize('data,body', [
    (b'\x01\x34\x12', 0x1234),
    (b'\x02abcd', b'abcd'),
    (b'\x07hi\x00', b'hi'),
])
def test_choice_read(data, body):
    assert Message.read(data) == {'kind': data[0], 'body': body}


def test_choice_keeps_the_value_of_each_choice():
    message = Message()
    message.kind = 1
    message.body = 5
    message.kind = 2
    message.body = b'xy'

    assert message.body.value == b'xy\x00\x00'
    assert message.to_bytes() == b'\x02xy\x00\x00'

    message.kind = 1

    assert message.body.value == 5
    assert message.to_bytes() == b'\x01\x05\x00'


def test_choice_from_list():
    field = Choice(['uint8', (Uint16be, {'initial_value': 0xcafe})], selection=1)

    assert field.value == 0xcafe
    assert field.num_bytes() == 2
    assert Choice.read(b'\x01\x02', choices=['uint8', 'uint16be'], selection=1) == 0x0102


def test_choice_without_default():
    class Strict(Struct):
        kind = Uint8()
        body = Choice([Uint8(), Uint16le()], selection=Dependency('.kind'))

    assert Strict.read(b'\x01\x02\x03') == {'kind': 1, 'body': 0x0302}

    with pytest.raises(ResolutionException) as excinfo:
        Strict(b'\x05\x00')

    assert excinfo.value.path == 'body'


def test_choice_failure_has_path():
    with pytest.raises(UnpackException) as excinfo:
        Message(b'\x02ab')

    assert excinfo.value.path == 'body'


def test_choice_wrong_configuration():
    with pytest.raises(ConfigurationException):
        Choice({}, selection=1)

    with pytest.raises(ConfigurationException):
        Choice([Uint8()], selection=None)


def test_containers_registered():
    assert lookup('array') is Array
    assert lookup('choice') is Choice
