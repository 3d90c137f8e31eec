import io
import os
import logging
from contextlib import contextmanager

from .exceptions import UnpackException


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around bytes/path/file objects to
    uniform their properties: fields only need to read an exact number
    of bytes and to write bytes back.

    A path is opened with "mode", by default for reading.'''
    def __init__(self, obj=b'', mode='rb'):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._type = type(obj)
        self._owned = False
        self._mode = mode
        self.obj = obj

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self._type.__name__)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        '''Close the underlying object only if we opened it.'''
        if self._owned:
            self.obj.close()

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\' with mode %s' % (self.obj, self._mode))
        self.obj = open(self.obj, self._mode)
        self._owned = True

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_bytearray(self):
        self.obj = io.BytesIO(bytes(self.obj))

    def init_file(self):
        if isinstance(self.obj, os.PathLike):
            self.obj = os.fspath(self.obj)
            return self.init_str()

        if not (hasattr(self.obj, 'read') or hasattr(self.obj, 'write')):
            raise ValueError('\'%s\' is the wrong kind of object to use as a stream' % self._type.__name__)

    def read_exactly(self, n):
        '''Read n bytes or fail, a short read is a format error.'''
        data = self.obj.read(n)

        if len(data) != n:
            raise UnpackException(msg=f'expected {n} bytes but only {len(data)} were available')

        return data

    def write(self, data):
        return self.obj.write(data)

    def getvalue(self):
        return self.obj.getvalue()


@contextmanager
def open_stream(obj, mode='rb'):
    '''Wrap obj with Stream unless it is one already; what is opened here
    is also closed here.'''
    if isinstance(obj, Stream):
        yield obj
        return

    with Stream(obj, mode=mode) as stream:
        yield stream
