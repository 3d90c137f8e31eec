#!/usr/bin/env python3
import sys
import os
import logging

from binform import registry, BinformException, Stream


if 'DEBUG' in os.environ:
    logging.basicConfig()
    logger = logging.getLogger('binform')
    logger.setLevel(logging.DEBUG)


def usage(progname):
    print('usage: %s <type> <file>' % progname)
    print()
    print('available types: %s' % ', '.join(registry.names()))
    sys.exit(1)


if __name__ == '__main__':
    if len(sys.argv) < 3:
        usage(sys.argv[0])

    type_name, path = sys.argv[1], sys.argv[2]

    try:
        field = registry.create(type_name)
        with Stream(path) as stream:
            field.read(stream)
    except BinformException as e:
        print(f'{e.__class__.__name__}: {e}', file=sys.stderr)
        sys.exit(2)

    print(repr(field))
