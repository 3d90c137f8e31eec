class BinformException(Exception):
    '''Base class to extend in order to throw exception in binform.

    It takes as first argument the chain of the fields that caused the
    exception, innermost first: every container the exception crosses
    appends its own field name to it.
    '''

    def __init__(self, chain=None, msg=None):
        self.chain = chain if chain is not None else []
        self.msg = msg
        super().__init__(msg)

    @property
    def path(self):
        return '.'.join(reversed([_ for _ in self.chain if _]))

    def __str__(self):
        if not self.path:
            return self.msg or ''

        return f'{self.path}: {self.msg}' if self.msg else self.path


class ConfigurationException(BinformException):
    '''Invalid or conflicting options given to a field or to the registry.'''
    pass


class UnpackException(BinformException):
    '''The stream is exhausted or contains bytes that can't be decoded.'''
    pass


class ValidityException(BinformException):
    '''A field read correctly but its check_value didn't pass.'''

    def __init__(self, chain=None, msg=None, expected=None, actual=None):
        self.expected = expected
        self.actual = actual
        super().__init__(chain=chain, msg=msg)


class LookupException(BinformException):
    pass


class ResolutionException(BinformException):
    '''A deferred parameter refers to a field that doesn't exist.'''
    pass
