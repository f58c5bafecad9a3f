from lightkube.core.exceptions import ApiError

__all__ = [
    'ApiError',
    'ConfigError',
    'Error',
    'FatalError',
    'HttpError',
    'KeyExtractionError',
    'MalformedKeyError',
    'ObjectError',
    'ObjectNotFound',
    'PermanentError',
    'TemporaryError',
    'is_not_found',
    'iterate_errors',
]


def iterate_errors(exc):
    """
    iterate over all non-exceptiongroup parts of an exception(group)
    """
    if isinstance(exc, BaseExceptionGroup):
        for e in exc.exceptions:
            yield from iterate_errors(e)
    else:
        yield exc


def is_not_found(exc):
    """Return True if the given exception is a 404 from the api server."""
    if isinstance(exc, ApiError):
        status = getattr(exc, 'status', None)
        code = getattr(status, 'code', None)
        if code is None:
            code = exc.response.status_code
        return code == 404
    return False


class FatalError(Exception):
    """A fatal error that we can not recover from."""


class Error(Exception):
    """Base class for all custom Exceptions."""

    def __init__(self, message=None):
        self.message = message

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return f'{self.__class__.__name__}: {self.message}'


class ConfigError(Error):
    """Invalid or unreadable configuration."""


class HttpError(Error):
    """An error that occured on the transport level while talking to the api.
    """
    def __init__(self, http_method, url, status_code, message=None):
        self.http_method = http_method
        self.url = url
        self.status_code = status_code
        self.message = message

    def __str__(self):
        if self.message:
            return self.message
        else:
            return '{0} to {1} failed with status: {2}'.format(
                self.http_method, self.url, self.status_code
            )


class ObjectError(Error):
    def __init__(self, obj):
        self.obj = obj

    def __repr__(self):
        obj = self.obj
        kind = getattr(obj, 'kind', None)
        api_version = getattr(obj, 'apiVersion', None)
        metadata = getattr(obj, 'metadata', None)
        namespace = getattr(metadata, 'namespace', None)
        name = getattr(metadata, 'name', None)
        out = []
        if api_version is not None and kind is not None:
            out.append(f'{api_version}/{kind}')
        if namespace is not None:
            out.append(f'{namespace}/{name}')
        else:
            out.append(str(name))
        msg = ' '.join(out)
        return f'{self.__class__.__name__}: {msg}'


class ObjectNotFound(Error):
    """The requested object is not in the local cache."""

    def __init__(self, kind, name, namespace=None):
        self.kind = kind
        self.name = name
        self.namespace = namespace

    def __repr__(self):
        if self.namespace is not None:
            ident = f'{self.namespace}/{self.name}'
        else:
            ident = self.name
        return f'{self.__class__.__name__}: {self.kind} {ident}'


class KeyExtractionError(ObjectError):
    """The object carries no usable identifying metadata."""


class TemporaryError(Error):
    """Raised by a reconcile function when a recoverable error occurs.
    The key will be requeued with rate limiting."""


class PermanentError(Error):
    """Raised by a reconcile function when a non-recoverably error occurs."""


class MalformedKeyError(PermanentError):
    """A queue key that can not be split into namespace and name."""

    def __init__(self, key):
        super().__init__(f'unexpected key format: {key!r}')
        self.key = key
