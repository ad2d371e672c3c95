import weakref
from functools import wraps
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Concatenate,
    Dict,
    Generic,
    Hashable,
    Iterator,
    Literal,
    Optional,
    ParamSpec,
    Tuple,
    TypeVar,
)


def sign(n: int) -> Literal[-1, 1]:
    if n < 0:
        return -1
    if n > 0:
        return 1
    raise ValueError(f"Sign of 0 is undefined")


T = TypeVar("T")


P = ParamSpec("P")
R = TypeVar("R")

if TYPE_CHECKING:
    classonlymethod = classmethod[T, P, R]
    purestaticmethod = staticmethod[P, R]
else:

    class classonlymethod(classmethod):

        def __get__(self, obj, cls=None):
            if obj is not None or cls is None:
                raise TypeError("Cannot call class-only method on instance")
            return super().__get__(obj, cls)

    class purestaticmethod(staticmethod):
        def __get__(self, obj, cls=None):
            if obj is not None:
                raise TypeError("Cannot call class-only static method on instance")
            return super().__get__(obj, cls)


S = TypeVar("S", bound="Cached")


class Cached:
    def __init__(self):
        self._cache: Dict[str, Any] = {}

    def do_cached_method(self: S, method: Callable[[S], R]) -> R:
        result: Optional[R] = self._cache.get(method.__name__)
        if result is not None:
            return result
        result = method(self)
        self._cache[method.__name__] = result
        return result

    def flush(self):
        self._cache.clear()


def cached_value(func: Callable[[S], R]) -> Callable[[S], R]:
    @wraps(func)
    def wrap(self: S) -> R:
        return self.do_cached_method(func)

    return wrap


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class KeyedCache(Generic[K, V]):
    """
    An explicit memo table shared by whoever holds a reference to it.

    Entries are only ever added; `flush` drops all of them at once, after which
    handles obtained from the cache must be considered stale.
    """

    def __init__(self):
        self._entries: Dict[K, V] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: K, build: Callable[[], V]) -> V:
        try:
            value = self._entries[key]
        except KeyError:
            self.misses += 1
            value = build()
            self._entries[key] = value
            return value
        self.hits += 1
        return value

    def lookup(self, key: K) -> Optional[V]:
        return self._entries.get(key)

    def store(self, key: K, value: V):
        self._entries[key] = value

    def flush(self):
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(self._entries)


def _make_ref(obj: Any) -> Callable[[], Any]:
    try:
        return weakref.ref(obj)
    except TypeError:
        return lambda: obj


Slf = TypeVar("Slf")


def instance_cache(
    method: Callable[Concatenate[Slf, P], R],
) -> Callable[Concatenate[Slf, P], R]:
    name = f"_cached_{method.__name__}"

    @wraps(method)
    def wrapper(self: Slf, *args: P.args, **kwargs: P.kwargs) -> R:
        try:
            cache = getattr(self, name)
        except AttributeError:
            cache: Dict[Tuple[int, ...], Tuple[Tuple[Callable[[], Any], ...], R]] = {}
            setattr(self, name, cache)

        key = tuple(id(a) for a in args)
        if key in cache:
            refs, result = cache[key]
            if all(r() is a for r, a in zip(refs, args)):
                return result

        result = method(self, *args, **kwargs)
        refs = tuple(_make_ref(a) for a in args) + tuple(
            _make_ref(v) for v in kwargs.values()
        )
        cache[key] = (refs, result)
        return result

    return wrapper
