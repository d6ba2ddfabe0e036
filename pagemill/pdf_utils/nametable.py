"""
Open-addressing hash table backing :class:`~.generic.DictionaryObject`.

Keys are hashed with a 64-bit FNV-1a style hash over their bytes, including
a terminating null byte. Collisions are resolved by a "mask-step-index" probe
sequence: the step is taken from the high bits of the hash and forced to be
odd, which makes it coprime with the (power-of-two) table size, so every slot
is eventually visited.

The table starts out with 8 slots and doubles whenever an insertion would
find the load factor at or above 0.75.
"""

from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

__all__ = ['NameTable', 'name_hash', 'INITIAL_EXPONENT', 'MAX_LOAD_FACTOR']

K = TypeVar('K', bound=str)
V = TypeVar('V')

_HASH_SEED = 0x100
_HASH_MULTIPLIER = 1111111111111111111
_MASK_64 = (1 << 64) - 1

INITIAL_EXPONENT = 3
MAX_LOAD_FACTOR = 0.75


def name_hash(key_bytes: bytes) -> int:
    """
    Hash a key (without its terminating null byte, which is added here).

    :param key_bytes:
        The key's bytes.
    :return:
        An unsigned 64-bit integer.
    """
    h = _HASH_SEED
    for b in key_bytes + b'\x00':
        h ^= b
        h = (h * _HASH_MULTIPLIER) & _MASK_64
    return h ^ (h >> 32)


def _key_bytes(key: str) -> bytes:
    # name objects carry their leading slash, the hash does not cover it
    if key.startswith('/'):
        key = key[1:]
    return key.encode('utf8')


def _probe(h: int, exp: int) -> Iterator[int]:
    mask = (1 << exp) - 1
    step = (h >> (64 - exp)) | 1
    ix = h & mask
    while True:
        ix = (ix + step) & mask
        yield ix


class NameTable(Generic[K, V]):
    """
    Mapping from name keys to values with the probing behaviour described
    in the module docstring.

    Iteration happens in slot order, which is deterministic for a given
    sequence of insertions, but otherwise arbitrary.
    Mutating the table while iterating over it is not supported.
    """

    def __init__(self, exp: int = INITIAL_EXPONENT):
        self._exp = exp
        self._len = 0
        self._slots: List[Optional[Tuple[K, int, V]]] = [None] * (1 << exp)

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self):
        return self._len

    def _find_slot(self, key: K, h: int) -> int:
        # return the index of the slot holding the key, or the first empty
        # slot on its probe path
        slots = self._slots
        for ix in _probe(h, self._exp):
            entry = slots[ix]
            if entry is None or entry[0] == key:
                return ix
        raise AssertionError  # pragma: nocover

    def _rehash(self):
        old_slots = self._slots
        self._exp += 1
        self._slots = [None] * (1 << self._exp)
        for entry in old_slots:
            if entry is not None:
                self._slots[self._find_slot(entry[0], entry[1])] = entry

    def insert(self, key: K, value: V):
        """
        Insert a key, or overwrite the value of an existing key.
        """
        if self._len / len(self._slots) >= MAX_LOAD_FACTOR:
            self._rehash()
        h = name_hash(_key_bytes(key))
        ix = self._find_slot(key, h)
        if self._slots[ix] is None:
            self._len += 1
        self._slots[ix] = (key, h, value)

    def lookup(self, key: K) -> V:
        """
        Look up the value associated with a key.

        :raises KeyError:
            If the key is not present.
        """
        entry = self._slots[self._find_slot(key, name_hash(_key_bytes(key)))]
        if entry is None:
            raise KeyError(key)
        return entry[2]

    def __contains__(self, key) -> bool:
        try:
            self.lookup(key)
            return True
        except KeyError:
            return False

    def remove(self, key: K):
        """
        Remove a key. Since an emptied slot could cut off the probe path of
        other keys, the remaining entries are reinserted into a fresh table
        of the same size.

        :raises KeyError:
            If the key is not present.
        """
        ix = self._find_slot(key, name_hash(_key_bytes(key)))
        if self._slots[ix] is None:
            raise KeyError(key)
        self._slots[ix] = None
        remaining = [entry for entry in self._slots if entry is not None]
        self._slots = [None] * len(self._slots)
        self._len = len(remaining)
        for entry in remaining:
            self._slots[self._find_slot(entry[0], entry[1])] = entry

    def items(self) -> Iterator[Tuple[K, V]]:
        for entry in self._slots:
            if entry is not None:
                yield entry[0], entry[2]

    def keys(self) -> Iterator[K]:
        for key, _ in self.items():
            yield key
