import string
from math import ceil, log
from os import urandom
from typing import TypeAlias

# Primary keys look like: dmet-XSqS5h9vFTSgP, snap-yb6GG995oiBf
NanoIdType: TypeAlias = str

DEFAULT_ALPHABET = string.digits + string.ascii_letters


def generate_custom_nanoid(size: int = 8, char_pool: str | None = None) -> str:
    """
    Random string drawn uniformly from `char_pool`.
    Random bytes are masked down to the smallest power of two covering the
    pool and anything that lands outside the pool is discarded, so no
    character is favoured. Entropy here -> https://zelark.github.io/nano-id-cc/
    """
    char_pool = char_pool or DEFAULT_ALPHABET
    pool_size = len(char_pool)
    if pool_size < 2:
        raise ValueError('char_pool needs at least two characters')

    mask = (2 << int(log(pool_size - 1) / log(2))) - 1
    step = int(ceil(1.6 * mask * size / pool_size))

    generated: list[str] = []
    while len(generated) < size:
        for random_byte in urandom(step):
            index = random_byte & mask
            if index < pool_size:
                generated.append(char_pool[index])
                if len(generated) == size:
                    break

    return ''.join(generated)


class NanoId:
    """
    ID used as primary key
    """

    _CHAR_SIZE = 13

    @classmethod
    def gen(cls, abbrev: str | None = None) -> NanoIdType:
        nano_id = generate_custom_nanoid(size=cls._CHAR_SIZE)
        if abbrev:
            nano_id = f'{abbrev}-{nano_id}'

        return nano_id
