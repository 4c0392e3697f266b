import random
import threading
import typing

_seed_lock = threading.Lock()
_seed_generator = random.Random()
_local = threading.local()


def seed(value: typing.Optional[int] = None) -> None:
    """Reseeds the generator that seeds every thread's random source.

    The calling thread's current generator is discarded, so its next roll
    uses a freshly seeded one. Other threads keep theirs.
    """
    with _seed_lock:
        _seed_generator.seed(value)
    _local.__dict__.pop("random", None)


def get_random() -> random.Random:
    rng = getattr(_local, "random", None)
    if rng is None:
        with _seed_lock:
            rng = random.Random(_seed_generator.getrandbits(64))
        _local.random = rng
    return rng


def set_random(rng: random.Random) -> None:
    _local.random = rng
