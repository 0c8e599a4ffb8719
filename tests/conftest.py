import pytest

from c8computer import C8Computer


class FixedRandom:
    # stands in for random.Random so Cxkk is predictable
    def __init__(self, value):
        self.value = value

    def randrange(self, stop):
        return self.value


@pytest.fixture
def computer():
    yield C8Computer(seed=1234)


@pytest.fixture
def run_program():
    def _run(program, cycles=None, **kwargs):
        c8 = C8Computer(seed=1234, **kwargs)
        c8.load_program(bytes(program))
        c8.run(len(program) // 2 if cycles is None else cycles)
        return c8
    return _run


@pytest.fixture
def fixed_rng():
    return FixedRandom
