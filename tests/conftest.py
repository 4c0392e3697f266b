import random

import pytest

from dicechain.functions import summarize


@pytest.fixture
def rng():
    return random.Random(20)


@pytest.fixture
def assert_uniformish():
    def check(rolls, minimum, maximum):
        stats = summarize(rolls)
        mean_margin = maximum / 5 if maximum < 1 else 1
        assert stats["mean"] == pytest.approx((minimum + maximum) / 2, abs=mean_margin)
        assert stats["min"] == minimum
        assert stats["max"] == maximum
        assert stats["skewness"] == pytest.approx(0, abs=0.1)
        assert stats["kurtosis"] < 0

    return check
