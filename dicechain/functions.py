import random
import typing

import pandas
import plotly.express as px

import dicechain.settings as settings
from dicechain.roll import (
    InvalidArgumentError,
    Operation,
    ValueProvider,
    as_provider,
    combine,
)


def apply_operation(
    rolls: typing.Iterable[float],
    operation: Operation,
    value: typing.Union[ValueProvider, float],
    rng: typing.Optional[random.Random] = None,
) -> typing.Iterator[float]:
    """Modifies individual roll values with an operation.

    Plus and minus modify a total, so only the first roll is changed; with no
    rolls at all the modifier itself is produced. Every other operation is
    applied to each roll with a fresh roll of ``value``.
    """
    provider = as_provider(value, "operation value")
    if operation in (Operation.PLUS, Operation.MINUS):
        applied = False
        for roll in rolls:
            if applied:
                yield roll
            else:
                yield combine(roll, operation, provider.roll(rng))
                applied = True
        if not applied:
            modifier = provider.roll(rng)
            yield -modifier if operation is Operation.MINUS else modifier
    else:
        for roll in rolls:
            yield combine(roll, operation, provider.roll(rng))


def spawn_continuously(
    rolls: typing.Iterable[float],
    predicate: typing.Callable[[float], bool],
    spawn: typing.Callable[[], typing.Iterable[float]],
) -> typing.Iterator[float]:
    """Exploding rolls: every roll matching ``predicate`` adds ``spawn()`` rolls,
    which may explode in turn.

    ``spawn_continuously(D10.roll_many(2), lambda x: x >= 9, lambda: D10.roll_many(1))``
    """
    for roll in rolls:
        yield roll
        if predicate(roll):
            yield from spawn_continuously(spawn(), predicate, spawn)


def spawn_once(
    rolls: typing.Iterable[float],
    predicate: typing.Callable[[float], bool],
    spawn: typing.Callable[[], typing.Iterable[float]],
) -> typing.Iterator[float]:
    spawned = False
    for roll in rolls:
        yield roll
        if not spawned and predicate(roll):
            yield from spawn()
            spawned = True


def sample(
    provider: ValueProvider,
    count: typing.Optional[int] = None,
    rng: typing.Optional[random.Random] = None,
) -> pandas.Series:
    if count is None:
        count = settings.get("samples")
    if count < 1:
        raise InvalidArgumentError("sample count must be positive, got %s" % count)
    return pandas.Series(list(provider.roll_many(count, rng)), name=str(provider), dtype=float)


def summarize(values: typing.Iterable[float]) -> pandas.Series:
    series = pandas.Series(list(values), dtype=float)
    if series.empty:
        raise InvalidArgumentError("can't summarize an empty set of rolls")
    return pandas.Series(
        {
            "count": float(series.count()),
            "min": series.min(),
            "max": series.max(),
            "mean": series.mean(),
            "skewness": series.skew(),
            "kurtosis": series.kurt(),
        }
    )


def summarize_provider(
    provider: ValueProvider,
    count: typing.Optional[int] = None,
    rng: typing.Optional[random.Random] = None,
) -> pandas.Series:
    return summarize(sample(provider, count, rng))


def histogram(
    *providers: ValueProvider,
    samples: typing.Optional[int] = None,
    rng: typing.Optional[random.Random] = None,
):
    """Overlaid bar chart of how often each provider rolled each value."""
    if not providers:
        raise InvalidArgumentError("histogram needs at least one die")

    frequencies = {}
    for provider in providers:
        rolls = sample(provider, samples, rng)
        label = str(provider)
        copy = 2
        while label in frequencies:
            label = "%s (%d)" % (provider, copy)
            copy += 1
        frequencies[label] = rolls.value_counts(normalize=True)

    data = pandas.DataFrame(frequencies).fillna(0.0).sort_index()
    data.index.name = "value"
    data = data.reset_index()
    fig = px.bar(data, x="value", y=list(frequencies), barmode="overlay")
    fig.update_xaxes(title_text="value")
    fig.update_yaxes(title_text="probability", tickformat="%")
    return fig
