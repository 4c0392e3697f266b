import enum
import math
import numbers
import random
import typing

import dicechain.random_source as random_source

ZERO_EPSILON = 0.0001


def _short_string(value: float) -> str:
    result = "%.1f" % value
    if result.endswith(".0"):
        result = result[:-2]
    if result == "-0":
        result = "0"
    return result


def _equals_zero(value: float) -> bool:
    return -ZERO_EPSILON <= value <= ZERO_EPSILON


class DiceRollError(ValueError):
    pass


class InvalidArgumentError(DiceRollError):
    pass


class InvalidExpressionError(DiceRollError):
    def __init__(self, message: str, expression: str = "") -> None:
        super().__init__(message)
        self.expression = expression


class InvalidOperationError(DiceRollError):
    pass


class Operation(enum.Enum):
    PLUS = "plus"
    MINUS = "minus"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    EACH_PLUS = "each_plus"
    EACH_MINUS = "each_minus"

    @property
    def is_each(self) -> bool:
        return self in (Operation.EACH_PLUS, Operation.EACH_MINUS)

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    @classmethod
    def from_symbol(cls, symbol: str) -> "Operation":
        try:
            return _FROM_SYMBOLS[symbol]
        except KeyError:
            raise InvalidExpressionError(
                "unknown operation character %r" % symbol, symbol
            ) from None


_SYMBOLS = {
    Operation.PLUS: "+",
    Operation.EACH_PLUS: "+",
    Operation.MINUS: "-",
    Operation.EACH_MINUS: "-",
    Operation.MULTIPLY: "*",
    Operation.DIVIDE: "/",
}

_FROM_SYMBOLS = {
    "+": Operation.PLUS,
    "-": Operation.MINUS,
    "*": Operation.MULTIPLY,
    "/": Operation.DIVIDE,
}


def combine(left: float, operation: Operation, right: float, left_count: int = 1) -> float:
    """Folds one roll into the running value of a chain.

    ``left_count`` is the number of individual rolls that produced ``left``;
    the each-operations apply ``right`` once per such roll.
    """
    if operation is Operation.PLUS:
        return left + right
    elif operation is Operation.MINUS:
        return left - right
    elif operation is Operation.MULTIPLY:
        return left * right
    elif operation is Operation.DIVIDE:
        return 0 if _equals_zero(right) else left / right
    elif operation is Operation.EACH_PLUS:
        return left + left_count * right
    elif operation is Operation.EACH_MINUS:
        return left - left_count * right
    raise InvalidOperationError("unknown dice operation %r" % (operation,))


def _check_operation(operation) -> Operation:
    if not isinstance(operation, Operation):
        raise InvalidArgumentError("dice operation expected, got %r" % (operation,))
    return operation


def _check_finite(value, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError("%s must be a number, got %r" % (what, value))
    if math.isnan(value) or math.isinf(value):
        raise InvalidArgumentError("%s must be finite, got %r" % (what, value))


class ValueProvider:
    """Anything that can be rolled: a die, a pool of dice or a whole chain.

    Subclasses implement ``min``, ``max`` and ``roll``. Custom providers
    (a character's ability modifier, a spell's dice count, ...) subclass this
    directly and can be used anywhere a die is expected.
    """

    def min(self) -> float:
        raise NotImplementedError

    def max(self) -> float:
        raise NotImplementedError

    def roll(self, rng: typing.Optional[random.Random] = None) -> float:
        raise NotImplementedError

    def roll_many(
        self, count: int, rng: typing.Optional[random.Random] = None
    ) -> typing.Iterator[float]:
        """Lazily rolls ``count`` times.

        Every iteration draws fresh values; collect into a list to keep them.
        """
        if count < 0:
            raise InvalidArgumentError("roll count must not be negative, got %s" % count)
        return (self.roll(rng) for _ in range(count))


class FixedDie(ValueProvider):
    def __init__(self, value: float = 0) -> None:
        _check_finite(value, "fixed die value")
        self.value = value

    def min(self) -> float:
        return self.value

    def max(self) -> float:
        return self.value

    def roll(self, rng: typing.Optional[random.Random] = None) -> float:
        return self.value

    def __eq__(self, other) -> bool:
        if not isinstance(other, FixedDie):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash((FixedDie, self.value))

    def __repr__(self) -> str:
        return _short_string(self.value)


FixedDie.ZERO = FixedDie(0)
FixedDie.ONE = FixedDie(1)
FixedDie.MINUS_ONE = FixedDie(-1)


def _check_rollable(provider: ValueProvider) -> None:
    low, high = provider.min(), provider.max()
    if low > high:
        raise InvalidOperationError(
            "can't roll '%s' with minimum %s > maximum %s" % (provider, low, high)
        )


class CustomDie(ValueProvider):
    """Base for dice with their own roll rule.

    The bounds are fixed at construction; subclasses only implement
    ``roll_once(rng)``, which gets a ready generator:

        class FudgeDie(CustomDie):
            def __init__(self):
                super().__init__(-1, 1)

            def roll_once(self, rng):
                return rng.choice((-1, 0, 1))
    """

    def __init__(self, min: float, max: float) -> None:
        _check_finite(min, "die minimum")
        _check_finite(max, "die maximum")
        if min > max:
            raise InvalidArgumentError(
                "die minimum %s is greater than maximum %s" % (min, max)
            )
        self._min = min
        self._max = max

    def min(self) -> float:
        return self._min

    def max(self) -> float:
        return self._max

    def roll_once(self, rng: random.Random) -> float:
        raise NotImplementedError

    def roll(self, rng: typing.Optional[random.Random] = None) -> float:
        _check_rollable(self)
        if rng is None:
            rng = random_source.get_random()
        return self.roll_once(rng)

    def __repr__(self) -> str:
        if _equals_zero(self.min() - 1):
            return "d%d" % self.max()
        return "[%d, %d]" % (self.min(), self.max())


class UniformDie(CustomDie):
    """A die rolling an integer uniformly from ``[min, max]``.

    ``UniformDie(6)`` is the usual six-sided die, ``UniformDie(2, 5)`` rolls
    2, 3, 4 or 5.
    """

    def __init__(self, min_or_faces: int, max: typing.Optional[int] = None) -> None:
        if max is None:
            faces = min_or_faces
            if not isinstance(faces, numbers.Integral) or isinstance(faces, bool):
                raise InvalidArgumentError("face count must be an integer, got %r" % (faces,))
            if faces < 1:
                raise InvalidArgumentError("attempted to create a die with %s faces" % faces)
            low, high = 1, faces
        else:
            low, high = min_or_faces, max
            for bound in (low, high):
                if not isinstance(bound, numbers.Integral) or isinstance(bound, bool):
                    raise InvalidArgumentError(
                        "interval bounds must be integers, got %r" % (bound,)
                    )
            if low > high:
                raise InvalidArgumentError(
                    "interval minimum %s is greater than maximum %s" % (low, high)
                )
        super().__init__(int(low), int(high))

    def roll_once(self, rng: random.Random) -> float:
        return rng.randrange(int(self.min()), int(self.max()) + 1)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UniformDie):
            return NotImplemented
        return (self.min(), self.max()) == (other.min(), other.max())

    def __hash__(self) -> int:
        return hash((UniformDie, self.min(), self.max()))


D2 = UniformDie(2)
D3 = UniformDie(3)
D4 = UniformDie(4)
D6 = UniformDie(6)
D8 = UniformDie(8)
D10 = UniformDie(10)
D12 = UniformDie(12)
D20 = UniformDie(20)
D100 = UniformDie(100)


def as_provider(value, what: str) -> ValueProvider:
    if isinstance(value, ValueProvider):
        return value
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return FixedDie(value)
    raise InvalidArgumentError("%s must be a number or a die, got %r" % (what, value))


class SeveralDice(ValueProvider):
    """A pool: roll ``count_provider`` once, then ``value_provider`` that many times.

    A missing count provider means exactly one roll.
    """

    def __init__(
        self,
        value_provider: typing.Union[ValueProvider, float],
        count_provider: typing.Union[ValueProvider, float, None] = None,
    ) -> None:
        if value_provider is None:
            raise InvalidArgumentError("a pool needs a value provider")
        self.value_provider = as_provider(value_provider, "pool value")
        if count_provider is not None:
            count_provider = as_provider(count_provider, "pool count")
            if int(count_provider.min()) < 1:
                raise InvalidArgumentError(
                    "pool count must be positive, '%s' can roll %s"
                    % (count_provider, count_provider.min())
                )
        self.count_provider = count_provider

    def min_count(self) -> int:
        return 1 if self.count_provider is None else int(self.count_provider.min())

    def max_count(self) -> int:
        return 1 if self.count_provider is None else int(self.count_provider.max())

    def min(self) -> float:
        return self.min_count() * self.value_provider.min()

    def max(self) -> float:
        return self.max_count() * self.value_provider.max()

    def _roll_count(self, rng: typing.Optional[random.Random]) -> int:
        _check_rollable(self.value_provider)
        if self.count_provider is None:
            return 1
        _check_rollable(self.count_provider)
        count = int(self.count_provider.roll(rng))
        if count < 1:
            raise InvalidOperationError(
                "'%s' rolled a dice count of %s" % (self.count_provider, count)
            )
        return count

    def roll_counted(self, rng: typing.Optional[random.Random] = None) -> typing.Tuple[float, int]:
        """Rolls the pool once and returns ``(total, number of dice rolled)``."""
        count = self._roll_count(rng)
        return sum(self.value_provider.roll_many(count, rng)), count

    def roll(self, rng: typing.Optional[random.Random] = None) -> float:
        return self.roll_counted(rng)[0]

    def roll_separately(self, rng: typing.Optional[random.Random] = None) -> typing.List[float]:
        return list(self.value_provider.roll_many(self._roll_count(rng), rng))

    def __repr__(self) -> str:
        # "d6", not "1d6"
        if isinstance(self.count_provider, FixedDie):
            show_count = int(self.count_provider.value) > 1
        else:
            show_count = self.count_provider is not None
        if not show_count:
            return str(self.value_provider)
        if isinstance(self.value_provider, FixedDie):
            # "2x3" is three twice; "23" would read back as twenty-three
            return "%sx%s" % (self.count_provider, self.value_provider)
        return "%s%s" % (self.count_provider, self.value_provider)


class ChainRollStep:
    def __init__(self, rolls: typing.Iterable[float], operation: Operation) -> None:
        self.rolls = tuple(rolls)
        self.total = sum(self.rolls)
        self.operation = _check_operation(operation)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ChainRollStep):
            return NotImplemented
        return (self.rolls, self.operation) == (other.rolls, other.operation)

    def __hash__(self) -> int:
        return hash((self.rolls, self.operation))

    def __repr__(self) -> str:
        return "%s roll(s) totaling %s" % (len(self.rolls), _short_string(self.total))


class ChainLink(ValueProvider):
    """One pool of a chain, joined to everything before it by an operation.

    Links are never modified; appending to a chain creates a new link whose
    ``previous`` is the old tail.
    """

    def __init__(
        self,
        operation: Operation,
        pool: SeveralDice,
        previous: typing.Optional["ChainLink"] = None,
    ) -> None:
        self.operation = _check_operation(operation)
        if not isinstance(pool, SeveralDice):
            raise InvalidArgumentError("chain link needs a pool, got %r" % (pool,))
        if previous is not None and not isinstance(previous, ChainLink):
            raise InvalidArgumentError("previous chain link expected, got %r" % (previous,))
        self.pool = pool
        self.previous = previous

    def links(self) -> typing.List["ChainLink"]:
        """All links up to this one, first link first."""
        result = []
        link: typing.Optional[ChainLink] = self
        while link is not None:
            result.append(link)
            link = link.previous
        result.reverse()
        return result

    def bounds(self) -> typing.Tuple[float, float]:
        low, high = 0, 0
        low_count, high_count = 0, 0
        for link in self.links():
            pool_low, pool_high = link.pool.min(), link.pool.max()
            op = link.operation
            if op is Operation.PLUS:
                low, high = low + pool_low, high + pool_high
            elif op is Operation.MINUS:
                low, high = low - pool_high, high - pool_low
            elif op is Operation.MULTIPLY:
                low, high = low * pool_low, high * pool_high
            elif op is Operation.DIVIDE:
                low = 0 if _equals_zero(pool_high) else low / pool_high
                high = 0 if _equals_zero(pool_low) else high / pool_low
            elif op is Operation.EACH_PLUS:
                low, high = low + low_count * pool_low, high + high_count * pool_high
            elif op is Operation.EACH_MINUS:
                low, high = low - low_count * pool_high, high - high_count * pool_low
            else:
                raise InvalidOperationError("unknown dice operation %r" % (op,))
            low_count, high_count = link.pool.min_count(), link.pool.max_count()
        return low, high

    def min(self) -> float:
        return self.bounds()[0]

    def max(self) -> float:
        return self.bounds()[1]

    def roll(self, rng: typing.Optional[random.Random] = None) -> float:
        result = 0
        previous_count = 1
        for link in self.links():
            value, count = link.pool.roll_counted(rng)
            result = combine(result, link.operation, value, previous_count)
            previous_count = count
        return result

    def roll_step_by_step(
        self, rng: typing.Optional[random.Random] = None
    ) -> typing.Tuple[float, typing.List[ChainRollStep]]:
        """Rolls the chain keeping every individual die roll.

        Slower than ``roll``: each link allocates a list of its rolls.
        """
        steps = []
        link: typing.Optional[ChainLink] = self
        while link is not None:
            steps.append(ChainRollStep(link.pool.roll_separately(rng), link.operation))
            link = link.previous
        steps.reverse()

        result = 0
        for i, step in enumerate(steps):
            previous_count = len(steps[i - 1].rolls) if i > 0 else 1
            result = combine(result, step.operation, step.total, previous_count)
        return result, steps

    def __repr__(self) -> str:
        parts = []
        for link in self.links():
            if link.previous is None:
                parts.append(str(link.pool))
            elif link.operation.is_each:
                parts.append("(%s%s)" % (link.operation.symbol, link.pool))
            else:
                parts.append("%s%s" % (link.operation.symbol, link.pool))
        return "".join(parts)


class DiceChain(ValueProvider):
    """Pools evaluated left to right, e.g. ``2d6+3`` or ``3d8(+3)``.

    Build one with ``take``, ``DiceChain(pool)`` or ``roll_parser.parse``.
    The builder methods replace the chain's tail with a new link and return
    the chain, so ``take(2).d(6).plus(3)`` reads like the notation.
    """

    def __init__(self, pool: typing.Union[SeveralDice, ValueProvider, float]) -> None:
        if not isinstance(pool, SeveralDice):
            pool = SeveralDice(pool)
        self.last_link = ChainLink(Operation.PLUS, pool)

    @property
    def first_link(self) -> ChainLink:
        link = self.last_link
        while link.previous is not None:
            link = link.previous
        return link

    def links(self) -> typing.List[ChainLink]:
        return self.last_link.links()

    def append(self, operation: Operation, pool: SeveralDice) -> "DiceChain":
        self.last_link = ChainLink(operation, pool, self.last_link)
        return self

    def _append_value(self, operation: Operation, value) -> "DiceChain":
        return self.append(operation, SeveralDice(as_provider(value, "chain value")))

    def _setup(self, operation: Operation, amount) -> "DiceChainSetup":
        return DiceChainSetup(_take_amount(amount), operation, self)

    def plus(self, value) -> "DiceChain":
        return self._append_value(Operation.PLUS, value)

    def minus(self, value) -> "DiceChain":
        return self._append_value(Operation.MINUS, value)

    def multiply(self, value) -> "DiceChain":
        return self._append_value(Operation.MULTIPLY, value)

    def divide(self, value) -> "DiceChain":
        return self._append_value(Operation.DIVIDE, value)

    def each_plus(self, value) -> "DiceChain":
        return self._append_value(Operation.EACH_PLUS, value)

    def each_minus(self, value) -> "DiceChain":
        return self._append_value(Operation.EACH_MINUS, value)

    def plus_take(self, amount) -> "DiceChainSetup":
        return self._setup(Operation.PLUS, amount)

    def minus_take(self, amount) -> "DiceChainSetup":
        return self._setup(Operation.MINUS, amount)

    def multiply_take(self, amount) -> "DiceChainSetup":
        return self._setup(Operation.MULTIPLY, amount)

    def divide_take(self, amount) -> "DiceChainSetup":
        return self._setup(Operation.DIVIDE, amount)

    def each_plus_take(self, amount) -> "DiceChainSetup":
        return self._setup(Operation.EACH_PLUS, amount)

    def each_minus_take(self, amount) -> "DiceChainSetup":
        return self._setup(Operation.EACH_MINUS, amount)

    def min(self) -> float:
        return self.last_link.min()

    def max(self) -> float:
        return self.last_link.max()

    def bounds(self) -> typing.Tuple[float, float]:
        return self.last_link.bounds()

    def roll(self, rng: typing.Optional[random.Random] = None) -> float:
        return self.last_link.roll(rng)

    def roll_step_by_step(
        self, rng: typing.Optional[random.Random] = None
    ) -> typing.Tuple[float, typing.List[ChainRollStep]]:
        return self.last_link.roll_step_by_step(rng)

    def __repr__(self) -> str:
        return repr(self.last_link)


def _take_amount(amount) -> ValueProvider:
    if isinstance(amount, ValueProvider):
        return amount
    _check_finite(amount, "dice amount")
    if amount <= 0:
        raise InvalidArgumentError("dice amount must be positive, got %s" % amount)
    return FixedDie(amount)


class DiceChainSetup:
    """Half of a ``take(n).d(faces)`` call: knows how many dice, not which.

    This is not a provider; finish it with ``d``, ``interval`` or ``fixed``.
    """

    def __init__(
        self,
        amount: ValueProvider,
        operation: Operation = Operation.PLUS,
        previous_chain: typing.Optional[DiceChain] = None,
    ) -> None:
        if amount is None:
            raise InvalidArgumentError("dice amount provider expected")
        self.amount = amount
        self.operation = _check_operation(operation)
        self.previous_chain = previous_chain

    def d(self, faces: int) -> DiceChain:
        return self.of(UniformDie(faces))

    def interval(self, min: int, max: int) -> DiceChain:
        return self.of(UniformDie(min, max))

    def fixed(self, value: float) -> DiceChain:
        return self.of(FixedDie(value))

    def of(self, die: ValueProvider) -> DiceChain:
        pool = SeveralDice(die, self.amount)
        if self.previous_chain is None:
            return DiceChain(pool)
        return self.previous_chain.append(self.operation, pool)


def take(amount) -> DiceChainSetup:
    """Starts a chain: ``take(2).d(6)`` is 2d6, ``take(D4).d(6)`` is d4d6."""
    return DiceChainSetup(_take_amount(amount))
