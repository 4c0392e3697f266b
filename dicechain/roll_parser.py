import logging
import os
import typing

import lark

import dicechain.roll as roll

logger = logging.getLogger(__name__)

NodeParser = typing.Callable[[str], typing.Optional[roll.SeveralDice]]

OPERATORS = "+-*/"


def _to_number(token: str) -> float:
    try:
        return int(token)
    except ValueError:
        return float(token)


@lark.v_args(inline=True)
class _NodeTransformer(lark.Transformer):
    number = lambda self, token: _to_number(token)
    faces = lambda self, faces: roll.UniformDie(int(faces))
    interval = lambda self, low, high: roll.UniformDie(int(low), int(high))
    fixed = lambda self, value: roll.SeveralDice(roll.FixedDie(value))
    single = lambda self, die: roll.SeveralDice(die)
    fixed_count = lambda self, count, die: roll.SeveralDice(die, roll.FixedDie(count))
    die_count = lambda self, count, die: roll.SeveralDice(die, count)
    fixed_count_value = lambda self, count, value: roll.SeveralDice(
        roll.FixedDie(value), roll.FixedDie(count)
    )
    die_count_value = lambda self, count, value: roll.SeveralDice(roll.FixedDie(value), count)


_grammar_file = os.path.join(os.path.dirname(__file__), "node.lark")
with open(_grammar_file) as _file:
    _grammar = lark.Lark(_file.read(), parser="lalr")


def _parse_node_tree(text: str) -> roll.SeveralDice:
    return _NodeTransformer().transform(_grammar.parse(text))


def parse_builtin_node(text: str) -> typing.Optional[roll.SeveralDice]:
    """Parses a fixed number, a die or an interval, with an optional count."""
    try:
        return _parse_node_tree(text)
    except (lark.exceptions.LarkError, roll.DiceRollError):
        return None


_node_parsers: typing.List[NodeParser] = [parse_builtin_node]


def add_node_parser(parser: NodeParser) -> NodeParser:
    """Registers a parser for custom node syntax, tried after the ones before it.

    A parser gets the node text with parentheses removed and returns a
    ``SeveralDice`` or ``None``. Usable as a decorator.
    """
    if parser not in _node_parsers:
        _node_parsers.append(parser)
    return parser


def remove_node_parser(parser: NodeParser) -> bool:
    try:
        _node_parsers.remove(parser)
    except ValueError:
        return False
    return True


def parse_node(text: str) -> typing.Optional[roll.SeveralDice]:
    for parser in list(_node_parsers):
        try:
            result = parser(text)
        except Exception:
            logger.warning("node parser %r failed on %r", parser, text, exc_info=True)
            continue
        if isinstance(result, roll.SeveralDice):
            return result
        if isinstance(result, roll.ValueProvider):
            return roll.SeveralDice(result)
        if result is not None:
            logger.warning("node parser %r returned %r, which is not a die", parser, result)
    return None


def _require_node(text: str) -> roll.SeveralDice:
    cleaned = text.replace("(", "").replace(")", "").strip()
    node = parse_node(cleaned)
    if node is None:
        raise roll.InvalidExpressionError("can't parse node '%s'" % cleaned, cleaned)
    return node


def _find_operator(text: str, start: int) -> int:
    # A +/- with nothing before it in the current node, or right after the
    # "x" of a counted fixed value, is a sign.
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "[":
            depth += 1
        elif char == "]":
            depth = max(depth - 1, 0)
        elif depth == 0 and char in OPERATORS:
            if char in "+-":
                before = text[start:index].strip()
                if not before or before.endswith("x"):
                    continue
            return index
    return -1


def _operation_at(text: str, index: int) -> roll.Operation:
    operation = roll.Operation.from_symbol(text[index])
    if text[:index].rstrip().endswith("("):
        if operation is roll.Operation.PLUS:
            return roll.Operation.EACH_PLUS
        elif operation is roll.Operation.MINUS:
            return roll.Operation.EACH_MINUS
    return operation


def parse(text: str) -> roll.DiceChain:
    """Parses dice chain notation such as ``2d6+3``, ``d4d6-[2, 5]`` or ``3d8(+3)``."""
    if text is None or not text.strip():
        raise roll.InvalidExpressionError("empty dice expression", text or "")
    cleaned = text.strip()

    op_index = _find_operator(cleaned, 0)
    first = cleaned if op_index < 0 else cleaned[:op_index]
    chain = roll.DiceChain(_require_node(first))
    while op_index >= 0:
        next_index = _find_operator(cleaned, op_index + 1)
        end = len(cleaned) if next_index < 0 else next_index
        node = _require_node(cleaned[op_index + 1 : end])
        chain.append(_operation_at(cleaned, op_index), node)
        op_index = next_index

    logger.debug("parsed %r into %s", text, chain)
    return chain


def parse_die(text: str) -> roll.UniformDie:
    """Parses a single die, ``d12`` or ``[-100, -10]``."""
    try:
        node = _parse_node_tree(text.strip())
    except lark.exceptions.VisitError as e:
        raise e.orig_exc
    except lark.exceptions.LarkError as e:
        raise roll.InvalidExpressionError("can't parse die '%s':\n%s" % (text, e), text)
    if node.count_provider is not None or not isinstance(node.value_provider, roll.UniformDie):
        raise roll.InvalidExpressionError("'%s' is not a single die" % text, text)
    return node.value_provider
