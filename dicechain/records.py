"""Plain records for dice, pools, chains and roll steps.

Every record is a dict with a ``type`` key naming one of a fixed set of
kinds, so it can be stored as YAML, JSON or anything else that holds dicts,
lists and numbers.
"""
import typing

import yaml

from dicechain.roll import (
    ChainLink,
    ChainRollStep,
    DiceChain,
    FixedDie,
    InvalidArgumentError,
    Operation,
    SeveralDice,
    UniformDie,
)

Record = typing.Dict[str, typing.Any]


def _save_links(last: ChainLink) -> typing.List[Record]:
    return [
        {"operation": link.operation.value, "pool": on_save(link.pool)}
        for link in last.links()
    ]


def on_save(entity) -> Record:
    if isinstance(entity, FixedDie):
        return {"type": "fixed", "value": entity.value}
    elif isinstance(entity, UniformDie):
        return {"type": "uniform", "min": entity.min(), "max": entity.max()}
    elif isinstance(entity, SeveralDice):
        return {
            "type": "pool",
            "value": on_save(entity.value_provider),
            "count": None if entity.count_provider is None else on_save(entity.count_provider),
        }
    elif isinstance(entity, ChainLink):
        return {"type": "link", "links": _save_links(entity)}
    elif isinstance(entity, DiceChain):
        return {"type": "chain", "links": _save_links(entity.last_link)}
    elif isinstance(entity, ChainRollStep):
        return {
            "type": "step",
            "rolls": list(entity.rolls),
            "operation": entity.operation.value,
        }
    raise InvalidArgumentError("can't make a record of %r" % (entity,))


def _operation(raw) -> Operation:
    try:
        return Operation(raw)
    except ValueError:
        raise InvalidArgumentError("unknown dice operation %r" % (raw,)) from None


def _load_pool(record) -> SeveralDice:
    pool = on_load(record)
    if not isinstance(pool, SeveralDice):
        raise InvalidArgumentError("pool record expected, got %r" % (record,))
    return pool


def _load_links(record: Record) -> typing.List[typing.Tuple[Operation, SeveralDice]]:
    links = record.get("links") or []
    if not links:
        raise InvalidArgumentError("%s record has no links" % record.get("type"))
    result = []
    for link in links:
        if not isinstance(link, dict):
            raise InvalidArgumentError("link entry must be a mapping, got %r" % (link,))
        result.append((_operation(link.get("operation")), _load_pool(link.get("pool"))))
    return result


def _load_link(record: Record) -> ChainLink:
    last = None
    for operation, pool in _load_links(record):
        last = ChainLink(operation, pool, last)
    return last


def _load_chain(record: Record) -> DiceChain:
    links = _load_links(record)
    chain = DiceChain(links[0][1])
    for operation, pool in links[1:]:
        chain.append(operation, pool)
    return chain


def on_load(record: Record):
    if not isinstance(record, dict):
        raise InvalidArgumentError("record must be a mapping, got %r" % (record,))
    kind = record.get("type")
    try:
        if kind == "fixed":
            return FixedDie(record["value"])
        elif kind == "uniform":
            return UniformDie(record["min"], record["max"])
        elif kind == "pool":
            count = record.get("count")
            return SeveralDice(on_load(record["value"]), None if count is None else on_load(count))
        elif kind == "link":
            return _load_link(record)
        elif kind == "chain":
            return _load_chain(record)
        elif kind == "step":
            return ChainRollStep(record["rolls"], _operation(record["operation"]))
    except KeyError as e:
        raise InvalidArgumentError("%s record lacks %s" % (kind, e)) from None
    raise InvalidArgumentError("unknown record type %r" % (kind,))


def dump(entity) -> str:
    return yaml.safe_dump(on_save(entity), sort_keys=False)


def load(text: str):
    return on_load(yaml.safe_load(text))
