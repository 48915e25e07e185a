"""Canonical given names and their common English nicknames."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

_NICKNAME_GROUPS: Final[dict[str, tuple[str, ...]]] = {
    "alexander": ("alex", "al", "sasha"),
    "alexandra": ("alex", "lexi", "sasha"),
    "andrew": ("andy", "drew"),
    "anthony": ("tony",),
    "benjamin": ("ben", "benny"),
    "catherine": ("cathy", "cat", "kate", "katie"),
    "charles": ("charlie", "chuck", "chas"),
    "christopher": ("chris", "kit"),
    "daniel": ("dan", "danny"),
    "david": ("dave", "davey"),
    "deborah": ("deb", "debbie"),
    "donald": ("don", "donnie"),
    "douglas": ("doug",),
    "edward": ("ed", "eddie", "ted", "ned"),
    "elizabeth": ("liz", "lizzie", "beth", "betty", "eliza"),
    "gerald": ("gerry", "jerry"),
    "gregory": ("greg",),
    "james": ("jim", "jimmy", "jamie"),
    "jeffrey": ("jeff",),
    "jennifer": ("jen", "jenny", "jenn"),
    "jonathan": ("jon", "jonny"),
    "joseph": ("joe", "joey"),
    "katherine": ("kate", "kathy", "katie", "kat"),
    "kenneth": ("ken", "kenny"),
    "lawrence": ("larry",),
    "margaret": ("maggie", "meg", "peggy", "marge"),
    "matthew": ("matt",),
    "michael": ("mike", "mikey", "mick"),
    "nicholas": ("nick", "nicky"),
    "patricia": ("pat", "patty", "trish"),
    "rebecca": ("becky", "becca"),
    "richard": ("rick", "ricky", "rich", "dick"),
    "robert": ("bob", "bobby", "rob", "robbie"),
    "ronald": ("ron", "ronnie"),
    "samuel": ("sam", "sammy"),
    "stephen": ("steve", "stevie"),
    "steven": ("steve", "stevie"),
    "susan": ("sue", "susie"),
    "thomas": ("tom", "tommy"),
    "timothy": ("tim", "timmy"),
    "victoria": ("vicky", "tori"),
    "william": ("bill", "billy", "will", "willie", "liam"),
}


def _build_lookup(groups: Mapping[str, tuple[str, ...]]) -> Mapping[str, frozenset[str]]:
    lookup: dict[str, set[str]] = {}
    for canonical, nicknames in groups.items():
        for name in (canonical, *nicknames):
            lookup.setdefault(name, set()).add(canonical)
    return MappingProxyType({name: frozenset(found) for name, found in lookup.items()})


# given name -> canonical names it can stand for ("alex" -> alexander, alexandra)
CANONICAL_NAMES: Final[Mapping[str, frozenset[str]]] = _build_lookup(_NICKNAME_GROUPS)


def canonical_given_names(token: str) -> frozenset[str]:
    return CANONICAL_NAMES.get(token, frozenset())


def are_nicknames(first: str, second: str) -> bool:
    """Whether two distinct first-name tokens can denote the same given name."""

    if not first or not second or first == second:
        return False
    return bool(canonical_given_names(first) & canonical_given_names(second))
