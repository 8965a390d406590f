"""
Name-variant generation for reconciling two naming vocabularies.

The language service enumerates names in identifier style (``!contains``,
``mv-expand``, ``notcontains``) while the documentation corpus names pages by
URL slug (``not-contains-operator.md``). Neither can be normalized to the
other with a single rule, so both sides are expanded to a finite variant set
and compared by intersection.
"""

from typing import Iterable, Optional

from argschema.config import settings

# Explicit negation prefixes in either house style
NEGATION_PREFIXES: tuple[str, ...] = ("!", "not-", "not_")

# Prefixes assumed to be a compressed negation (``notcontains`` -> ``not-contains``).
# Follows documentation naming; extend or clear as that changes.
COMPRESSED_NEGATION_PREFIXES: tuple[str, ...] = ("not",)

# Forms generated for a negated name, ``{rest}`` being the un-negated part
NEGATED_FORMS: tuple[str, ...] = ("!{rest}", "not-{rest}", "not_{rest}", "not{rest}")


def build_synonym_map(synonyms: Optional[dict[str, list[str]]] = None) -> dict[str, set[str]]:
    """Make the alias table bidirectional and lowercase."""
    table = settings.operator_name_synonyms if synonyms is None else synonyms
    result: dict[str, set[str]] = {}
    for name, aliases in table.items():
        key = name.lower()
        for alias in aliases:
            alias = alias.lower()
            result.setdefault(key, set()).add(alias)
            result.setdefault(alias, set()).add(key)
    return result


def _negated_rest(name: str, compressed_prefixes: Iterable[str]) -> Optional[str]:
    lower = name.lower()
    for prefix in NEGATION_PREFIXES:
        if lower.startswith(prefix):
            return name[len(prefix):] or None
    for prefix in compressed_prefixes:
        if lower.startswith(prefix):
            return name[len(prefix):] or None
    return None


def name_variants(
    name: str,
    synonyms: Optional[dict[str, set[str]]] = None,
    compressed_prefixes: Iterable[str] = COMPRESSED_NEGATION_PREFIXES,
) -> set[str]:
    """Return the set of spellings considered equivalent to ``name``."""
    if not name:
        return set()
    synonym_map = build_synonym_map() if synonyms is None else synonyms
    compressed_prefixes = tuple(compressed_prefixes)

    base = {name, name.replace("_", "-"), name.replace("-", "_")}

    negated: set[str] = set()
    for form in base:
        rest = _negated_rest(form, compressed_prefixes)
        if rest is None:
            continue
        for template in NEGATED_FORMS:
            negated.add(template.format(rest=rest))

    variants = base | negated
    for variant in list(variants):
        variants |= synonym_map.get(variant.lower(), set())

    return variants | {v.lower() for v in variants}


def names_match(
    left: str,
    right: str,
    synonyms: Optional[dict[str, set[str]]] = None,
) -> bool:
    """Two names are equivalent iff their variant sets intersect."""
    synonym_map = build_synonym_map() if synonyms is None else synonyms
    return not name_variants(left, synonym_map).isdisjoint(
        name_variants(right, synonym_map)
    )
