"""Identifier lookup and rendering of kinetic model entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, TypeAlias

from maudls.document import Document
from maudls.kinetic_model import (
    Compartment,
    Enzyme,
    KineticModel,
    Metabolite,
    Reaction,
)
from maudls.spans import Span


@dataclass(frozen=True)
class EnzymeView:
    """An enzyme joined with the reactions it catalyzes."""

    enzyme: Enzyme
    reaction_ids: tuple[str, ...]


@dataclass(frozen=True)
class ReactionView:
    reaction: Reaction
    enzyme_ids: tuple[str, ...]


Entity: TypeAlias = Metabolite | ReactionView | EnzymeView | Compartment


def resolve(model: KineticModel, identifier: str) -> Entity | None:
    # collections are unique internally but not across each other; the
    # lookup order decides ambiguous identifiers
    for metabolite in model.metabolites:
        if metabolite.id == identifier:
            return metabolite
    for reaction in model.reactions:
        if reaction.id == identifier:
            return ReactionView(
                reaction=reaction,
                enzyme_ids=tuple(model.enzymes_for_reaction(reaction.id)),
            )
    for enzyme in model.enzymes:
        if enzyme.id == identifier:
            return EnzymeView(
                enzyme=enzyme,
                reaction_ids=tuple(model.reactions_for_enzyme(enzyme.id)),
            )
    for compartment in model.compartments:
        if compartment.id == identifier:
            return compartment
    # stoichiometry keys name a metabolite in a compartment, e.g. g6p_c
    for location in model.metabolite_locations:
        if location.key == identifier:
            return resolve(model, location.metabolite_id)
    return None


def _format_coefficient(metabolite: str, coefficient: float) -> str:
    magnitude = abs(coefficient)
    if magnitude == 1:
        return metabolite
    return f"{magnitude:g} {metabolite}"


def render_stoichiometry(stoichiometry: Mapping[str, float]) -> str:
    reactants = [
        _format_coefficient(metabolite, coefficient)
        for metabolite, coefficient in stoichiometry.items()
        if coefficient < 0
    ]
    products = [
        _format_coefficient(metabolite, coefficient)
        for metabolite, coefficient in stoichiometry.items()
        if coefficient >= 0
    ]
    return f"{' + '.join(reactants)} <=> {' + '.join(products)}"


def _render_fields(fields: list[tuple[str, object]]) -> str:
    return "\n".join(f"{name} = {value}" for name, value in fields)


def render(entity: Entity) -> str:
    match entity:
        case Metabolite():
            return _render_fields(
                [
                    ("metabolite", entity.id),
                    ("name", entity.name),
                    ("inchi_key", entity.inchi_key or ""),
                ]
            )
        case ReactionView(reaction=reaction):
            return _render_fields(
                [
                    ("reaction", reaction.id),
                    ("name", reaction.name),
                    ("mechanism", reaction.mechanism.value),
                    ("stoichiometry", render_stoichiometry(reaction.stoichiometry)),
                    ("enzymes", ", ".join(entity.enzyme_ids)),
                ]
            )
        case EnzymeView(enzyme=enzyme):
            return _render_fields(
                [
                    ("enzyme", enzyme.id),
                    ("name", enzyme.name),
                    ("subunits", enzyme.subunits),
                    ("reactions", ", ".join(entity.reaction_ids)),
                ]
            )
        case Compartment():
            return _render_fields(
                [
                    ("compartment", entity.id),
                    ("name", entity.name),
                    ("volume", f"{entity.volume:g}"),
                ]
            )
    raise TypeError(f"cannot render {type(entity).__name__}")


def locate(entity: Entity) -> Span | None:
    match entity:
        case ReactionView(reaction=reaction):
            return reaction.span
        case EnzymeView(enzyme=enzyme):
            return enzyme.span
        case Metabolite() | Compartment():
            return entity.span
    return None


def find_symbol_line(document: Document[KineticModel], identifier: str) -> int | None:
    """0-based editor line where ``identifier`` is declared."""
    entity = resolve(document.model, identifier)
    if entity is None:
        return None
    span = locate(entity)
    if span is None:
        return None
    return document.editor_line(span)


def find_rendered_symbol(model: KineticModel, identifier: str) -> str:
    entity = resolve(model, identifier)
    if entity is None:
        return ""
    return render(entity)
