"""Entities of the Maud kinetic model document."""

from __future__ import annotations

import tomllib
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from maudls.spans import Span, attach_spans, scan_spans

_ENTITY_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class ReactionMechanism(StrEnum):
    IRREVERSIBLE = "irreversible"
    REVERSIBLE = "reversible"
    DRAIN = "drain"


class Compartment(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str
    name: str = ""
    volume: float = 1.0
    span: Span | None = None


class Metabolite(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str
    name: str = ""
    inchi_key: str | None = None
    span: Span | None = None


class MetaboliteLocation(BaseModel):
    model_config = _ENTITY_CONFIG

    metabolite_id: str = Field(
        validation_alias=AliasChoices("metabolite_id", "metabolite")
    )
    compartment_id: str = Field(
        validation_alias=AliasChoices("compartment_id", "compartment")
    )
    balanced: bool = True
    span: Span | None = None

    @property
    def key(self) -> str:
        return f"{self.metabolite_id}_{self.compartment_id}"


class Enzyme(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str
    name: str = ""
    subunits: int = 1
    span: Span | None = None


class Reaction(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str
    name: str = ""
    stoichiometry: dict[str, float] = Field(default_factory=dict)
    mechanism: ReactionMechanism = ReactionMechanism.REVERSIBLE
    span: Span | None = None

    @field_validator("mechanism", mode="before")
    @classmethod
    def _normalize_mechanism(cls, value: object) -> object:
        # Maud spells these "reversible_michaelis_menten" and friends
        if isinstance(value, str):
            return value.strip().lower().removesuffix("_michaelis_menten")
        return value

    @property
    def is_drain(self) -> bool:
        return self.mechanism is ReactionMechanism.DRAIN


class EnzymeReactionLink(BaseModel):
    model_config = _ENTITY_CONFIG

    enzyme_id: str
    reaction_id: str


class KineticModel(BaseModel):
    model_config = _ENTITY_CONFIG

    name: str = ""
    compartments: tuple[Compartment, ...] = Field(
        default=(), validation_alias="compartment"
    )
    metabolites: tuple[Metabolite, ...] = Field(
        default=(), validation_alias="metabolite"
    )
    metabolite_locations: tuple[MetaboliteLocation, ...] = Field(
        default=(), validation_alias="metabolite_in_compartment"
    )
    enzymes: tuple[Enzyme, ...] = Field(default=(), validation_alias="enzyme")
    reactions: tuple[Reaction, ...] = Field(default=(), validation_alias="reaction")
    enzyme_reactions: tuple[EnzymeReactionLink, ...] = Field(
        default=(), validation_alias="enzyme_reaction"
    )

    def reactions_for_enzyme(self, enzyme_id: str) -> list[str]:
        return [
            link.reaction_id
            for link in self.enzyme_reactions
            if link.enzyme_id == enzyme_id
        ]

    def enzymes_for_reaction(self, reaction_id: str) -> list[str]:
        return [
            link.enzyme_id
            for link in self.enzyme_reactions
            if link.reaction_id == reaction_id
        ]


# (model field, TOML table, keys naming the identifier, record attribute)
_SPANNED_COLLECTIONS: tuple[tuple[str, str, tuple[str, ...], str], ...] = (
    ("compartments", "compartment", ("id",), "id"),
    ("metabolites", "metabolite", ("id",), "id"),
    (
        "metabolite_locations",
        "metabolite_in_compartment",
        ("metabolite_id", "metabolite"),
        "metabolite_id",
    ),
    ("enzymes", "enzyme", ("id",), "id"),
    ("reactions", "reaction", ("id",), "id"),
)


def parse_kinetic_model(text: str) -> KineticModel:
    model = KineticModel.model_validate(tomllib.loads(text))
    spans = scan_spans(text)
    updates = {}
    for field_name, table, keys, attribute in _SPANNED_COLLECTIONS:
        updates[field_name] = attach_spans(
            getattr(model, field_name), spans, table, keys, attribute
        )
    return model.model_copy(update=updates)
