"""Prior records of the Maud priors document."""

from __future__ import annotations

import tomllib
from enum import StrEnum
from typing import ClassVar, Iterator

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from maudls.spans import Span, attach_spans, scan_spans

_PRIOR_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

INCOMPLETE_MESSAGE = "Incomplete prior: set either (location, scale) or (pct1, pct99)."
INCONSISTENT_MESSAGE = (
    "Inconsistent prior: more than two of location, scale, pct1 and pct99 are set."
)


class PriorKind(StrEnum):
    KCAT = "kcat"
    KM = "km"
    CONC_ENZYME = "conc_enzyme"
    CONC_UNBALANCED = "conc_unbalanced"
    DRAIN = "drain"
    DGF = "dgf"


class UnivariatePrior(BaseModel):
    """A prior given by (location, scale) or by its 1% and 99% percentiles."""

    model_config = _PRIOR_CONFIG

    REFERENCE_FIELD: ClassVar[str] = ""

    location: float | None = Field(
        default=None, validation_alias=AliasChoices("location", "exploc", "loc")
    )
    scale: float | None = None
    pct1: float | None = None
    pct99: float | None = None
    span: Span | None = None

    @property
    def reference(self) -> str:
        return str(getattr(self, self.REFERENCE_FIELD))

    def _has_location_scale(self) -> bool:
        return self.location is not None and self.scale is not None

    def _has_percentiles(self) -> bool:
        return self.pct1 is not None and self.pct99 is not None

    def fields_set(self) -> int:
        return sum(
            value is not None
            for value in (self.location, self.scale, self.pct1, self.pct99)
        )

    def incomplete(self) -> str | None:
        if self._has_location_scale() or self._has_percentiles():
            return None
        return INCOMPLETE_MESSAGE

    def inconsistent(self) -> str | None:
        if self.fields_set() > 2:
            return INCONSISTENT_MESSAGE
        return None

    def mean(self) -> float | None:
        if self._has_location_scale():
            return self.location
        if self._has_percentiles():
            return (self.pct1 + self.pct99) / 2
        return None


class KcatPrior(UnivariatePrior):
    REFERENCE_FIELD: ClassVar[str] = "reaction"

    enzyme: str
    reaction: str


class KmPrior(UnivariatePrior):
    REFERENCE_FIELD: ClassVar[str] = "metabolite"

    metabolite: str
    compartment: str
    enzyme: str

    @property
    def key(self) -> str:
        return f"{self.metabolite}_{self.compartment}"


class EnzymeConcentrationPrior(UnivariatePrior):
    REFERENCE_FIELD: ClassVar[str] = "enzyme"

    enzyme: str
    experiment: str


class UnbalancedConcentrationPrior(UnivariatePrior):
    REFERENCE_FIELD: ClassVar[str] = "metabolite"

    metabolite: str
    compartment: str
    experiment: str

    @property
    def key(self) -> str:
        return f"{self.metabolite}_{self.compartment}"


class DrainPrior(UnivariatePrior):
    REFERENCE_FIELD: ClassVar[str] = "reaction"

    reaction: str
    experiment: str


class FreeEnergyPrior(BaseModel):
    """Multivariate normal prior on formation energies."""

    model_config = _PRIOR_CONFIG

    ids: tuple[str, ...] = ()
    mean_vector: tuple[float, ...] = ()
    covariance_matrix: tuple[tuple[float, ...], ...] = ()
    span: Span | None = None


class Priors(BaseModel):
    model_config = _PRIOR_CONFIG

    kcat: tuple[KcatPrior, ...] = ()
    km: tuple[KmPrior, ...] = ()
    conc_enzyme: tuple[EnzymeConcentrationPrior, ...] = ()
    conc_unbalanced: tuple[UnbalancedConcentrationPrior, ...] = ()
    drain: tuple[DrainPrior, ...] = ()
    dgf: FreeEnergyPrior | None = None

    def univariate(self) -> Iterator[tuple[PriorKind, UnivariatePrior]]:
        for kind in (
            PriorKind.KM,
            PriorKind.KCAT,
            PriorKind.CONC_ENZYME,
            PriorKind.CONC_UNBALANCED,
            PriorKind.DRAIN,
        ):
            for prior in getattr(self, kind.value):
                yield kind, prior


_UNIVARIATE_TABLES: dict[PriorKind, type[UnivariatePrior]] = {
    PriorKind.KCAT: KcatPrior,
    PriorKind.KM: KmPrior,
    PriorKind.CONC_ENZYME: EnzymeConcentrationPrior,
    PriorKind.CONC_UNBALANCED: UnbalancedConcentrationPrior,
    PriorKind.DRAIN: DrainPrior,
}


def parse_priors(text: str) -> Priors:
    priors = Priors.model_validate(tomllib.loads(text))
    spans = scan_spans(text)
    updates: dict[str, object] = {}
    for kind, prior_type in _UNIVARIATE_TABLES.items():
        reference = prior_type.REFERENCE_FIELD
        updates[kind.value] = attach_spans(
            getattr(priors, kind.value), spans, kind.value, (reference,), reference
        )
    if priors.dgf is not None:
        updates["dgf"] = priors.dgf.model_copy(
            update={"span": spans.span_of(PriorKind.DGF.value, 0, "ids")}
        )
    return priors.model_copy(update=updates)
