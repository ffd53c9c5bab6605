"""Cross-document consistency checks for a Maud workspace.

Every rule inspects the kinetic model, the priors and the experiment ids and
yields LSP diagnostics anchored on the identifier that is at fault. Model
rules land on the kinetic model document; prior rules on the priors document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Iterator, Sequence

import numpy as np
from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range

from maudls.document import Document
from maudls.kinetic_model import KineticModel
from maudls.priors import FreeEnergyPrior, PriorKind, Priors, UnivariatePrior
from maudls.spans import Span

# column where the identifier value starts after the "id = " key prefix
OFF = 5
SOURCE = "maudls"


class DiagnosticCode(StrEnum):
    MISSING_ENZYME = "missing-enzyme"
    MISSING_REACTION = "missing-reaction"
    MISSING_KCAT = "missing-kcat"
    MISSING_KM = "missing-km"
    MISSING_DRAIN_PRIOR = "missing-drain-prior"
    MISSING_ENZYME_CONCENTRATION = "missing-enzyme-concentration"
    INCOMPLETE_PRIOR = "incomplete-prior"
    INCONSISTENT_PRIOR = "inconsistent-prior"
    KM_EXCEEDS_CONCENTRATION = "km-exceeds-concentration"
    INVALID_FREE_ENERGY_PRIOR = "invalid-free-energy-prior"
    DANGLING_REFERENCE = "dangling-reference"
    PARSE_ERROR = "parse-error"


@dataclass(frozen=True)
class DiagnosticReport:
    model: list[Diagnostic] = field(default_factory=list)
    priors: list[Diagnostic] = field(default_factory=list)

    def all(self) -> list[Diagnostic]:
        return [*self.model, *self.priors]


def make_diagnostic(
    line: int,
    width: int,
    severity: DiagnosticSeverity,
    code: DiagnosticCode,
    message: str,
) -> Diagnostic:
    return Diagnostic(
        range=Range(
            start=Position(line=line, character=OFF),
            end=Position(line=line, character=OFF + width),
        ),
        severity=severity,
        code=code.value,
        source=SOURCE,
        message=message,
    )


def _at(
    document: Document,
    span: Span | None,
    severity: DiagnosticSeverity,
    code: DiagnosticCode,
    message: str,
) -> Diagnostic:
    if span is None:
        return make_diagnostic(0, 0, severity, code, message)
    return make_diagnostic(document.editor_line(span), len(span), severity, code, message)


@dataclass(frozen=True)
class _Inputs:
    model_doc: Document[KineticModel]
    priors_doc: Document[Priors]
    experiments: Sequence[str]

    @property
    def model(self) -> KineticModel:
        return self.model_doc.model

    @property
    def priors(self) -> Priors:
        return self.priors_doc.model


Rule = Callable[[_Inputs], Iterator[Diagnostic]]


def _enzymeless_reactions(inputs: _Inputs) -> Iterator[Diagnostic]:
    linked = {link.reaction_id for link in inputs.model.enzyme_reactions}
    for reaction in inputs.model.reactions:
        if reaction.is_drain or reaction.id in linked:
            continue
        yield _at(
            inputs.model_doc,
            reaction.span,
            DiagnosticSeverity.Error,
            DiagnosticCode.MISSING_ENZYME,
            "Missing enzyme for reaction.",
        )


def _reactionless_enzymes(inputs: _Inputs) -> Iterator[Diagnostic]:
    linked = {link.enzyme_id for link in inputs.model.enzyme_reactions}
    for enzyme in inputs.model.enzymes:
        if enzyme.id in linked:
            continue
        yield _at(
            inputs.model_doc,
            enzyme.span,
            DiagnosticSeverity.Error,
            DiagnosticCode.MISSING_REACTION,
            "Enzyme does not catalyze any reaction.",
        )


def _missing_kcats(inputs: _Inputs) -> Iterator[Diagnostic]:
    covered = {prior.reaction for prior in inputs.priors.kcat}
    for reaction in inputs.model.reactions:
        if reaction.is_drain or reaction.id in covered:
            continue
        yield _at(
            inputs.model_doc,
            reaction.span,
            DiagnosticSeverity.Error,
            DiagnosticCode.MISSING_KCAT,
            f"Missing kcat for reaction {reaction.id}.",
        )


def _missing_kms(inputs: _Inputs) -> Iterator[Diagnostic]:
    for reaction in inputs.model.reactions:
        if reaction.is_drain:
            continue
        required = set(reaction.stoichiometry)
        for enzyme_id in inputs.model.enzymes_for_reaction(reaction.id):
            defined = {
                prior.key for prior in inputs.priors.km if prior.enzyme == enzyme_id
            }
            missing = sorted(required - defined)
            if not missing:
                continue
            yield _at(
                inputs.model_doc,
                reaction.span,
                DiagnosticSeverity.Error,
                DiagnosticCode.MISSING_KM,
                f"Missing kms for reaction {reaction.id} (enzyme {enzyme_id}): "
                f"{', '.join(missing)}.",
            )


def _missing_drain_priors(inputs: _Inputs) -> Iterator[Diagnostic]:
    covered = {(prior.reaction, prior.experiment) for prior in inputs.priors.drain}
    for reaction in inputs.model.reactions:
        if not reaction.is_drain:
            continue
        for experiment in inputs.experiments:
            if (reaction.id, experiment) in covered:
                continue
            yield _at(
                inputs.model_doc,
                reaction.span,
                DiagnosticSeverity.Warning,
                DiagnosticCode.MISSING_DRAIN_PRIOR,
                f"Missing drain prior for experiment '{experiment}'.",
            )


def _missing_enzyme_concentrations(inputs: _Inputs) -> Iterator[Diagnostic]:
    covered = {
        (prior.enzyme, prior.experiment) for prior in inputs.priors.conc_enzyme
    }
    for enzyme in inputs.model.enzymes:
        for experiment in inputs.experiments:
            if (enzyme.id, experiment) in covered:
                continue
            yield _at(
                inputs.model_doc,
                enzyme.span,
                DiagnosticSeverity.Warning,
                DiagnosticCode.MISSING_ENZYME_CONCENTRATION,
                f"Missing concentration prior for experiment '{experiment}'.",
            )


def _prior_shapes(inputs: _Inputs) -> Iterator[Diagnostic]:
    for _kind, prior in inputs.priors.univariate():
        incomplete = prior.incomplete()
        if incomplete is not None:
            yield _at(
                inputs.priors_doc,
                prior.span,
                DiagnosticSeverity.Error,
                DiagnosticCode.INCOMPLETE_PRIOR,
                incomplete,
            )
        inconsistent = prior.inconsistent()
        if inconsistent is not None:
            yield _at(
                inputs.priors_doc,
                prior.span,
                DiagnosticSeverity.Error,
                DiagnosticCode.INCONSISTENT_PRIOR,
                inconsistent,
            )


def _km_above_concentration(inputs: _Inputs) -> Iterator[Diagnostic]:
    lowest: dict[str, float] = {}
    for concentration in inputs.priors.conc_unbalanced:
        mean = concentration.mean()
        if mean is None:
            continue
        lowest[concentration.key] = min(mean, lowest.get(concentration.key, mean))
    for km in inputs.priors.km:
        km_mean = km.mean()
        concentration_mean = lowest.get(km.key)
        if km_mean is None or concentration_mean is None:
            continue
        if km_mean > concentration_mean:
            yield _at(
                inputs.priors_doc,
                km.span,
                DiagnosticSeverity.Warning,
                DiagnosticCode.KM_EXCEEDS_CONCENTRATION,
                f"Km {km_mean:g} > mean of unbalanced concentration "
                f"{concentration_mean:g} for {km.key}.",
            )


def is_positive_definite(matrix: Sequence[Sequence[float]]) -> bool:
    """Finite symmetric matrix whose Cholesky pivots are all positive."""
    array = np.asarray(matrix, dtype=float)
    # cholesky only reads the lower triangle and lets NaN pivots through
    if not np.isfinite(array).all() or not np.allclose(array, array.T):
        return False
    try:
        np.linalg.cholesky(array)
    except np.linalg.LinAlgError:
        return False
    return True


def free_energy_problem(prior: FreeEnergyPrior) -> str | None:
    matrix = prior.covariance_matrix
    size = len(matrix)
    if any(len(row) != size for row in matrix):
        return "Covariance matrix of the formation energy prior is not square."
    if size != len(prior.ids) or size != len(prior.mean_vector):
        return (
            f"Covariance matrix is {size}x{size} but the prior has "
            f"{len(prior.ids)} ids and {len(prior.mean_vector)} means."
        )
    if size and not is_positive_definite(matrix):
        return "Covariance matrix of the formation energy prior is not positive definite."
    return None


def _free_energy_prior(inputs: _Inputs) -> Iterator[Diagnostic]:
    prior = inputs.priors.dgf
    if prior is None:
        return
    problem = free_energy_problem(prior)
    if problem is not None:
        yield _at(
            inputs.priors_doc,
            prior.span,
            DiagnosticSeverity.Error,
            DiagnosticCode.INVALID_FREE_ENERGY_PRIOR,
            problem,
        )


def _references(prior: UnivariatePrior) -> Iterator[tuple[str, str]]:
    for attribute in ("enzyme", "reaction", "metabolite", "experiment"):
        value = getattr(prior, attribute, None)
        if value is not None:
            yield attribute, value


def _dangling_references(inputs: _Inputs) -> Iterator[Diagnostic]:
    known = {
        "enzyme": {enzyme.id for enzyme in inputs.model.enzymes},
        "reaction": {reaction.id for reaction in inputs.model.reactions},
        "metabolite": {metabolite.id for metabolite in inputs.model.metabolites},
        "experiment": set(inputs.experiments),
    }
    for kind, prior in inputs.priors.univariate():
        for attribute, value in _references(prior):
            if value in known[attribute]:
                continue
            yield _at(
                inputs.priors_doc,
                prior.span,
                DiagnosticSeverity.Warning,
                DiagnosticCode.DANGLING_REFERENCE,
                f"Unknown {attribute} '{value}' referenced by {kind.value} prior.",
            )


_MODEL_RULES: tuple[Rule, ...] = (
    _enzymeless_reactions,
    _reactionless_enzymes,
    _missing_kcats,
    _missing_kms,
    _missing_drain_priors,
    _missing_enzyme_concentrations,
)

_PRIOR_RULES: tuple[Rule, ...] = (
    _prior_shapes,
    _km_above_concentration,
    _free_energy_prior,
    _dangling_references,
)


def gather_diagnostics(
    model_doc: Document[KineticModel],
    priors_doc: Document[Priors],
    experiments: Sequence[str],
) -> DiagnosticReport:
    inputs = _Inputs(model_doc=model_doc, priors_doc=priors_doc, experiments=experiments)
    return DiagnosticReport(
        model=[diagnostic for rule in _MODEL_RULES for diagnostic in rule(inputs)],
        priors=[diagnostic for rule in _PRIOR_RULES for diagnostic in rule(inputs)],
    )
