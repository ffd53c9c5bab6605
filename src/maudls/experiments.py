from __future__ import annotations

import tomllib

from pydantic import BaseModel, ConfigDict, Field

from maudls.spans import Span, attach_spans, scan_spans

_EXPERIMENT_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Measurement(BaseModel):
    model_config = _EXPERIMENT_CONFIG

    target_type: str
    metabolite: str | None = None
    reaction: str | None = None
    compartment: str | None = None
    value: float
    error_scale: float


class Experiment(BaseModel):
    """Experiment with measurements; ``id`` cannot contain underscores."""

    model_config = _EXPERIMENT_CONFIG

    id: str
    is_train: bool = True
    is_test: bool = False
    temperature: float | None = None
    measurements: tuple[Measurement, ...] = ()
    span: Span | None = None


class ExperimentData(BaseModel):
    model_config = _EXPERIMENT_CONFIG

    experiments: tuple[Experiment, ...] = Field(
        default=(), validation_alias="experiment"
    )

    def experiment_ids(self) -> list[str]:
        return [experiment.id for experiment in self.experiments]


def parse_experiments(text: str) -> ExperimentData:
    data = ExperimentData.model_validate(tomllib.loads(text))
    spans = scan_spans(text)
    return data.model_copy(
        update={
            "experiments": attach_spans(
                data.experiments, spans, "experiment", ("id",), "id"
            )
        }
    )
