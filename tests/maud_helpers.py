from __future__ import annotations

from pathlib import Path

CONFIG_TOML = """\
name = "toy glycolysis"
kinetic_model_file = "kinetic_model.toml"
priors_file = "priors.toml"
experiments_file = "experiments.toml"
"""

# g6p is declared on editor line 1 and g3p on editor line 8
KINETIC_MODEL_TOML = """\
[[metabolite]]
id = "g6p"
name = "glucose 6-phosphate"
[[metabolite]]
id = "f6p"
name = "fructose 6-phosphate"

[[metabolite]]
id = "g3p"
name = "glyceraldehyde 3-phosphate"

[[compartment]]
id = "c"
name = "cytosol"
volume = 1

[[metabolite_in_compartment]]
metabolite = "g6p"
compartment = "c"
balanced = false

[[metabolite_in_compartment]]
metabolite = "f6p"
compartment = "c"
balanced = true

[[metabolite_in_compartment]]
metabolite = "g3p"
compartment = "c"
balanced = false

[[enzyme]]
id = "pgi"
name = "phosphoglucose isomerase"
subunits = 1

[[reaction]]
id = "PGI"
name = "glucose 6-phosphate isomerisation"
mechanism = "reversible_michaelis_menten"
stoichiometry = { g6p_c = -1, f6p_c = 1 }

[[reaction]]
id = "EXP"
name = "g3p export"
mechanism = "drain"
stoichiometry = { g3p_c = -1 }

[[enzyme_reaction]]
enzyme_id = "pgi"
reaction_id = "PGI"
"""

PRIORS_TOML = """\
[[kcat]]
enzyme = "pgi"
reaction = "PGI"
exploc = 126.0
scale = 0.2

[[km]]
metabolite = "g6p"
compartment = "c"
enzyme = "pgi"
exploc = 1.0
scale = 0.2

[[km]]
metabolite = "f6p"
compartment = "c"
enzyme = "pgi"
pct1 = 0.1
pct99 = 0.5

[[conc_enzyme]]
enzyme = "pgi"
experiment = "batch1"
location = 0.03
scale = 0.1

[[conc_unbalanced]]
metabolite = "g6p"
compartment = "c"
experiment = "batch1"
location = 2.0
scale = 0.1
"""

EXPERIMENTS_TOML = """\
[[experiment]]
id = "batch1"
is_train = true
is_test = false
temperature = 298.15

[[experiment.measurements]]
target_type = "mic"
metabolite = "g6p"
compartment = "c"
value = 2.1
error_scale = 0.05
"""


def write_workspace(
    root: Path,
    *,
    config: str = CONFIG_TOML,
    kinetic_model: str = KINETIC_MODEL_TOML,
    priors: str = PRIORS_TOML,
    experiments: str = EXPERIMENTS_TOML,
) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "config.toml").write_text(config, encoding="utf-8")
    (root / "kinetic_model.toml").write_text(kinetic_model, encoding="utf-8")
    (root / "priors.toml").write_text(priors, encoding="utf-8")
    (root / "experiments.toml").write_text(experiments, encoding="utf-8")
    return root
