"""
Multiverse Plot Example
=======================

One point per condition, ranked by the outcome, with the condition values
that produced it lined up underneath.
"""

from mcsim import Experiment, Mean, Quantile
from mcsim.stats import analyze_cohens_d, generate_two_groups

print("=" * 60)
print("MULTIVERSE OF COHEN'S D")
print("=" * 60)

experiment = Experiment(
    generate_two_groups,
    analyze_cohens_d,
    {
        "n_per_condition": [20, 50, 100],
        "mean_control": 0,
        "mean_intervention": [0.2, 0.5],
        "sd_control": 1,
        "sd_intervention": [0.5, 1, 2],
    },
)
experiment.set_iterations(300)
experiment.run()

summary = experiment.summarize(
    print_results=True,
    mean_d=Mean("d"),
    d_lower=Quantile("d", q=0.025),
    d_upper=Quantile("d", q=0.975),
)

experiment.plot_multiverse(
    "mean_d",
    summary=summary,
    lower="d_lower",
    upper="d_upper",
    cutoff=0.0,
    title="Cohen's d across conditions",
)
