"""
False Positives Example
=======================

Two groups drawn from the same population: how often does a t-test call
the difference significant? Then the same experiment with a true effect,
across sample sizes.
"""

from mcsim import Experiment, Mean, Proportion
from mcsim.stats import analyze_independent_t_test, generate_two_groups

print("=" * 60)
print("FALSE POSITIVE RATE UNDER A TRUE NULL")
print("=" * 60)

# 1. Generator and analyzer are plain functions
experiment = Experiment(generate_two_groups, analyze_independent_t_test)

# 2. Declare the condition grid (single values or sets of candidates)
experiment.set_parameters("n_per_condition=100, mean_control=0, mean_intervention=0, sd_control=1, sd_intervention=1")
experiment.set_iterations(1000).set_seed(42)

# 3. Run and summarise
experiment.run()
experiment.summarize(
    print_results=True,
    false_positive_rate=Proportion("p"),
    mean_difference=Mean("estimate"),
)

print("\n" + "=" * 60)
print("POWER ACROSS SAMPLE SIZES")
print("=" * 60)

experiment.set_parameters(
    {
        "n_per_condition": [25, 50, 100, 200],
        "mean_control": 0,
        "mean_intervention": [0.2, 0.5],
        "sd_control": 1,
        "sd_intervention": 1,
    }
)
experiment.run()
summary = experiment.summarize(print_results=True, power=Proportion("p"))

experiment.plot_outcome_curves(
    x="n_per_condition",
    outcome="power",
    line="mean_intervention",
    summary=summary,
    reference=0.8,
    title="Power of the Welch t-test",
)
