"""
Meta-Analysis and Likelihood Example
====================================

A few studies reporting the SE as the SD distort a random-effects
meta-analysis. A set of mixed significant / non-significant results can be
more likely under a true effect than under none.
"""

from mcsim.lessons import mixed_results_table, se_sd_meta_analysis
from mcsim.utils import format_table, plot_forest, plot_likelihood

print("=" * 60)
print("SE REPORTED AS SD")
print("=" * 60)

result = se_sd_meta_analysis(n_studies=30, probability=0.1, print_results=True)
plot_forest(result.studies, pooled=result.meta_reported, title="Meta-analysis with reporting errors")

print("\n" + "=" * 60)
print("MIXED RESULTS: LIKELIHOOD RATIOS")
print("=" * 60)
print(format_table(mixed_results_table(), digits=4))

plot_likelihood(n_studies=8, n_significant=7, p_h0=0.05, p_h1=0.80)
