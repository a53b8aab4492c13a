"""
One At A Time vs Factorial Designs
==================================

Varying one parameter at a time is cheap but cannot show interactions.
A factorial grid crosses every value of every parameter.
"""

from mcsim.core import pivot_wider
from mcsim.lessons import compare_designs
from mcsim.utils import format_table

print("=" * 60)
print("ONE AT A TIME VS FACTORIAL")
print("=" * 60)

one_at_a_time, factorial = compare_designs(n_iterations=500)

print("\n1. ONE AT A TIME (7 distinct conditions):")
print(format_table(one_at_a_time))

print("\n2. FACTORIAL (27 conditions), power by SD and sample size at d = 0.2:")
subset = factorial[factorial["mean_intervention"] == 0.2]
print(format_table(pivot_wider(subset, names_from="n_per_condition", values_from="power")))
