"""
Collider Example
================

M is caused by both X and Y. Adding M to the model creates an X-Y
association where there is none, and shrinks a real one in a way that looks
like partial mediation.
"""

from mcsim.lessons import collider_demo, collider_experiment
from mcsim.utils import format_table

print("=" * 60)
print("COLLIDER LOOKS LIKE MEDIATION (n = 10000)")
print("=" * 60)
print(format_table(collider_demo(n=10000)[["scenario", "analysis_model", "estimate", "p"]]))

print("\n" + "=" * 60)
print("SAMPLING DISTRIBUTION UNDER A TRUE NULL (n = 200)")
print("=" * 60)
print(format_table(collider_experiment(n=200, n_iterations=300)))
