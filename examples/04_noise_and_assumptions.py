"""
Careless Responding and Assumption Checks
=========================================

Random responders pull correlations towards zero. Checking normality before
choosing a test changes which test runs, and the choice depends on sample
size as much as on the data.
"""

from mcsim.lessons import assumption_check_dispatch, careless_responding, just_noise
from mcsim.utils import format_table

print("=" * 60)
print("CARELESS RESPONDING")
print("=" * 60)
print(format_table(careless_responding(n_iterations=500)))

print("\n" + "=" * 60)
print("NORMALITY CHECK, THEN T-TEST OR RANK TEST")
print("=" * 60)
print(format_table(assumption_check_dispatch(n_iterations=500)))

print("\n" + "=" * 60)
print("JUST NOISE (NEGATIVE CONTROL)")
print("=" * 60)
print(format_table(just_noise(n_iterations=500)))
