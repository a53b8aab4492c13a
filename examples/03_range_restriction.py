"""
Range Restriction Example
=========================

Pre-selecting participants on a trait leaves the raw mean difference intact
but shrinks the SD, inflating Cohen's d. Restricting one variable of a
correlation attenuates r; dividing by the SD ratio undoes most of it.
"""

from mcsim.lessons import correlation_attenuation, range_restriction_effect_size
from mcsim.utils import format_table

print("=" * 60)
print("RANGE RESTRICTION AND COHEN'S D")
print("=" * 60)

summary = range_restriction_effect_size(n_iterations=500)
print(format_table(summary))

print("\n" + "=" * 60)
print("CORRELATION ATTENUATION (n = 10000, rho = 0.6, x > 75th percentile)")
print("=" * 60)

result = correlation_attenuation(n=10000, rho=0.6, quantile=0.75)
for key, value in result.items():
    print(f"{key:>24}: {value:.3f}" if isinstance(value, float) else f"{key:>24}: {value}")
