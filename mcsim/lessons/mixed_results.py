"""
Mixed results between studies.

A set of studies on the same question rarely all come out significant, even
when the effect is real. The binomial likelihood of the observed count
under "no effect" versus "true effect with this power" says which reading
the mixed record supports.
"""

from typing import Sequence, Tuple

import pandas as pd

from ..stats.likelihood import mixed_results_likelihood

# (n_studies, n_significant, p_h0, p_h1)
EXAMPLES: Sequence[Tuple[int, int, float, float]] = (
    (8, 7, 0.05, 0.80),
    (3, 1, 0.05, 0.80),
    (4, 1, 0.25, 0.60),
)


def mixed_results_table(examples: Sequence[Tuple[int, int, float, float]] = EXAMPLES) -> pd.DataFrame:
    """Likelihood ratio for each ``(n_studies, n_significant, p_h0, p_h1)``."""
    rows = []
    for n_studies, n_significant, p_h0, p_h1 in examples:
        result = mixed_results_likelihood(n_studies, n_significant, p_h0, p_h1)
        row = {"n_studies": n_studies, "n_significant": n_significant, "p_h0": p_h0, "p_h1": p_h1}
        row.update(result.to_dict())
        rows.append(row)
    return pd.DataFrame(rows)
