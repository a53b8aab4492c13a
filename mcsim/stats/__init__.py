"""Data generators and analyzers."""

from . import analysis as analysis
from . import data_generation as data_generation
from . import likelihood as likelihood
from . import meta_analysis as meta_analysis
from . import path_models as path_models
from .analysis import (
    CohensDResult,
    CorrelationResult,
    DispatchResult,
    NormalityResult,
    RankTestResult,
    TTestResult,
    analyze_cohens_d,
    analyze_correlation,
    analyze_independent_t_test,
    analyze_ks_test,
    analyze_mann_whitney,
    analyze_paired_t_test,
    analyze_shapiro_wilk,
    analyze_with_assumption_check,
    correct_range_restriction,
)
from .data_generation import (
    generate_bivariate_normal,
    generate_careless_mixture,
    generate_pre_post,
    generate_preselected_two_groups,
    generate_restricted_population_sample,
    generate_single_group,
    generate_two_groups,
    generate_two_groups_random_n,
    restrict_range,
    simulate_path_model,
    subsample,
)
from .likelihood import likelihood_curve, mixed_results_likelihood
from .meta_analysis import random_effects_meta, standardized_mean_difference, summarize_study, swap_sd_for_se
from .path_models import PathEstimate, analyze_path_model, fit_path_model
