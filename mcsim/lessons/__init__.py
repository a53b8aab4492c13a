"""Classroom simulation lessons, one module per topic."""

from .assumption_checks import assumption_check_dispatch
from .careless_responding import careless_responding
from .collider import collider_demo, collider_experiment
from .designs import compare_designs
from .false_positives import false_positive_rate, power_by_sample_size
from .just_noise import just_noise
from .mixed_results import mixed_results_table
from .paired_designs import pre_post_power
from .range_restriction import attenuation_experiment, correlation_attenuation, range_restriction_effect_size
from .se_sd_confusion import se_sd_meta_analysis

__all__ = [
    "assumption_check_dispatch",
    "careless_responding",
    "collider_demo",
    "collider_experiment",
    "compare_designs",
    "false_positive_rate",
    "power_by_sample_size",
    "just_noise",
    "mixed_results_table",
    "pre_post_power",
    "attenuation_experiment",
    "correlation_attenuation",
    "range_restriction_effect_size",
    "se_sd_meta_analysis",
]
