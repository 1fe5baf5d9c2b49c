"""
Distributor Commission Calculations Module

Eligibility matching, aggregation, rate resolution and allocation of commissions
for distributor schemes. Each step lives in its own file.
"""

from .scheme_models import (
    normalize_scheme,
    normalize_sales_records,
    build_distributor_lookup,
    normalize_category_lookup,
)
from .criteria_matcher import matches
from .aggregator import aggregate
from .commission_resolver import resolve, resolve_slab_rate
from .allocator import allocate, CalculationResult
from .commission_engine import perform_scheme_calculation, summarize_results
from .exceptions import CommissionError, InputError, StorageFailure

__all__ = [
    'normalize_scheme',
    'normalize_sales_records',
    'build_distributor_lookup',
    'normalize_category_lookup',
    'matches',
    'aggregate',
    'resolve',
    'resolve_slab_rate',
    'allocate',
    'CalculationResult',
    'perform_scheme_calculation',
    'summarize_results',
    'CommissionError',
    'InputError',
    'StorageFailure',
]
